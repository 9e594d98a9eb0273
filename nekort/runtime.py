"""Conversion, function and hashtable builtins of the runtime."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Iterator

from nekort.values import (
    VAR_ARGS,
    Abstract,
    NekoError,
    NekoFunction,
    NekoObject,
    best_int,
    call_function,
    value_hash,
)

HASH_DEF_SIZE = 7
MAX_APPLY_ARGS = 5

_U32 = 0xFFFFFFFF
_INT31_MOD = 1 << 31
_LONG_MAX = (1 << 63) - 1
_LONG_MIN = -(1 << 63)

_SPACES = b" \t\n\v\f\r"
_DECIMAL_RE = re.compile(rb"[+-]?\d+")
_FLOAT_RE = re.compile(
    rb"[+-]?(?:"
    rb"(?P<hex>0[xX](?:[0-9a-fA-F]+(?:\.[0-9a-fA-F]*)?|\.[0-9a-fA-F]+)(?:[pP][+-]?\d+)?)"
    rb"|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?"
    rb"|[iI][nN][fF](?:[iI][nN][iI][tT][yY])?"
    rb"|[nN][aA][nN]"
    rb")"
)


def _int31(value: int) -> int:
    value %= _INT31_MOD
    return value - _INT31_MOD if value >= _INT31_MOD // 2 else value


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _as_bytes(value: Any) -> bytes | None:
    if isinstance(value, str):
        return value.encode("utf-8")
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    return None


def _c_string(value: bytes) -> bytes:
    return value.split(b"\0", 1)[0]


def _is_callable_with(func: Any, count: int) -> bool:
    return isinstance(func, NekoFunction) and func.nargs in (count, VAR_ARGS)


# ---------------------------------------------------------------- numbers


def fasthash(name: str | bytes) -> int:
    """Return the hashed id of a field name without registering it."""
    raw = _as_bytes(name)
    if raw is None:
        raise NekoError("$fasthash")
    acc = 0
    for byte in _c_string(raw):
        acc = _int31(223 * acc + byte)
    return acc


def _string_to_int(raw: bytes) -> int | None:
    text = _c_string(raw).lstrip(_SPACES)
    sign = text[:1]
    signed = sign in (b"-", b"+")
    digits_at = 1 if signed else 0
    if len(text) >= digits_at + 2 and text[digits_at:digits_at + 1] == b"0" and text[digits_at + 1:digits_at + 2] in (b"x", b"X"):
        h = 0
        for char in text[digits_at + 2:].decode("latin-1"):
            if char not in "0123456789abcdefABCDEF":
                break
            h = ((h << 4) | int(char, 16)) & _U32
        if sign == b"-":
            h = -h
        return best_int(h)
    match = _DECIMAL_RE.match(text)
    if match is None:
        return None
    number = max(_LONG_MIN, min(_LONG_MAX, int(match.group())))
    return best_int(number)


def to_int(value: Any) -> int | None:
    """Convert a value to an integer, or return None when it has no integer meaning."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            return 0
        return _int31(int(math.fmod(value, 4294967296.0)) & _U32)
    raw = _as_bytes(value)
    if raw is not None:
        return _string_to_int(raw)
    return None


def to_float(value: Any) -> float | None:
    """Convert a value to a float, or return None when it has no numeric meaning."""
    raw = _as_bytes(value)
    if raw is not None:
        text = _c_string(raw).lstrip(_SPACES)
        match = _FLOAT_RE.match(text)
        if match is None:
            return None
        literal = match.group().decode("ascii")
        if match.group("hex") is not None:
            return float.fromhex(literal)
        return float(literal)
    if _is_number(value):
        return float(value)
    return None


def type_of(value: Any) -> int:
    """Return the type code of a value (null 0, int 1, float 2, bool 3, string 4,
    object 5, array 6, function 7, abstract 8)."""
    if value is None:
        return 0
    if isinstance(value, bool):
        return 3
    if isinstance(value, int):
        return 1
    if isinstance(value, float):
        return 2
    if isinstance(value, (bytes, bytearray, str)):
        return 4
    if isinstance(value, NekoObject):
        return 5
    if isinstance(value, list):
        return 6
    if isinstance(value, NekoFunction):
        return 7
    if isinstance(value, Abstract):
        return 8
    raise NekoError("$typeof")


def is_true(value: Any) -> bool:
    """Return True unless the value is false, null or the integer 0."""
    if value is None or value is False:
        return False
    return not (_is_int(value) and value == 0)


def is_nan(value: Any) -> bool:
    """Tell whether a value is the float NaN."""
    return isinstance(value, float) and math.isnan(value)


def is_infinite(value: Any) -> bool:
    """Tell whether a value is an infinite float."""
    return isinstance(value, float) and math.isinf(value)


def idiv(a: int, b: int) -> int:
    """Divide two 32-bit integers, truncating toward zero."""
    if not _is_int(a) or not _is_int(b):
        raise NekoError("$idiv")
    a, b = best_int(a), best_int(b)
    if b == 0:
        raise NekoError("$idiv")
    quotient = abs(a) // abs(b)
    return best_int(quotient if (a < 0) == (b < 0) else -quotient)


# -------------------------------------------------------------- functions


def nargs(func: NekoFunction) -> int:
    """Return the number of arguments of a function, -1 for variable arguments."""
    if not isinstance(func, NekoFunction):
        raise NekoError("$nargs")
    return func.nargs


def closure(func: NekoFunction, this: Any, *args: Any) -> NekoFunction:
    """Bind a 'this' value and leading arguments to a function."""
    if not isinstance(func, NekoFunction):
        raise NekoError("$closure")
    fargs = func.nargs
    if fargs != VAR_ARGS and fargs < len(args):
        raise NekoError("Invalid closure arguments number")
    bound = tuple(args)

    def _callback(*call_args: Any) -> Any:
        if fargs != len(bound) + len(call_args) and fargs != VAR_ARGS:
            return None
        return call_function(func, bound + call_args, this)

    return NekoFunction(_callback, VAR_ARGS, "closure_callback", env=[func, this, *bound])


def apply(func: NekoFunction, *args: Any) -> Any:
    """Call the function if enough arguments are given, else return a function
    awaiting the rest."""
    if not isinstance(func, NekoFunction):
        raise NekoError("$apply")
    if not args:
        return func
    fargs = func.nargs
    if fargs == len(args) or fargs == VAR_ARGS:
        return call_function(func, args)
    if len(args) > fargs:
        raise NekoError("$apply")
    missing = fargs - len(args)
    if missing > MAX_APPLY_ARGS:
        raise NekoError("Too many apply arguments")
    bound = tuple(args)

    def _partial(*rest: Any) -> Any:
        return call_function(func, bound + rest)

    return NekoFunction(_partial, missing, "apply", env=[func, *bound, *([None] * missing)])


def varargs(func: NekoFunction) -> NekoFunction:
    """Return a variable-argument function passing its arguments to ``func`` as one array."""
    if not _is_callable_with(func, 1):
        raise NekoError("$varargs")

    def _callback(*call_args: Any) -> Any:
        return call_function(func, [list(call_args)])

    return NekoFunction(_callback, VAR_ARGS, "varargs", env=func)


# -------------------------------------------------------------- hashtable


def _equal(a: Any, b: Any) -> bool:
    if a is b:
        return True
    if _is_number(a) and _is_number(b):
        return a == b
    left, right = _as_bytes(a), _as_bytes(b)
    if left is not None and right is not None:
        return left == right
    return False


@dataclass(eq=False)
class _Cell:
    hkey: int
    key: Any
    value: Any


class HashTable:
    """A chained hashtable keyed by structural value hashes."""

    def __init__(self, size: int = 0) -> None:
        if not _is_int(size):
            raise NekoError("$hnew")
        ncells = size if size > 0 else HASH_DEF_SIZE
        self._cells: list[list[_Cell]] = [[] for _ in range(ncells)]
        self._nitems = 0

    @staticmethod
    def _check_cmp(cmp: Any, name: str) -> None:
        if cmp is not None and not _is_callable_with(cmp, 2):
            raise NekoError(f"${name}")

    @staticmethod
    def _matches(cmp: Any, key: Any, other: Any) -> bool:
        if cmp is None:
            return _equal(key, other)
        result = call_function(cmp, (key, other))
        return _is_int(result) and result == 0

    def _chain(self, key: Any) -> list[_Cell]:
        return self._cells[value_hash(key) % len(self._cells)]

    def _find(self, key: Any, cmp: Any) -> _Cell | None:
        return next((c for c in self._chain(key) if self._matches(cmp, key, c.key)), None)

    def _insert(self, hkey: int, key: Any, value: Any) -> None:
        if self._nitems >= len(self._cells) * 2:
            self.resize(len(self._cells) * 2)
        self._cells[hkey % len(self._cells)].insert(0, _Cell(hkey, key, value))
        self._nitems += 1

    def get(self, key: Any, cmp: Any = None) -> Any:
        """Return the value bound to ``key``, or None."""
        self._check_cmp(cmp, "hget")
        cell = self._find(key, cmp)
        return None if cell is None else cell.value

    def mem(self, key: Any, cmp: Any = None) -> bool:
        """Tell whether ``key`` is bound."""
        self._check_cmp(cmp, "hmem")
        return self._find(key, cmp) is not None

    def set(self, key: Any, value: Any, cmp: Any = None) -> bool:
        """Bind ``key`` to ``value``; return True if a new binding was added."""
        self._check_cmp(cmp, "hset")
        cell = self._find(key, cmp)
        if cell is not None:
            cell.value = value
            return False
        self._insert(value_hash(key), key, value)
        return True

    def add(self, key: Any, value: Any) -> None:
        """Add a binding that masks, without removing, any previous one."""
        hkey = value_hash(key)
        if hkey < 0:
            raise NekoError("$hadd")
        self._insert(hkey, key, value)

    def remove(self, key: Any, cmp: Any = None) -> bool:
        """Remove the most recent binding of ``key``; return True if one was found."""
        self._check_cmp(cmp, "hremove")
        chain = self._chain(key)
        for index, cell in enumerate(chain):
            if self._matches(cmp, key, cell.key):
                del chain[index]
                self._nitems -= 1
                return True
        return False

    def resize(self, size: int) -> None:
        """Redistribute the bindings over ``size`` slots (7 when not positive)."""
        if not _is_int(size):
            raise NekoError("$hresize")
        nsize = size if size > 0 else HASH_DEF_SIZE
        cells: list[list[_Cell]] = [[] for _ in range(nsize)]
        for chain in self._cells:
            for cell in reversed(chain):
                cells[cell.hkey % nsize].insert(0, cell)
        self._cells = cells

    def items(self) -> Iterator[tuple[Any, Any]]:
        """Yield every ``(key, value)`` pair, slot by slot."""
        snapshot = [(c.key, c.value) for chain in self._cells for c in chain]
        yield from snapshot

    def count(self) -> int:
        """Return the number of bindings."""
        return self._nitems

    def size(self) -> int:
        """Return the number of slots."""
        return len(self._cells)

    def __len__(self) -> int:
        return self._nitems