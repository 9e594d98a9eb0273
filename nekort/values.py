"""Core runtime values: objects, functions, kinds, field ids and value hashing."""

from __future__ import annotations

import struct
import threading
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

VAR_ARGS = -1
CALL_MAX_ARGS = 5

_INT32_MOD = 1 << 32
_INT31_MOD = 1 << 31
_HASH_MASK = 0x3FFFFFFF


class NekoError(Exception):
    """A value thrown by the runtime or by user code."""

    def __init__(self, value: Any) -> None:
        super().__init__(value)
        self.value = value

    def __str__(self) -> str:
        if isinstance(self.value, bytes):
            return self.value.decode("utf-8", "replace")
        return str(self.value)


@dataclass(frozen=True, eq=False)
class Kind:
    """A tag identifying the type of an abstract value."""

    name: str


@dataclass(eq=False)
class Abstract:
    """Opaque data tagged with a kind."""

    kind: Kind
    data: Any = None


@dataclass(eq=False)
class NekoObject:
    """An object mapping field ids to values, with an optional prototype."""

    proto: NekoObject | None = None
    table: dict[int, Any] = field(default_factory=dict)

    def get(self, fid: int) -> Any:
        """Return the field, searching the prototype chain, or None."""
        obj: NekoObject | None = self
        while obj is not None:
            if fid in obj.table:
                return obj.table[fid]
            obj = obj.proto
        return None

    def set(self, fid: int, value: Any) -> None:
        """Set or replace a field on this object."""
        self.table[fid] = value

    def has(self, fid: int) -> bool:
        """Tell whether this object itself holds the field."""
        return fid in self.table

    def remove(self, fid: int) -> bool:
        """Remove a field; return True if it was present."""
        return self.table.pop(fid, _MISSING) is not _MISSING

    def fields(self) -> list[int]:
        """Return the ids of the object's own fields, in id order."""
        return sorted(self.table)

    def copy(self) -> NekoObject:
        """Return a shallow copy sharing the same prototype."""
        return NekoObject(proto=self.proto, table=dict(self.table))


_MISSING = object()
_KEEP = object()
_this: ContextVar[Any] = ContextVar("neko_this", default=None)


@dataclass(eq=False)
class NekoFunction:
    """A callable runtime function with a fixed or variable arity."""

    impl: Callable[..., Any]
    nargs: int
    name: str = ""
    env: Any = None

    def __post_init__(self) -> None:
        if self.impl is None or (self.nargs < 0 and self.nargs != VAR_ARGS):
            raise NekoError("alloc_function")

    def __call__(self, *args: Any) -> Any:
        return call_function(self, args)


def current_this() -> Any:
    """Return the 'this' value of the running call."""
    return _this.get()


def call_function(func: Any, args: Iterable[Any] = (), this: Any = _KEEP) -> Any:
    """Call a runtime function, optionally with a new 'this' context."""
    if not isinstance(func, NekoFunction):
        raise NekoError("Invalid call")
    args = tuple(args)
    if func.nargs == len(args):
        if len(args) > CALL_MAX_ARGS:
            raise NekoError("Too many arguments for a call")
    elif func.nargs != VAR_ARGS:
        raise NekoError("Invalid call")
    if this is _KEEP:
        return func.impl(*args)
    token = _this.set(this)
    try:
        return func.impl(*args)
    finally:
        _this.reset(token)


def best_int(value: int) -> int:
    """Wrap an integer to the signed 32-bit range."""
    value %= _INT32_MOD
    return value - _INT32_MOD if value >= _INT32_MOD // 2 else value


def _int31(value: int) -> int:
    value %= _INT31_MOD
    return value - _INT31_MOD if value >= _INT31_MOD // 2 else value


_fields: dict[int, str] = {}
_fields_lock = threading.Lock()


def field_hash(name: str | bytes) -> int:
    """Return the id of a field name and remember the name for it."""
    raw = name.encode("utf-8") if isinstance(name, str) else bytes(name)
    acc = 0
    for byte in raw:
        if byte == 0:
            break
        acc = _int31(223 * acc + byte)
    text = raw.split(b"\0", 1)[0].decode("utf-8", "replace")
    with _fields_lock:
        known = _fields.get(acc)
        if known is None:
            _fields[acc] = text
        elif known != text:
            raise NekoError(f"Field conflict between {known} and {text}")
    return acc


def field_name(fid: int) -> str | None:
    """Return the name registered for a field id, or None."""
    with _fields_lock:
        return _fields.get(fid)


def _big(h: int, x: int) -> int:
    return (h * 65599 + x) % _INT32_MOD


def _small(h: int, x: int) -> int:
    return (h * 19 + x) % _INT32_MOD


def _signed_bytes_reversed(data: bytes) -> Iterable[int]:
    for byte in reversed(data):
        yield byte - 256 if byte >= 128 else byte


def _hash_rec(value: Any, h: int, seen: list[Any]) -> int:
    if value is None:
        return _small(h, 0)
    if isinstance(value, bool):
        return _small(h, int(value))
    if isinstance(value, int):
        return _big(h, best_int(value))
    if isinstance(value, float):
        for b in _signed_bytes_reversed(struct.pack("<d", value)):
            h = _small(h, b)
        return h
    if isinstance(value, (str, bytes, bytearray)):
        raw = value.encode("utf-8") if isinstance(value, str) else bytes(value)
        for b in _signed_bytes_reversed(raw):
            h = _small(h, b)
        return h
    if isinstance(value, (NekoObject, list)):
        for k, item in enumerate(seen):
            if item is value:
                return _small(h, k)
        inner = [value, *seen]
        if isinstance(value, NekoObject):
            for fid in value.fields():
                h = _big(h, best_int(fid))
                h = _hash_rec(value.table[fid], h, inner)
            if value.proto is not None:
                h = _hash_rec(value.proto, h, inner)
        else:
            for item in reversed(value):
                h = _hash_rec(item, h, inner)
        return h
    # functions and abstracts are ignored so hashes stay stable
    return h


def value_hash(value: Any) -> int:
    """Return a structural 30-bit hash of any value."""
    return _hash_rec(value, 0, []) & _HASH_MASK


_kinds: dict[str, Kind] = {}
_kinds_lock = threading.Lock()


def kind_share(name: str, kind: Kind) -> Kind:
    """Register a kind under a name, or return the kind already shared there."""
    with _kinds_lock:
        return _kinds.setdefault(name, kind)


def kind_lookup(name: str) -> Kind | None:
    """Return the kind shared under a name, or None."""
    with _kinds_lock:
        return _kinds.get(name)