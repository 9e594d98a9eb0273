"""Operations on UTF-8 encoded byte strings.

Most operations are tuned for speed and may accept some malformed input;
only :func:`validate` fully checks the format.
"""

from __future__ import annotations

from typing import Any, Iterator

from nekort.values import NekoError

_U32 = 0xFFFFFFFF


def _check_bytes(data: Any, name: str) -> bytes:
    if not isinstance(data, (bytes, bytearray)):
        raise NekoError(name)
    return bytes(data)


def _check_int(value: Any, name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise NekoError(name)
    return value


def _width(lead: int) -> int | None:
    """Return the byte length announced by a lead byte, None for a stray continuation."""
    if lead < 0x80:
        return 1
    if lead < 0xC0:
        return None
    if lead < 0xE0:
        return 2
    if lead < 0xF0:
        return 3
    return 4


def _decode(lead: int, data: bytes, index: int, width: int) -> int:
    if width == 2:
        return ((lead & 0x3F) << 6) | (data[index] & 0x7F)
    if width == 3:
        return ((lead & 0x1F) << 12) | ((data[index] & 0x7F) << 6) | (data[index + 1] & 0x7F)
    return (
        ((lead & 0x0F) << 18)
        | ((data[index] & 0x7F) << 12)
        | ((data[index + 1] & 0x7F) << 6)
        | (data[index + 2] & 0x7F)
    )


class Utf8Buffer:
    """A growable buffer that encodes code points as UTF-8."""

    def __init__(self, size: int = 0) -> None:
        size = _check_int(size, "utf8_buf_alloc")
        if size < 0:
            raise NekoError("utf8_buf_alloc")
        self._data = bytearray()
        self._nesc = 0

    def add(self, char: int) -> None:
        """Append a code point in the range 0 to 0x10FFFF."""
        c = _check_int(char, "utf8_buf_add") & _U32
        out = self._data
        if c <= 0x7F:
            out.append(c)
        elif c <= 0x7FF:
            out += bytes((0xC0 | (c >> 6), 0x80 | (c & 63)))
            self._nesc += 1
        elif c <= 0xFFFF:
            out += bytes((0xE0 | (c >> 12), 0x80 | ((c >> 6) & 63), 0x80 | (c & 63)))
            self._nesc += 2
        elif c <= 0x10FFFF:
            out += bytes((
                0xF0 | (c >> 18),
                0x80 | ((c >> 12) & 63),
                0x80 | ((c >> 6) & 63),
                0x80 | (c & 63),
            ))
            self._nesc += 3
        else:
            raise NekoError("utf8_buf_add")

    def content(self) -> bytes:
        """Return the bytes written so far."""
        return bytes(self._data)

    def length(self) -> int:
        """Return the number of code points stored."""
        return len(self._data) - self._nesc

    def size(self) -> int:
        """Return the number of bytes stored."""
        return len(self._data)


def validate(data: bytes) -> bool:
    """Tell whether ``data`` is encoded as UTF-8."""
    data = _check_bytes(data, "utf8_validate")
    end = len(data)
    i = 0
    while i < end:
        c = data[i]
        i += 1
        width = _width(c)
        if width is None:
            return False
        for _ in range(width - 1):
            follow = data[i] if i < end else 0
            if follow & 0x80 != 0x80:
                return False
            i += 1
    return True


def length(data: bytes) -> int:
    """Return the number of UTF-8 characters in ``data``."""
    data = _check_bytes(data, "utf8_length")
    end = len(data)
    count = 0
    i = 0
    while i < end:
        width = _width(data[i])
        if width is None:
            raise NekoError("utf8_length")
        count += 1
        i += width
    if i > end:
        raise NekoError("utf8_length")
    return count


def _skip(data: bytes, index: int, count: int) -> int:
    end = len(data)
    while count > 0 and index < end:
        width = _width(data[index])
        if width is None:
            raise NekoError("utf8_sub")
        index += width
        count -= 1
    if index > end:
        raise NekoError("utf8_sub")
    return index


def sub(data: bytes, pos: int, length: int) -> bytes:
    """Return ``length`` characters of ``data`` starting at character ``pos``."""
    data = _check_bytes(data, "utf8_sub")
    pos = _check_int(pos, "utf8_sub")
    length = _check_int(length, "utf8_sub")
    if pos < 0:
        raise NekoError("utf8_sub")
    start = _skip(data, 0, pos)
    if length < 0:
        raise NekoError("utf8_sub")
    stop = _skip(data, start, length)
    return data[start:stop]


def _chars(data: bytes, name: str) -> Iterator[int]:
    end = len(data)
    i = 0
    while i < end:
        c = data[i]
        i += 1
        width = _width(c)
        if width is None:
            raise NekoError(name)
        if width == 1:
            yield c
            continue
        if i + width - 1 > end:
            raise NekoError(name)
        yield _decode(c, data, i, width)
        i += width - 1


def get(data: bytes, pos: int) -> int:
    """Return the code point of the character at position ``pos``."""
    pos = _check_int(pos, "utf8_get")
    data = _check_bytes(data, "utf8_get")
    if pos < 0:
        raise NekoError("utf8_get")
    for index, char in enumerate(_chars(data, "utf8_get")):
        if index == pos:
            return char
    raise NekoError("utf8_get")


def iter_chars(data: bytes) -> Iterator[int]:
    """Yield the code point of every character of ``data``."""
    data = _check_bytes(data, "utf8_iter")
    return _chars(data, "utf8_iter")


def compare(a: bytes, b: bytes) -> int:
    """Compare two UTF-8 strings by code points; return -1, 0 or 1."""
    a = _check_bytes(a, "utf8_compare")
    b = _check_bytes(b, "utf8_compare")
    remaining = min(len(a), len(b))
    i = 0
    while remaining > 0:
        remaining -= 1
        c1, c2 = a[i], b[i]
        i += 1
        if c1 != c2:
            return 1 if c1 > c2 else -1
        if c1 < 0x7F:
            continue
        width = _width(c1) if c1 >= 0x80 else None
        if width is None:
            raise NekoError("utf8_compare")
        remaining -= width - 1
        if remaining < 0:
            raise NekoError("utf8_compare")
        for _ in range(width - 1):
            x, y = a[i], b[i]
            i += 1
            if x != y:
                return 1 if x > y else -1
    if len(a) != len(b):
        return 1 if len(a) > len(b) else -1
    return 0