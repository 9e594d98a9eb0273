"""An event-driven XML parser."""

from __future__ import annotations

from enum import Enum, auto
from typing import Protocol

from nekort.values import NekoError

_SNIPPET = 30
_NAME_PUNCT = frozenset(":._-")


class XmlParseError(NekoError):
    """Raised when the input is not well formed."""

    def __init__(self, message: str, line: int) -> None:
        super().__init__(message)
        self.line = line


class XmlEvents(Protocol):
    """The callbacks the parser invokes while reading a document."""

    def xml(self, name: str, attribs: dict[str, str]) -> None:
        """A node was opened."""

    def done(self) -> None:
        """The current node was closed."""

    def pcdata(self, text: str) -> None:
        """Character data was found."""

    def cdata(self, text: str) -> None:
        """A CDATA section was found."""

    def comment(self, text: str) -> None:
        """A comment or a processing header was found."""

    def doctype(self, text: str) -> None:
        """A doctype declaration was found."""


class _State(Enum):
    IGNORE_SPACES = auto()
    BEGIN = auto()
    BEGIN_NODE = auto()
    TAG_NAME = auto()
    BODY = auto()
    ATTRIB_NAME = auto()
    EQUALS = auto()
    ATTVAL_BEGIN = auto()
    ATTRIB_VAL = auto()
    CHILDREN = auto()
    CLOSE = auto()
    WAIT_END = auto()
    WAIT_END_RET = auto()
    PCDATA = auto()
    HEADER = auto()
    COMMENT = auto()
    DOCTYPE = auto()
    CDATA = auto()


def _is_name_char(c: str) -> bool:
    return ("a" <= c <= "z") or ("A" <= c <= "Z") or ("0" <= c <= "9") or c in _NAME_PUNCT


class _Parser:
    def __init__(self, text: str, events: XmlEvents) -> None:
        self.text = text
        self.events = events
        self.pos = 0
        self.line = 0

    def ch(self, index: int) -> str:
        return self.text[index] if index < len(self.text) else "\0"

    def matches(self, index: int, word: str) -> bool:
        return all(self.ch(index + k) in (c, c.lower()) for k, c in enumerate(word))

    def error(self, p: int, msg: str) -> XmlParseError:
        rest = self.text[p:]
        parts = [f"Xml parse error : {msg} at line {self.line} : "]
        if p != 0:
            parts.append("...")
        parts.append(rest[:_SNIPPET])
        if len(rest) > _SNIPPET:
            parts.append("...")
        if not rest:
            parts.append("<eof>")
        return XmlParseError("".join(parts), self.line)

    def parse(self, parent: str | None) -> None:
        text, events = self.text, self.events
        state = nxt = _State.BEGIN
        aname = ""
        attribs: dict[str, str] = {}
        nodename = ""
        start = 0
        p = self.pos
        c = self.ch(p)
        nsubs = 0
        nbrackets = 0
        while c != "\0":
            if state is _State.IGNORE_SPACES:
                if c not in "\n\r\t ":
                    state = nxt
                    continue
            elif state is _State.BEGIN:
                if c == "<":
                    state, nxt = _State.IGNORE_SPACES, _State.BEGIN_NODE
                else:
                    start = p
                    state = _State.PCDATA
                    continue
            elif state is _State.PCDATA:
                if c == "<":
                    events.pcdata(text[start:p])
                    nsubs += 1
                    state, nxt = _State.IGNORE_SPACES, _State.BEGIN_NODE
            elif state is _State.CDATA:
                if c == "]" and self.ch(p + 1) == "]" and self.ch(p + 2) == ">":
                    events.cdata(text[start:p])
                    nsubs += 1
                    p += 2
                    state = _State.BEGIN
            elif state is _State.BEGIN_NODE:
                if c == "!":
                    if self.ch(p + 1) == "[":
                        p += 2
                        if not (self.matches(p, "CDATA") and self.ch(p + 5) == "["):
                            raise self.error(p, "Expected <![CDATA[")
                        p += 5
                        state = _State.CDATA
                        start = p + 1
                    elif self.ch(p + 1) in ("D", "d"):
                        if not self.matches(p + 2, "OCTYPE"):
                            raise self.error(p, "Expected <!DOCTYPE")
                        p += 7
                        state = _State.DOCTYPE
                        start = p + 1
                    else:
                        if self.ch(p + 1) != "-" or self.ch(p + 2) != "-":
                            raise self.error(p, "Expected <!--")
                        p += 2
                        state = _State.COMMENT
                        start = p + 1
                elif c == "?":
                    state = _State.HEADER
                    start = p
                elif c == "/":
                    if parent is None:
                        raise self.error(p, "Expected node name")
                    start = p + 1
                    state, nxt = _State.IGNORE_SPACES, _State.CLOSE
                else:
                    state = _State.TAG_NAME
                    start = p
                    continue
            elif state is _State.TAG_NAME:
                if not _is_name_char(c):
                    if p == start:
                        raise self.error(p, "Expected node name")
                    nodename = text[start:p]
                    attribs = {}
                    state, nxt = _State.IGNORE_SPACES, _State.BODY
                    continue
            elif state is _State.BODY:
                if c == "/":
                    state = _State.WAIT_END
                    nsubs += 1
                    events.xml(nodename, attribs)
                elif c == ">":
                    state = _State.CHILDREN
                    nsubs += 1
                    events.xml(nodename, attribs)
                else:
                    state = _State.ATTRIB_NAME
                    start = p
                    continue
            elif state is _State.ATTRIB_NAME:
                if not _is_name_char(c):
                    if start == p:
                        raise self.error(p, "Expected attribute name")
                    aname = text[start:p]
                    if aname in attribs:
                        raise self.error(p, "Duplicate attribute")
                    state, nxt = _State.IGNORE_SPACES, _State.EQUALS
                    continue
            elif state is _State.EQUALS:
                if c != "=":
                    raise self.error(p, "Expected =")
                state, nxt = _State.IGNORE_SPACES, _State.ATTVAL_BEGIN
            elif state is _State.ATTVAL_BEGIN:
                if c not in "\"'":
                    raise self.error(p, 'Expected "')
                state = _State.ATTRIB_VAL
                start = p
            elif state is _State.ATTRIB_VAL:
                if c == text[start]:
                    attribs[aname] = text[start + 1:p]
                    state, nxt = _State.IGNORE_SPACES, _State.BODY
            elif state is _State.CHILDREN:
                self.pos = p
                self.parse(nodename)
                p = self.pos
                start = p
                state = _State.BEGIN
            elif state is _State.WAIT_END:
                if c != ">":
                    raise self.error(p, "Expected >")
                events.done()
                state = _State.BEGIN
            elif state is _State.WAIT_END_RET:
                if c != ">":
                    raise self.error(p, "Expected >")
                if nsubs == 0:
                    events.pcdata("")
                events.done()
                self.pos = p
                return
            elif state is _State.CLOSE:
                if not _is_name_char(c):
                    if start == p:
                        raise self.error(p, "Expected node name")
                    name = text[start:p]
                    if parent is None or parent.lower() != name.lower():
                        raise self.error(p, f"Expected </{parent}>")
                    state, nxt = _State.IGNORE_SPACES, _State.WAIT_END_RET
                    continue
            elif state is _State.COMMENT:
                if c == "-" and self.ch(p + 1) == "-" and self.ch(p + 2) == ">":
                    events.comment(text[start:p])
                    p += 2
                    state = _State.BEGIN
            elif state is _State.DOCTYPE:
                if c == "[":
                    nbrackets += 1
                elif c == "]":
                    nbrackets -= 1
                elif c == ">" and nbrackets == 0:
                    events.doctype(text[start:p])
                    state = _State.BEGIN
            elif state is _State.HEADER:
                if c == "?" and self.ch(p + 1) == ">":
                    p += 1
                    events.comment(text[start:p])
                    state = _State.BEGIN
            p += 1
            c = self.ch(p)
            if c == "\n":
                self.line += 1
        if state is _State.BEGIN:
            start = p
            state = _State.PCDATA
        if parent is None and state is _State.PCDATA:
            if p != start or nsubs == 0:
                events.pcdata(text[start:p])
            self.pos = p
            return
        raise self.error(p, "Unexpected end")


def parse_xml(text: str | bytes, events: XmlEvents) -> None:
    """Parse ``text`` and report every node, text run, comment and section to ``events``."""
    if isinstance(text, (bytes, bytearray)):
        text = bytes(text).decode("utf-8", "replace")
    if not isinstance(text, str):
        raise NekoError("parse_xml")
    text = text.split("\0", 1)[0]
    if text.startswith("\ufeff"):
        text = text[1:]
    _Parser(text, events).parse(None)