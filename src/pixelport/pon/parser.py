"""Pon parser: converts Pon text into :class:`Value` instances.

The parser is a single-pass recursive descent scanner working directly on
characters. It is forgiving about whitespace and ``//`` comments between
tokens, and strict about structural delimiters: anything it cannot account
for raises :class:`MalformedInput` rather than being silently dropped.

Reference forms::

    #5                  Selector('5')
    #5>child.x          PropRef('#5>child.x')
    root:Hello.y        PropRef('root:Hello.y')
    @root:Hello.y       DepPropRef('root:Hello.y')

Selector and entity tokens may contain the punctuation ``: > / | ! * - # .``
and balanced ``[...]`` groups; a group may hold whitespace, commas and
quoted strings, for example ``root:[name='a b'].x``.
"""

from __future__ import annotations

import re
import string
from typing import Final

from .errors import MalformedInput
from .values import (
    Array,
    Bool,
    Call,
    DepPropRef,
    Map,
    Nil,
    Number,
    PropRef,
    Selector,
    String,
    Value,
)


_IDENT: Final = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_NUMBER: Final = re.compile(r"-?[0-9]+(?:\.[0-9]+)?")
_PROPERTY_SUFFIX: Final = re.compile(r"\.[A-Za-z_][A-Za-z0-9_]*\Z")

_IDENT_START: Final = frozenset(string.ascii_letters + "_")
_DIGITS: Final = frozenset(string.digits)
_REF_CHARS: Final = frozenset(string.ascii_letters + string.digits + "_-:>/|!*#.")
_ESCAPABLE: Final = frozenset("\\'")


class Parser:
    """ Parse one Pon value from *text*. With *legacy* enabled, bare words
        that are neither calls nor property references are accepted as
        strings; otherwise they are rejected.
    """

    __slots__ = ("_text", "_pos", "_legacy")

    def __init__(self, text: str, legacy: bool = False) -> None:
        if not isinstance(text, str):
            raise TypeError(f"Pon text must be str, got {type(text).__name__}")

        self._text = text
        self._pos = 0
        self._legacy = legacy

    def parse(self) -> Value:
        self._skip()
        if self._pos >= len(self._text):
            raise self._error("empty input")

        value = self._value()

        self._skip()
        if self._pos < len(self._text):
            raise self._error(f"unexpected {self._text[self._pos]!r} after value")

        return value

    # --- Scanning helpers ---

    def _error(self, reason: str, offset: int | None = None) -> MalformedInput:
        if offset is None:
            offset = self._pos

        line = self._text.count("\n", 0, offset) + 1
        col = offset - (self._text.rfind("\n", 0, offset) + 1) + 1
        return MalformedInput(reason, line, col, offset)

    def _peek(self) -> str:
        if self._pos < len(self._text):
            return self._text[self._pos]
        return ""

    def _skip(self) -> None:
        """Advance past whitespace and ``//`` comments."""

        text = self._text
        while self._pos < len(text):
            if text[self._pos].isspace():
                self._pos += 1
            elif text.startswith("//", self._pos):
                end = text.find("\n", self._pos)
                self._pos = len(text) if end < 0 else end + 1
            else:
                break

    def _expect(self, char: str) -> None:
        self._skip()
        found = self._peek()
        if found != char:
            found = repr(found) if found else "end of input"
            raise self._error(f"expected {char!r}, found {found}")
        self._pos += 1

    # --- Grammar ---

    def _value(self) -> Value:
        self._skip()
        char = self._peek()

        if char == "":
            raise self._error("unexpected end of input")
        if char == "(":
            return self._nil()
        if char == "'":
            return String(self._string())
        if char == "[":
            return self._array()
        if char == "{":
            return self._map()
        if char == "-" or char in _DIGITS:
            return self._number()
        if char == "#":
            return self._selector()
        if char == "@":
            return self._dependency()
        if char in _IDENT_START:
            return self._word()

        raise self._error(f"unexpected {char!r}")

    def _nil(self) -> Nil:
        self._pos += 1
        self._expect(")")
        return Nil()

    def _string(self) -> str:
        text = self._text
        start = self._pos
        self._pos += 1
        chars = list()

        while self._pos < len(text):
            char = text[self._pos]

            if char == "'":
                self._pos += 1
                return "".join(chars)

            if char == "\\" and text[self._pos + 1:self._pos + 2] in _ESCAPABLE:
                chars.append(text[self._pos + 1])
                self._pos += 2
                continue

            # Any other backslash is kept as a literal character.
            chars.append(char)
            self._pos += 1

        raise self._error("unterminated string", start)

    def _number(self) -> Number:
        start = self._pos
        match = _NUMBER.match(self._text, start)
        if match is None:
            raise self._error("invalid number", start)

        end = match.end()
        if end < len(self._text) and self._text[end] in _REF_CHARS:
            raise self._error(f"invalid number {self._text[start:end + 1]!r}", start)

        self._pos = end
        return Number(float(match.group()))

    def _array(self) -> Array:
        self._pos += 1
        items = list()

        while True:
            self._skip()
            if self._peek() == "]":
                self._pos += 1
                return Array(items)

            items.append(self._value())

            self._skip()
            char = self._peek()
            if char == ",":
                self._pos += 1
            elif char == "]":
                self._pos += 1
                return Array(items)
            else:
                raise self._error("expected ',' or ']' in array")

    def _map(self) -> Map:
        self._pos += 1
        entries = dict()

        while True:
            self._skip()
            if self._peek() == "}":
                self._pos += 1
                return Map(entries)

            key_offset = self._pos
            key = self._key()
            if key in entries:
                raise self._error(f"duplicate key {key!r}", key_offset)

            self._expect(":")
            entries[key] = self._value()

            self._skip()
            char = self._peek()
            if char == ",":
                self._pos += 1
            elif char == "}":
                self._pos += 1
                return Map(entries)
            else:
                raise self._error("expected ',' or '}' in map")

    def _key(self) -> str:
        if self._peek() == "'":
            return self._string()

        match = _IDENT.match(self._text, self._pos)
        if match is None:
            raise self._error("expected a key")

        self._pos = match.end()
        return match.group()

    def _reference_token(self) -> str:
        """ Scan selector/entity text starting at the current position and
            return it. Stops at whitespace or a delimiter outside brackets.
        """

        text = self._text
        start = self._pos
        depth = 0

        while self._pos < len(text):
            char = text[self._pos]

            if depth > 0 and char == "'":
                self._string()
                continue

            if char == "[":
                depth += 1
            elif char == "]":
                if depth == 0:
                    break
                depth -= 1
            elif depth == 0:
                if char not in _REF_CHARS or text.startswith("//", self._pos):
                    break

            self._pos += 1

        if depth > 0:
            raise self._error("unbalanced '[' in reference", start)

        token = text[start:self._pos]
        if token.endswith("."):
            raise self._error(f"dangling '.' in reference {token!r}", start)

        return token

    def _selector(self) -> Value:
        start = self._pos
        self._pos += 1
        token = self._reference_token()
        if token == "" or token.startswith("#"):
            raise self._error("empty selector", start)

        if _PROPERTY_SUFFIX.search(token):
            return PropRef("#" + token)
        return Selector(token)

    def _dependency(self) -> DepPropRef:
        start = self._pos
        self._pos += 1

        char = self._peek()
        if char != "#" and char not in _IDENT_START:
            raise self._error("expected a property reference after '@'", start)

        token = self._reference_token()
        match = _PROPERTY_SUFFIX.search(token)
        if match is None or match.start() == 0:
            raise self._error(f"dependency {token!r} does not name a property", start)

        return DepPropRef(token)

    def _word(self) -> Value:
        start = self._pos
        match = _IDENT.match(self._text, start)
        name = match.group()
        self._pos = match.end()

        # A word glued to selector punctuation is part of a reference.

        if self._peek() in _REF_CHARS:
            self._pos = start
            return self._classify(self._reference_token(), start)

        if name == "true":
            return Bool(True)
        if name == "false":
            return Bool(False)

        after_name = self._pos
        self._skip()
        char = self._peek()

        if char == "{" or char == "[":
            return Call(name, self._value())
        if char == "(":
            return Call(name, self._nil())

        self._pos = after_name
        return self._classify(name, start)

    def _classify(self, token: str, start: int) -> Value:
        match = _PROPERTY_SUFFIX.search(token)
        if match is not None and match.start() > 0:
            return PropRef(token)

        if self._legacy:
            return String(token)

        raise self._error(f"unquoted word {token!r}; quote strings and use '#' for selectors", start)


def parse(text: str, legacy: bool = False) -> Value:
    """ Parse *text* as a single Pon value. Raises :class:`MalformedInput`
        if the text does not match the grammar.
    """

    return Parser(text, legacy).parse()


def scans_as_reference(text: str) -> bool:
    """ Return True if all of *text* reads as one selector or entity token,
        the way it appears after ``#`` or ``@``. Nothing is constructed.
    """

    scanner = Parser(text)
    try:
        token = scanner._reference_token()
    except MalformedInput:
        return False

    return token != "" and token == text


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
