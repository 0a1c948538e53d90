"""Value types for Pon, the structured notation carried by every request
and response. The set of variants is closed; each variant validates its
payload when constructed, so an ill-formed value cannot be built and later
fail on the wire.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any, Iterator


IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*\Z")
_WORD = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_PROPERTY_SUFFIX = re.compile(r"\.([A-Za-z_][A-Za-z0-9_]*)\Z")
_KEYWORDS = frozenset(("true", "false"))


def _scans_as_reference(text: str) -> bool:
    from .parser import scans_as_reference
    return scans_as_reference(text)


class Value:
    """Base class for all Pon values."""

    def unwrap(self) -> Any:
        """ Return the Python-native equivalent of this value. References
            and calls have no native equivalent and return themselves.
        """

        return self

    def __str__(self) -> str:
        from .serializer import stringify
        return stringify(self)


@dataclass(frozen=True)
class Nil(Value):
    """The empty value, ``()``. Map entries holding it are left off the wire."""

    def unwrap(self) -> None:
        return None


@dataclass(frozen=True)
class Bool(Value):
    value: bool

    def __post_init__(self) -> None:
        if not isinstance(self.value, bool):
            raise TypeError(f"Bool requires a bool, got {type(self.value).__name__}")

    def unwrap(self) -> bool:
        return self.value


@dataclass(frozen=True)
class Number(Value):
    """Integers and decimals share one floating point representation."""

    value: float

    def __post_init__(self) -> None:
        value = self.value
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f"Number requires an int or float, got {type(value).__name__}")

        value = float(value)
        if not math.isfinite(value):
            raise ValueError(f"Number must be finite, got {value!r}")

        object.__setattr__(self, "value", value)

    def unwrap(self) -> float:
        return self.value


@dataclass(frozen=True)
class String(Value):
    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str):
            raise TypeError(f"String requires a str, got {type(self.value).__name__}")

    def unwrap(self) -> str:
        return self.value


@dataclass
class Array(Value):
    items: list = field(default_factory=list)

    def __post_init__(self) -> None:
        self.items = list(self.items)
        for item in self.items:
            if not isinstance(item, Value):
                raise TypeError(f"Array items must be Pon values, got {type(item).__name__}")

    def __iter__(self) -> Iterator[Value]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __getitem__(self, index: int) -> Value:
        return self.items[index]

    def unwrap(self) -> list:
        return [item.unwrap() for item in self.items]


@dataclass
class Map(Value):
    """ String keys to values. Insertion order is kept and used when the
        map is serialized; equality does not depend on order.
    """

    entries: dict = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.entries = dict(self.entries)
        for key, value in self.entries.items():
            if not isinstance(key, str):
                raise TypeError(f"Map keys must be str, got {type(key).__name__}")
            if not isinstance(value, Value):
                raise TypeError(f"Map value for {key!r} must be a Pon value, got {type(value).__name__}")

    def __contains__(self, key: object) -> bool:
        return key in self.entries

    def __getitem__(self, key: str) -> Value:
        return self.entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def get(self, key: str, default: Any = None) -> Any:
        return self.entries.get(key, default)

    def unwrap(self) -> dict:
        return {key: value.unwrap() for key, value in self.entries.items()}


@dataclass
class Call(Value):
    """ A named function-style invocation, for example ``vec3 { x: 1 }``.
        The argument is a :class:`Map`, an :class:`Array`, or :class:`Nil`.
    """

    name: str
    arg: Value = field(default_factory=Nil)

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not IDENTIFIER.match(self.name):
            raise ValueError(f"invalid call name: {self.name!r}")
        if self.name in _KEYWORDS:
            raise ValueError(f"{self.name!r} is a keyword, not a call name")
        if not isinstance(self.arg, (Map, Array, Nil)):
            raise TypeError(f"Call argument must be a Map, Array or Nil, got {type(self.arg).__name__}")


@dataclass(frozen=True)
class Selector(Value):
    """ Reference to an entity; ``text`` is everything after the ``#``,
        kept verbatim so that richer selector forms survive a round trip.
        The text must read back as a single selector token: no whitespace
        or ``//`` outside brackets, and no trailing ``.property``, which
        would make it a :class:`PropRef`.
    """

    text: str

    def __post_init__(self) -> None:
        text = self.text
        if not isinstance(text, str):
            raise TypeError(f"Selector requires a str, got {type(text).__name__}")
        if text.startswith("#"):
            text = text[1:]
        if text.startswith("#") or _PROPERTY_SUFFIX.search(text) or not _scans_as_reference(text):
            raise ValueError(f"invalid selector: {self.text!r}")
        object.__setattr__(self, "text", text)


@dataclass(frozen=True)
class _Reference(Value):

    text: str

    def __post_init__(self) -> None:
        if not isinstance(self.text, str):
            raise TypeError(f"{type(self).__name__} requires a str, got {type(self.text).__name__}")
        match = _PROPERTY_SUFFIX.search(self.text)
        if match is None or match.start() == 0 or not self._reads_back(self.text):
            raise ValueError(f"invalid property reference: {self.text!r}")

    @staticmethod
    def _reads_back(text: str) -> bool:
        raise NotImplementedError

    @property
    def entity(self) -> str:
        return self.text.rsplit(".", 1)[0]

    @property
    def property(self) -> str:
        return self.text.rsplit(".", 1)[1]


@dataclass(frozen=True)
class PropRef(_Reference):
    """ Snapshot read of ``entity.property``. The entity is either a
        selector (``#5>child.x``) or starts with a word (``root:Hello.y``).
    """

    @staticmethod
    def _reads_back(text: str) -> bool:
        if text.startswith("#"):
            return not text.startswith("##") and _scans_as_reference(text[1:])

        # A leading word followed by '[' would read as a call.
        word = _WORD.match(text)
        if word is None or text[word.end()] == "[":
            return False

        return _scans_as_reference(text)


@dataclass(frozen=True)
class DepPropRef(_Reference):
    """Dependency-tracked ``@entity.property``."""

    @staticmethod
    def _reads_back(text: str) -> bool:
        if not text.startswith("#") and _WORD.match(text) is None:
            return False
        return _scans_as_reference(text)


@dataclass(frozen=True)
class Raw(Value):
    """ Text that is already Pon, emitted verbatim when serialized. The
        parser never produces this variant.
    """

    text: str

    def __post_init__(self) -> None:
        if not isinstance(self.text, str):
            raise TypeError(f"Raw requires a str, got {type(self.text).__name__}")


def wrap(thing: Any) -> Value:
    """ Convert a Python-native *thing* into a :class:`Value`. Existing
        values are returned unchanged.
    """

    if isinstance(thing, Value):
        return thing
    if thing is None:
        return Nil()
    if isinstance(thing, bool):
        return Bool(thing)
    if isinstance(thing, (int, float)):
        return Number(thing)
    if isinstance(thing, str):
        return String(thing)
    if isinstance(thing, (list, tuple)):
        return Array([wrap(item) for item in thing])
    if isinstance(thing, dict):
        entries = dict()
        for key, value in thing.items():
            if not isinstance(key, str):
                raise TypeError(f"Map keys must be str, got {type(key).__name__}")
            entries[key] = wrap(value)
        return Map(entries)

    raise TypeError(f"cannot convert {type(thing).__name__} to a Pon value")


def call(name: str, arg: Any = None, **fields: Any) -> Call:
    """ Build a :class:`Call`. Keyword *fields* become the entries of a
        :class:`Map` argument; otherwise *arg* is wrapped and used as-is.
    """

    if fields:
        if arg is not None:
            raise TypeError("call() takes either an argument or keyword fields, not both")
        arg = fields

    return Call(name, wrap(arg))


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
