"""Serialize :class:`Value` instances to Pon text."""

from __future__ import annotations

import decimal

from .values import (
    IDENTIFIER,
    Array,
    Bool,
    Call,
    DepPropRef,
    Map,
    Nil,
    Number,
    PropRef,
    Raw,
    Selector,
    String,
    Value,
)


def escape(text: str) -> str:
    """Escape backslashes and single quotes for use inside a Pon string."""
    return text.replace("\\", "\\\\").replace("'", "\\'")


def format_number(number: float) -> str:
    """ Integral values are written without a decimal point; everything else
        uses the shortest positional form that reads back as the same float.
        The grammar has no exponent notation, so it is never emitted.
    """

    if number.is_integer():
        return str(int(number))

    return format(decimal.Decimal(repr(number)), "f")


def _key(key: str) -> str:
    if IDENTIFIER.match(key):
        return key
    return "'" + escape(key) + "'"


def stringify(value: Value) -> str:
    """ Return the Pon text for *value*. Map entries whose value is
        :class:`Nil` are omitted, which is how an absent field is expressed.
    """

    if isinstance(value, Nil):
        return "()"

    if isinstance(value, Bool):
        return "true" if value.value else "false"

    if isinstance(value, Number):
        return format_number(value.value)

    if isinstance(value, String):
        return "'" + escape(value.value) + "'"

    if isinstance(value, Array):
        return "[" + ", ".join(stringify(item) for item in value.items) + "]"

    if isinstance(value, Map):
        pairs = list()
        for key, item in value.entries.items():
            if isinstance(item, Nil):
                continue
            pairs.append(_key(key) + ": " + stringify(item))

        if not pairs:
            return "{}"
        return "{ " + ", ".join(pairs) + " }"

    if isinstance(value, Call):
        return value.name + " " + stringify(value.arg)

    if isinstance(value, Selector):
        return "#" + value.text

    if isinstance(value, DepPropRef):
        return "@" + value.text

    if isinstance(value, PropRef):
        return value.text

    if isinstance(value, Raw):
        return value.text

    raise TypeError(f"not a Pon value: {value!r}")


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
