""" Pon, the structured text notation used for every request and response
    payload exchanged with a pixelport app. Values are built from the closed
    set of classes in :mod:`pixelport.pon.values`, serialized with
    :func:`stringify`, and read back with :func:`parse`.
"""

from .errors import MalformedInput
from .values import (
    Value,
    Nil,
    Bool,
    Number,
    String,
    Array,
    Map,
    Call,
    Selector,
    PropRef,
    DepPropRef,
    Raw,
    call,
    wrap,
)
from .parser import Parser, parse
from .serializer import escape, stringify

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
