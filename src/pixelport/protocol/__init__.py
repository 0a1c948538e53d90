from . import fields
from . import message
from . import wire
from . import stream
from . import protocol

from .message import ProtocolError, RemoteOperationFailed, Response, UnknownChannel
from .protocol import Protocol
from .stream import Stream, StreamClosed


"""
pixelport Protocol Layer
========================

This package defines the line protocol spoken with a pixelport app: how a
request becomes one line, how a reply line is split and routed, and the
user-facing facade that sits above the channel session.

The protocol layer MUST NOT depend on any transport implementation
(e.g. ZeroMQ); it only relies on the abstract transport in
:mod:`pixelport.transport.base`.

---------------------------------------------------------------------

Layer Architecture Overview
---------------------------

User Code
    │
    ▼
Protocol Facade (protocol.py)
    High-level semantic API
    - request()
    - subscribe()
    - close_stream()
    - wait_for()
    Hides channel ids and line framing

    │
    ▼
Stream Handle (stream.py)
    One open stream channel
    - callbacks, blocking get(), iteration
    - close()

    │
    ▼
Wire Format (wire.py)
    <id> <pon>            out
    <id> <status> <pon>   in

    │
    ▼
Field Vocabulary (fields.py)
    Canonical status words and command names
    Prevents string drift across system

---------------------------------------------------------------------

Below the Protocol Layer (for context)
--------------------------------------

Session Layer (pixelport.transport.session)
    Channel ids, pending waiters, teardown on connection loss

Line Framing (pixelport.transport.lines)
    Maps byte chunks <-> complete lines

Transport Layer
    Moves bytes
    - ZeroMQ STREAM socket (raw TCP)

---------------------------------------------------------------------
"""


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
