""" Reply and error types shared by the session and the protocol facade.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .. import pon
from . import fields


class ProtocolError(ValueError):
    """ An inbound line does not have the ``<id> <status> <body>`` shape.
        If the line still starts with a readable channel id, it is kept as
        :attr:`channel_id` so the waiter on that channel can be failed.
    """

    def __init__(self, message: str, channel_id: Optional[int] = None):
        ValueError.__init__(self, message)
        self.channel_id = channel_id


class UnknownChannel(LookupError):
    """ A reply arrived for a channel id nobody is waiting on. This happens
        after a waiter was discarded or torn down, and is never fatal.
    """

    def __init__(self, channel_id: int):
        LookupError.__init__(self, f"no channel is registered with id {channel_id}")
        self.channel_id = channel_id


class RemoteOperationFailed(Exception):
    """ The app answered a request with a failure. The decoded failure
        body is available as :attr:`body`, the raw status word as
        :attr:`status`.
    """

    def __init__(self, body: pon.Value, status: str = fields.ERR):
        if isinstance(body, pon.String):
            text = body.value
        else:
            text = pon.stringify(body)

        Exception.__init__(self, f"remote operation failed ({status}): {text}")
        self.body = body
        self.status = status


@dataclass(frozen=True)
class Response:
    """ One inbound line split into its parts. The *body* is still Pon
        text; decoding it is up to whoever waits on the channel.
    """

    channel_id: int
    status: str
    body: str = fields.NIL_BODY

    @property
    def ok(self) -> bool:
        return self.status == fields.OK


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
