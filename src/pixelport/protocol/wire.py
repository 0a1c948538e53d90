from __future__ import annotations

from .message import ProtocolError, Response
from . import fields


def pack_line(channel_id: int, text: str) -> str:
    """
    Serialize a request -> one wire line

    Layout:
        <channel id> <pon>

    A line break would end the request early, so every line break in
    *text* becomes a space. That includes line breaks inside a quoted
    string: String('a\\nb') is sent as 'a b'.
    """

    text = text.replace('\r\n', ' ').replace('\n', ' ').replace('\r', ' ')
    return f"{channel_id} {text}"


def unpack_line(line: str) -> Response:
    """
    Deserialize one wire line -> Response

    Layout:
        <channel id> <status> [<pon>]

    A missing body is read as nil. A line with a channel id but no status
    raises a ProtocolError carrying that id.
    """

    parts = line.strip().split(None, 2)

    if not parts:
        raise ProtocolError(f"expected '<id> <status> <body>', got {line!r}")

    channel_id = parts[0]
    if not channel_id.isdigit() or not channel_id.isascii():
        raise ProtocolError(f"channel id is not a number: {line!r}")

    channel_id = int(channel_id)
    if len(parts) < 2:
        raise ProtocolError(f"no status for channel {channel_id}: {line!r}", channel_id)

    if len(parts) == 3:
        body = parts[2]
    else:
        body = fields.NIL_BODY

    return Response(channel_id, parts[1], body)
