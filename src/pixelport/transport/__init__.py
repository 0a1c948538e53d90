"""Transport layer implementations."""

from .base import (
    ConnectionLost,
    Listener,
    NotConnected,
    State,
    Transport,
    TransportError,
    TransportConnectionError,
)
from .lines import LineBuffer, encode_line
from .session import ChannelSession
