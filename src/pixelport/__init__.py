""" Python client for a running pixelport app. This includes the Pon codec
    used for every payload, and a connection that multiplexes requests and
    streams over the app's line socket.
"""

# Utility components.

from . import weakref
from . import config

# Submodules used by multiple other components.

from . import pon
from . import transport
from . import protocol

# Primary public-facing interfaces.

from .connection import Connection, connect
from .pon import MalformedInput
from .protocol import RemoteOperationFailed, Stream, StreamClosed, UnknownChannel
from .transport import ConnectionLost, NotConnected, TransportConnectionError, TransportError

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
