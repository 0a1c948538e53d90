"""Transport interface.

This is the (small) contract that transport implementations follow. A
transport moves complete text lines to and from the app; it knows nothing
about channels or Pon. It lives outside :mod:`pixelport.protocol` so the
protocol remains transport-agnostic.
"""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from typing import Optional


# Transport agnostic exceptions

class TransportError(Exception):
    """Base class for all transport-layer errors."""


class TransportConnectionError(TransportError):
    """The transport could not establish or maintain a connection."""


class NotConnected(TransportError):
    """A line was written, or a channel opened, while not connected."""


class ConnectionLost(TransportError):
    """The connection went away while a channel was still open."""


class State(enum.Enum):
    """Connection states, see :class:`Transport`."""

    DISCONNECTED = 'disconnected'
    CONNECTING = 'connecting'
    CONNECTED = 'connected'
    RECONNECTING = 'reconnecting'


class Listener:
    """ Receiver for transport notifications. Every method is invoked from
        the transport's own I/O thread, one call at a time, in the order the
        underlying events occurred.
    """

    def transport_connected(self, epoch: int, reconnected: bool) -> None:
        """A connection is up; *epoch* increases with every connect."""

    def transport_line(self, line: str) -> None:
        """One complete inbound line, without its terminator."""

    def transport_disconnected(self, error: TransportError) -> None:
        """The connection is gone; *error* describes why."""

    def transport_error(self, error: TransportError) -> None:
        """A socket-level problem that did not itself end the connection."""


class Transport(ABC):
    """ Minimal contract for a line transport. The state machine is::

            DISCONNECTED -> CONNECTING -> CONNECTED
            CONNECTED -> RECONNECTING -> CONNECTED     (reconnect enabled)
            CONNECTED -> DISCONNECTED                  (otherwise, or when
                                                        retries run out)
    """

    listener: Optional[Listener] = None

    @abstractmethod
    def open(self, timeout: Optional[float] = None) -> None:
        """ Establish the connection, blocking until it is CONNECTED or
            raising :class:`TransportConnectionError`.
        """

    @abstractmethod
    def close(self) -> None:
        """Tear down the connection; no reconnection is attempted."""

    @abstractmethod
    def send(self, line: str, epoch: int) -> None:
        """ Queue one line for the connection identified by *epoch*. Raises
            :class:`NotConnected` if the transport is not CONNECTED. A line
            queued for an earlier epoch is dropped, never replayed.
        """

    @property
    @abstractmethod
    def state(self) -> State:
        """The current :class:`State`."""

    @property
    def is_open(self) -> bool:
        """Whether the transport is currently connected."""
        return self.state is State.CONNECTED
