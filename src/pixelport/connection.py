""" The :class:`Connection` ties one transport, one channel session and one
    protocol facade together. It is the object most callers deal with,
    usually obtained via :func:`connect`.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional

from . import config
from . import weakref
from .protocol import fields
from .protocol.protocol import Payload, Protocol
from .protocol.stream import Stream
from .transport.base import (
    ConnectionLost,
    Listener,
    State,
    Transport,
    TransportConnectionError,
    TransportError,
)
from .transport.session import ChannelSession
from .transport.zmq import stream as zmq_stream


logger = logging.getLogger(__name__)


class Connection(Listener):
    """ A client connection to one running pixelport app at *address* and
        *port*. Requests may be issued from any thread; replies arrive on
        the transport's I/O thread, and user callbacks are invoked on a
        single callback thread owned by the connection, in order.

        The connection reports its life cycle through the events listed
        in :attr:`events`; see :func:`register`.

        :ivar exit_code: The app's exit code, once :func:`process_exited`
                         has been called.
    """

    events = ('connect', 'reconnect', 'disconnect', 'socket-error')

    def __init__(self, address: Optional[str] = None, port: Optional[int] = None,
                 policy: Optional[config.ReconnectPolicy] = None,
                 close_command: str = fields.CLOSE_COMMAND,
                 transport: Optional[Transport] = None):

        if address is None:
            address = config.address()
        if port is None:
            port = config.port()

        self.address = address
        self.port = port
        self.exit_code = None
        self.closed = False

        self.callbacks = dict()
        for event in self.events:
            self.callbacks[event] = weakref.CallbackSet()

        self.executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='pixelport-callbacks')
        self.session = ChannelSession()

        if transport is None:
            transport = zmq_stream.Client(address, port, policy, listener=self)
        else:
            transport.listener = self

        self.transport = transport
        self.protocol = Protocol(self.session, transport, self.executor, close_command)

    def __repr__(self):
        return f"<Connection {self.address}:{self.port} {self.state.value}>"

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    @property
    def state(self) -> State:
        return self.transport.state

    def open(self, timeout: Optional[float] = None) -> 'Connection':
        """ Establish the connection, blocking for up to *timeout* seconds.
            Raises :class:`pixelport.transport.TransportConnectionError` if
            the app cannot be reached; the connection is closed in that
            case.
        """

        try:
            self.transport.open(timeout)
        except TransportError:
            self.close()
            raise

        return self

    def close(self, error: Optional[TransportError] = None) -> None:
        """ Close the connection for good. Every open channel is failed
            with *error*, a :class:`ConnectionLost` by default.
        """

        if self.closed:
            return

        self.closed = True

        if error is None:
            error = ConnectionLost(f"connection to {self.address}:{self.port} closed")

        self.session.teardown(error)
        self.transport.close()
        self.executor.shutdown(wait=False)

    def process_exited(self, code: Optional[int] = None) -> None:
        """ Notification that the app process has exited. Pending channels
            fail with :class:`ConnectionLost` and no reconnection is
            attempted.
        """

        self.exit_code = code
        logger.info("app at %s:%s exited with code %s", self.address, self.port, code)
        self.close(ConnectionLost(f"app exited with code {code}"))

    def register(self, callback: Callable, event: str = 'connect') -> None:
        """ Invoke *callback* whenever *event* occurs. Callbacks for
            'connect' and 'reconnect' take no arguments; callbacks for
            'disconnect' and 'socket-error' receive the error.

            Only a weak reference to *callback* is kept: if it is a bound
            method, registering it does not keep its object alive.
        """

        try:
            callbacks = self.callbacks[event]
        except KeyError:
            raise ValueError(f"unknown event {event!r}; choose from {', '.join(self.events)}") from None

        callbacks.add(callback)

    # RPC

    def request(self, payload: Payload) -> Future:
        return self.protocol.request(payload)

    def subscribe(self, payload: Payload, on_message=None, on_error=None, on_closed=None) -> Stream:
        return self.protocol.subscribe(payload, on_message, on_error, on_closed)

    def close_stream(self, channel_id: int) -> Future:
        return self.protocol.close_stream(channel_id)

    def wait_for(self, payload: Payload, predicate: Callable) -> Future:
        return self.protocol.wait_for(payload, predicate)

    # Transport notifications, always on the I/O thread

    def transport_connected(self, epoch: int, reconnected: bool) -> None:

        self.session.open(epoch)

        if reconnected:
            self._emit('reconnect')
        else:
            self._emit('connect')

    def transport_line(self, line: str) -> None:
        self.protocol.handle_line(line)

    def transport_disconnected(self, error: TransportError) -> None:
        self.session.teardown(error)
        self._emit('disconnect', error)

    def transport_error(self, error: TransportError) -> None:

        if isinstance(error, TransportConnectionError):
            self.session.teardown(error)

        self._emit('socket-error', error)

    def _emit(self, event: str, *args) -> None:

        for callback in self.callbacks[event].live():
            try:
                self.executor.submit(self._invoke, event, callback, args)
            except RuntimeError:
                logger.debug("dropping %s callback after close", event)

    def _invoke(self, event, callback, args) -> None:
        try:
            callback(*args)
        except Exception:
            logger.exception("%s callback %r failed", event, callback)


def connect(address: Optional[str] = None, port: Optional[int] = None,
            policy: Optional[config.ReconnectPolicy] = None,
            timeout: Optional[float] = None, **kwargs) -> Connection:
    """ Connect to the pixelport app at *address* and *port*, which default
        to the values in :mod:`pixelport.config`, and return the open
        :class:`Connection`.
    """

    connection = Connection(address, port, policy, **kwargs)
    return connection.open(timeout)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
