"""ZeroMQ line transport.

The app listens on a plain TCP port and speaks one text line per message.
A ZeroMQ STREAM socket talks raw TCP to such a peer: every message received
is a (routing id, bytes) pair, and a zero-length payload announces that a
connection went up or down. Those announcements drive the connection state
machine; ZeroMQ's own reconnect machinery supplies the backoff.

The socket is owned by a single background thread. Outbound lines are put
on a queue and the thread is woken through an inproc PAIR socket, so
callers on any thread can write without touching the socket themselves.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import Optional, Sequence

import zmq
from zmq.utils.monitor import recv_monitor_message

from ... import config
from ..base import (
    ConnectionLost,
    Listener,
    NotConnected,
    State,
    Transport,
    TransportConnectionError,
    TransportError,
)
from ..lines import LineBuffer, encode_line


logger = logging.getLogger(__name__)
zmq_context = zmq.Context()


def _milliseconds(seconds: float) -> int:
    return max(1, int(round(seconds * 1000)))


def apply_policy(socket: zmq.Socket, policy: config.ReconnectPolicy) -> None:
    """ Translate a :class:`config.ReconnectPolicy` into ZeroMQ socket
        options. A reconnect interval of -1 disables reconnection outright;
        an interval maximum of 0 keeps the interval constant.
    """

    if not policy.enabled:
        socket.setsockopt(zmq.RECONNECT_IVL, -1)
        return

    socket.setsockopt(zmq.RECONNECT_IVL, _milliseconds(policy.interval))

    if policy.backoff is config.Backoff.EXPONENTIAL:
        socket.setsockopt(zmq.RECONNECT_IVL_MAX, _milliseconds(policy.interval_max))
    else:
        socket.setsockopt(zmq.RECONNECT_IVL_MAX, 0)


class Client(Transport):
    """ Maintain a line-oriented TCP connection to the app at *address* and
        *port*. Notifications go to *listener*, always from the background
        thread owned by this instance.
    """

    def __init__(self, address: str, port: int,
                 policy: Optional[config.ReconnectPolicy] = None,
                 listener: Optional[Listener] = None):

        self.address = address
        self.port = int(port)
        self.endpoint = f"tcp://{address}:{self.port}"

        if policy is None:
            policy = config.reconnect_policy()
        if listener is None:
            listener = Listener()

        self.policy = policy
        self.listener = listener

        self._state = State.DISCONNECTED
        self._epoch = 0
        self._retries = 0
        self._routing_id: Optional[bytes] = None
        self._lines = LineBuffer()
        self._outbox = queue.SimpleQueue()
        self._ready = threading.Event()
        self._signal_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self.shutdown = False

    @property
    def state(self) -> State:
        return self._state

    @property
    def epoch(self) -> int:
        return self._epoch

    def open(self, timeout: Optional[float] = None) -> None:

        if self._thread is not None:
            raise TransportError(f"transport to {self.endpoint} was already opened")

        if timeout is None:
            timeout = config.timeout()

        self.socket = zmq_context.socket(zmq.STREAM)
        self.socket.setsockopt(zmq.LINGER, 0)
        apply_policy(self.socket, self.policy)
        self._monitor = self.socket.get_monitor_socket(zmq.EVENT_CONNECT_RETRIED)

        internal = f"inproc://pixelport.stream:signal:{id(self)}"
        self._signal_rx = zmq_context.socket(zmq.PAIR)
        self._signal_rx.bind(internal)
        self._signal_tx = zmq_context.socket(zmq.PAIR)
        self._signal_tx.connect(internal)

        self._state = State.CONNECTING
        logger.debug("connecting to %s", self.endpoint)

        try:
            self.socket.connect(self.endpoint)
        except zmq.ZMQError as e:
            self._state = State.DISCONNECTED
            for socket in (self._monitor, self.socket, self._signal_rx, self._signal_tx):
                socket.close()
            raise TransportConnectionError(f"cannot connect to {self.endpoint}: {e}") from e

        name = f"pixelport-io-{self.address}:{self.port}"
        self._thread = threading.Thread(target=self.run, name=name, daemon=True)
        self._thread.start()

        if self._ready.wait(timeout) and self._state is State.CONNECTED:
            return

        self.close()
        raise TransportConnectionError(f"cannot connect to {self.endpoint} within {timeout:.2f} sec")

    def close(self) -> None:

        if self._thread is None or self.shutdown:
            return

        self.shutdown = True
        self._signal()

        if self._thread is not threading.current_thread():
            self._thread.join(timeout=2.0)

        with self._signal_lock:
            self._signal_tx.close()

    def send(self, line: str, epoch: int) -> None:

        if self._state is not State.CONNECTED:
            raise NotConnected(f"not connected to {self.endpoint} ({self._state.value})")

        self._outbox.put((epoch, encode_line(line)))
        self._signal()

    # --- internal ---

    def _signal(self) -> None:
        # One pending wake-up is enough: the I/O thread drains the whole
        # outbox each time it wakes.

        with self._signal_lock:
            if self._signal_tx.closed:
                return
            try:
                self._signal_tx.send(b"", zmq.NOBLOCK)
            except zmq.Again:
                pass

    def _notify(self, method: str, *args) -> None:
        try:
            getattr(self.listener, method)(*args)
        except Exception:
            logger.exception("listener %s failed", method)

    def _handle_outgoing(self) -> None:

        while True:
            try:
                self._signal_rx.recv(flags=zmq.NOBLOCK)
            except zmq.Again:
                break

        while True:
            try:
                epoch, data = self._outbox.get(block=False)
            except queue.Empty:
                break

            if epoch != self._epoch or self._routing_id is None:
                logger.debug("dropping line queued for connection %d: %r", epoch, data)
                continue

            try:
                self.socket.send_multipart((self._routing_id, data))
            except zmq.ZMQError as exc:
                self._notify('transport_error', TransportError(f"send to {self.endpoint} failed: {exc}"))

    def _handle_incoming(self, parts: Sequence[bytes]) -> None:

        if len(parts) != 2:
            logger.warning("unexpected %d-part message on STREAM socket", len(parts))
            return

        routing_id, data = parts

        if data == b'':
            if self._routing_id is None:
                self._connected(routing_id)
            elif routing_id == self._routing_id:
                self._disconnected()
            else:
                logger.debug("ignoring notification for a stale connection")
            return

        if routing_id != self._routing_id:
            logger.debug("dropping %d bytes from a stale connection", len(data))
            return

        for line in self._lines.feed(data):
            self._notify('transport_line', line)

    def _handle_monitor(self, event: dict) -> None:

        if event.get('event') != zmq.EVENT_CONNECT_RETRIED:
            return

        self._retries += 1
        logger.debug("connection attempt %d to %s failed", self._retries, self.endpoint)

        limit = self.policy.max_retries
        if limit is not None and self._retries > limit:
            self._give_up()

    def _connected(self, routing_id: bytes) -> None:

        self._routing_id = routing_id
        self._retries = 0
        self._epoch += 1
        self._lines.reset()
        self._state = State.CONNECTED

        reconnected = self._epoch > 1
        logger.info("%s to %s", 'reconnected' if reconnected else 'connected', self.endpoint)

        self._notify('transport_connected', self._epoch, reconnected)
        self._ready.set()

    def _disconnected(self) -> None:

        self._routing_id = None

        partial = self._lines.reset()
        if partial:
            logger.warning("discarding %d bytes of an incomplete line", len(partial))

        if self.policy.enabled and not self.shutdown:
            self._state = State.RECONNECTING
        else:
            self._state = State.DISCONNECTED

        logger.info("lost connection to %s", self.endpoint)
        self._notify('transport_disconnected', ConnectionLost(f"connection to {self.endpoint} lost"))

    def _give_up(self) -> None:

        try:
            self.socket.disconnect(self.endpoint)
        except zmq.ZMQError:
            pass

        self._state = State.DISCONNECTED

        error = TransportConnectionError(
            f"giving up on {self.endpoint} after {self._retries} failed attempts")
        logger.warning("%s", error)

        self._notify('transport_error', error)
        self._ready.set()

    def _teardown(self) -> None:

        was_connected = self._routing_id is not None
        self._routing_id = None
        self._state = State.DISCONNECTED

        try:
            self.socket.disable_monitor()
        except zmq.ZMQError:
            pass

        self._monitor.close()
        self.socket.close()
        self._signal_rx.close()

        if was_connected:
            self._notify('transport_disconnected', ConnectionLost(f"connection to {self.endpoint} closed"))

        self._ready.set()

    def run(self) -> None:

        poller = zmq.Poller()
        poller.register(self.socket, zmq.POLLIN)
        poller.register(self._signal_rx, zmq.POLLIN)
        poller.register(self._monitor, zmq.POLLIN)

        try:
            while self.shutdown == False:
                for active, _flag in poller.poll(1000):
                    try:
                        if active == self._signal_rx:
                            self._handle_outgoing()
                        elif active == self.socket:
                            self._handle_incoming(self.socket.recv_multipart())
                        elif active == self._monitor:
                            self._handle_monitor(recv_monitor_message(self._monitor))
                    except zmq.ZMQError as exc:
                        self._notify('transport_error', TransportError(str(exc)))
        finally:
            self._teardown()


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
