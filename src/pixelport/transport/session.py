"""Channel session: correlate inbound lines with the waiters that asked for them."""

from __future__ import annotations

import itertools
import logging
import threading
from typing import Callable, Dict, Optional

from ..protocol.message import UnknownChannel
from .base import NotConnected, TransportError


logger = logging.getLogger(__name__)

ResultHandler = Callable[[str, str], None]
LostHandler = Callable[[TransportError], None]


class Registration:
    """ A waiter recorded against one channel id. Single-shot registrations
        are removed as soon as their reply arrives; stream registrations
        stay until something removes them explicitly.
    """

    __slots__ = ('id', 'stream', 'on_result', 'on_lost')

    def __init__(self, id: int, stream: bool, on_result: ResultHandler, on_lost: LostHandler):
        self.id = id
        self.stream = stream
        self.on_result = on_result
        self.on_lost = on_lost

    def __repr__(self):
        kind = 'stream' if self.stream else 'single-shot'
        return f"<Registration {self.id} {kind}>"


class ChannelSession:
    """ Client-side multiplexing of many logical channels over one line
        connection. Ids come from a per-session counter that is never reset,
        so an id is never reused even across reconnects.

        The session is *open* while the underlying connection is up; the
        connection epoch handed to :func:`open` is returned from every
        registration so the caller can tag its outbound line with it.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._pending: Dict[int, Registration] = dict()
        self._epoch: Optional[int] = None

        self._id_lock = threading.Lock()
        self._id_ticker = itertools.count(1)

    def __contains__(self, id: int) -> bool:
        return id in self._pending

    def __len__(self) -> int:
        return len(self._pending)

    @property
    def epoch(self) -> Optional[int]:
        return self._epoch

    @property
    def is_open(self) -> bool:
        return self._epoch is not None

    def allocate_id(self) -> int:
        with self._id_lock:
            return next(self._id_ticker)

    def register_single_shot(self, id: int, on_result: ResultHandler, on_lost: LostHandler) -> int:
        return self._register(Registration(id, False, on_result, on_lost))

    def register_stream(self, id: int, on_message: ResultHandler, on_lost: LostHandler) -> int:
        return self._register(Registration(id, True, on_message, on_lost))

    def _register(self, registration: Registration) -> int:

        with self._lock:
            if self._epoch is None:
                raise NotConnected('no connection is open')
            if registration.id in self._pending:
                raise ValueError(f"channel {registration.id} is already registered")

            self._pending[registration.id] = registration
            return self._epoch

    def discard(self, id: int) -> bool:
        """ Remove the registration for *id* without notifying it. Returns
            False if nothing was registered.
        """

        with self._lock:
            return self._pending.pop(id, None) is not None

    def get(self, id: int) -> Optional[Registration]:
        with self._lock:
            return self._pending.get(id)

    def reject(self, id: int, error: Exception) -> bool:
        """ Remove the registration for *id*, single-shot or stream, and
            fail it with *error*. Returns False if nothing was registered.
        """

        with self._lock:
            registration = self._pending.pop(id, None)

        if registration is None:
            logger.warning("dropping reply: %s", UnknownChannel(id))
            return False

        self._lost(registration, error)
        return True

    def lookup(self, id: int) -> Registration:
        """ Return the registration for *id*, removing it if it is a
            single-shot. Raises :class:`UnknownChannel` if there is none.
        """

        with self._lock:
            try:
                registration = self._pending[id]
            except KeyError:
                raise UnknownChannel(id) from None

            if not registration.stream:
                del self._pending[id]

        return registration

    def dispatch(self, id: int, status: str, body: str) -> bool:
        """ Hand one reply to the waiter for *id*. Replies for ids nobody is
            waiting on are logged and dropped; the return value says whether
            the reply was delivered.
        """

        try:
            registration = self.lookup(id)
        except UnknownChannel as e:
            logger.warning("dropping reply: %s", e)
            return False

        try:
            registration.on_result(status, body)
        except Exception as e:
            logger.exception("waiter for channel %d failed", id)

            if registration.stream and self.discard(id):
                self._lost(registration, e)

        return True

    def open(self, epoch: int) -> None:
        with self._lock:
            self._epoch = epoch

    def teardown(self, error: TransportError) -> None:
        """ Close the session and notify every registration, exactly once,
            that its channel is gone.
        """

        with self._lock:
            self._epoch = None
            lost = list(self._pending.values())
            self._pending.clear()

        if lost:
            logger.info("connection lost with %d channels open", len(lost))

        for registration in lost:
            self._lost(registration, error)

    def _lost(self, registration: Registration, error: Exception) -> None:
        try:
            registration.on_lost(error)
        except Exception:
            logger.exception("loss handler for channel %d failed", registration.id)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
