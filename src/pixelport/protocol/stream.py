""" Client-side handle for a stream channel: a request that keeps answering
    until it is closed.
"""

from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import Executor, Future
from typing import Callable, List, Optional

from .. import pon


logger = logging.getLogger(__name__)

_END = object()


def _chain(source: Future, target: Future) -> None:
    """Complete *target* the same way *source* completes."""

    def copy(done):
        error = done.exception()
        if error is None:
            target.set_result(done.result())
        else:
            target.set_exception(error)

    source.add_done_callback(copy)


class StreamClosed(Exception):
    """ Raised by :func:`Stream.get` once a stream has closed cleanly and
        every buffered message has been read.
    """


class Stream:
    """ A :class:`Stream` receives any number of Pon bodies on one channel.
        There are two ways to consume them, which can be combined:

        * register callbacks with :func:`on_message`, :func:`on_error` and
          :func:`on_closed`; they run one at a time, in arrival order, on
          the connection's callback thread.
        * call :func:`get` or iterate over the stream. Only messages that
          arrived while no message callback was registered are buffered
          for these.

        A stream ends exactly once. If it ends because of a failure, the
        error callbacks run first (once), followed by the closed callbacks.
        A message callback that raises fails the stream with its exception
        and asks the app to close the channel.

        :ivar id: The channel id assigned to this stream.
    """

    def __init__(self, protocol, id: int, executor: Executor):

        self.id = id
        self._protocol = protocol
        self._executor = executor

        self._lock = threading.Lock()
        self._queue = queue.SimpleQueue()
        self._closed = threading.Event()
        self._error: Optional[BaseException] = None
        self._close_future: Optional[Future] = None
        self._callback_failed = False

        self._message_callbacks: List[Callable] = list()
        self._error_callbacks: List[Callable] = list()
        self._closed_callbacks: List[Callable] = list()

    def __repr__(self):
        if self._error is not None:
            state = 'failed'
        elif self._closed.is_set():
            state = 'closed'
        else:
            state = 'open'

        return f"<Stream {self.id} {state}>"

    def __iter__(self):
        while True:
            try:
                yield self.get()
            except StreamClosed:
                return

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    @property
    def error(self) -> Optional[BaseException]:
        return self._error

    def on_message(self, callback: Callable[[pon.Value], None]) -> None:
        with self._lock:
            self._message_callbacks.append(callback)

    def on_error(self, callback: Callable[[BaseException], None]) -> None:
        """ Register *callback* to receive the error that ended the stream.
            If the stream has already failed it is scheduled right away.
        """

        with self._lock:
            self._error_callbacks.append(callback)
            error = self._error

        if error is not None:
            self._schedule(callback, error)

    def on_closed(self, callback: Callable[[], None]) -> None:
        """ Register *callback* to run once the stream has ended, for any
            reason. If the stream has already ended it is scheduled right
            away.
        """

        with self._lock:
            self._closed_callbacks.append(callback)
            closed = self._closed.is_set()

        if closed:
            self._schedule(callback)

    def get(self, timeout: Optional[float] = None) -> pon.Value:
        """ Return the next buffered message, blocking for up to *timeout*
            seconds (forever if *timeout* is None). Raises
            :class:`TimeoutError` if nothing arrived in time, the stream's
            error if it failed, or :class:`StreamClosed` if it ended
            cleanly.
        """

        try:
            item = self._queue.get(timeout=timeout)
        except queue.Empty:
            raise TimeoutError(f"no message on stream {self.id} within {timeout} sec") from None

        if item is _END:
            # Leave the marker for any other reader.
            self._queue.put(_END)

            if self._error is not None:
                raise self._error
            raise StreamClosed(f"stream {self.id} is closed")

        return item

    def wait_closed(self, timeout: Optional[float] = None) -> bool:
        return self._closed.wait(timeout)

    def close(self) -> Future:
        """ Ask the app to close this channel. The returned future resolves
            once the app acknowledged the request; messages sent before the
            acknowledgement are still delivered. Calling :func:`close` more
            than once returns the same future.
        """

        with self._lock:
            future = self._close_future
            if future is not None:
                return future

            future = Future()
            future.set_running_or_notify_cancel()
            self._close_future = future

        _chain(self._protocol.close_stream(self.id), future)
        return future

    # --- called by the protocol, on the transport's I/O thread ---

    def _deliver(self, body: pon.Value) -> None:

        with self._lock:
            if self._closed.is_set():
                return
            callbacks = list(self._message_callbacks)

        if callbacks:
            self._submit(self._run_message, callbacks, body)
        else:
            self._queue.put(body)

    def _fail(self, error: BaseException) -> None:

        with self._lock:
            if self._closed.is_set() or self._error is not None:
                return
            self._error = error
            callbacks = list(self._error_callbacks)

        logger.debug("stream %d failed: %s", self.id, error)

        for callback in callbacks:
            self._schedule(callback, error)

        self._finish()

    def _finish(self) -> None:

        with self._lock:
            if self._closed.is_set():
                return
            self._closed.set()
            callbacks = list(self._closed_callbacks)

        self._queue.put(_END)
        self._protocol._forget(self.id)

        for callback in callbacks:
            self._schedule(callback)

    # --- callback thread ---

    def _run_message(self, callbacks, body) -> None:

        if self._callback_failed:
            return

        for callback in callbacks:
            try:
                callback(body)
            except Exception as e:
                logger.exception("message callback for stream %d failed", self.id)
                self._callback_failed = True
                self._fail(e)
                self.close()
                return

    def _schedule(self, callback, *args) -> None:
        self._submit(self._invoke, callback, args)

    def _invoke(self, callback, args) -> None:
        try:
            callback(*args)
        except Exception:
            logger.exception("callback for stream %d failed", self.id)

    def _submit(self, function, *args) -> None:
        try:
            self._executor.submit(function, *args)
        except RuntimeError:
            # The executor is shut down once the connection is closed.
            logger.debug("stream %d: dropping callback after shutdown", self.id)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
