from __future__ import annotations

import logging
from concurrent.futures import Executor, Future
from typing import Callable, Dict, Optional, Union

from .. import pon
from ..transport.base import NotConnected, Transport
from . import fields
from . import wire
from .message import ProtocolError, RemoteOperationFailed
from .stream import Stream, StreamClosed


logger = logging.getLogger(__name__)
actions = logging.getLogger('pixelport.actions')

Payload = Union[pon.Value, str]


def _running_future() -> Future:
    future = Future()
    future.set_running_or_notify_cancel()
    return future


class Protocol:
    """ Request/response and streaming on top of a channel session. Every
        request is one line out, ``<id> <pon>``; every reply is one line
        in, ``<id> <status> <pon>``.

        Payloads are :class:`pon.Value` instances, or Pon text given as a
        string, which is sent as-is.
    """

    def __init__(self, session, transport: Transport, executor: Executor,
                 close_command: str = fields.CLOSE_COMMAND):

        self.session = session
        self.transport = transport
        self.executor = executor
        self.close_command = close_command
        self._streams: Dict[int, Stream] = dict()


    @staticmethod
    def render(payload: Payload) -> pon.Value:

        if isinstance(payload, str):
            return pon.Raw(payload)
        if isinstance(payload, pon.Value):
            return payload

        raise TypeError(f"payload must be a pon.Value or Pon text, not {type(payload).__name__}")


    @staticmethod
    def decode_error(body: str) -> pon.Value:
        """ Decode the body of a failure reply. Failure bodies are often
            free-form debug text rather than Pon; anything that does not
            parse is kept as a :class:`pon.String` of the raw text.
        """

        try:
            return pon.parse(body, legacy=True)
        except pon.MalformedInput:
            return pon.String(body)


    def decode(self, status: str, body: str) -> pon.Value:

        if status == fields.OK:
            return pon.parse(body)

        raise RemoteOperationFailed(self.decode_error(body), status)


    # Request APIs
    def request(self, payload: Payload) -> Future:
        """ Send *payload* and return a :class:`concurrent.futures.Future`
            for the reply body. The future fails with
            :class:`RemoteOperationFailed` if the app reports an error, or
            with :class:`pixelport.transport.ConnectionLost` if the
            connection goes away first. It is already running, so it cannot
            be cancelled.

            The request travels as a single line, so any line break in the
            rendered text, including one inside a :class:`pon.String`, is
            sent as a space.
        """

        text = pon.stringify(self.render(payload))
        future = _running_future()
        channel_id = self.session.allocate_id()

        def on_result(status, body):
            try:
                value = self.decode(status, body)
            except (pon.MalformedInput, RemoteOperationFailed) as e:
                future.set_exception(e)
            else:
                future.set_result(value)

        epoch = self.session.register_single_shot(channel_id, on_result, future.set_exception)
        self._send(channel_id, text, epoch)
        return future


    # Stream APIs
    def subscribe(self, payload: Payload,
                  on_message: Optional[Callable] = None,
                  on_error: Optional[Callable] = None,
                  on_closed: Optional[Callable] = None) -> Stream:
        """ Send *payload* and return a :class:`Stream` receiving every
            reply on its channel. Callbacks given here are registered before
            the request goes out, so they see every message.
        """

        text = pon.stringify(self.render(payload))
        stream = Stream(self, self.session.allocate_id(), self.executor)

        if on_message is not None:
            stream.on_message(on_message)
        if on_error is not None:
            stream.on_error(on_error)
        if on_closed is not None:
            stream.on_closed(on_closed)

        self._start(stream, text)
        return stream


    def _start(self, stream: Stream, text: str) -> None:

        channel_id = stream.id

        def on_reply(status, body):
            if status != fields.OK:
                self.session.discard(channel_id)
                stream._fail(RemoteOperationFailed(self.decode_error(body), status))
                return

            try:
                value = pon.parse(body)
            except pon.MalformedInput as e:
                stream._fail(e)
                stream.close()
                return

            stream._deliver(value)

        epoch = self.session.register_stream(channel_id, on_reply, stream._fail)
        self._streams[channel_id] = stream
        self._send(channel_id, text, epoch)


    def close_payload(self, channel_id: int) -> pon.Value:
        return pon.Call(self.close_command, pon.Map({fields.CLOSE_FIELD: pon.Number(channel_id)}))


    def close_stream(self, channel_id: int) -> Future:
        """ Ask the app to close stream *channel_id*. The channel stays
            registered, and keeps delivering, until the app acknowledges;
            an acknowledgement of either status removes it and closes the
            stream. The returned future carries the acknowledgement.

            Raises :class:`ValueError` if *channel_id* belongs to a pending
            request rather than a stream.
        """

        stream = self._streams.get(channel_id)
        registration = self.session.get(channel_id)

        if registration is not None and not registration.stream:
            raise ValueError(f"channel {channel_id} is a request, not a stream")

        if registration is None:
            # Already failed or torn down; nothing is left to close remotely.
            if stream is not None:
                stream._finish()
            future = _running_future()
            future.set_result(pon.Nil())
            return future

        try:
            future = self.request(self.close_payload(channel_id))
        except NotConnected as e:
            logger.debug("cannot close stream %d: %s", channel_id, e)
            future = _running_future()
            future.set_result(pon.Nil())
            return future

        def acknowledged(done):
            self.session.discard(channel_id)
            if stream is not None:
                stream._finish()

        future.add_done_callback(acknowledged)
        return future


    def wait_for(self, payload: Payload, predicate: Callable[[pon.Value], bool]) -> Future:
        """ Subscribe with *payload* and resolve the returned future with
            the first message for which *predicate* is true; the stream is
            closed afterwards. The future fails with the stream's error, or
            :class:`StreamClosed` if the stream ends without a match.
        """

        text = pon.stringify(self.render(payload))
        future = _running_future()
        stream = Stream(self, self.session.allocate_id(), self.executor)

        def check(body):
            if future.done():
                return
            if predicate(body):
                future.set_result(body)
                stream.close()

        def failed(error):
            if not future.done():
                future.set_exception(error)

        def closed():
            if not future.done():
                future.set_exception(StreamClosed(f"stream {stream.id} closed without a match"))

        stream.on_message(check)
        stream.on_error(failed)
        stream.on_closed(closed)

        self._start(stream, text)
        return future


    # Inbound
    def handle_line(self, line: str) -> None:
        """Route one inbound line to the waiter for its channel."""

        try:
            response = wire.unpack_line(line)
        except ProtocolError as e:
            if e.channel_id is None:
                logger.warning("ignoring line: %s", e)
            else:
                logger.warning("failing channel %d: %s", e.channel_id, e)
                self.session.reject(e.channel_id, e)
            return

        actions.debug("%d %s %s", response.channel_id, response.status, response.body)
        self.session.dispatch(response.channel_id, response.status, response.body)


    def _send(self, channel_id: int, text: str, epoch: int) -> None:

        actions.debug("%d %s", channel_id, text)

        try:
            self.transport.send(wire.pack_line(channel_id, text), epoch)
        except Exception:
            self.session.discard(channel_id)
            self._streams.pop(channel_id, None)
            raise


    def _forget(self, channel_id: int) -> None:
        self._streams.pop(channel_id, None)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
