import socket
import threading
import time

import pytest

import pixelport
from pixelport.transport import base


class FakeTransport(base.Transport):
    """ In-memory stand-in for a line transport. Lines written by the client
        are recorded in *sent*; the test plays the app by calling
        :func:`receive`, which delivers on the calling thread.
    """

    def __init__(self):
        self.listener = base.Listener()
        self.sent = list()
        self.epoch = 0
        self._state = base.State.DISCONNECTED

    @property
    def state(self):
        return self._state

    def open(self, timeout=None):
        self.connect()

    def connect(self):
        self.epoch += 1
        self._state = base.State.CONNECTED
        self.listener.transport_connected(self.epoch, self.epoch > 1)

    def drop(self, reconnecting=False):
        if reconnecting:
            self._state = base.State.RECONNECTING
        else:
            self._state = base.State.DISCONNECTED

        self.listener.transport_disconnected(base.ConnectionLost('connection dropped'))

    def close(self):
        if self._state is base.State.CONNECTED:
            self.drop()
        self._state = base.State.DISCONNECTED

    def send(self, line, epoch):
        if self._state is not base.State.CONNECTED:
            raise base.NotConnected('fake transport is not connected')
        if epoch != self.epoch:
            return
        self.sent.append(line)

    def receive(self, line):
        self.listener.transport_line(line)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def connection(transport):
    connection = pixelport.Connection('localhost', 8081, transport=transport)
    connection.open()

    yield connection

    connection.close()


@pytest.fixture
def eventually():
    """ Return a function that polls *predicate* until it is true, for
        results produced on the connection's callback thread.
    """

    def wait(predicate, timeout=2.0):
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return True
            time.sleep(0.01)
        return predicate()

    return wait


class LineServer:
    """ A minimal TCP app: every request line ``<id> <payload>`` is answered
        with the (status, body) pairs returned by *handler(payload)*.
    """

    def __init__(self, handler):
        self.handler = handler
        self.received = list()
        self.connections = list()
        self.shutdown = False

        self.socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self.socket.bind(('127.0.0.1', 0))
        self.socket.listen(5)
        self.socket.settimeout(0.1)
        self.port = self.socket.getsockname()[1]

        self.thread = threading.Thread(target=self.run, daemon=True)
        self.thread.start()

    def run(self):
        while self.shutdown == False:
            try:
                connection, _address = self.socket.accept()
            except socket.timeout:
                continue
            except OSError:
                return

            connection.settimeout(None)
            self.connections.append(connection)
            thread = threading.Thread(target=self.serve, args=(connection,), daemon=True)
            thread.start()

    def serve(self, connection):
        buffered = b''

        while True:
            try:
                chunk = connection.recv(4096)
            except OSError:
                return
            if chunk == b'':
                return

            buffered += chunk
            while b'\n' in buffered:
                raw, buffered = buffered.split(b'\n', 1)
                line = raw.decode().rstrip('\r')
                self.received.append(line)

                channel_id, payload = line.split(' ', 1)
                for status, body in self.handler(payload):
                    reply = f"{channel_id} {status} {body}\n"
                    try:
                        connection.sendall(reply.encode())
                    except OSError:
                        return

    def drop_all(self):
        connections = list(self.connections)
        self.connections.clear()

        for connection in connections:
            try:
                connection.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            connection.close()

    def close(self):
        self.shutdown = True
        self.thread.join(timeout=2)
        self.socket.close()
        self.drop_all()


def default_handler(payload):
    if payload.startswith('channel_close'):
        return [('ok', '()')]
    if payload.startswith('hang'):
        return []
    if payload.startswith('watch'):
        return [('ok', '1'), ('ok', '2'), ('ok', '3')]
    if payload.startswith('fail'):
        return [('err', 'Failed to find entity')]
    return [('ok', '{ echo: ' + payload + ' }')]


@pytest.fixture
def line_server():
    server = LineServer(default_handler)

    yield server

    server.close()


@pytest.fixture
def unused_port():
    probe = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    probe.bind(('127.0.0.1', 0))
    port = probe.getsockname()[1]
    probe.close()
    return port


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
