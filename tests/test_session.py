import threading

import pytest

from pixelport.transport import ConnectionLost, NotConnected
from pixelport.transport.session import ChannelSession


class Recorder:
    def __init__(self):
        self.results = list()
        self.lost = list()

    def on_result(self, status, body):
        self.results.append((status, body))

    def on_lost(self, error):
        self.lost.append(error)


def test_ids_are_strictly_increasing():
    session = ChannelSession()
    allocated = list()

    def allocate():
        for _ in range(500):
            allocated.append(session.allocate_id())

    threads = [threading.Thread(target=allocate) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(allocated) == list(range(1, 2001))


def test_register_requires_open_session():
    session = ChannelSession()
    recorder = Recorder()

    with pytest.raises(NotConnected):
        session.register_single_shot(session.allocate_id(), recorder.on_result, recorder.on_lost)

    session.open(4)
    assert session.register_single_shot(session.allocate_id(), recorder.on_result, recorder.on_lost) == 4


def test_dispatch_isolation():
    session = ChannelSession()
    session.open(1)

    first = Recorder()
    second = Recorder()
    session.register_single_shot(1, first.on_result, first.on_lost)
    session.register_single_shot(2, second.on_result, second.on_lost)

    assert session.dispatch(2, 'ok', '2')
    assert session.dispatch(1, 'err', 'nope')

    assert first.results == [('err', 'nope')]
    assert second.results == [('ok', '2')]
    assert len(session) == 0

    # A second reply for a resolved single-shot goes nowhere.
    assert not session.dispatch(1, 'ok', '()')
    assert first.results == [('err', 'nope')]


def test_unknown_id_is_dropped():
    session = ChannelSession()
    session.open(1)

    assert session.dispatch(99, 'ok', '()') == False


def test_stream_receives_until_discarded():
    session = ChannelSession()
    session.open(1)

    recorder = Recorder()
    session.register_stream(1, recorder.on_result, recorder.on_lost)

    for body in ('1', '2', '3'):
        session.dispatch(1, 'ok', body)

    assert recorder.results == [('ok', '1'), ('ok', '2'), ('ok', '3')]
    assert 1 in session

    assert session.discard(1)
    assert not session.dispatch(1, 'ok', '4')
    assert recorder.lost == []


def test_failing_stream_waiter_is_removed():
    session = ChannelSession()
    session.open(1)

    lost = list()

    def explode(status, body):
        raise RuntimeError('boom')

    session.register_stream(1, explode, lost.append)
    session.dispatch(1, 'ok', '1')

    assert 1 not in session
    assert len(lost) == 1
    assert isinstance(lost[0], RuntimeError)


def test_reject_fails_any_waiter():
    session = ChannelSession()
    session.open(1)

    single = Recorder()
    stream = Recorder()
    session.register_single_shot(1, single.on_result, single.on_lost)
    session.register_stream(2, stream.on_result, stream.on_lost)

    error = ValueError('garbled')
    assert session.reject(1, error)
    assert session.reject(2, error)
    assert not session.reject(3, error)

    assert single.lost == [error]
    assert stream.lost == [error]
    assert len(session) == 0


def test_teardown_notifies_every_waiter_once():
    session = ChannelSession()
    session.open(1)

    single = Recorder()
    stream = Recorder()
    session.register_single_shot(session.allocate_id(), single.on_result, single.on_lost)
    session.register_stream(session.allocate_id(), stream.on_result, stream.on_lost)

    error = ConnectionLost('gone')
    session.teardown(error)
    session.teardown(error)

    assert single.lost == [error]
    assert stream.lost == [error]
    assert not session.is_open
    assert len(session) == 0

    # Ids keep counting after a reconnect.
    session.open(2)
    assert session.allocate_id() == 3


def test_duplicate_registration():
    session = ChannelSession()
    session.open(1)
    recorder = Recorder()

    session.register_single_shot(5, recorder.on_result, recorder.on_lost)
    with pytest.raises(ValueError):
        session.register_stream(5, recorder.on_result, recorder.on_lost)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
