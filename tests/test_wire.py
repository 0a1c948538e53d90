import pytest

from pixelport.protocol import wire
from pixelport.protocol.message import ProtocolError, Response


def test_pack_line():
    assert wire.pack_line(1, "get { name: 'a' }") == "1 get { name: 'a' }"
    assert wire.pack_line(7, 'multi\nline\r\npayload') == '7 multi line payload'


def test_unpack_line():
    assert wire.unpack_line("1 ok { arg: { name: 'a' } }") == Response(1, 'ok', "{ arg: { name: 'a' } }")
    assert wire.unpack_line('12 err some_error') == Response(12, 'err', 'some_error')


def test_missing_body_is_nil():
    response = wire.unpack_line('3 ok')

    assert response.body == '()'
    assert response.ok


def test_malformed_lines():
    for line in ('', 'ok', 'x ok ()', '-1 ok ()'):
        with pytest.raises(ProtocolError):
            wire.unpack_line(line)


def test_missing_status_keeps_the_channel_id():
    with pytest.raises(ProtocolError) as info:
        wire.unpack_line('4')
    assert info.value.channel_id == 4

    with pytest.raises(ProtocolError) as info:
        wire.unpack_line('x ok ()')
    assert info.value.channel_id is None


def test_line_breaks_inside_strings_become_spaces():
    assert wire.pack_line(2, "'a\nb'") == "2 'a b'"


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
