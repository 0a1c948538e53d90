import pytest

from pixelport import pon
from pixelport.pon import (
    Array, Bool, Call, DepPropRef, MalformedInput, Map, Nil, Number, PropRef, Selector, String,
)


def test_scalars():
    assert pon.parse('()') == Nil()
    assert pon.parse('true') == Bool(True)
    assert pon.parse('false') == Bool(False)
    assert pon.parse('33') == Number(33)
    assert pon.parse('-1.56') == Number(-1.56)
    assert pon.parse("'hello'") == String('hello')


def test_call_with_map():
    parsed = pon.parse('vec3 { x: -1.56, y: 33, z: 533.12 }')

    expected = Call('vec3', Map({'x': Number(-1.56), 'y': Number(33), 'z': Number(533.12)}))
    assert parsed == expected


def test_call_with_array_and_nil():
    assert pon.parse('list [1, 2]') == Call('list', Array([Number(1), Number(2)]))
    assert pon.parse('screenshot ()') == Call('screenshot', Nil())


def test_dependency_reference():
    parsed = pon.parse('test { x: @root:Hello.y }')

    assert parsed == Call('test', Map({'x': DepPropRef('root:Hello.y')}))
    assert parsed.arg['x'].entity == 'root:Hello'
    assert parsed.arg['x'].property == 'y'


def test_property_references():
    assert pon.parse('root:Hello.y') == PropRef('root:Hello.y')
    assert pon.parse('#5>child.x') == PropRef('#5>child.x')


def test_selectors():
    assert pon.parse('#5') == Selector('5')
    assert pon.parse('#root:Hello') == Selector('root:Hello')
    assert pon.parse('#root:[name=\'a b\']') == Selector("root:[name='a b']")

    with pytest.raises(MalformedInput):
        pon.parse('#')


def test_string_escapes():
    assert pon.parse(r"'it\'s'") == String("it's")
    assert pon.parse(r"'back\\slash'") == String('back\\slash')

    # Unknown escapes keep the backslash.
    assert pon.parse(r"'a\nb'") == String('a\\nb')


def test_whitespace_comments_and_trailing_commas():
    text = """
        // leading comment
        {
            a: [1, 2, 3,],   // trailing comma in an array
            'quoted key': 'x',
        }
    """

    parsed = pon.parse(text)
    assert parsed == Map({'a': Array([Number(1), Number(2), Number(3)]), 'quoted key': String('x')})


def test_empty_containers():
    assert pon.parse('{}') == Map({})
    assert pon.parse('[ ]') == Array([])


def test_malformed_inputs():
    bad = (
        '',
        '   ',
        '{ a: 1',
        '[1, 2',
        "'unterminated",
        '{ a: 1, a: 2 }',
        '1 2',
        '12abc',
        '1.',
        '{ a 1 }',
        '@nothing',
        '#root:[x',
    )

    for text in bad:
        with pytest.raises(MalformedInput):
            pon.parse(text)


def test_error_position():
    with pytest.raises(MalformedInput) as caught:
        pon.parse('{\n  a: 1,\n  a: 2\n}')

    assert caught.value.line == 3
    assert caught.value.col == 3
    assert 'duplicate' in caught.value.reason


def test_bare_words_are_legacy_only():
    with pytest.raises(MalformedInput):
        pon.parse('some_error')

    assert pon.parse('some_error', legacy=True) == String('some_error')
    assert pon.parse('root:Hello', legacy=True) == String('root:Hello')


def test_malformed_input_is_a_value_error():
    with pytest.raises(ValueError):
        pon.parse('}')


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
