import math

import pytest

from pixelport import pon
from pixelport.pon import (
    Array, Bool, Call, DepPropRef, Map, Nil, Number, PropRef, Selector, String,
)


def test_wrap_and_unwrap():
    native = {'a': [1, 2.5, 'x'], 'b': None, 'c': True}
    wrapped = pon.wrap(native)

    assert wrapped == Map({
        'a': Array([Number(1), Number(2.5), String('x')]),
        'b': Nil(),
        'c': Bool(True),
    })

    assert wrapped.unwrap() == {'a': [1.0, 2.5, 'x'], 'b': None, 'c': True}


def test_wrap_rejects_unknown_types():
    with pytest.raises(TypeError):
        pon.wrap(object())

    with pytest.raises(TypeError):
        pon.wrap({1: 'one'})


def test_numbers_are_finite_floats():
    assert Number(3).value == 3.0
    assert isinstance(Number(3).value, float)

    with pytest.raises(ValueError):
        Number(math.inf)
    with pytest.raises(ValueError):
        Number(math.nan)
    with pytest.raises(TypeError):
        Number(True)
    with pytest.raises(TypeError):
        Number('3')


def test_containers_hold_only_values():
    with pytest.raises(TypeError):
        Array([1, 2])
    with pytest.raises(TypeError):
        Map({'a': 1})
    with pytest.raises(TypeError):
        Map({1: Number(1)})


def test_call_validation():
    with pytest.raises(ValueError):
        Call('not a name', Nil())
    with pytest.raises(TypeError):
        Call('name', Number(1))

    for name in ('true', 'false'):
        with pytest.raises(ValueError):
            Call(name, Map({}))

    assert Call('name').arg == Nil()


def test_call_helper():
    assert pon.call('get', name='a') == Call('get', Map({'name': String('a')}))
    assert pon.call('list', [1]) == Call('list', Array([Number(1)]))
    assert pon.call('ping') == Call('ping', Nil())

    with pytest.raises(TypeError):
        pon.call('get', {'a': 1}, name='a')


def test_references():
    reference = PropRef('root:Hello.y')
    assert reference.entity == 'root:Hello'
    assert reference.property == 'y'

    for text in ('root:Hello', '.y', 'root:Hello.', ' root.y'):
        with pytest.raises(ValueError):
            PropRef(text)

    with pytest.raises(ValueError):
        DepPropRef('nothing')


def test_references_that_would_read_back_differently():
    # Numbers, spaces, comments, calls and doubled selector marks.
    for text in ('5.x', '-a.x', 'a b.x', 'a//b.x', 'a[0].x', '##5.x', "#a[name='b'.x"):
        with pytest.raises(ValueError):
            PropRef(text)

    for text in ('5.x', '-a.x', 'a b.x'):
        with pytest.raises(ValueError):
            DepPropRef(text)

    assert PropRef('a-b[0].x').entity == 'a-b[0]'
    assert DepPropRef('a[0].x').property == 'x'


def test_selector_text():
    assert Selector('#5').text == '5'
    assert Selector('5').text == '5'

    with pytest.raises(ValueError):
        Selector('')
    with pytest.raises(ValueError):
        Selector('#')

    # Each of these would come back as something else, or not at all.
    for text in ('x.y', 'a//b', 'a b', '##5', 'a]', "root:[name='a b'"):
        with pytest.raises(ValueError):
            Selector(text)


def test_map_access():
    value = Map({'a': Number(1)})

    assert 'a' in value
    assert value['a'] == Number(1)
    assert value.get('b') is None
    assert list(value) == ['a']
    assert len(value) == 1


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
