"""
Tests for attribute building.
"""
import decimal

import pytest
from dbcommon.attributes import Attribute, AttributeBuilder, attributes_to_dict
from dbcommon.security import GuardedString


@pytest.mark.parametrize('value', [
    None, 'alice', 1, 1.5, decimal.Decimal('1.10'), True, b'\x00\x01', GuardedString('x'),
])
def test_build_supported_values(value):
    attr = AttributeBuilder.build('NAME', value)
    assert attr.name == 'NAME'
    assert attr.value is value


@pytest.mark.parametrize('name', ['', '   ', None])
def test_build_rejects_blank_name(name):
    with pytest.raises(ValueError, match='blank'):
        AttributeBuilder.build(name, 1)


def test_build_rejects_unsupported_value():
    with pytest.raises(ValueError, match='unsupported value type list'):
        AttributeBuilder.build('NAME', [1, 2])


def test_attribute_equality_ignores_name_case():
    assert Attribute('name', 'alice') == Attribute('NAME', 'alice')
    assert Attribute('name', 'alice') != Attribute('name', 'bob')
    assert len({Attribute('name', 'alice'), Attribute('NAME', 'alice')}) == 1


def test_attribute_is_immutable():
    attr = Attribute('ID', 1)
    with pytest.raises(AttributeError):
        attr.value = 2


def test_attributes_to_dict():
    attrs = {Attribute('ID', 1), Attribute('NAME', 'alice')}
    assert attributes_to_dict(attrs) == {'ID': 1, 'NAME': 'alice'}
