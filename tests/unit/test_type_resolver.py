"""
Tests for type resolution from cursor metadata.
"""
import datetime

import pytest
from dbcommon.types import Column, convert_date, convert_datetime
from dbcommon.types import get_column_attribute_type, resolve_type


def test_postgres_types():
    """Test PostgreSQL type resolution"""
    assert resolve_type('postgresql', 23) == int  # int4
    assert resolve_type('postgresql', 25) == str  # text
    assert resolve_type('postgresql', 16) == bool  # bool
    assert resolve_type('postgresql', 1700) == float  # numeric
    assert resolve_type('postgresql', 1082) == datetime.date  # date
    assert resolve_type('postgresql', 1114) == datetime.datetime  # timestamp
    assert resolve_type('postgresql', 17) == bytes  # bytea

    # Test unknown type falls back to string
    assert resolve_type('postgresql', 99999) == str


def test_sqlite_types():
    """Test SQLite type resolution"""
    assert resolve_type('sqlite', 'INTEGER') == int
    assert resolve_type('sqlite', 'TEXT') == str
    assert resolve_type('sqlite', 'BLOB') == bytes
    assert resolve_type('sqlite', 'DATETIME') == datetime.datetime
    assert resolve_type('sqlite', 'NUMERIC(10,2)') == float
    assert resolve_type('sqlite', 'CUSTOM_TYPE') == str


def test_missing_type_code_is_unknown():
    """Column names never imply a type"""
    assert resolve_type('sqlite', None) is None
    assert get_column_attribute_type('sqlite', None) is None


def test_column_attribute_type_substitution():
    assert get_column_attribute_type('postgresql', 1114) is int
    assert get_column_attribute_type('postgresql', 1082) is int
    assert get_column_attribute_type('postgresql', 17) is bytes
    assert get_column_attribute_type('postgresql', 25) is str
    assert get_column_attribute_type('sqlite', 'DATE') is int


def test_column_from_sqlite_description():
    column = Column.from_cursor_description(('user_id', None, None, None, None, None, None), 'sqlite')
    assert column.name == 'user_id'
    assert column.python_type is None


def test_column_from_postgres_description(mocker):
    item = mocker.Mock()
    item.name = 'created'
    item.type_code = 1184  # timestamptz
    item.null_ok = None
    column = Column.from_cursor_description(item, 'postgresql')
    assert column.python_type is datetime.datetime


@pytest.mark.parametrize(('raw', 'expected'), [
    (b'2023-05-15', datetime.date(2023, 5, 15)),
    (b'1684108800', 1684108800),
    (b'1.5', 1.5),
    (b'not a date', 'not a date'),
])
def test_sqlite_date_converter(raw, expected):
    assert convert_date(raw) == expected


@pytest.mark.parametrize(('raw', 'expected'), [
    (b'2023-05-15 14:30:45', datetime.datetime(2023, 5, 15, 14, 30, 45)),
    (b'1684161045', 1684161045),
    (b'soon', 'soon'),
])
def test_sqlite_datetime_converter(raw, expected):
    assert convert_datetime(raw) == expected
