"""
Type handling between database values and attribute values.

This module provides:
- get_attribute_data_type: Resolve a class name to a supported attribute type
- convert_to_supported_type: Database value -> attribute value
- convert_to_jdbc: Attribute value -> value for binding to a target type
- resolve_type / Column: Database type codes -> Python types
- register_sqlite_adapters: SQLite date/datetime converters
"""
import builtins
import datetime
import importlib
import io
import logging
import numbers
import sqlite3
from typing import Any, Self

import dateutil.parser
import numpy as np
import pandas as pd
from dbcommon.exceptions import ConnectorError, ConnectorIOError
from dbcommon.utils import is_blank

logger = logging.getLogger(__name__)

BLOB_TYPES: tuple[type, ...] = (sqlite3.Blob, io.IOBase, memoryview)
TEMPORAL_TYPES: tuple[type, ...] = (datetime.date, datetime.time, np.datetime64)

EPOCH = datetime.datetime(1970, 1, 1)
EPOCH_UTC = EPOCH.replace(tzinfo=datetime.timezone.utc)
ONE_MILLISECOND = datetime.timedelta(milliseconds=1)


# Class resolution

def load_class(name: str | type) -> type:
    """Resolve a fully qualified class name such as 'datetime.datetime'.

    Bare names are looked up in builtins. Raises ImportError, AttributeError
    or TypeError when the name does not resolve to a class.
    """
    if isinstance(name, type):
        return name
    module_name, _, attr = name.strip().rpartition('.')
    module = importlib.import_module(module_name) if module_name else builtins
    clazz = getattr(module, attr)
    if not isinstance(clazz, type):
        raise TypeError(f'{name} is not a class')
    return clazz


def _supported_class(clazz: type) -> type:
    """Substitute bytes for blob types and int for temporal types."""
    if issubclass(clazz, BLOB_TYPES):
        return bytes
    if issubclass(clazz, TEMPORAL_TYPES):
        return int
    return clazz


def get_attribute_data_type(class_name: str | type) -> type:
    """Convert a database class name to a supported attribute type.

    :param class_name: Fully qualified class name, or a class.
    :returns: The attribute type the column values are converted to.
    :raises ConnectorError: If the class cannot be resolved.
    """
    try:
        clazz = load_class(class_name)
    except (ImportError, AttributeError, TypeError, ValueError) as exc:
        raise ConnectorError.wrap(exc)
    return _supported_class(clazz)


# Database value -> attribute value

def to_epoch_millis(value: Any) -> int | None:
    """Convert a temporal value to integral epoch milliseconds.

    Naive datetimes are taken as UTC, dates as midnight UTC and times as
    milliseconds since midnight. NaT converts to None.
    """
    if isinstance(value, np.datetime64):
        if np.isnat(value):
            return None
        return int(value.astype('datetime64[ms]').astype(np.int64))
    if isinstance(value, pd.Timestamp):
        return value.value // 1_000_000
    if isinstance(value, datetime.datetime):
        epoch = EPOCH if value.tzinfo is None else EPOCH_UTC
        return (value - epoch) // ONE_MILLISECOND
    if isinstance(value, datetime.date):
        return (value - EPOCH.date()) // ONE_MILLISECOND
    if isinstance(value, datetime.time):
        seconds = value.hour * 3600 + value.minute * 60 + value.second
        return seconds * 1000 + value.microsecond // 1000
    raise TypeError(f'Not a temporal value: {type(value).__name__}')


def read_blob(blob: Any) -> bytes:
    """Read the full contents of a binary stream and close it.

    A failing close is ignored; a failing read raises ConnectorIOError.
    """
    if isinstance(blob, memoryview):
        return blob.tobytes()
    try:
        if isinstance(blob, sqlite3.Blob):
            blob.seek(0)
        data = blob.read()
    except (OSError, ValueError, sqlite3.Error) as exc:
        raise ConnectorIOError.wrap(exc)
    finally:
        try:
            blob.close()
        except Exception as exc:
            logger.debug(f'Could not close binary stream: {exc}')
    if isinstance(data, str):
        return data.encode('utf-8')
    return bytes(data)


def convert_to_supported_type(value: Any) -> Any:
    """Convert a column value to a supported attribute value.

    Blobs become bytes, temporal values become epoch milliseconds, anything
    else is returned unchanged.
    """
    if value is pd.NaT:
        return None
    if isinstance(value, BLOB_TYPES):
        return read_blob(value)
    if isinstance(value, TEMPORAL_TYPES):
        return to_epoch_millis(value)
    return value


# Attribute value -> bind value

def from_epoch_millis(millis: int, clazz: type) -> Any:
    """Build a temporal value of `clazz` from epoch milliseconds.

    Returns None when `clazz` is not a recognized temporal target.
    """
    if clazz is pd.Timestamp:
        return pd.Timestamp(millis, unit='ms')
    if clazz is np.datetime64:
        return np.datetime64(millis, 'ms')
    if clazz is datetime.datetime:
        return EPOCH + millis * ONE_MILLISECOND
    if clazz is datetime.date:
        return (EPOCH + millis * ONE_MILLISECOND).date()
    return None


def convert_to_jdbc(param: Any, target: str | type | None) -> Any:
    """Convert an attribute value to the type expected by the database.

    Only epoch milliseconds to date/timestamp conversion is supported. A blank
    target or a target class that cannot be resolved leaves `param` as is.

    :param param: The value to convert.
    :param target: Expected class name, or the class itself.
    :returns: The converted value.
    """
    if target is None or (isinstance(target, str) and is_blank(target)):
        return param

    try:
        clazz = load_class(target)
    except (ImportError, AttributeError, TypeError, ValueError) as exc:
        logger.debug(f'Could not convert to class: {target} ({exc})')
        return param

    if isinstance(param, numbers.Integral) and not isinstance(param, bool | np.bool_):
        try:
            converted = from_epoch_millis(int(param), clazz)
        except (OverflowError, pd.errors.OutOfBoundsDatetime) as exc:
            logger.debug(f'Could not convert to class: {clazz.__name__} ({type(exc).__name__})')
            return param
        if converted is not None:
            return converted
    return param


# Type Resolution - Database type codes -> Python types

from psycopg.postgres import types as pg_types

_oid = lambda x: pg_types.get(x).oid

postgres_types: dict[int, type] = {}

for v in [_oid('"char"'), _oid('bpchar'), _oid('character varying'), _oid('character'),
          _oid('json'), _oid('name'), _oid('text'), _oid('uuid'), _oid('varchar')]:
    postgres_types[v] = str

for v in [_oid('int2'), _oid('int4'), _oid('int8')]:
    postgres_types[v] = int

for v in [_oid('float4'), _oid('float8'), _oid('numeric')]:
    postgres_types[v] = float

postgres_types[_oid('date')] = datetime.date

for v in [_oid('time'), _oid('timetz')]:
    postgres_types[v] = datetime.time

for v in [_oid('timestamp'), _oid('timestamptz')]:
    postgres_types[v] = datetime.datetime

postgres_types[_oid('bool')] = bool

for v in [_oid('bytea'), _oid('jsonb')]:
    postgres_types[v] = bytes


sqlite_types: dict[str, type] = {
    'INTEGER': int,
    'REAL': float,
    'TEXT': str,
    'BLOB': bytes,
    'NUMERIC': float,
    'BOOLEAN': bool,
    'DATE': datetime.date,
    'DATETIME': datetime.datetime,
    'TIMESTAMP': datetime.datetime,
    'TIME': datetime.time,
}


def resolve_type(dialect: str, type_code: Any) -> type | None:
    """Resolve database type code to Python type.

    Unmapped type codes resolve to str. None means the driver does not
    report column types (sqlite3), so the type is not known from metadata.
    """
    if isinstance(type_code, type):
        return type_code
    if type_code is None:
        return None

    if dialect == 'postgresql':
        if type_code in postgres_types:
            return postgres_types[type_code]
    elif dialect == 'sqlite':
        if isinstance(type_code, str):
            base_type = type_code.split('(')[0].strip().upper()
            if base_type in sqlite_types:
                return sqlite_types[base_type]

    return str


def get_column_attribute_type(dialect: str, type_code: Any) -> type | None:
    """Attribute type for a column reported by cursor metadata.
    """
    python_type = resolve_type(dialect, type_code)
    if python_type is None:
        return None
    return _supported_class(python_type)


class Column:
    """Column metadata from a cursor description."""

    def __init__(self, name: str, type_code: Any, python_type: type | None = None,
                 nullable: bool | None = None):
        self.name = name
        self.type_code = type_code
        self.python_type = python_type
        self.nullable = nullable

    @classmethod
    def from_cursor_description(cls, description_item: Any, dialect: str) -> Self:
        """Create a Column from a cursor description item.

        psycopg describes columns with named attributes, sqlite3 with plain
        7-tuples.
        """
        if hasattr(description_item, 'name'):
            name = description_item.name
            type_code = getattr(description_item, 'type_code', None)
            nullable = getattr(description_item, 'null_ok', None)
        else:
            name = description_item[0]
            type_code = description_item[1] if len(description_item) > 1 else None
            nullable = description_item[6] if len(description_item) > 6 else None
        python_type = resolve_type(dialect, type_code)
        return cls(name, type_code, python_type, nullable)

    def __repr__(self) -> str:
        return (f'Column(name={self.name!r}, type_code={self.type_code!r}, '
                f'python_type={self.python_type.__name__ if self.python_type else None})')


def columns_from_cursor_description(cursor: Any, dialect: str) -> list[Column]:
    """Create Column objects from cursor description."""
    if cursor.description is None:
        return []
    return [Column.from_cursor_description(desc, dialect) for desc in cursor.description]


# SQLite Adapters

def _stored_value(val: bytes) -> int | float | str:
    """Value stored in a date column that is not ISO 8601 text."""
    text = val.decode()
    for number in (int, float):
        try:
            return number(text)
        except ValueError:
            pass
    return text


def convert_date(val: bytes) -> datetime.date | int | float | str:
    """Convert ISO 8601 date string to date object.

    Anything else (epoch numbers, free text) is returned as stored.
    """
    try:
        return dateutil.parser.isoparse(val.decode()).date()
    except (ValueError, OverflowError):
        return _stored_value(val)


def convert_datetime(val: bytes) -> datetime.datetime | int | float | str:
    """Convert ISO 8601 datetime string to datetime object.

    Anything else (epoch numbers, free text) is returned as stored.
    """
    try:
        return dateutil.parser.isoparse(val.decode())
    except (ValueError, OverflowError):
        return _stored_value(val)


def register_sqlite_adapters() -> None:
    """Register SQLite converters for declared date/datetime columns."""
    sqlite3.register_adapter(datetime.date, datetime.date.isoformat)
    sqlite3.register_adapter(datetime.datetime, datetime.datetime.isoformat)
    sqlite3.register_converter('date', convert_date)
    sqlite3.register_converter('datetime', convert_datetime)
    sqlite3.register_converter('timestamp', convert_datetime)
