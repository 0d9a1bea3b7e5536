"""
Result cursors with a current row and 1-based column access.

Implements the read side used by connectors on top of a DB-API 2.0
(PEP-249) cursor.
"""
import logging
from collections.abc import Iterator, Mapping
from typing import Any, Self

from dbcommon.attributes import Attribute, AttributeBuilder
from dbcommon.types import Column, columns_from_cursor_description
from dbcommon.types import convert_to_supported_type, get_column_attribute_type
from dbcommon.utils import get_dialect_name

logger = logging.getLogger(__name__)


class ResultSetMetaData:
    """Column count, names and types of a result, indexed from 1.
    """

    def __init__(self, columns: list[Column]) -> None:
        self.columns = columns

    @classmethod
    def from_cursor(cls, cursor: Any, dialect: str) -> Self:
        return cls(columns_from_cursor_description(cursor, dialect))

    @property
    def column_count(self) -> int:
        return len(self.columns)

    def _column(self, column: int) -> Column:
        if not 1 <= column <= len(self.columns):
            raise IndexError(f'Column index out of range: {column}')
        return self.columns[column - 1]

    def get_column_name(self, column: int) -> str:
        return self._column(column).name

    def get_column_type(self, column: int) -> type | None:
        return self._column(column).python_type


class ResultSet:
    """Wraps a DB-API cursor and tracks the current row.

    `next()` advances to the following row and returns False when the result
    is exhausted. Other members are delegated to the underlying cursor.
    """

    def __init__(self, cursor: Any, dialect: str | None = None) -> None:
        self.dbapi_cursor = cursor
        self.dialect = dialect or _cursor_dialect(cursor)
        self.row: Any = None
        self.closed = False
        self._metadata: ResultSetMetaData | None = None

    def __getattr__(self, name: str) -> Any:
        """Delegate members to underlying cursor."""
        if name == 'dbapi_cursor':
            raise AttributeError(name)
        return getattr(self.dbapi_cursor, name)

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        self.close()

    def __iter__(self) -> Iterator[Self]:
        """Advance row by row, yielding the result set positioned on each row."""
        while self.next():
            yield self

    @property
    def description(self) -> list[tuple] | None:
        return self.dbapi_cursor.description

    @property
    def metadata(self) -> ResultSetMetaData:
        if self._metadata is None:
            self._metadata = ResultSetMetaData.from_cursor(self.dbapi_cursor, self.dialect)
        return self._metadata

    def next(self) -> bool:
        """Move to the next row."""
        self.row = self.dbapi_cursor.fetchone()
        return self.row is not None

    def get_object(self, column: int) -> Any:
        """Value of the 1-based `column` in the current row."""
        if self.row is None:
            raise ValueError('No current row')
        values = list(self.row.values()) if isinstance(self.row, Mapping) else self.row
        if not 1 <= column <= len(values):
            raise IndexError(f'Column index out of range: {column}')
        return values[column - 1]

    def close(self) -> None:
        """Close cursor."""
        if self.closed:
            return
        self.row = None
        self.closed = True
        self.dbapi_cursor.close()


def _cursor_dialect(cursor: Any) -> str:
    try:
        return get_dialect_name(cursor.connection)
    except AttributeError:
        return 'unknown'


def convert_to_attribute(name: str, value: Any) -> Attribute:
    """Convert a column value to an attribute."""
    return AttributeBuilder.build(name, convert_to_supported_type(value))


def get_attribute_set(result_set: ResultSet) -> set[Attribute]:
    """Convert the columns of the current row to an attribute set.

    When two columns share a name (compared case-insensitively) the later
    column wins.

    :param result_set: Result positioned on a row.
    :returns: One attribute per distinct column name.
    """
    if result_set is None:
        raise ValueError('Parameter "result_set" must not be None')
    meta = result_set.metadata
    attributes: dict[str, Attribute] = {}
    for i in range(1, meta.column_count + 1):
        name = meta.get_column_name(i)
        attributes[name.lower()] = convert_to_attribute(name, result_set.get_object(i))
    return set(attributes.values())


def get_attribute_types(result_set: ResultSet) -> dict[str, type]:
    """Attribute type of every column of a result, by column name.

    Columns whose type the driver does not report (sqlite3) take the type of
    the converted value in the current row. Without a row, or for a NULL
    value, they default to str.
    """
    meta = result_set.metadata
    attr_types: dict[str, type] = {}
    for i, column in enumerate(meta.columns, 1):
        attr_type = get_column_attribute_type(result_set.dialect, column.type_code)
        if attr_type is None:
            attr_type = str
            if result_set.row is not None:
                value = convert_to_supported_type(result_set.get_object(i))
                if value is not None:
                    attr_type = type(value)
        attr_types[column.name] = attr_type
    return attr_types
