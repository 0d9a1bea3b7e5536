"""
Parameterized statements and parameter binding.

`PreparedStatement` collects values for positional `?` markers by 1-based
index and executes through a DB-API cursor. `set_params`/`set_param` bind
values into any statement exposing `set_object(index, value)`; guarded
strings are bound without their plaintext leaving the access callback.
"""
import logging
import time
from collections.abc import Sequence
from functools import wraps
from typing import Any, Self

from dbcommon.cursor import ResultSet
from dbcommon.security import GuardedString
from dbcommon.sql import count_placeholders, standardize_placeholders
from dbcommon.sql import unescape_call
from dbcommon.utils import get_dialect_name, get_raw_connection

logger = logging.getLogger(__name__)

_UNSET = object()


def dumpsql(func):
    """Decorator for logging statement execution.

    Only the SQL and the parameter count are logged, never the values, which
    may hold secrets.
    """
    @wraps(func)
    def wrapper(self, *args: Any, **kwargs: Any):
        start = time.time()
        logger.debug(f'SQL:\n{self.operation}\nparams: {self.parameter_count}')
        try:
            return func(self, *args, **kwargs)
        except Exception:
            logger.error(f'Error with statement:\nSQL:\n{self.operation}')
            raise
        finally:
            elapsed = time.time() - start
            if hasattr(self.connwrapper, 'addcall'):
                self.connwrapper.addcall(elapsed)
            logger.debug(f'Statement time: {elapsed:.4f}s')
    return wrapper


class PreparedStatement:
    """Statement with positional `?` parameters bound by 1-based index.
    """

    def __init__(self, connection: Any, sql: str, dialect: str | None = None) -> None:
        """Initialize a statement.

        Args:
            connection: DatabaseConnection or raw DB-API connection
            sql: SQL with `?` markers
            dialect: Optional dialect name (detected from the connection if not provided)
        """
        self.connwrapper = connection
        self.connection = get_raw_connection(connection)
        self.dialect = dialect or _connection_dialect(connection)
        self.sql = sql
        self.parameter_count = count_placeholders(sql)
        if self.parameter_count:
            self.operation = standardize_placeholders(sql, self.dialect)
        else:
            self.operation = sql
        self._params: list[Any] = [_UNSET] * self.parameter_count
        self.dbapi_cursor: Any = None
        self.closed = False

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        self.close()

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.sql!r})'

    def set_object(self, index: int, value: Any) -> None:
        """Bind `value` to the 1-based parameter `index`."""
        if not 1 <= index <= self.parameter_count:
            raise IndexError(f'Parameter index out of range: {index}')
        self._params[index - 1] = value

    def clear_parameters(self) -> None:
        self._params = [_UNSET] * self.parameter_count

    @property
    def parameters(self) -> tuple:
        """Bound values in placeholder order."""
        for i, value in enumerate(self._params, 1):
            if value is _UNSET:
                raise ValueError(f'No value specified for parameter {i}')
        return tuple(self._params)

    def _cursor(self) -> Any:
        if self.closed:
            raise ValueError('Statement is closed')
        if self.dbapi_cursor is None:
            self.dbapi_cursor = self.connection.cursor()
        return self.dbapi_cursor

    @dumpsql
    def execute(self) -> bool:
        """Execute the statement. Returns True when it produced a result."""
        cursor = self._cursor()
        if self.parameter_count:
            cursor.execute(self.operation, self.parameters)
        else:
            cursor.execute(self.operation)
        return cursor.description is not None

    def execute_update(self) -> int:
        """Execute the statement and return the affected row count."""
        self.execute()
        return self.dbapi_cursor.rowcount

    def execute_query(self) -> ResultSet:
        """Execute the statement and return its result."""
        self.execute()
        return ResultSet(self.dbapi_cursor, self.dialect)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.clear_parameters()
        if self.dbapi_cursor is not None:
            self.dbapi_cursor.close()


class CallableStatement(PreparedStatement):
    """Stored procedure call; accepts the `{call proc(?)}` escape."""

    def __init__(self, connection: Any, sql: str, dialect: str | None = None) -> None:
        super().__init__(connection, unescape_call(sql), dialect)


def _connection_dialect(connection: Any) -> str:
    try:
        return get_dialect_name(connection)
    except AttributeError:
        return 'unknown'


def set_params(statement: Any, params: Sequence[Any] | None) -> None:
    """Bind `params` to the statement's markers, in order.

    Guarded strings are handled so the secret is never visible. Nothing is
    bound when either argument is None.
    """
    if statement is None or params is None:
        return
    for i, value in enumerate(params):
        set_param(statement, i + 1, value)


def set_param(statement: Any, index: int, value: Any) -> None:
    """Set one statement parameter."""
    if isinstance(value, GuardedString):
        _set_guarded_string_param(statement, index, value)
    else:
        statement.set_object(index, value)


def _set_guarded_string_param(statement: Any, index: int, guard: GuardedString) -> None:
    """Bind the plaintext of `guard` from inside its access callback.

    Errors raised by `set_object` reach the caller with their original type.
    """
    guard.access(lambda clear: statement.set_object(index, clear))
