"""
Connection lifecycle helpers.

This module provides:
1. `get_driver_manager_connection()` for opening a raw DB-API connection from a
   driver name, URL and guarded credentials
2. `rollback_quietly()` / `close_quietly()` for best-effort cleanup
3. The `DatabaseConnection` wrapper and the `connect()` function

Driver resolution goes through SQLAlchemy's dialect registry, so any
`dialect+driver` name SQLAlchemy knows can be used. No pooling is involved:
the caller owns the returned connection.
"""
import dataclasses
import logging
import sqlite3
from collections.abc import Sequence
from typing import Any, Self

import sqlalchemy as sa
from dbcommon.exceptions import ConnectorError
from dbcommon.options import ConnectorOptions
from dbcommon.security import GuardedString, as_guarded
from dbcommon.statement import CallableStatement, PreparedStatement, set_params
from dbcommon.types import register_sqlite_adapters
from dbcommon.utils import disable_auto_commit, get_dialect_name, is_blank
from dbcommon.utils import is_closed
from sqlalchemy.engine import Dialect
from sqlalchemy.pool import NullPool

__all__ = [
    'DatabaseConnection',
    'connect',
    'get_driver_manager_connection',
    'rollback_quietly',
    'close_quietly',
]

logger = logging.getLogger(__name__)


def _dbapi_connect(dialect: Dialect, url: sa.URL) -> Any:
    """Open a raw DB-API connection through the dialect."""
    cargs, cparams = dialect.create_connect_args(url)
    if dialect.name == 'sqlite':
        cparams.setdefault('detect_types', sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES)
    return dialect.connect(*cargs, **cparams)


def get_driver_manager_connection(driver: str | None, url: str, login: str | None = None,
                                  password: GuardedString | str | None = None) -> Any:
    """Open a DB-API connection with auto-commit disabled.

    :param driver: SQLAlchemy drivername such as 'sqlite' or 'postgresql+psycopg';
        when blank, the drivername in `url` is used.
    :param url: SQLAlchemy connection URL.
    :param login: User name; credentials are only used when it is not blank.
    :param password: Password, read only inside the guarded access callback.
    :returns: The raw DB-API connection.
    :raises ConnectorError: If the driver cannot be resolved or the connection fails.
    """
    conn = None
    try:
        sa_url = sa.make_url(url)
        if not is_blank(driver):
            sa_url = sa_url.set(drivername=driver)
        dialect = sa.create_engine(sa_url, poolclass=NullPool).dialect

        if is_blank(login):
            conn = _dbapi_connect(dialect, sa_url)
        elif password is None:
            conn = _dbapi_connect(dialect, sa_url.set(username=login))
        else:
            ret = []
            as_guarded(password).access(
                lambda clear: ret.append(_dbapi_connect(dialect, sa_url.set(username=login, password=clear))))
            conn = ret[0]

        disable_auto_commit(conn)
        if dialect.name == 'sqlite':
            register_sqlite_adapters()
    except Exception as exc:
        close_quietly(conn)
        raise ConnectorError.wrap(exc)

    logger.debug(f'Opened {dialect.name} connection to {sa_url.render_as_string(hide_password=True)}')
    return conn


def rollback_quietly(conn: Any) -> None:
    """Roll back, ignoring any error. None and closed connections are skipped.

    Accepts a raw DB-API connection or a DatabaseConnection.
    """
    if isinstance(conn, DatabaseConnection):
        conn = conn.connection
    try:
        if conn is not None and not is_closed(conn):
            conn.rollback()
    except Exception as exc:
        logger.debug(f'Ignored rollback failure: {type(exc).__name__}')


def close_quietly(resource: Any) -> None:
    """Close a connection, statement or result, ignoring any error.

    None and already closed resources are skipped. A DatabaseConnection
    closes its raw connection.
    """
    if isinstance(resource, DatabaseConnection):
        resource._closed = True
        resource = resource.connection
    try:
        if resource is not None and not is_closed(resource):
            resource.close()
    except Exception as exc:
        logger.debug(f'Ignored close failure: {type(exc).__name__}')


class DatabaseConnection:
    """Wraps a raw DB-API connection.

    This class provides a thin wrapper around the driver connection that:
    1. Tracks statement execution counts and timing
    2. Creates prepared and callable statements with bound parameters
    3. Supports context manager protocol, closing quietly on exit
    4. Delegates other attribute access to the raw connection
    """

    def __init__(self, connection: Any, options: ConnectorOptions | None = None) -> None:
        self.connection = connection
        self.options = options
        self.calls = 0
        self.time = 0
        self._closed = False
        self._dialect: str | None = None

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        if exc_type is not None:
            rollback_quietly(self)
        close_quietly(self)

    def __getattr__(self, name: str) -> Any:
        """Delegate attribute access to the raw connection."""
        if name == 'connection':
            raise AttributeError(name)
        return getattr(self.connection, name)

    @property
    def driver_connection(self) -> Any:
        return self.connection

    @property
    def dialect(self) -> str:
        """Return the dialect name ('postgresql' or 'sqlite')."""
        if self._dialect is None:
            self._dialect = get_dialect_name(self.connection)
        return self._dialect

    @property
    def closed(self) -> bool:
        return self._closed or is_closed(self.connection)

    def addcall(self, elapsed: float) -> None:
        """Track execution statistics
        """
        self.time += elapsed
        self.calls += 1

    def commit(self) -> None:
        self.connection.commit()

    def rollback(self) -> None:
        self.connection.rollback()

    def close(self) -> None:
        """Close the raw connection."""
        if self.closed:
            return
        self.connection.close()
        self._closed = True
        logger.debug(f'Connection closed: {self.calls} statements in {self.time:.2f}s')

    def dispose(self) -> None:
        """Close quietly."""
        close_quietly(self)

    def prepare_statement(self, sql: str, params: Sequence[Any] | None = None) -> PreparedStatement:
        """Create a statement for `sql` with `params` bound in order.
        """
        statement = PreparedStatement(self, sql, self.dialect)
        set_params(statement, params)
        return statement

    def prepare_call(self, sql: str, params: Sequence[Any] | None = None) -> CallableStatement:
        """Create a stored procedure call with `params` bound in order.
        """
        statement = CallableStatement(self, sql, self.dialect)
        set_params(statement, params)
        return statement

    def test(self) -> None:
        """Run the validation query.

        :raises ConnectorError: If the connection is unusable.
        """
        query = self.options.validation_query if self.options else 'SELECT 1'
        cursor = None
        try:
            cursor = self.connection.cursor()
            cursor.execute(query)
            cursor.fetchall()
        except Exception as exc:
            raise ConnectorError.wrap(exc)
        finally:
            close_quietly(cursor)


def connect(options: ConnectorOptions | dict[str, Any] | None = None,
            **kw: Any) -> DatabaseConnection:
    """Connect to a database.

    Args:
        options: Can be:
                - ConnectorOptions object
                - Dictionary of options
                - None, with options specified as keyword arguments
        **kw: Additional keyword arguments to override options

    Returns
        DatabaseConnection wrapping the opened connection
    """
    if options is None:
        options = ConnectorOptions(**kw)
    elif isinstance(options, dict):
        options = ConnectorOptions(**(options | kw))
    elif kw:
        options = dataclasses.replace(options, **kw)

    conn = get_driver_manager_connection(options.driver, options.url,
                                         options.login, options.password)
    return DatabaseConnection(conn, options)
