"""Low-level connection utilities with no internal dependencies.

These utilities work with any connection type (DatabaseConnection, SQLAlchemy
pool proxies, raw DBAPI connections) and have no imports from other dbcommon
modules, making them safe to import without circular dependency concerns.
"""
import logging
from typing import Any

logger = logging.getLogger(__name__)


def is_blank(value: str | None) -> bool:
    """Check whether a string is None, empty or whitespace only.
    """
    return value is None or not str(value).strip()


def get_dialect_name(obj: Any) -> str:
    """Get dialect name for a database connection or engine.
    """
    if hasattr(obj, 'dialect'):
        dialect = obj.dialect
        if isinstance(dialect, str):
            return dialect.lower()
        return str(dialect.name).lower()

    if hasattr(obj, 'engine') and hasattr(obj.engine, 'dialect'):
        return str(obj.engine.dialect.name).lower()

    if hasattr(obj, 'dbapi_connection'):
        return get_dialect_name(obj.dbapi_connection)

    type_name = f'{type(obj).__module__}.{type(obj).__name__}'
    if 'psycopg' in type_name:
        return 'postgresql'
    if 'sqlite3' in type_name:
        return 'sqlite'

    raise AttributeError(f'Cannot determine dialect for {type(obj)}')


def get_raw_connection(connection: Any) -> Any:
    """Extract the raw DBAPI connection from a wrapper."""
    raw_conn = connection
    if hasattr(connection, 'driver_connection'):
        raw_conn = connection.driver_connection
    return raw_conn


def is_closed(resource: Any) -> bool:
    """Check the `closed` flag of a connection, cursor or statement.

    psycopg exposes a bool, psycopg2 an int; sqlite3 exposes nothing, in which
    case the resource is treated as open.
    """
    closed = getattr(resource, 'closed', False)
    return isinstance(closed, int) and bool(closed)


def disable_auto_commit(connection: Any) -> None:
    """Disable auto-commit mode for a raw DBAPI connection.

    psycopg and sqlite3 (3.12+) expose `autocommit`; older sqlite3 is switched
    out of autocommit through `isolation_level`.
    """
    raw_conn = get_raw_connection(connection)

    if hasattr(raw_conn, 'autocommit'):
        raw_conn.autocommit = False
        logger.debug('Auto-commit disabled')
        return

    if hasattr(raw_conn, 'isolation_level') and raw_conn.isolation_level is None:
        raw_conn.isolation_level = 'DEFERRED'
        logger.debug('Auto-commit disabled via isolation_level')
