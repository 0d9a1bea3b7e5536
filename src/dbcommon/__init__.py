"""
Relational database helpers for identity connectors.

Connection lifecycle, quiet cleanup, conversion between column values and
generic attributes, and parameter binding with guarded secrets:

    conn = dbcommon.get_driver_manager_connection('sqlite', 'sqlite://')
    stmt = dbcommon.PreparedStatement(conn, 'select * from users where id = ?')
    dbcommon.set_params(stmt, [1])
    rs = stmt.execute_query()
    while rs.next():
        attrs = dbcommon.get_attribute_set(rs)
    dbcommon.close_quietly(rs)
    dbcommon.close_quietly(conn)
"""
__version__ = '0.1.0'

from dbcommon.attributes import Attribute, AttributeBuilder, attributes_to_dict
from dbcommon.connection import DatabaseConnection, close_quietly, connect
from dbcommon.connection import get_driver_manager_connection, rollback_quietly
from dbcommon.cursor import ResultSet, ResultSetMetaData, get_attribute_set
from dbcommon.cursor import get_attribute_types
from dbcommon.exceptions import ConnectorError, ConnectorIOError
from dbcommon.options import ConnectorOptions
from dbcommon.security import GuardedString
from dbcommon.statement import CallableStatement, PreparedStatement
from dbcommon.statement import set_param, set_params
from dbcommon.types import convert_to_jdbc, convert_to_supported_type
from dbcommon.types import get_attribute_data_type

__all__ = [
    'connect',
    'DatabaseConnection',
    'ConnectorOptions',
    'get_driver_manager_connection',
    'rollback_quietly',
    'close_quietly',
    'get_attribute_data_type',
    'get_attribute_set',
    'get_attribute_types',
    'convert_to_supported_type',
    'convert_to_jdbc',
    'set_params',
    'set_param',
    'PreparedStatement',
    'CallableStatement',
    'ResultSet',
    'ResultSetMetaData',
    'Attribute',
    'AttributeBuilder',
    'attributes_to_dict',
    'GuardedString',
    'ConnectorError',
    'ConnectorIOError',
]
