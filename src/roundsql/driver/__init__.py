"""
Database driver package.

- base: abstract connection, prepared statement and procedure request
- odbc: SQL Server implementation over pyodbc
"""
from roundsql.driver.base import DriverConnection, DriverResult
from roundsql.driver.base import PreparedStatement, Request, StatementState
from roundsql.driver.odbc import OdbcConnection

__all__ = [
    'DriverConnection',
    'DriverResult',
    'PreparedStatement',
    'Request',
    'StatementState',
    'OdbcConnection',
]
