"""
Utilities for SQL statement generation.

All statements use bracket-quoted identifiers and `@name` placeholders named
after the column they bind (see `roundsql.sql.parameter_names`). Table names
may be schema-qualified.
"""
import logging

from roundsql.sql import parameter_names, quote_identifier, quote_qualified

logger = logging.getLogger(__name__)

IDENTITY_EXPRESSION = 'SCOPE_IDENTITY()'


def build_select_sql(table, where=None, limit=None):
    """Generate a SELECT statement.

    Args:
        table: Table name
        where: WHERE clause (without 'WHERE' keyword)
        limit: TOP value

    Returns
        SQL query string
    """
    top = f'TOP {int(limit)} ' if limit is not None else ''
    sql = f'SELECT {top}* FROM {quote_qualified(table)}'
    if where:
        sql += f' WHERE {where}'
    return sql


def build_insert_sql(table, columns, identity=None):
    """Generate an INSERT statement, optionally followed by the identity select.

    Args:
        table: Table name
        columns: List of column names to insert, in order
        identity: Name to select the generated identity as, or None

    Returns
        SQL batch with `@column` placeholders
    """
    quoted_table = quote_qualified(table)
    if columns:
        names = parameter_names(columns)
        quoted_columns = ', '.join(quote_identifier(col) for col in columns)
        placeholders = ', '.join(f'@{names[col]}' for col in columns)
        sql = f'INSERT INTO {quoted_table} ({quoted_columns}) VALUES ({placeholders});\n'
    else:
        sql = f'INSERT INTO {quoted_table} DEFAULT VALUES;\n'
    if identity:
        sql += f'SELECT {IDENTITY_EXPRESSION} AS {quote_identifier(identity)};\n'
    return sql


def build_update_sql(table, columns, key):
    """Generate an UPDATE statement for one row identified by its key.

    Args:
        table: Table name
        columns: List of columns to set, in order (key excluded)
        key: Primary key column

    Returns
        SQL query string with `@column` placeholders
    """
    names = parameter_names([*columns, key])
    assignments = ', '.join(f'{quote_identifier(col)} = @{names[col]}' for col in columns)
    return (f'UPDATE {quote_qualified(table)} SET {assignments} '
            f'WHERE {quote_identifier(key)} = @{names[key]}')


def build_delete_sql(table, key):
    """Generate a DELETE statement for one row identified by its key.
    """
    names = parameter_names([key])
    return (f'DELETE FROM {quote_qualified(table)} '
            f'WHERE {quote_identifier(key)} = @{names[key]}')


def build_exec_sql(procedure, count, return_name='return_value'):
    """Generate an EXEC batch passing `count` positional arguments.

    The procedure's return code is selected as the last result set.
    """
    args = ', '.join(['?'] * count)
    call = f'EXEC @{return_name} = {quote_qualified(procedure)}'
    if args:
        call += f' {args}'
    return (f'DECLARE @{return_name} int;\n'
            f'{call};\n'
            f'SELECT @{return_name} AS {quote_identifier(return_name)};')
