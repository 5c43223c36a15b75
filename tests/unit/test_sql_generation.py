"""
Unit tests for SQL generation utilities.
"""
import pytest
from roundsql.utils.sql_generation import build_delete_sql, build_exec_sql
from roundsql.utils.sql_generation import build_insert_sql, build_select_sql
from roundsql.utils.sql_generation import build_update_sql


@pytest.mark.parametrize(('where', 'limit', 'expected'), [
    (None, None, 'SELECT * FROM [Person]'),
    (None, 10, 'SELECT TOP 10 * FROM [Person]'),
    ('[FirstName] = @FirstName', 1, 'SELECT TOP 1 * FROM [Person] WHERE [FirstName] = @FirstName'),
    ('', 5, 'SELECT TOP 5 * FROM [Person]'),
])
def test_select(where, limit, expected):
    """Test SELECT with optional TOP and WHERE"""
    assert build_select_sql('Person', where, limit) == expected


def test_insert_with_identity():
    """Test INSERT batch followed by the identity select"""
    sql = build_insert_sql('Person', ['FirstName', 'LastName'], 'RecordId')
    assert sql == ('INSERT INTO [Person] ([FirstName], [LastName]) VALUES (@FirstName, @LastName);\n'
                   'SELECT SCOPE_IDENTITY() AS [RecordId];\n')


def test_insert_without_identity():
    """Test INSERT for a table without a primary key"""
    sql = build_insert_sql('Log', ['Message'])
    assert sql == 'INSERT INTO [Log] ([Message]) VALUES (@Message);\n'
    assert 'SCOPE_IDENTITY' not in sql


def test_insert_default_values():
    """Test INSERT with no columns uses DEFAULT VALUES"""
    assert build_insert_sql('Counter', [], 'Id').startswith('INSERT INTO [Counter] DEFAULT VALUES;\n')


def test_insert_column_with_space():
    """Test placeholders for columns with spaces"""
    sql = build_insert_sql('T', ['First Name'])
    assert '([First Name]) VALUES (@First_Name)' in sql


def test_insert_columns_with_same_variable_name():
    """Test columns differing only in punctuation get their own placeholders"""
    sql = build_insert_sql('T', ['First Name', 'First_Name'], 'Id')
    assert '([First Name], [First_Name]) VALUES (@First_Name, @First_Name_2);' in sql


def test_update_key_with_same_variable_name():
    """Test the key placeholder does not collide with a set column"""
    sql = build_update_sql('T', ['Row Id'], 'Row_Id')
    assert sql == 'UPDATE [T] SET [Row Id] = @Row_Id WHERE [Row_Id] = @Row_Id_2'


@pytest.mark.parametrize(('table', 'expected'), [
    ('sales.Person', 'SELECT * FROM [sales].[Person]'),
    ('[sales].[Person]', 'SELECT * FROM [sales].[Person]'),
])
def test_select_qualified_table(table, expected):
    """Test schema-qualified table names quote each part"""
    assert build_select_sql(table) == expected


def test_delete_qualified_table():
    assert build_delete_sql('sales.Person', 'RecordId') == \
        'DELETE FROM [sales].[Person] WHERE [RecordId] = @RecordId'


def test_update():
    """Test UPDATE of non-key columns by key"""
    sql = build_update_sql('Person', ['FirstName', 'LastName'], 'RecordId')
    assert sql == ('UPDATE [Person] SET [FirstName] = @FirstName, [LastName] = @LastName '
                   'WHERE [RecordId] = @RecordId')


def test_delete():
    """Test DELETE by key"""
    assert build_delete_sql('Person', 'RecordId') == 'DELETE FROM [Person] WHERE [RecordId] = @RecordId'


def test_exec():
    """Test EXEC batch selecting the return value"""
    sql = build_exec_sql('dbo.GetPerson', 2)
    assert sql == ('DECLARE @return_value int;\n'
                   'EXEC @return_value = [dbo].[GetPerson] ?, ?;\n'
                   'SELECT @return_value AS [return_value];')


def test_exec_without_arguments():
    """Test EXEC without parameters has no markers"""
    assert 'EXEC @return_value = [Cleanup];' in build_exec_sql('Cleanup', 0)


if __name__ == '__main__':
    __import__('pytest').main([__file__])
