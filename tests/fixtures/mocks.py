"""
In-memory driver for unit tests.

`FakeConnection` implements the driver interface without a server. Every
protocol step is appended to `connection.log`, and each statement returns the
next scripted result (a `DriverResult` or an exception to raise):

    def test_find(fake_connection):
        fake_connection.script(rows({'RecordId': 1}))
        ...
        assert [step[0] for step in fake_connection.log] == [
            'input', 'prepare', 'execute', 'unprepare']
"""
import asyncio
from collections import deque

import pytest
from roundsql.driver.base import DriverConnection, DriverResult
from roundsql.driver.base import PreparedStatement, Request


def rows(*records, more=None):
    """Result with one result set of `records` (plus `more` result sets first)."""
    return DriverResult(recordsets=[*(more or []), list(records)])


def affected(count):
    """Result of a statement without a result set."""
    return DriverResult(rows_affected=count)


def catalog_row(table, column, data_type, ordinal, max_length=None, precision=None,
                scale=None, primary_key=False, nullable=True, schema='dbo', default_schema='dbo'):
    """Row of the INFORMATION_SCHEMA column query."""
    return {
        'TABLE_SCHEMA': schema,
        'TABLE_NAME': table,
        'COLUMN_NAME': column,
        'DATA_TYPE': data_type,
        'CHARACTER_MAXIMUM_LENGTH': max_length,
        'CHARACTER_OCTET_LENGTH': max_length,
        'NUMERIC_PRECISION': precision,
        'NUMERIC_SCALE': scale,
        'DATETIME_PRECISION': None,
        'IS_NULLABLE': 'YES' if nullable else 'NO',
        'ORDINAL_POSITION': ordinal,
        'CONSTRAINT_TYPE': 'PRIMARY KEY' if primary_key else None,
        'DEFAULT_SCHEMA': default_schema,
        }


def person_rows(table='Person', schema='dbo'):
    """Catalog rows of {RecordId: int/PK, FirstName: varchar(20), LastName: varchar(20)}."""
    return [
        catalog_row(table, 'RecordId', 'int', 1, precision=10, scale=0, primary_key=True,
                    nullable=False, schema=schema),
        catalog_row(table, 'FirstName', 'varchar', 2, max_length=20, schema=schema),
        catalog_row(table, 'LastName', 'varchar', 3, max_length=20, schema=schema),
        ]


def parameter_row(name, data_type, ordinal, max_length=None, precision=None, scale=None,
                  is_output=False, procedure_id=1001):
    """Row of the sys.parameters query."""
    return {
        'PROCEDURE_ID': procedure_id,
        'PARAMETER_NAME': name,
        'DATA_TYPE': data_type,
        'CHARACTER_MAXIMUM_LENGTH': max_length,
        'CHARACTER_OCTET_LENGTH': max_length,
        'NUMERIC_PRECISION': precision,
        'NUMERIC_SCALE': scale,
        'ORDINAL_POSITION': ordinal,
        'IS_OUTPUT': is_output,
        }


class FakePreparedStatement(PreparedStatement):

    def __init__(self, connection):
        super().__init__()
        self.connection = connection

    def input(self, name, native_type):
        super().input(name, native_type)
        self.connection.log.append(('input', name, native_type))

    async def _prepare(self, sql):
        self.connection.log.append(('prepare', sql))
        await asyncio.sleep(0)

    async def _execute(self, values):
        self.connection.log.append(('execute', dict(values)))
        await asyncio.sleep(0)
        return self.connection.next_result()

    async def _unprepare(self):
        self.connection.log.append(('unprepare',))
        await asyncio.sleep(0)


class FakeRequest(Request):

    def __init__(self, connection):
        super().__init__()
        self.connection = connection

    async def execute(self, procedure):
        self.connection.log.append(('call', procedure, list(self.inputs)))
        await asyncio.sleep(0)
        return self.connection.next_result()


class FakeConnection(DriverConnection):
    """Driver connection returning scripted results."""

    def __init__(self, *results):
        super().__init__()
        self.results = deque(results)
        self.log = []
        self.closed = False

    def script(self, *results):
        self.results.extend(results)

    def next_result(self):
        if not self.results:
            return DriverResult()
        result = self.results.popleft()
        if isinstance(result, BaseException):
            raise result
        return result

    @property
    def statements(self):
        """SQL of every prepared or directly run statement, in order."""
        return [step[1] for step in self.log if step[0] in {'prepare', 'query'}]

    @property
    def executions(self):
        """Number of statements that reached the driver."""
        return sum(1 for step in self.log if step[0] in {'execute', 'query', 'call'})

    async def query(self, sql):
        self.log.append(('query', sql))
        await asyncio.sleep(0)
        return self.next_result()

    def prepared_statement(self):
        return FakePreparedStatement(self)

    def request(self):
        return FakeRequest(self)

    async def commit(self):
        self.log.append(('commit',))

    async def rollback(self):
        self.log.append(('rollback',))

    async def close(self):
        self.log.append(('close',))
        self.closed = True


@pytest.fixture
def fake_connection():
    """Fresh fake driver connection with nothing scripted."""
    return FakeConnection()
