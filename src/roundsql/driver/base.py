"""
Driver interface consumed by the data-access layer.

Defines the abstract connection, prepared statement and procedure request that
a concrete driver must implement. The interface mirrors the SQL Server client
protocol the rest of the package is written against:

    ps = connection.prepared_statement()
    ps.input('FirstName', varchar(20))
    await ps.prepare('SELECT * FROM [Person] WHERE [FirstName] = @FirstName')
    result = await ps.execute({'FirstName': 'Jon'})
    await ps.unprepare()

Each concrete driver translates its own exceptions into `DatabaseError` with
the driver message unchanged.
"""
import asyncio
import itertools
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any

from roundsql.exceptions import DatabaseError
from roundsql.types import NativeType

logger = logging.getLogger(__name__)


@dataclass
class DriverResult:
    """Everything a statement batch produced.

    `recordsets` holds one list of row mappings per result set, in order.
    """
    recordsets: list[list[dict[str, Any]]] = field(default_factory=list)
    rows_affected: int = 0
    return_value: Any = None

    @property
    def has_rows(self) -> bool:
        """Whether the batch produced at least one result set (possibly empty).
        """
        return len(self.recordsets) > 0

    @property
    def rows(self) -> list[dict[str, Any]]:
        """Rows of the last result set.
        """
        return self.recordsets[-1] if self.recordsets else []


class StatementState(Enum):
    UNPREPARED = auto()
    PREPARED = auto()
    EXECUTING = auto()


class PreparedStatement(ABC):
    """Prepared statement with named, typed inputs.

    Subclasses implement `_prepare`, `_execute` and `_unprepare`; the base
    class keeps the declared inputs and enforces the state transitions
    Unprepared -> Prepared -> Executing -> Prepared -> Unprepared.
    """

    def __init__(self) -> None:
        self.inputs: dict[str, NativeType] = {}
        self.state = StatementState.UNPREPARED
        self.sql: str | None = None

    @property
    def prepared(self) -> bool:
        return self.state is not StatementState.UNPREPARED

    def input(self, name: str, native_type: NativeType) -> None:
        """Declare an input parameter.
        """
        if self.prepared:
            raise DatabaseError("Can't add input parameter after the statement is prepared.")
        self.inputs[name] = native_type

    async def prepare(self, sql: str) -> None:
        if self.prepared:
            raise DatabaseError('Statement is already prepared.')
        await self._prepare(sql)
        self.sql = sql
        self.state = StatementState.PREPARED

    async def execute(self, values: dict[str, Any]) -> DriverResult:
        if self.state is not StatementState.PREPARED:
            raise DatabaseError('Statement is not prepared.')
        self.state = StatementState.EXECUTING
        try:
            return await self._execute(values)
        finally:
            self.state = StatementState.PREPARED

    async def unprepare(self) -> None:
        if not self.prepared:
            return
        try:
            await self._unprepare()
        finally:
            self.state = StatementState.UNPREPARED
            self.sql = None

    @abstractmethod
    async def _prepare(self, sql: str) -> None:
        ...

    @abstractmethod
    async def _execute(self, values: dict[str, Any]) -> DriverResult:
        ...

    @abstractmethod
    async def _unprepare(self) -> None:
        ...


class Request(ABC):
    """Stored procedure request with positional, typed inputs.
    """

    def __init__(self) -> None:
        self.inputs: list[tuple[str, NativeType, Any]] = []

    def input(self, name: str, native_type: NativeType, value: Any) -> None:
        self.inputs.append((name, native_type, value))

    @abstractmethod
    async def execute(self, procedure: str) -> DriverResult:
        """Execute the procedure with the declared inputs in order.

        Returns
            DriverResult with the procedure's result sets and its return value
        """


_cache_ids = itertools.count(1)


class DriverConnection(ABC):
    """Connection (or transaction) handle of a concrete driver.

    Holds the lock that serializes statements issued through this handle,
    and a `cache_id` that no other handle of the process ever gets.
    """

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.cache_id = next(_cache_ids)

    @abstractmethod
    async def query(self, sql: str) -> DriverResult:
        """Run SQL without parameters.
        """

    @abstractmethod
    def prepared_statement(self) -> PreparedStatement:
        ...

    @abstractmethod
    def request(self) -> Request:
        ...

    async def commit(self) -> None:
        """Commit the caller's transaction. No-op for drivers in auto-commit mode.
        """

    async def rollback(self) -> None:
        """Roll back the caller's transaction.
        """

    async def close(self) -> None:
        """Close the underlying handle.
        """
