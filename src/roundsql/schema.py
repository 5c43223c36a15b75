"""
Schema discovery from SQL Server catalog views.

`SchemaInspector` reads INFORMATION_SCHEMA for one or more tables (and
sys.parameters for stored procedures) and returns `ColumnDescriptor`s with
their native types resolved. Each table's descriptors form one immutable
`TableSchema`.

Table names may be schema-qualified (`sales.Person`, `[sales].[Person]`); a
bare name is looked up in the connection's default schema.
"""
import logging
from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING

from roundsql import types
from roundsql.adapters.column_info import ColumnDescriptor
from roundsql.cache import Cache
from roundsql.exceptions import SchemaNotFoundError, ValidationError
from roundsql.sql import split_qualified
from roundsql.where import BoundParameter

if TYPE_CHECKING:
    from roundsql.query import QueryExecutor

logger = logging.getLogger(__name__)

DEFAULT_SCHEMA_TTL = 600

COLUMNS_SQL = """
SELECT
    c.TABLE_SCHEMA,
    c.TABLE_NAME,
    c.COLUMN_NAME,
    c.DATA_TYPE,
    c.CHARACTER_MAXIMUM_LENGTH,
    c.CHARACTER_OCTET_LENGTH,
    c.NUMERIC_PRECISION,
    c.NUMERIC_SCALE,
    c.DATETIME_PRECISION,
    c.IS_NULLABLE,
    c.ORDINAL_POSITION,
    pk.CONSTRAINT_TYPE,
    SCHEMA_NAME() AS DEFAULT_SCHEMA
FROM INFORMATION_SCHEMA.COLUMNS c
LEFT OUTER JOIN (
    SELECT ccu.TABLE_SCHEMA, ccu.TABLE_NAME, ccu.COLUMN_NAME, tc.CONSTRAINT_TYPE
    FROM INFORMATION_SCHEMA.CONSTRAINT_COLUMN_USAGE ccu
    JOIN INFORMATION_SCHEMA.TABLE_CONSTRAINTS tc
        ON tc.CONSTRAINT_SCHEMA = ccu.CONSTRAINT_SCHEMA
        AND tc.CONSTRAINT_NAME = ccu.CONSTRAINT_NAME
        AND tc.TABLE_NAME = ccu.TABLE_NAME
    WHERE tc.CONSTRAINT_TYPE = 'PRIMARY KEY'
) pk
    ON pk.TABLE_SCHEMA = c.TABLE_SCHEMA
    AND pk.TABLE_NAME = c.TABLE_NAME
    AND pk.COLUMN_NAME = c.COLUMN_NAME
WHERE {filters}
ORDER BY c.TABLE_SCHEMA, c.TABLE_NAME, c.ORDINAL_POSITION
"""

TABLE_FILTER = '(c.TABLE_SCHEMA = COALESCE(@{schema}, SCHEMA_NAME()) AND c.TABLE_NAME = @{table})'

PROCEDURE_PARAMETERS_SQL = """
SELECT
    o.object_id AS PROCEDURE_ID,
    p.name AS PARAMETER_NAME,
    CASE WHEN p.system_type_id = 240 THEN TYPE_NAME(p.user_type_id)
         ELSE TYPE_NAME(p.system_type_id) END AS DATA_TYPE,
    CASE WHEN p.max_length = -1 THEN -1
         WHEN TYPE_NAME(p.system_type_id) IN ('nchar', 'nvarchar') THEN p.max_length / 2
         ELSE p.max_length END AS CHARACTER_MAXIMUM_LENGTH,
    p.max_length AS CHARACTER_OCTET_LENGTH,
    p.precision AS NUMERIC_PRECISION,
    p.scale AS NUMERIC_SCALE,
    p.parameter_id AS ORDINAL_POSITION,
    p.is_output AS IS_OUTPUT
FROM (SELECT OBJECT_ID(@procedure) AS object_id) o
LEFT OUTER JOIN sys.parameters p
    ON p.object_id = o.object_id
    AND p.parameter_id > 0
ORDER BY p.parameter_id
"""

# sysname, the type of catalog object names
_NAME_TYPE = types.nvarchar(128)


class TableSchema(Mapping[str, ColumnDescriptor]):
    """Ordered, read-only mapping of column name to descriptor for one table

    At most one column carries the primary-key flag.
    """

    def __init__(self, table_name: str, columns: Iterable[ColumnDescriptor]) -> None:
        ordered = sorted(columns, key=lambda c: (c.ordinal is None, c.ordinal or 0))
        self._table_name = table_name
        self._columns = MappingProxyType({c.name: c for c in ordered})
        keys = [c.name for c in ordered if c.primary_key]
        if len(keys) > 1:
            raise ValidationError(f'Table {table_name} has a composite primary key '
                                  f'({", ".join(keys)}); only single-column keys are supported')
        self._primary_key = keys[0] if keys else None

    @property
    def table_name(self) -> str:
        return self._table_name

    @property
    def primary_key(self) -> str | None:
        return self._primary_key

    @property
    def non_key_columns(self) -> list[str]:
        """Column names in schema order, primary key excluded."""
        return [name for name in self._columns if name != self._primary_key]

    def __getitem__(self, name: str) -> ColumnDescriptor:
        return self._columns[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._columns)

    def __len__(self) -> int:
        return len(self._columns)

    def __repr__(self) -> str:
        return f'TableSchema({self._table_name!r}, columns={list(self._columns)}, primary_key={self._primary_key!r})'


def _as_list(table_names: str | Iterable[str]) -> list[str]:
    if isinstance(table_names, str):
        return [table_names]
    return list(table_names)


def _cache_key(table_name: str) -> str:
    """`table` or `schema.table`, lowercased and without brackets."""
    schema, table = split_qualified(table_name)
    key = table if schema is None else f'{schema}.{table}'
    return key.lower()


class SchemaInspector:
    """Discovers table columns and procedure parameters through an executor.
    """

    def __init__(self, executor: 'QueryExecutor', ttl: int = DEFAULT_SCHEMA_TTL) -> None:
        self.executor = executor
        self.ttl = ttl

    @property
    def _cache_enabled(self) -> bool:
        return self.ttl > 0

    @property
    def _connection_id(self) -> int:
        return self.executor.connection.cache_id

    def _schema_cache(self):
        return Cache.get_instance().get_schema_cache(self._connection_id, ttl=self.ttl)

    def _procedure_cache(self):
        return Cache.get_instance().get_procedure_cache(self._connection_id, ttl=self.ttl)

    def clear_cache(self, table_name: str | None = None) -> None:
        """Forget one table's cached columns, or every cached schema and
        procedure of this connection.
        """
        if table_name is not None:
            self._schema_cache().pop(_cache_key(table_name), None)
            return
        self._schema_cache().clear()
        self._procedure_cache().clear()

    def release(self) -> None:
        """Drop this connection's caches, once the connection is closed."""
        Cache.get_instance().drop_connection(self._connection_id)

    async def _discover(self, names: list[str], bypass_cache: bool) -> dict[str, list[ColumnDescriptor]]:
        """Columns of each requested table keyed by cache key, in request order.
        """
        use_cache = self._cache_enabled and not bypass_cache
        cache = self._schema_cache() if use_cache else {}

        found: dict[str, list[ColumnDescriptor]] = {}
        missing = []
        queued = set()
        for name in names:
            key = _cache_key(name)
            if key in found or key in queued:
                continue
            if key in cache:
                logger.debug(f'Cache hit for columns of {name}')
                found[key] = cache[key]
            else:
                queued.add(key)
                missing.append(name)

        if missing:
            logger.debug(f'Querying catalog for columns of {missing}')
            for name, columns in zip(missing, await self._query_columns(missing)):
                if columns:
                    found[_cache_key(name)] = columns
                    if use_cache:
                        cache[_cache_key(name)] = columns

        not_found = [name for name in names if not found.get(_cache_key(name))]
        if not_found:
            raise SchemaNotFoundError(not_found)
        return {_cache_key(name): found[_cache_key(name)] for name in names}

    async def _query_columns(self, names: list[str]) -> list[list[ColumnDescriptor]]:
        """One catalog query for all `names`; the columns of each, in order.
        """
        params = []
        filters = []
        for i, name in enumerate(names):
            schema, table = split_qualified(name)
            params += [BoundParameter(f'schema{i}', _NAME_TYPE, schema),
                       BoundParameter(f'table{i}', _NAME_TYPE, table)]
            filters.append(TABLE_FILTER.format(schema=f'schema{i}', table=f'table{i}'))
        sql = COLUMNS_SQL.format(filters='\n   OR '.join(filters))
        rows = await self.executor.execute(sql, params)
        if not isinstance(rows, list) or not rows:
            raise SchemaNotFoundError(names)

        default_schema = rows[0].get('DEFAULT_SCHEMA') or 'dbo'
        grouped: dict[tuple[str, str], list[ColumnDescriptor]] = {}
        for row in rows:
            descriptor = ColumnDescriptor.from_catalog_row(row)
            owner = (descriptor.table_schema or default_schema).lower()
            grouped.setdefault((owner, descriptor.table_name.lower()), []).append(descriptor)

        result = []
        for name in names:
            schema, table = split_qualified(name)
            result.append(grouped.get(((schema or default_schema).lower(), table.lower()), []))
        return result

    async def discover_columns(self, table_names: str | Iterable[str],
                               bypass_cache: bool = False) -> list[ColumnDescriptor]:
        """Return the columns of one or more tables, table by table in ordinal order.

        Args:
            table_names: Table name or list of table names, optionally
                schema-qualified
            bypass_cache: Query the catalog even when the tables are cached

        Returns
            List of ColumnDescriptor

        Raises
            SchemaNotFoundError: If no columns are found for a requested table
            UnrecognizedTypeError: If a column has an unmapped type
        """
        discovered = await self._discover(_as_list(table_names), bypass_cache)
        return [column for columns in discovered.values() for column in columns]

    async def discover_schemas(self, table_names: str | Iterable[str],
                               bypass_cache: bool = False) -> dict[str, TableSchema]:
        """Return one TableSchema per requested table, keyed by the requested name.
        """
        names = _as_list(table_names)
        discovered = await self._discover(names, bypass_cache)
        return {name: TableSchema(name, discovered[_cache_key(name)]) for name in names}

    async def procedure_parameters(self, procedure: str,
                                   bypass_cache: bool = False) -> list[ColumnDescriptor]:
        """Return a stored procedure's declared parameters ordered by ordinal.

        Args:
            procedure: Procedure name, optionally schema-qualified (`[dbo].[Proc]`)
            bypass_cache: Query the catalog even when the procedure is cached

        Raises
            SchemaNotFoundError: If no procedure has that name
        """
        use_cache = self._cache_enabled and not bypass_cache
        cache = self._procedure_cache() if use_cache else {}
        key = procedure.lower()
        if key in cache:
            logger.debug(f'Cache hit for parameters of {procedure}')
            return cache[key]

        params = [BoundParameter('procedure', types.nvarchar(776), procedure)]
        rows = await self.executor.execute(PROCEDURE_PARAMETERS_SQL, params)
        if not isinstance(rows, list) or not rows or rows[0]['PROCEDURE_ID'] is None:
            raise SchemaNotFoundError([procedure], kind='procedure')

        declared = [ColumnDescriptor.from_parameter_row(row)
                    for row in rows if row['PARAMETER_NAME'] is not None]
        declared.sort(key=lambda d: d.ordinal)
        if use_cache:
            cache[key] = declared
        return declared
