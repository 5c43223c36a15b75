"""
Models synthesized from a discovered table schema.

A table is described once by an immutable `ModelDefinition`. `Model` is the
accessor that finds, inserts, updates and deletes rows of that table, and
`Record` holds one row's values keyed by column name:

    >>> people = models['Person']
    >>> jon = people.new(FirstName='Jon', LastName='Watson')
    >>> await jon.save()
    >>> jon.RecordId
    1
    >>> await people.find({'LastName': {'value': 'Watson'}})
    [Person(RecordId=1, FirstName='Jon', LastName='Watson')]
"""
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from roundsql import where as where_clause
from roundsql.exceptions import MissingPrimaryKeyError, ValidationError
from roundsql.schema import TableSchema
from roundsql.sql import parameter_names
from roundsql.utils.sql_generation import build_delete_sql, build_insert_sql
from roundsql.utils.sql_generation import build_select_sql, build_update_sql
from roundsql.where import BoundParameter

if TYPE_CHECKING:
    from roundsql.query import QueryExecutor

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10


@dataclass(frozen=True, slots=True)
class ModelDefinition:
    """Names and schema of one discovered table."""
    table_name: str
    model_name: str
    schema: TableSchema

    @property
    def primary_key(self) -> str | None:
        return self.schema.primary_key


class Record:
    """Values of one row, restricted to the columns of its model's schema

    Columns are readable and assignable both as items and as attributes.
    Item access is the reliable form: a column named like a method or
    property of Record (`save`, `delete`, `keys`, `items`, `get`, `model`,
    `to_dict`, `primary_key_value`) reads as that member when accessed as an
    attribute, and `record['save']` must be used for the column.
    Assigning a column the schema does not declare, or a value the column's
    native type cannot bind, raises `ValidationError`.
    """

    __slots__ = ('_model', '_values')

    def __init__(self, model: 'Model', values: Mapping[str, Any] | None = None) -> None:
        object.__setattr__(self, '_model', model)
        object.__setattr__(self, '_values', dict.fromkeys(model.schema))
        for name, value in (values or {}).items():
            self[name] = value

    @property
    def model(self) -> 'Model':
        return self._model

    def _check(self, name: str, value: Any) -> None:
        schema = self._model.schema
        if name not in schema:
            raise ValidationError(f'Field {name} is not a valid field of {self._model.model_name}')
        native_type = schema[name].native_type
        if not native_type.accepts(value):
            raise ValidationError(f'Value {value!r} for {name} cannot be bound '
                                  f'as {native_type.declaration}')

    def _set(self, name: str, value: Any) -> None:
        self._values[name] = value

    def __getitem__(self, name: str) -> Any:
        if name not in self._values:
            raise KeyError(name)
        return self._values[name]

    def __setitem__(self, name: str, value: Any) -> None:
        self._check(name, value)
        self._values[name] = value

    def __getattr__(self, name: str) -> Any:
        if name.startswith('_'):
            raise AttributeError(name)
        try:
            return self._values[name]
        except KeyError:
            raise AttributeError(f'{self._model.model_name} has no field {name!r}') from None

    def __setattr__(self, name: str, value: Any) -> None:
        self[name] = value

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def __iter__(self):
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Record):
            return NotImplemented
        return self._model is other._model and self._values == other._values

    __hash__ = None

    def __repr__(self) -> str:
        fields = ', '.join(f'{k}={v!r}' for k, v in self._values.items())
        return f'{self._model.model_name}({fields})'

    def keys(self):
        return self._values.keys()

    def items(self):
        return self._values.items()

    def get(self, name: str, default: Any = None) -> Any:
        return self._values.get(name, default)

    def to_dict(self) -> dict[str, Any]:
        return dict(self._values)

    @property
    def primary_key_value(self) -> Any:
        key = self._model.primary_key
        return None if key is None else self._values[key]

    async def save(self) -> 'Record':
        return await self._model.save(self)

    async def delete(self) -> bool:
        return await self._model.delete(self)


def _identity_value(value: Any) -> Any:
    """SCOPE_IDENTITY() is numeric(38, 0); integral decimals become int."""
    if isinstance(value, Decimal) and value == value.to_integral_value():
        return int(value)
    return value


class Model:
    """Accessor for the rows of one table
    """

    def __init__(self, definition: ModelDefinition, executor: 'QueryExecutor') -> None:
        self.definition = definition
        self.executor = executor

    @property
    def table_name(self) -> str:
        return self.definition.table_name

    @property
    def model_name(self) -> str:
        return self.definition.model_name

    @property
    def schema(self) -> TableSchema:
        return self.definition.schema

    @property
    def primary_key(self) -> str | None:
        return self.definition.primary_key

    def __repr__(self) -> str:
        return f'Model({self.model_name!r}, table={self.table_name!r})'

    def new(self, **values: Any) -> Record:
        """Create an unsaved record, optionally with initial values.
        """
        return Record(self, values)

    def hydrate(self, row: Mapping[str, Any]) -> Record:
        """Create a record from a result row.

        Only columns of the schema are copied; other keys of the row are ignored.
        """
        record = Record(self)
        for name, value in row.items():
            if name in self.schema:
                record._set(name, value)
            else:
                logger.debug(f'Ignoring column {name} not in schema of {self.model_name}')
        return record

    async def find(self, where: Mapping[str, Any] | None = None,
                   limit: int = DEFAULT_LIMIT) -> list[Record]:
        """Find records matching all predicates.

        Args:
            where: Predicates as `{column: {'value': v, 'operator': op}}`
            limit: Maximum number of records (TOP)

        Returns
            List of Record, empty when nothing matches

        Raises
            ValidationError: Invalid limit or predicates, before any query runs
        """
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise ValidationError(f'limit must be a positive integer, got {limit!r}')
        predicates = where_clause.with_types(where_clause.normalize(where), self.schema)
        where_clause.validate(predicates, self.schema)
        sql = build_select_sql(self.table_name, where_clause.render(predicates), limit)
        params = where_clause.to_bound_parameters(predicates, self.schema)
        rows = await self.executor.execute(sql, params)
        if not isinstance(rows, list):
            return []
        return [self.hydrate(row) for row in rows]

    async def find_one(self, where: Mapping[str, Any] | None = None) -> Record | None:
        """First record matching all predicates, or None.
        """
        records = await self.find(where, limit=1)
        return records[0] if records else None

    def _bind(self, record: Record, columns: list[str]) -> list[BoundParameter]:
        names = parameter_names(columns)
        return [BoundParameter(names[name], self.schema[name].native_type, record[name])
                for name in columns]

    def _check_owner(self, record: Record) -> None:
        if record.model is not self:
            raise ValidationError(f'Record of {record.model.model_name} cannot be '
                                  f'saved or deleted through {self.model_name}')

    def insert_sql(self) -> str:
        return build_insert_sql(self.table_name, self.schema.non_key_columns, self.primary_key)

    def _require_key(self) -> str:
        if self.primary_key is None:
            raise MissingPrimaryKeyError(f'Table {self.table_name} has no primary key')
        return self.primary_key

    def update_sql(self) -> str:
        """UPDATE by primary key.

        Raises
            MissingPrimaryKeyError: If the table has no primary key
        """
        return build_update_sql(self.table_name, self.schema.non_key_columns, self._require_key())

    def delete_sql(self) -> str:
        return build_delete_sql(self.table_name, self._require_key())

    async def save(self, record: Record) -> Record:
        """Insert the record when its primary key is None, otherwise update it.

        After an insert the generated identity is assigned to the primary key.

        Returns
            The same record
        """
        self._check_owner(record)
        key = self.primary_key
        columns = self.schema.non_key_columns
        if key is None or record[key] is None:
            result = await self.executor.execute(self.insert_sql(), self._bind(record, columns))
            if key is not None and isinstance(result, list) and result:
                record._set(key, _identity_value(result[0][key]))
            logger.debug(f'Inserted {record!r}')
            return record
        if not columns:
            logger.debug(f'Nothing to update for {self.model_name} {record[key]!r}')
            return record
        params = self._bind(record, [*columns, key])
        await self.executor.execute(self.update_sql(), params)
        logger.debug(f'Updated {record!r}')
        return record

    async def delete(self, record: Record) -> bool:
        """Delete the record's row and clear its primary key.

        Returns
            True when a row was deleted

        Raises
            MissingPrimaryKeyError: If the table has no primary key or the
                record's key is None
        """
        self._check_owner(record)
        key = self._require_key()
        if record[key] is None:
            raise MissingPrimaryKeyError(f'{self.model_name} record has no {key} value to delete')
        count = await self.executor.execute(self.delete_sql(), self._bind(record, [key]))
        record._set(key, None)
        return isinstance(count, int) and count > 0
