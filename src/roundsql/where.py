"""
Predicate validation and WHERE clause rendering.

Callers describe predicates with the wire shape

    {
        'FirstName': {'value': 'Jon'},
        'LastName': {'value': 'Watson', 'operator': '<>'},
    }

which `normalize()` turns into an ordered mapping of `Predicate` objects.
Once the table schema is known each predicate gets the column's native type,
`render()` produces `[FirstName] = @FirstName AND [LastName] <> @LastName`, and
`to_bound_parameters()` produces the typed values for those placeholders.
"""
import logging
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any

from roundsql.exceptions import ValidationError
from roundsql.sql import parameter_names, quote_identifier
from roundsql.types import NativeType

logger = logging.getLogger(__name__)

OPERATORS = frozenset({'=', '<>', '!=', '<', '<=', '>', '>=', 'LIKE', 'NOT LIKE'})

DEFAULT_OPERATOR = '='


@dataclass(frozen=True, slots=True)
class Predicate:
    """Comparison of one column against one bound value."""
    column: str
    value: Any
    operator: str = DEFAULT_OPERATOR
    native_type: NativeType | None = None


@dataclass(frozen=True, slots=True)
class BoundParameter:
    """Unit passed to the execution protocol."""
    name: str
    native_type: NativeType
    value: Any


WhereClause = dict[str, Predicate]


def _predicate_from_wire(column: str, spec: Any) -> Predicate:
    if isinstance(spec, Predicate):
        return replace(spec, column=column)
    if not isinstance(spec, Mapping):
        raise ValidationError(f'value of where.{column} is not an object')
    if 'value' not in spec:
        raise ValidationError(f'Where clause {column} does not have a value property.')
    operator = spec.get('operator') or DEFAULT_OPERATOR
    return Predicate(column, spec['value'], str(operator).strip(), spec.get('type'))


def normalize(where: Mapping[str, Any] | None) -> WhereClause:
    """Convert the wire shape into an ordered mapping of predicates.

    The caller's mapping is never modified.

    Raises
        ValidationError: If an entry is not a mapping or has no `value`
    """
    if where is None:
        return {}
    if not isinstance(where, Mapping):
        raise ValidationError(f'where must be a mapping of column to predicate, '
                              f'got {type(where).__name__}')
    return {column: _predicate_from_wire(column, spec) for column, spec in where.items()}


def with_types(where: WhereClause, schema: Mapping[str, Any]) -> WhereClause:
    """Fill in each predicate's native type from the schema.

    Columns missing from the schema are left untyped for `validate()` to report.
    """
    typed = {}
    for column, predicate in where.items():
        descriptor = schema.get(column)
        if descriptor is not None:
            predicate = replace(predicate, native_type=descriptor.native_type)
        typed[column] = predicate
    return typed


def validate(where: WhereClause, schema: Mapping[str, Any]) -> bool:
    """Check every predicate against the schema, stopping at the first failure.

    Returns
        True when the clause is valid

    Raises
        ValidationError: Unknown column, unsupported operator, or a value the
            column's native type cannot bind
    """
    for column, predicate in where.items():
        if column not in schema:
            raise ValidationError(f'Field {column} is not a valid field in the table schema.')
        if predicate.operator.upper() not in OPERATORS:
            raise ValidationError(f'Operator {predicate.operator!r} for {column} is not supported')
        native_type = schema[column].native_type
        if not native_type.accepts(predicate.value):
            raise ValidationError(f'Value {predicate.value!r} for {column} cannot be bound '
                                  f'as {native_type.declaration}')
    return True


def render(where: WhereClause) -> str:
    """Render predicates as `[col] <op> @col` clauses joined with AND.
    """
    names = parameter_names(where)
    clauses = [f'{quote_identifier(column)} {predicate.operator} @{names[column]}'
               for column, predicate in where.items()]
    return ' AND '.join(clauses)


def to_bound_parameters(where: WhereClause,
                        schema: Mapping[str, Any] | None = None) -> list[BoundParameter]:
    """Typed parameters for the placeholders produced by `render()`.

    With a schema the type comes from the column; without one every predicate
    must already carry its `native_type`.

    Raises
        ValidationError: If a predicate has no type
    """
    names = parameter_names(where)
    params = []
    for column, predicate in where.items():
        native_type = schema[column].native_type if schema is not None else predicate.native_type
        if native_type is None:
            raise ValidationError(f'Where clause {column} does not have a type property.')
        params.append(BoundParameter(names[column], native_type, predicate.value))
    return params
