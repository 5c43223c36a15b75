"""
Unit tests for predicate validation and WHERE clause rendering.
"""
import pytest
from roundsql import types
from roundsql.adapters.column_info import ColumnDescriptor
from roundsql.exceptions import ValidationError
from roundsql.schema import TableSchema
from roundsql.where import BoundParameter, Predicate, normalize, render
from roundsql.where import to_bound_parameters, validate, with_types

from tests.fixtures.mocks import person_rows


@pytest.fixture
def schema():
    columns = [ColumnDescriptor.from_catalog_row(row) for row in person_rows()]
    return TableSchema('Person', columns)


def test_scenario_render(schema):
    """Test the two-predicate clause with a default and explicit operator"""
    where = normalize({
        'FirstName': {'value': 'Jon'},
        'LastName': {'value': 'Watson', 'operator': '<>'},
        })
    assert validate(where, schema) is True
    assert render(where) == '[FirstName] = @FirstName AND [LastName] <> @LastName'


@pytest.mark.parametrize('count', [1, 2, 3])
def test_render_joins(schema, count):
    """Test N predicates give N-1 AND joins"""
    columns = list(schema)[:count]
    where = normalize({column: {'value': 1 if column == 'RecordId' else 'x'} for column in columns})
    sql = render(where)
    assert sql.count(' AND ') == count - 1
    for column in columns:
        assert f'[{column}] = @{column}' in sql


def test_render_empty():
    """Test no predicates render to an empty clause"""
    assert render(normalize(None)) == ''
    assert render(normalize({})) == ''


def test_normalize_does_not_modify_input():
    """Test the caller's mapping is left alone"""
    where = {'FirstName': {'value': 'Jon'}}
    normalize(where)
    assert where == {'FirstName': {'value': 'Jon'}}


def test_normalize_accepts_predicates():
    """Test Predicate values pass through keyed by column"""
    where = normalize({'FirstName': Predicate('ignored', 'Jon', 'LIKE')})
    assert where['FirstName'] == Predicate('FirstName', 'Jon', 'LIKE')


def test_entry_not_a_mapping():
    """Test a bare value instead of a predicate mapping"""
    with pytest.raises(ValidationError, match='value of where.FirstName is not an object'):
        normalize({'FirstName': 'Jon'})


def test_entry_without_value():
    """Test a predicate without a value property"""
    with pytest.raises(ValidationError, match='Where clause FirstName does not have a value property'):
        normalize({'FirstName': {'operator': '='}})


def test_where_not_a_mapping():
    """Test a list instead of a mapping"""
    with pytest.raises(ValidationError):
        normalize([('FirstName', 'Jon')])


def test_unknown_field(schema):
    """Test a column outside the schema"""
    where = normalize({'MiddleName': {'value': 'H'}})
    with pytest.raises(ValidationError, match='Field MiddleName is not a valid field in the table schema'):
        validate(where, schema)


@pytest.mark.parametrize('operator', ['=', '<>', '!=', '<', '<=', '>', '>=', 'LIKE', 'not like'])
def test_supported_operators(schema, operator):
    """Test every supported operator validates"""
    assert validate(normalize({'LastName': {'value': 'W%', 'operator': operator}}), schema)


@pytest.mark.parametrize('operator', ['IN', '; DROP TABLE Person; --', '=='])
def test_unsupported_operator(schema, operator):
    """Test operators outside the supported set are rejected"""
    with pytest.raises(ValidationError, match='is not supported'):
        validate(normalize({'LastName': {'value': 'W', 'operator': operator}}), schema)


def test_value_type_mismatch(schema):
    """Test a value the column type cannot bind"""
    with pytest.raises(ValidationError, match='cannot be bound as int'):
        validate(normalize({'RecordId': {'value': 'one'}}), schema)


def test_none_value_is_accepted(schema):
    """Test None binds for any column"""
    assert validate(normalize({'RecordId': {'value': None}}), schema)


def test_validation_stops_at_first_failure(schema):
    """Test the first invalid predicate is the one reported"""
    where = normalize({'Unknown': {'value': 1}, 'RecordId': {'value': 'x'}})
    with pytest.raises(ValidationError, match='Unknown'):
        validate(where, schema)


def test_with_types(schema):
    """Test native types are filled in from the schema"""
    where = with_types(normalize({'FirstName': {'value': 'Jon'}, 'Other': {'value': 1}}), schema)
    assert where['FirstName'].native_type == types.varchar(20)
    assert where['Other'].native_type is None


def test_to_bound_parameters_with_schema(schema):
    """Test parameters take their type from the schema"""
    where = normalize({'FirstName': {'value': 'Jon'}, 'RecordId': {'value': 7, 'operator': '>'}})
    assert to_bound_parameters(where, schema) == [
        BoundParameter('FirstName', types.varchar(20), 'Jon'),
        BoundParameter('RecordId', types.INT, 7),
        ]


def test_to_bound_parameters_with_explicit_types():
    """Test parameters without a schema use each predicate's type"""
    where = normalize({'since': {'value': '2024-01-01', 'type': types.DATE}})
    assert to_bound_parameters(where) == [BoundParameter('since', types.DATE, '2024-01-01')]


def test_to_bound_parameters_missing_type():
    """Test a parameter without a type"""
    with pytest.raises(ValidationError, match='Where clause since does not have a type property'):
        to_bound_parameters(normalize({'since': {'value': '2024-01-01'}}))


if __name__ == '__main__':
    __import__('pytest').main([__file__])
