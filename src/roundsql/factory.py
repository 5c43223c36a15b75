"""
Model discovery: table names in, one `Model` per table out.
"""
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from roundsql.exceptions import ArgumentShapeMismatchError, ValidationError
from roundsql.model import Model, ModelDefinition

if TYPE_CHECKING:
    from roundsql.query import QueryExecutor
    from roundsql.schema import SchemaInspector

logger = logging.getLogger(__name__)


def _is_name_list(value: Any) -> bool:
    return isinstance(value, list | tuple) and all(isinstance(v, str) for v in value)


def check_names(table_names: Any, model_names: Any) -> tuple[list[str], list[str]]:
    """Validate that table and model names have the same shape.

    Args:
        table_names: A table name, or a list of table names
        model_names: A model name, or a list of the same length

    Returns
        Tuple of (table names, model names) as lists

    Raises
        ArgumentShapeMismatchError: If one is a string and the other a list,
            the lists differ in length or are empty, or either is another type
        ValidationError: If a model name is repeated
    """
    if isinstance(table_names, str) and isinstance(model_names, str):
        return [table_names], [model_names]
    if _is_name_list(table_names):
        if not _is_name_list(model_names):
            raise ArgumentShapeMismatchError(
                'If argument 1 (tableNames) is an array, then argument 2 (modelNames) '
                'must also be an array.')
        if len(table_names) != len(model_names):
            raise ArgumentShapeMismatchError(
                f'Argument 1 (tableNames) has {len(table_names)} item(s) but '
                f'argument 2 (modelNames) has {len(model_names)}.')
        if not table_names:
            raise ArgumentShapeMismatchError('At least one table name is required.')
        if len(set(model_names)) != len(model_names):
            raise ValidationError(f'Model names must be unique: {list(model_names)}')
        return list(table_names), list(model_names)
    if isinstance(table_names, str):
        raise ArgumentShapeMismatchError(
            'If argument 1 (tableNames) is a string, then argument 2 (modelNames) '
            'must also be a string.')
    raise ArgumentShapeMismatchError(
        'Argument 1 (tableNames) must be a string or an array of strings.')


class ModelFactory:
    """Builds models from discovered table schemas.
    """

    def __init__(self, inspector: 'SchemaInspector', executor: 'QueryExecutor') -> None:
        self.inspector = inspector
        self.executor = executor

    async def discover(self, table_names: str | Sequence[str], model_names: str | Sequence[str],
                       bypass_cache: bool = False) -> dict[str, Model]:
        """Discover tables and build one model for each.

        Args:
            table_names: Table name or list of table names
            model_names: Model name or list of model names, matched by position
            bypass_cache: Query the catalog even when the tables are cached

        Returns
            Dict of model name to Model

        Raises
            ArgumentShapeMismatchError: Before any query, if the names differ in shape
            SchemaNotFoundError: If a table has no columns
        """
        tables, models = check_names(table_names, model_names)
        schemas = await self.inspector.discover_schemas(tables, bypass_cache=bypass_cache)
        discovered = {}
        for table, model_name in zip(tables, models):
            definition = ModelDefinition(table, model_name, schemas[table])
            discovered[model_name] = Model(definition, self.executor)
            logger.debug(f'Discovered model {model_name} for table {table} '
                         f'with columns {list(definition.schema)}')
        return discovered
