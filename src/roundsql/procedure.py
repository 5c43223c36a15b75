"""
Stored procedure invocation with positional arguments.
"""
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from roundsql.exceptions import ArgumentCountMismatchError, ValidationError
from roundsql.where import BoundParameter

if TYPE_CHECKING:
    from roundsql.query import QueryExecutor
    from roundsql.schema import SchemaInspector

logger = logging.getLogger(__name__)


class StoredProcedureInvoker:
    """Binds arguments to a procedure's declared parameters by ordinal and runs it.
    """

    def __init__(self, inspector: 'SchemaInspector', executor: 'QueryExecutor') -> None:
        self.inspector = inspector
        self.executor = executor

    async def bind(self, procedure: str, args: Sequence[Any]) -> list[BoundParameter]:
        """Pair each argument with the declared parameter at the same position.

        Raises
            ArgumentCountMismatchError: If the number of arguments differs
            ValidationError: If an argument cannot be bound as its parameter's type
        """
        if isinstance(args, str | bytes) or not isinstance(args, Sequence):
            raise ValidationError(f'Arguments for {procedure} must be a list, '
                                  f'got {type(args).__name__}')
        declared = await self.inspector.procedure_parameters(procedure)
        if len(args) != len(declared):
            raise ArgumentCountMismatchError(procedure, len(declared), len(args))
        params = []
        for descriptor, value in zip(declared, args):
            native_type = descriptor.native_type
            if not native_type.accepts(value):
                raise ValidationError(f'Argument {descriptor.name} of {procedure} '
                                      f'cannot be bound as {native_type.declaration}: {value!r}')
            params.append(BoundParameter(descriptor.parameter_name, native_type, value))
        return params

    async def call(self, procedure: str, args: Sequence[Any] = ()) -> tuple[list[list[dict]], Any]:
        """Execute a stored procedure.

        Args:
            procedure: Procedure name, optionally schema-qualified
            args: Argument values in declared parameter order

        Returns
            Tuple of (result sets, return value)
        """
        params = await self.bind(procedure, args)
        result = await self.executor.call(procedure, params)
        logger.debug(f'{procedure} returned {result.return_value!r} with '
                     f'{len(result.recordsets)} result set(s)')
        return result.recordsets, result.return_value
