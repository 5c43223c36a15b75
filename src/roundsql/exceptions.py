"""
Exception classes raised by the data-access layer.

Validation-class errors are raised before any statement reaches the database.
`DatabaseError` wraps a driver failure and keeps the driver message verbatim.
"""


class RoundSqlError(Exception):
    """Base class for all roundsql errors.
    """


class ValidationError(RoundSqlError):
    """Error in input validation (predicate shape, unknown column, missing value).
    """


class SchemaNotFoundError(RoundSqlError):
    """Table discovery returned no columns.
    """

    def __init__(self, tables: list[str], kind: str = 'table') -> None:
        self.tables = list(tables)
        names = ', '.join(f'[{t}]' for t in self.tables)
        if kind == 'table':
            message = 'No column data returned for table'
        else:
            message = f'No {kind} found named'
        super().__init__(f'{message} {names}. '
                         f'Perhaps you misspelled the name of the {kind}?')


class ArgumentShapeMismatchError(ValidationError):
    """Table names and model names passed to discovery do not have the same shape.
    """


class ArgumentCountMismatchError(ValidationError):
    """Number of stored procedure arguments differs from the declared parameters.
    """

    def __init__(self, procedure: str, expected: int, given: int) -> None:
        self.procedure = procedure
        self.expected = expected
        self.given = given
        super().__init__(f'Procedure {procedure} expects {expected} '
                         f'argument(s), {given} given')


class MissingPrimaryKeyError(ValidationError):
    """Record has no primary key value.
    """


class UnrecognizedTypeError(RoundSqlError):
    """SQL type name without a native type mapping.
    """

    def __init__(self, type_name: str) -> None:
        self.type_name = type_name
        super().__init__(f'Unrecognized data type {type_name}')


class DatabaseError(RoundSqlError):
    """Error reported by the database driver.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)
