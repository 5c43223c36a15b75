"""
Type mapping from catalog column descriptors to native parameter types.

Each SQL Server type name maps to exactly one `NativeType` builder. The
builders read whatever width, precision or scale the type needs from the
descriptor; an unbounded length (-1) becomes `MAX`. Type names that are not
registered raise `UnrecognizedTypeError` rather than guessing.
"""
import logging
from collections.abc import Callable
from typing import Any

from roundsql import types
from roundsql.exceptions import UnrecognizedTypeError

logger = logging.getLogger(__name__)

TypeBuilder = Callable[[Any], types.NativeType]


def _length(descriptor: Any) -> int:
    """Character length, keeping the unbounded sentinel."""
    length = descriptor.max_length
    if length is None or int(length) == types.MAX:
        return types.MAX
    return int(length)


def _octet_length(descriptor: Any) -> int:
    """Byte length for binary types, falling back to the character length."""
    if descriptor.max_length is not None and int(descriptor.max_length) == types.MAX:
        return types.MAX
    length = descriptor.octet_length
    if length is None:
        return _length(descriptor)
    return int(length)


def _scale(descriptor: Any, default: int) -> int:
    return default if descriptor.scale is None else int(descriptor.scale)


def _precision(descriptor: Any, default: int) -> int:
    return default if descriptor.precision is None else int(descriptor.precision)


def fixed(native_type: types.NativeType) -> TypeBuilder:
    """Builder for a type without parameters.
    """
    return lambda descriptor: native_type


class TypeMapper:
    """Registry of SQL Server type name to native type builders.

    One shared instance holds the built-in SQL Server types; further names
    (alias types, CLR types) can be registered on it.
    """

    _instance = None

    @classmethod
    def get_instance(cls) -> 'TypeMapper':
        """Get singleton instance.
        """
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def __init__(self) -> None:
        self._builders: dict[str, TypeBuilder] = {}
        self._register_builtin_types()

    def _register_builtin_types(self) -> None:
        register = self.register
        register('varchar', lambda d: types.varchar(_length(d)))
        register('nvarchar', lambda d: types.nvarchar(_length(d)))
        register('char', lambda d: types.char(_length(d)))
        register('nchar', lambda d: types.nchar(_length(d)))
        register('varbinary', lambda d: types.varbinary(_octet_length(d)))
        register('binary', lambda d: types.binary(_octet_length(d)))
        register('decimal', lambda d: types.decimal(_precision(d, 18), _scale(d, 0)))
        register('numeric', lambda d: types.numeric(_precision(d, 18), _scale(d, 0)))
        register('time', lambda d: types.time(_scale(d, 7)))
        register('datetime2', lambda d: types.datetime2(_scale(d, 7)))
        register('datetimeoffset', lambda d: types.datetimeoffset(_scale(d, 7)))
        register('bigint', fixed(types.BIGINT))
        register('int', fixed(types.INT))
        register('smallint', fixed(types.SMALLINT))
        register('tinyint', fixed(types.TINYINT))
        register('bit', fixed(types.BIT))
        register('real', fixed(types.REAL))
        register('float', fixed(types.FLOAT))
        register('money', fixed(types.MONEY))
        register('smallmoney', fixed(types.SMALLMONEY))
        register('image', fixed(types.IMAGE))
        register('date', fixed(types.DATE))
        register('datetime', fixed(types.DATETIME))
        register('smalldatetime', fixed(types.SMALLDATETIME))
        register('uniqueidentifier', fixed(types.UNIQUEIDENTIFIER))
        register('text', fixed(types.TEXT))
        register('ntext', fixed(types.NTEXT))
        register('xml', fixed(types.XML))
        register('udt', fixed(types.UDT))
        register('geography', fixed(types.GEOGRAPHY))
        register('geometry', fixed(types.GEOMETRY))
        # system alias type used by catalog procedures
        register('sysname', fixed(types.nvarchar(128)))

    def register(self, type_name: str, builder: TypeBuilder) -> None:
        """Register a builder for a SQL type name (case-insensitive).
        """
        self._builders[type_name.lower()] = builder

    def supported_types(self) -> list[str]:
        return sorted(self._builders)

    def map_type(self, descriptor: Any) -> types.NativeType:
        """Return the native type for a column or parameter descriptor.

        Args:
            descriptor: Object with `data_type`, `max_length`, `octet_length`,
                `precision` and `scale` attributes

        Returns
            NativeType for the descriptor

        Raises
            UnrecognizedTypeError: If the type name is not registered
        """
        type_name = descriptor.data_type
        builder = self._builders.get(str(type_name).lower()) if type_name else None
        if builder is None:
            logger.debug(f'No native type mapping for {type_name!r}')
            raise UnrecognizedTypeError(type_name)
        return builder(descriptor)


def map_type(descriptor: Any) -> types.NativeType:
    """Map a descriptor to its native type using the shared mapper.
    """
    return TypeMapper.get_instance().map_type(descriptor)
