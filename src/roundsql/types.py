"""
Native SQL Server parameter types.

A `NativeType` describes how a value is bound to a statement parameter: the
SQL Server type name, whatever width/precision/scale the type needs, and the
ODBC SQL type code handed to the driver. Fixed types are module constants,
parameterized types are built by the lowercase factory functions:

    >>> varchar(20)
    NativeType(name='varchar', sql_type=12, length=20, precision=None, scale=None)
    >>> decimal(18, 2).declaration
    'decimal(18, 2)'
"""
import datetime
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

__all__ = [
    'MAX',
    'NativeType',
    'varchar', 'nvarchar', 'char', 'nchar', 'varbinary', 'binary',
    'decimal', 'numeric', 'time', 'datetime2', 'datetimeoffset',
    'BIGINT', 'INT', 'SMALLINT', 'TINYINT', 'BIT', 'REAL', 'FLOAT',
    'MONEY', 'SMALLMONEY', 'IMAGE', 'DATE', 'DATETIME', 'SMALLDATETIME',
    'UNIQUEIDENTIFIER', 'TEXT', 'NTEXT', 'XML', 'UDT', 'GEOGRAPHY', 'GEOMETRY',
]

# Unbounded length, as reported by INFORMATION_SCHEMA for (n)varchar(max)
MAX = -1

# ODBC SQL type codes (sql.h, sqlncli.h)
SQL_CHAR = 1
SQL_VARCHAR = 12
SQL_LONGVARCHAR = -1
SQL_WCHAR = -8
SQL_WVARCHAR = -9
SQL_WLONGVARCHAR = -10
SQL_DECIMAL = 3
SQL_NUMERIC = 2
SQL_SMALLINT = 5
SQL_INTEGER = 4
SQL_REAL = 7
SQL_FLOAT = 6
SQL_BIT = -7
SQL_TINYINT = -6
SQL_BIGINT = -5
SQL_BINARY = -2
SQL_VARBINARY = -3
SQL_LONGVARBINARY = -4
SQL_TYPE_DATE = 91
SQL_TYPE_TIMESTAMP = 93
SQL_GUID = -11
SQL_SS_UDT = -151
SQL_SS_XML = -152
SQL_SS_TIME2 = -154
SQL_SS_TIMESTAMPOFFSET = -155

_STRINGS = (str,)
_BYTES = (bytes, bytearray, memoryview)
_INTEGERS = (int,)
_NUMBERS = (Decimal, int, float)
_DATETIMES = (datetime.datetime, datetime.date, str)


@dataclass(frozen=True, slots=True)
class NativeType:
    """Parameter type for binding a value to a SQL Server statement.
    """
    name: str
    sql_type: int
    length: int | None = None
    precision: int | None = None
    scale: int | None = None
    python_types: tuple[type, ...] = field(default=(object,), compare=False, repr=False)

    @property
    def is_max(self) -> bool:
        return self.length == MAX

    @property
    def declaration(self) -> str:
        """Type as written in T-SQL, e.g. `nvarchar(max)` or `decimal(18, 2)`.
        """
        if self.length is not None:
            return f"{self.name}({'max' if self.is_max else self.length})"
        if self.name in {'decimal', 'numeric'}:
            return f'{self.name}({self.precision}, {self.scale})'
        if self.scale is not None:
            return f'{self.name}({self.scale})'
        return self.name

    @property
    def binding(self) -> tuple[int, int, int]:
        """(sql_type, column_size, decimal_digits) as accepted by `setinputsizes`.
        """
        if self.length is not None:
            return self.sql_type, 0 if self.is_max else self.length, 0
        if self.precision is not None:
            return self.sql_type, self.precision, self.scale or 0
        if self.scale is not None:
            base = _TEMPORAL_BASE_SIZE[self.name]
            return self.sql_type, base + (self.scale + 1 if self.scale else 0), self.scale
        size, digits = _FIXED_SIZES.get(self.name, (0, 0))
        return self.sql_type, size, digits

    def accepts(self, value: Any) -> bool:
        """Check whether a Python value can be bound with this type.
        """
        return value is None or isinstance(value, self.python_types)


_TEMPORAL_BASE_SIZE = {'time': 8, 'datetime2': 19, 'datetimeoffset': 26}

_FIXED_SIZES = {
    'money': (19, 4),
    'smallmoney': (10, 4),
    'date': (10, 0),
    'datetime': (23, 3),
    'smalldatetime': (16, 0),
    'uniqueidentifier': (36, 0),
}


def varchar(length: int = MAX) -> NativeType:
    return NativeType('varchar', SQL_VARCHAR, length=length, python_types=_STRINGS)


def nvarchar(length: int = MAX) -> NativeType:
    return NativeType('nvarchar', SQL_WVARCHAR, length=length, python_types=_STRINGS)


def char(length: int = 1) -> NativeType:
    return NativeType('char', SQL_CHAR, length=length, python_types=_STRINGS)


def nchar(length: int = 1) -> NativeType:
    return NativeType('nchar', SQL_WCHAR, length=length, python_types=_STRINGS)


def varbinary(length: int = MAX) -> NativeType:
    return NativeType('varbinary', SQL_VARBINARY, length=length, python_types=_BYTES)


def binary(length: int = 1) -> NativeType:
    return NativeType('binary', SQL_BINARY, length=length, python_types=_BYTES)


def decimal(precision: int = 18, scale: int = 0) -> NativeType:
    return NativeType('decimal', SQL_DECIMAL, precision=precision, scale=scale,
                      python_types=_NUMBERS)


def numeric(precision: int = 18, scale: int = 0) -> NativeType:
    return NativeType('numeric', SQL_NUMERIC, precision=precision, scale=scale,
                      python_types=_NUMBERS)


def time(scale: int = 7) -> NativeType:
    return NativeType('time', SQL_SS_TIME2, scale=scale,
                      python_types=(datetime.time, str))


def datetime2(scale: int = 7) -> NativeType:
    return NativeType('datetime2', SQL_TYPE_TIMESTAMP, scale=scale,
                      python_types=_DATETIMES)


def datetimeoffset(scale: int = 7) -> NativeType:
    return NativeType('datetimeoffset', SQL_SS_TIMESTAMPOFFSET, scale=scale,
                      python_types=(datetime.datetime, str))


BIGINT = NativeType('bigint', SQL_BIGINT, python_types=_INTEGERS)
INT = NativeType('int', SQL_INTEGER, python_types=_INTEGERS)
SMALLINT = NativeType('smallint', SQL_SMALLINT, python_types=_INTEGERS)
TINYINT = NativeType('tinyint', SQL_TINYINT, python_types=_INTEGERS)
BIT = NativeType('bit', SQL_BIT, python_types=(bool, int))
REAL = NativeType('real', SQL_REAL, python_types=_NUMBERS)
FLOAT = NativeType('float', SQL_FLOAT, python_types=_NUMBERS)
MONEY = NativeType('money', SQL_DECIMAL, python_types=_NUMBERS)
SMALLMONEY = NativeType('smallmoney', SQL_DECIMAL, python_types=_NUMBERS)
IMAGE = NativeType('image', SQL_LONGVARBINARY, python_types=_BYTES)
DATE = NativeType('date', SQL_TYPE_DATE, python_types=(datetime.date, str))
DATETIME = NativeType('datetime', SQL_TYPE_TIMESTAMP, python_types=_DATETIMES)
SMALLDATETIME = NativeType('smalldatetime', SQL_TYPE_TIMESTAMP, python_types=_DATETIMES)
UNIQUEIDENTIFIER = NativeType('uniqueidentifier', SQL_GUID, python_types=(uuid.UUID, str))
TEXT = NativeType('text', SQL_LONGVARCHAR, python_types=_STRINGS)
NTEXT = NativeType('ntext', SQL_WLONGVARCHAR, python_types=_STRINGS)
XML = NativeType('xml', SQL_SS_XML, python_types=_STRINGS)
UDT = NativeType('udt', SQL_SS_UDT, python_types=(bytes, str))
GEOGRAPHY = NativeType('geography', SQL_SS_UDT, python_types=(bytes, str))
GEOMETRY = NativeType('geometry', SQL_SS_UDT, python_types=(bytes, str))
