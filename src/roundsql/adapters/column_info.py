"""
Column descriptors parsed from catalog metadata.
"""
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Self

from roundsql.adapters.type_mapping import map_type
from roundsql.types import NativeType

logger = logging.getLogger(__name__)


def _int_or_none(value: Any) -> int | None:
    return None if value is None else int(value)


@dataclass(frozen=True, slots=True)
class ColumnDescriptor:
    """One column (or procedure parameter) as described by the catalog

    Carries the raw catalog fields needed for parameter binding plus the
    `NativeType` resolved from them. Instances are never mutated; a table's
    descriptors are shared by every record of its model.
    """
    name: str
    data_type: str
    table_name: str | None = None
    max_length: int | None = None
    octet_length: int | None = None
    precision: int | None = None
    scale: int | None = None
    ordinal: int | None = None
    nullable: bool | None = None
    primary_key: bool = False
    is_output: bool = False
    table_schema: str | None = None
    native_type: NativeType | None = field(default=None, compare=False)

    @classmethod
    def from_catalog_row(cls, row: dict[str, Any]) -> Self:
        """Create a descriptor from an INFORMATION_SCHEMA.COLUMNS row.

        Args:
            row: Catalog row; `CONSTRAINT_TYPE` is `PRIMARY KEY` for key columns

        Returns
            ColumnDescriptor with its native type resolved

        Raises
            UnrecognizedTypeError: If the column's type has no mapping
        """
        scale = row.get('NUMERIC_SCALE')
        if scale is None:
            # time, datetime2 and datetimeoffset report their scale here
            scale = row.get('DATETIME_PRECISION')
        nullable = row.get('IS_NULLABLE')
        descriptor = cls(
            name=row['COLUMN_NAME'],
            data_type=row['DATA_TYPE'],
            table_name=row.get('TABLE_NAME'),
            max_length=_int_or_none(row.get('CHARACTER_MAXIMUM_LENGTH')),
            octet_length=_int_or_none(row.get('CHARACTER_OCTET_LENGTH')),
            precision=_int_or_none(row.get('NUMERIC_PRECISION')),
            scale=_int_or_none(scale),
            ordinal=_int_or_none(row.get('ORDINAL_POSITION')),
            nullable=None if nullable is None else str(nullable).upper() == 'YES',
            primary_key=row.get('CONSTRAINT_TYPE') == 'PRIMARY KEY',
            table_schema=row.get('TABLE_SCHEMA'),
            )
        return descriptor.with_native_type()

    @classmethod
    def from_parameter_row(cls, row: dict[str, Any]) -> Self:
        """Create a descriptor from a sys.parameters row of a stored procedure.
        """
        descriptor = cls(
            name=row['PARAMETER_NAME'],
            data_type=row['DATA_TYPE'],
            max_length=_int_or_none(row.get('CHARACTER_MAXIMUM_LENGTH')),
            octet_length=_int_or_none(row.get('CHARACTER_OCTET_LENGTH')),
            precision=_int_or_none(row.get('NUMERIC_PRECISION')),
            scale=_int_or_none(row.get('NUMERIC_SCALE')),
            ordinal=_int_or_none(row.get('ORDINAL_POSITION')),
            is_output=bool(row.get('IS_OUTPUT')),
            )
        return descriptor.with_native_type()

    def with_native_type(self) -> Self:
        return replace(self, native_type=map_type(self))

    @property
    def parameter_name(self) -> str:
        """Name without the leading `@` of procedure parameters.
        """
        return self.name.lstrip('@')

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization.
        """
        return {
            'name': self.name,
            'data_type': self.data_type,
            'table_schema': self.table_schema,
            'table_name': self.table_name,
            'max_length': self.max_length,
            'precision': self.precision,
            'scale': self.scale,
            'ordinal': self.ordinal,
            'nullable': self.nullable,
            'primary_key': self.primary_key,
            'native_type': self.native_type.declaration if self.native_type else None,
            }

    def __repr__(self) -> str:
        native = self.native_type.declaration if self.native_type else None
        return (f'ColumnDescriptor(name={self.name!r}, data_type={self.data_type!r}, '
                f'native_type={native!r}, primary_key={self.primary_key})')
