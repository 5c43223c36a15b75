"""
Adapters between SQL Server catalog metadata and native parameter types.
"""
from roundsql.adapters.column_info import ColumnDescriptor
from roundsql.adapters.type_mapping import TypeMapper, map_type

__all__ = ['ColumnDescriptor', 'TypeMapper', 'map_type']
