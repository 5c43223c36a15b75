"""
Unit tests for schema cache utilities.
"""
from roundsql.cache import Cache


def test_cache_singleton():
    """Test that Cache is a singleton"""
    cache1 = Cache.get_instance()
    cache2 = Cache.get_instance()
    assert cache1 is cache2


def test_schema_cache_operations():
    """Test schema cache get/set operations"""
    cache = Cache.get_instance()

    connection_cache = cache.get_schema_cache(1234)
    connection_cache['person'] = ['RecordId', 'FirstName']
    assert 'person' in connection_cache

    cache.clear_all()

    connection_cache = cache.get_schema_cache(1234)
    assert 'person' not in connection_cache


def test_caches_are_per_connection():
    """Test two connections do not share cached schemas"""
    cache = Cache.get_instance()
    cache.get_schema_cache(1)['person'] = ['a']
    assert 'person' not in cache.get_schema_cache(2)
    assert cache.get_schema_cache(1) is cache.get_schema_cache(1)


def test_procedure_cache_is_separate():
    """Test procedure parameters do not share the schema cache"""
    cache = Cache.get_instance()
    cache.get_procedure_cache(1)['getperson'] = []
    assert 'getperson' not in cache.get_schema_cache(1)


def test_drop_connection():
    """Test dropping a connection removes only its caches"""
    cache = Cache.get_instance()
    cache.get_schema_cache(1)['person'] = ['a']
    cache.get_procedure_cache(1)['getperson'] = []
    cache.get_schema_cache(2)['person'] = ['b']

    cache.drop_connection(1)

    assert 'person' not in cache.get_schema_cache(1)
    assert 'getperson' not in cache.get_procedure_cache(1)
    assert cache.get_schema_cache(2)['person'] == ['b']


def test_clear_for_table():
    """Test clearing cache entries for a specific table"""
    cache = Cache.get_instance()
    cache.clear_all()

    schema_cache = cache.get_schema_cache(1234)
    schema_cache['table1'] = ['col1']
    schema_cache['table2'] = ['col2']

    cache.clear_for_table('Table1')

    assert 'table1' not in schema_cache
    assert 'table2' in schema_cache


if __name__ == '__main__':
    __import__('pytest').main([__file__])
