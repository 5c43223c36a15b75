from dataclasses import dataclass

from libb import ConfigOptions, scriptname

__all__ = ['DatabaseOptions', 'SUPPORTED_DRIVERS']

SUPPORTED_DRIVERS = ('mssql',)

REQUIRED_OPTIONS = ('hostname', 'database')


@dataclass
class DatabaseOptions(ConfigOptions):
    """Options

    supported driver names: `mssql`

    ODBC options:
    - driver: ODBC driver name (ODBC Driver 18 or newer)
    - trust_server_certificate: `yes` to accept self-signed certificates
    - autocommit: open the connection in auto-commit mode (default: True);
      with False the caller commits/rolls back its own transaction

    Schema discovery:
    - schema_cache_ttl: seconds discovered table schemas and procedure
      parameters stay cached per connection (0 disables the cache)
    """
    drivername: str = 'mssql'
    hostname: str = None
    username: str = None
    password: str = None
    database: str = None
    port: int = 1433
    timeout: int = 0
    appname: str = None
    driver: str = 'ODBC Driver 18 for SQL Server'
    trust_server_certificate: str = 'no'
    autocommit: bool = True
    schema_cache_ttl: int = 600

    def __post_init__(self):
        if self.drivername not in SUPPORTED_DRIVERS:
            raise ValueError(f'drivername must be one of: {list(SUPPORTED_DRIVERS)}')
        for field in REQUIRED_OPTIONS:
            if not getattr(self, field):
                raise ValueError(f'field {field} cannot be None or 0')
        self.appname = self.appname or scriptname() or 'python_console'
