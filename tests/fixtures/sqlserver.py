"""
SQL Server container and staged test data for integration tests.

Requires Docker and pyodbc with an ODBC driver for SQL Server; tests using
these fixtures are skipped when either is missing.
"""
import logging
import time

import pytest
import pytest_asyncio
import roundsql

from tests import config

logger = logging.getLogger(__name__)

STAGE_SQL = [
    "IF OBJECT_ID('dbo.FindPerson', 'P') IS NOT NULL DROP PROCEDURE dbo.FindPerson",
    "IF OBJECT_ID('dbo.Address', 'U') IS NOT NULL DROP TABLE dbo.Address",
    "IF OBJECT_ID('dbo.Person', 'U') IS NOT NULL DROP TABLE dbo.Person",
    """
CREATE TABLE dbo.Person (
    RecordId INT IDENTITY(1,1) NOT NULL PRIMARY KEY,
    FirstName VARCHAR(20) NULL,
    LastName VARCHAR(20) NULL,
    Born DATE NULL,
    Balance DECIMAL(18, 2) NULL
)
""",
    """
CREATE TABLE dbo.Address (
    AddressId INT IDENTITY(1,1) NOT NULL PRIMARY KEY,
    PersonId INT NOT NULL,
    City NVARCHAR(60) NULL
)
""",
    """
INSERT INTO dbo.Person (FirstName, LastName, Born, Balance) VALUES
('Jon', 'Watson', '1980-01-02', 10.50),
('Jon', 'Snow', '1985-03-04', 0),
('Arya', 'Stark', '1990-05-06', 99.99)
""",
    """
CREATE PROCEDURE dbo.FindPerson
    @FirstName VARCHAR(20),
    @LastName NVARCHAR(20),
    @Limit INT
AS
BEGIN
    SET NOCOUNT ON;
    SELECT TOP (@Limit) * FROM dbo.Person
    WHERE FirstName = @FirstName AND LastName <> @LastName;
    SELECT COUNT(*) AS Total FROM dbo.Person;
    RETURN 7;
END
""",
    ]


def odbc_connection_string(database='master'):
    return (f'DRIVER={{{config.mssql.driver}}};'
            f'SERVER={config.mssql.hostname},{config.mssql.port};'
            f'DATABASE={database};'
            f'UID={config.mssql.username};'
            f'PWD={config.mssql.password};'
            f'Connection Timeout=5;'
            f'TrustServerCertificate={config.mssql.trust_server_certificate};')


@pytest.fixture(scope='session')
def sqlserver_docker(request):
    docker = pytest.importorskip('docker')
    pyodbc = pytest.importorskip('pyodbc')

    try:
        client = docker.from_env()
    except docker.errors.DockerException as e:
        pytest.skip(f'Docker is not available: {e}')

    try:
        old_container = client.containers.get('test_roundsql_sqlserver')
        logger.info('Found existing test container, removing it')
        old_container.stop()
        old_container.remove()
    except docker.errors.NotFound:
        pass
    except Exception as e:
        logger.warning(f'Error when cleaning up container: {e}')

    container = client.containers.run(
        image='mcr.microsoft.com/mssql/server:2022-latest',
        environment={
            'ACCEPT_EULA': 'Y',
            'MSSQL_SA_PASSWORD': config.mssql.password,
            'MSSQL_PID': 'Developer',
        },
        name='test_roundsql_sqlserver',
        ports={'1433/tcp': str(config.mssql.port)},
        detach=True,
        remove=True,
    )

    def finalizer():
        try:
            container.stop()
        except Exception as e:
            logger.warning(f'Error stopping container during cleanup: {e}')

    request.addfinalizer(finalizer)

    logger.info('Waiting for SQL Server to initialize...')
    for _ in range(60):
        try:
            conn = pyodbc.connect(odbc_connection_string())
            conn.close()
            logger.info('SQL Server is ready')
            break
        except pyodbc.Error as e:
            logger.info(f'Waiting for SQL Server to start: {e}')
            time.sleep(2)
    else:
        raise Exception('SQL Server container failed to start in time')

    return container


@pytest.fixture
def staged(sqlserver_docker):
    """Recreate the Person/Address tables and the FindPerson procedure."""
    import pyodbc

    conn = pyodbc.connect(odbc_connection_string(config.mssql.database), autocommit=True)
    try:
        cursor = conn.cursor()
        for sql in STAGE_SQL:
            cursor.execute(sql)
        cursor.close()
    finally:
        conn.close()


@pytest_asyncio.fixture
async def sconn(staged):
    """Client owning a fresh connection to the staged database."""
    db = await roundsql.connect('mssql', config=config)
    db.clear_cache()
    try:
        yield db
    finally:
        try:
            await db.close()
        except Exception as e:
            logger.warning(f'Error during connection cleanup: {e}')
