"""Connection strings per database provider."""

from typing import Callable

from sitedeploy.core.exceptions import UnsupportedDatabaseProviderError
from sitedeploy.models.deployment import DatabaseConfiguration
from sitedeploy.models.enums import DatabaseProvider


def _credentials(config: DatabaseConfiguration) -> str:
    if config.username:
        return f"User Id={config.username};Password={config.password or ''};"
    return "Integrated Security=true;"


def _server(config: DatabaseConfiguration, default: str) -> str:
    server = config.server_name or default
    return f"{server},{config.port}" if config.port else server


def _local_db(config: DatabaseConfiguration) -> str:
    return f"Server=(localdb)\\mssqllocaldb;Database={config.database_name};Trusted_Connection=true;"


def _sql_server(config: DatabaseConfiguration) -> str:
    return f"Server={_server(config, 'localhost')};Database={config.database_name};{_credentials(config)}"


def _sql_server_express(config: DatabaseConfiguration) -> str:
    server = f"{config.server_name or '.'}\\SQLEXPRESS"
    return f"Server={server};Database={config.database_name};{_credentials(config)}TrustServerCertificate=true;"


def _azure_sql(config: DatabaseConfiguration) -> str:
    return (
        f"Server=tcp:{config.server_name},{config.port or 1433};"
        f"Initial Catalog={config.database_name};"
        f"User ID={config.username or ''};Password={config.password or ''};"
        "Encrypt=True;TrustServerCertificate=False;Connection Timeout=30;"
    )


def _postgresql(config: DatabaseConfiguration) -> str:
    return (
        f"Host={config.server_name or 'localhost'};Port={config.port or 5432};"
        f"Database={config.database_name};"
        f"Username={config.username or ''};Password={config.password or ''};"
    )


def _mysql(config: DatabaseConfiguration) -> str:
    return (
        f"Server={config.server_name or 'localhost'};Port={config.port or 3306};"
        f"Database={config.database_name};"
        f"Uid={config.username or ''};Pwd={config.password or ''};"
    )


def _sqlite(config: DatabaseConfiguration) -> str:
    return f"Data Source={config.database_name}.db;"


CONNECTION_STRING_BUILDERS: dict[DatabaseProvider, Callable[[DatabaseConfiguration], str]] = {
    DatabaseProvider.SQL_SERVER_LOCAL_DB: _local_db,
    DatabaseProvider.SQL_SERVER: _sql_server,
    DatabaseProvider.SQL_SERVER_EXPRESS: _sql_server_express,
    DatabaseProvider.AZURE_SQL_DATABASE: _azure_sql,
    DatabaseProvider.POSTGRESQL: _postgresql,
    DatabaseProvider.MYSQL: _mysql,
    DatabaseProvider.SQLITE: _sqlite,
}


def build_connection_string(config: DatabaseConfiguration) -> str:
    """Return the configured connection string or build one for the provider.

    Raises:
        UnsupportedDatabaseProviderError: If no builder exists for the provider
    """
    if config.connection_string:
        return config.connection_string

    builder = CONNECTION_STRING_BUILDERS.get(config.provider)
    if builder is None:
        raise UnsupportedDatabaseProviderError(config.provider.value)
    return builder(config)
