"""
Database factory for creating appropriate database adapters
"""

from typing import Dict, List, Type

from ..exceptions import ValidationError
from .adapters import DatabaseAdapter, PostgreSQLAdapter, MySQLAdapter
from .models import DatabaseParams, Driver


class DatabaseFactory:
    """Factory class to create appropriate database connector"""

    adapters: Dict[Driver, Type[DatabaseAdapter]] = {
        Driver.POSTGRESQL: PostgreSQLAdapter,
        Driver.MYSQL: MySQLAdapter,
    }

    @classmethod
    def create_connector(cls, params: DatabaseParams) -> DatabaseAdapter:
        """Create database adapter based on driver"""
        if not params.name:
            raise ValidationError("database name is missing")
        if not params.connection_string:
            raise ValidationError("connection string is missing", {'database': params.name})

        try:
            params.driver = Driver.parse(params.driver)
        except ValueError as e:
            raise ValidationError(str(e), {'database': params.name}) from e

        return cls.adapters[params.driver](params)

    @classmethod
    def get_supported_types(cls) -> List[str]:
        """Get list of supported database types"""
        return [d.value for d in cls.adapters]


def new_database(params: DatabaseParams) -> DatabaseAdapter:
    return DatabaseFactory.create_connector(params)
