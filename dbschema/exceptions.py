"""
Exceptions raised by the schema and database layers
"""

from typing import Any, Dict, Optional


class DBSchemaError(Exception):
    """Base exception for schema/database errors"""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.details = details or {}


# ----------------------------------------------------------------------------
# validation
# ----------------------------------------------------------------------------

class ValidationError(DBSchemaError):
    """Bad model annotations, query structure or write payload"""


class MissingColumnTypeError(ValidationError):
    """A mapped model field has no `type` annotation"""


class InvalidPrimaryKeyError(ValidationError):
    """A primary key field is nullable"""


class MissingAliasError(ValidationError):
    """A subquery in WITH or FROM has no alias"""


class InvalidFromClauseError(ValidationError):
    """FROM target is neither a table name nor an aliased subquery"""


class InvalidDataError(ValidationError):
    """Write payload can't be converted to prepared data"""


class MissingReturningError(ValidationError):
    """RETURNING clause requested without columns"""


# ----------------------------------------------------------------------------
# dialect capabilities
# ----------------------------------------------------------------------------

class UnsupportedFeatureError(DBSchemaError):
    """The dialect can't do what was asked"""


class UnsupportedReturningError(UnsupportedFeatureError):
    pass


class UnsupportedOnConflictError(UnsupportedFeatureError):
    pass


class UnsupportedConflictStrategyError(UnsupportedFeatureError):
    pass


# ----------------------------------------------------------------------------
# runtime
# ----------------------------------------------------------------------------

class CatalogError(DBSchemaError):
    """Catalog metadata query failed"""


class ExecutionError(DBSchemaError):
    """DDL statement execution failed"""


class DatabaseConnectionError(DBSchemaError, ConnectionError):
    """Connecting to the database failed"""


class MigrationError(DBSchemaError):
    """Migration scripts are malformed or the version table is dirty"""


class ConfigError(DBSchemaError):
    """Environment configuration is incomplete"""


# ----------------------------------------------------------------------------
# registries
# ----------------------------------------------------------------------------

class RegistrationError(DBSchemaError):
    """Empty or duplicate name, or write into a frozen registry"""


class NotFoundError(RegistrationError, LookupError):
    """Name is not registered"""


class DatabaseNotFoundError(NotFoundError):
    pass


class SchemaNotFoundError(NotFoundError):
    pass
