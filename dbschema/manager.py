"""
Registry of named schemas
"""

import threading
from typing import Dict

from .exceptions import RegistrationError, SchemaNotFoundError
from .schema import Schema
from .utils.logger import get_logger

logger = get_logger(__name__)


class SchemaManager:
    """Stores Schema instances by name, read-only after init"""

    def __init__(self):
        self._lock = threading.Lock()
        self._schemas: Dict[str, Schema] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(self, schema: Schema) -> None:
        if not schema.name:
            raise RegistrationError("empty schema name")

        with self._lock:
            if self._frozen:
                raise RegistrationError(f"can't register schema {schema.name}: schemas are already initialized")
            if schema.name in self._schemas:
                raise RegistrationError(f"schema {schema.name} is already registered")
            self._schemas[schema.name] = schema

        logger.debug(f"Registered schema {schema.name} (table {schema.table_name} on {schema.database_name})")

    def get(self, name: str) -> Schema:
        with self._lock:
            schema = self._schemas.get(name)
        if schema is None:
            raise SchemaNotFoundError(f"schema {name} not found", {'schema': name})
        return schema

    def get_all(self) -> Dict[str, Schema]:
        with self._lock:
            return dict(self._schemas)

    def freeze(self) -> None:
        with self._lock:
            self._frozen = True

    def reset(self) -> None:
        with self._lock:
            self._schemas.clear()
            self._frozen = False


manager = SchemaManager()
