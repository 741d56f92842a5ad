"""
Registry of named database adapters
"""

import threading
from typing import Dict

from ..exceptions import DatabaseNotFoundError, RegistrationError
from ..utils.logger import get_logger
from .adapters import DatabaseAdapter

logger = get_logger(__name__)


class DatabaseManager:
    """
    Stores Database instances by name. Filled during startup, frozen by init,
    read-only afterwards.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._databases: Dict[str, DatabaseAdapter] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(self, db: DatabaseAdapter) -> None:
        params = db.get_params()
        if params is None:
            raise RegistrationError("empty database params")
        if not params.name:
            raise RegistrationError("empty database name")

        with self._lock:
            if self._frozen:
                raise RegistrationError(
                    f"can't register database {params.name}: databases are already initialized"
                )
            if params.name in self._databases:
                raise RegistrationError(f"database {params.name} is already registered")
            self._databases[params.name] = db

        logger.debug(f"Registered database {params.name} ({params.driver.value})")

    def get(self, name: str) -> DatabaseAdapter:
        try:
            return self._databases[name]
        except KeyError:
            raise DatabaseNotFoundError(f"database {name} not found", {'database': name}) from None

    def get_all(self) -> Dict[str, DatabaseAdapter]:
        return dict(self._databases)

    def freeze(self) -> None:
        with self._lock:
            self._frozen = True

    def reset(self) -> None:
        """Disconnect everything and accept registrations again"""
        with self._lock:
            for db in self._databases.values():
                db.disconnect()
            self._databases.clear()
            self._frozen = False


manager = DatabaseManager()


def register(*dbs: DatabaseAdapter) -> None:
    for db in dbs:
        manager.register(db)


def get(name: str) -> DatabaseAdapter:
    return manager.get(name)


def get_all() -> Dict[str, DatabaseAdapter]:
    return manager.get_all()
