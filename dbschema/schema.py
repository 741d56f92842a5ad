"""
Schema of one table: model fields bound to master/slave databases
"""

import copy
import dataclasses
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from .database.adapters import DatabaseAdapter, Transaction
from .database.models import InsertExt, Returning
from .database.prepared import prepare_data
from .database.query import Query
from .exceptions import DBSchemaError, InvalidDataError, RegistrationError
from .fields import SchemaField, prepare_schema_fields


@dataclass
class SchemaParams:
    """Params of a schema"""
    name: str                                  # schema name
    database_name: str                         # master database name
    table_name: str                            # name of table in database
    model: Any                                 # annotated dataclass or list of ModelField
    slave_database_name: Optional[str] = None  # read replica (if exists)


def _model_class(model: Any) -> Optional[type]:
    """Dataclass type rows are mapped to, None for ModelField lists"""
    if not dataclasses.is_dataclass(model):
        return None
    return model if isinstance(model, type) else type(model)


class Schema:
    """The schema of a table in database and its CRUD operations"""

    def __init__(self, params: SchemaParams, fields: Optional[List[SchemaField]] = None):
        self.params = params
        self.fields: List[SchemaField] = fields if fields is not None else prepare_schema_fields(params.model)
        self.model_class: Optional[type] = _model_class(params.model)
        self.master: Optional[DatabaseAdapter] = None
        self.slave: Optional[DatabaseAdapter] = None

    @property
    def name(self) -> str:
        return self.params.name

    @property
    def table_name(self) -> str:
        return self.params.table_name

    @property
    def database_name(self) -> str:
        return self.params.database_name

    @property
    def slave_database_name(self) -> Optional[str]:
        return self.params.slave_database_name

    def bind(self, master: DatabaseAdapter, slave: Optional[DatabaseAdapter] = None) -> None:
        """Attach resolved databases. Binding again to the same ones is a no-op."""
        if self.master is master and self.slave is slave:
            return
        if self.master is not None:
            raise RegistrationError(f"schema {self.name} is already bound to its databases")
        self.master = master
        self.slave = slave

    def _master(self) -> DatabaseAdapter:
        if self.master is None:
            raise DBSchemaError(f"schema {self.name} is not initialized, call dbschema.init() first")
        return self.master

    def _reader(self) -> DatabaseAdapter:
        master = self._master()
        return self.slave if self.slave is not None else master

    def _prepare_query(self, query: Optional[Query]) -> Query:
        query = copy.copy(query) if query is not None else Query()
        return query.set_defaults(self.table_name)

    def to_model(self, row: Dict[str, Any]) -> Any:
        """Build the model instance from a row keyed by column names"""
        if self.model_class is None:
            raise InvalidDataError(f"schema {self.name}: as_model needs a dataclass model")
        values = {f.name: row[f.db_name] for f in self.fields if f.db_name in row}
        return self.model_class(**values)

    # ------------------------------------------------------------------
    # reads go to the slave database when there is one
    # ------------------------------------------------------------------

    def _select(self, tx: Optional[Transaction], query: Optional[Query], args: Sequence[Any], as_model: bool):
        rows = self._reader().select(tx, self._prepare_query(query), args)
        return [self.to_model(r) for r in rows] if as_model else rows

    def _select_one(self, tx: Optional[Transaction], query: Optional[Query], args: Sequence[Any], as_model: bool):
        query = self._prepare_query(query)
        query.limit = 1
        row = self._reader().get(tx, query, args)
        if row is not None and as_model:
            return self.to_model(row)
        return row

    def begin_transaction(self) -> Transaction:
        """Transactions always run on the master database"""
        return self._master().begin_transaction()

    def select(self, query: Optional[Query] = None, *args, as_model: bool = False):
        """Rows matching the query, as dicts (or model instances)"""
        return self._select(None, query, args, as_model)

    def transact_select(self, tx: Transaction, query: Optional[Query] = None, *args, as_model: bool = False):
        return self._select(tx, query, args, as_model)

    def select_one(self, query: Optional[Query] = None, *args, as_model: bool = False):
        """First row matching the query, None if nothing matched"""
        return self._select_one(None, query, args, as_model)

    def transact_select_one(self, tx: Transaction, query: Optional[Query] = None, *args, as_model: bool = False):
        return self._select_one(tx, query, args, as_model)

    # ------------------------------------------------------------------
    # writes always go to the master database
    # ------------------------------------------------------------------

    def _insert(self, tx: Optional[Transaction], data: Any, args: Sequence[Any], ext: Optional[InsertExt]):
        prepared = prepare_data(data, self.fields)
        return self._master().insert(tx, prepared, self.table_name, ext, args)

    def _update(self, tx: Optional[Transaction], data: Any, where: str, args: Sequence[Any],
                returning: Optional[Returning]):
        prepared = prepare_data(data, self.fields)
        return self._master().update(tx, prepared, self.table_name, where, returning, args)

    def _delete(self, tx: Optional[Transaction], where: str, args: Sequence[Any], returning: Optional[Returning]):
        return self._master().delete(tx, self.table_name, where, returning, args)

    def insert(self, data: Any, *args, ext: Optional[InsertExt] = None):
        """
        Insert a dict, a dataclass instance (non-zero fields only) or the rows
        of a Query. `args` bind the placeholders of ext.where_not_exists.
        """
        return self._insert(None, data, args, ext)

    def transact_insert(self, tx: Transaction, data: Any, *args, ext: Optional[InsertExt] = None):
        return self._insert(tx, data, args, ext)

    def update(self, data: Any, where: str, *args, returning: Optional[Returning] = None):
        """Update rows matching `where`. Pass "1=1" to update the whole table."""
        return self._update(None, data, where, args, returning)

    def transact_update(self, tx: Transaction, data: Any, where: str, *args,
                        returning: Optional[Returning] = None):
        return self._update(tx, data, where, args, returning)

    def delete(self, where: str, *args, returning: Optional[Returning] = None):
        return self._delete(None, where, args, returning)

    def transact_delete(self, tx: Transaction, where: str, *args, returning: Optional[Returning] = None):
        return self._delete(tx, where, args, returning)
