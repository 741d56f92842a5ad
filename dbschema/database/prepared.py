"""
Write payloads (INSERT/UPDATE) prepared from maps, dataclasses or queries
"""

import dataclasses
import numbers
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from ..exceptions import InvalidDataError
from ..fields import SchemaField, is_field_exists_by_db_name
from .query import Query


@dataclass
class PreparedData:
    """Columns and values of a write statement"""
    db_fields: List[str] = field(default_factory=list)
    values: List[Any] = field(default_factory=list)
    queries: Dict[str, Query] = field(default_factory=dict)  # columns computed by a SELECT
    query: Optional[Query] = None                            # whole-row SELECT source of INSERT


def _is_zero(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (numbers.Number, str, bytes, list, tuple, dict, set)):
        return not value
    return False


def _prepare_vals_map(data: Dict[str, Any], fields: Sequence[SchemaField]) -> PreparedData:
    prepared = PreparedData()

    for f in fields:
        if f.db_name in data:        # by database column name
            value = data[f.db_name]
        elif f.name in data:         # by model field name
            value = data[f.name]
        else:
            continue

        if isinstance(value, Query):
            prepared.queries[f.db_name] = value
            continue

        prepared.db_fields.append(f.db_name)
        prepared.values.append(value)

    return prepared


def _prepare_vals_struct(data: Any, fields: Sequence[SchemaField]) -> PreparedData:
    """Only non-zero values are taken, so a partially filled model is a partial update"""
    prepared = PreparedData()

    for f in dataclasses.fields(data):
        db_tag = str(f.metadata.get('db', ""))
        if not db_tag or db_tag == "-":
            continue
        db_name = db_tag.split(",")[0].strip()
        if not is_field_exists_by_db_name(fields, db_name):
            continue

        value = getattr(data, f.name)
        if _is_zero(value):
            continue

        prepared.db_fields.append(db_name)
        prepared.values.append(value)

    return prepared


def prepare_data(data: Any, fields: Sequence[SchemaField]) -> PreparedData:
    """
    Prepare values for INSERT or UPDATE statements.
    Supported payloads: Query, dict, dataclass instance.
    """
    if isinstance(data, Query):
        return PreparedData(query=data)
    if isinstance(data, dict):
        return _prepare_vals_map(data, fields)
    if dataclasses.is_dataclass(data) and not isinstance(data, type):
        return _prepare_vals_struct(data, fields)

    raise InvalidDataError(
        f"wrong data type: need dataclass instance, Query or dict, got {type(data).__name__}",
        {'type': type(data).__name__}
    )
