"""
Schema fields derived from annotated models

A model is a dataclass whose fields carry column annotations in their
metadata (see `column`), or a plain list of `ModelField` entries built by
any other means. Annotation keys:

    db       column name; "name,nomigrate" keeps it out of ALTER, "-" skips it
    type     column type; "int,unsigned" adds the MySQL qualifier
    len      column length
    def      default value literal
    comment  column comment
    key      comma separated key list, "pk" marks the primary key

Nullability follows the python annotation: Optional/Union with None,
mappings and Any are NULL, everything else is NOT NULL.
"""

import collections.abc
import dataclasses
import typing
from dataclasses import dataclass
from types import UnionType
from typing import Any, Dict, List, Mapping, NamedTuple, Sequence, Union

from .exceptions import MissingColumnTypeError, InvalidPrimaryKeyError, ValidationError


NOMIGRATE = "nomigrate"
PRIMARY_KEY = "pk"


@dataclass(frozen=True)
class SchemaField:
    """Info about one model field and its database column"""
    name: str                    # field name (from model)
    db_name: str                 # name of database column (`db`)
    db_type: str                 # type of database column (`type`)
    nullable: bool = False       # NULL or NOT NULL, from the field annotation
    is_primary_key: bool = False # `key` contains "pk"
    length: int = 0              # length of column type (`len`)
    default: str = ""            # default column value (`def`)
    comment: str = ""            # column comment (`comment`)
    migratable: bool = True      # False for `db:"name,nomigrate"`


class ModelField(NamedTuple):
    """One annotated field of a model description"""
    name: str
    annotation: Any
    tags: Mapping[str, str]


def column(db: str, type: str = "", *, length: int = 0, sql_default: str = "",
           comment: str = "", key: str = "", primary_key: bool = False, **kwargs):
    """dataclasses.field() carrying column annotations. Extra kwargs go to field()."""
    if primary_key:
        key = ",".join(k for k in (key, PRIMARY_KEY) if k)
    tags = {
        'db': db,
        'type': type,
        'len': str(length) if length else "",
        'def': sql_default,
        'comment': comment,
        'key': key,
    }
    return dataclasses.field(metadata={k: v for k, v in tags.items() if v}, **kwargs)


def is_field_exists_by_db_name(fields: Sequence[SchemaField], db_name: str) -> bool:
    """Checks if a field with the given db name exists"""
    return any(f.db_name == db_name for f in fields)


def describe_model(model: Any) -> List[ModelField]:
    """Turn a dataclass (type or instance) into an ordered list of ModelField"""
    if isinstance(model, (list, tuple)):
        return [ModelField(*entry) for entry in model]

    if not dataclasses.is_dataclass(model):
        raise ValidationError(f"{model!r} is not a dataclass")

    model_type = model if isinstance(model, type) else type(model)
    try:
        hints = typing.get_type_hints(model_type)
    except NameError:
        # unresolved forward reference, fall back to the raw annotations
        hints = {}

    return [
        ModelField(f.name, hints.get(f.name, f.type), {k: str(v) for k, v in f.metadata.items()})
        for f in dataclasses.fields(model_type)
    ]


def is_nullable_annotation(annotation: Any) -> bool:
    """Optional values, mappings and fully dynamic values are nullable"""
    if annotation is Any or annotation is object:
        return True
    if isinstance(annotation, str):
        return annotation.startswith("Optional[") or annotation.endswith("| None")

    origin = typing.get_origin(annotation)
    if origin is Union or origin is UnionType:
        return type(None) in typing.get_args(annotation)

    candidate = origin or annotation
    return isinstance(candidate, type) and issubclass(candidate, collections.abc.Mapping)


def _parse_length(raw: str, field_name: str) -> int:
    if not raw:
        return 0
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"length for field '{field_name}' is not an integer: {raw!r}")


def prepare_schema_fields(model: Any) -> List[SchemaField]:
    """Build the list of schema fields of a model, keeping declaration order"""
    fields: List[SchemaField] = []

    for mf in describe_model(model):
        tags: Dict[str, str] = dict(mf.tags)
        db_tag = tags.get('db', "")
        if not db_tag or db_tag == "-":
            continue

        db_names = db_tag.split(",")
        migratable = not (len(db_names) == 2 and db_names[1].strip() == NOMIGRATE)
        db_name = db_names[0].strip()

        db_type = tags.get('type', "")
        if not db_type:
            raise MissingColumnTypeError(
                f"type for field '{db_name}' ({mf.name}) is missing",
                {'field': mf.name}
            )

        keys = [k.strip() for k in tags.get('key', "").split(",")]
        field = SchemaField(
            name=mf.name,
            db_name=db_name,
            db_type=db_type,
            nullable=is_nullable_annotation(mf.annotation),
            is_primary_key=PRIMARY_KEY in keys,
            length=_parse_length(tags.get('len', ""), mf.name),
            default=tags.get('def', ""),
            comment=tags.get('comment', ""),
            migratable=migratable,
        )

        if field.is_primary_key and field.nullable:
            raise InvalidPrimaryKeyError(
                f"primary key '{db_name}' ({mf.name}) is nullable",
                {'field': mf.name}
            )

        fields.append(field)

    return fields
