# sanitizer.py
# Description: Filters records against a table schema before they are written, and cleans stored rows
#   before they are returned to the client.
#
# Imports
import json
from typing import Any, Iterable, List, Optional, Set
#
# 3rd-party Libraries
from loguru import logger
#
# Local Imports
from .exceptions import UnknownFieldError
from .models import ID_FIELD, STORE_ID_FIELD, Record, StructuredField, is_internal_field
#
########################################################################################################################
#
# Functions:


def serialize_structured(value: Any) -> str:
    """Encodes a structured field value as the JSON text the store keeps."""
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def parse_structured(text: str) -> Any:
    """Decodes stored JSON text. Raises json.JSONDecodeError on malformed input."""
    return json.loads(text)


def is_client_only_field(name: str) -> bool:
    """Phantom ids, store metadata echoed back by the client and the public `id`."""
    return is_internal_field(name) or name == ID_FIELD


def sanitize(
    schema: Set[str],
    record: Record,
    *,
    reject_unknown: bool = False,
    exclude: Iterable[str] = (),
    collection: Optional[str] = None,
) -> Record:
    """
    Reduces a record to the fields the target table knows about.

    Keys outside `schema` (or listed in `exclude`) are dropped. Structured fields
    that are not already text are serialized to JSON; text values are kept as-is so
    that sanitizing twice yields the same record.

    Args:
        schema: Field names of the target table.
        record: The raw record from the client.
        reject_unknown: Raise UnknownFieldError for unknown fields that are not client-only.
        exclude: Field names to drop even if the schema contains them.
        collection: Collection name, only used for error context.

    Returns:
        A new record holding only storable fields.
    """
    excluded = set(exclude)
    cleaned: Record = {}
    for key, value in record.items():
        if key in excluded:
            continue
        if key not in schema:
            if reject_unknown and not is_client_only_field(key):
                raise UnknownFieldError(
                    f"Field '{key}' is not part of the table schema",
                    field_name=key,
                    collection=collection,
                )
            continue
        cleaned[key] = value

    for structured in StructuredField:
        name = structured.value
        if name in cleaned and cleaned[name] is not None and not isinstance(cleaned[name], str):
            cleaned[name] = serialize_structured(cleaned[name])

    return cleaned


def declean(row: Record) -> Record:
    """
    Turns a stored row into the record shape the client expects.

    Store metadata is removed, the persistent id is exposed as `id`, null values are
    dropped and structured text fields are parsed back. Text that fails to parse is
    returned unchanged.
    """
    cleaned = {
        key: value
        for key, value in row.items()
        if value is not None and not is_internal_field(key)
    }
    if row.get(STORE_ID_FIELD) is not None:
        cleaned[ID_FIELD] = row[STORE_ID_FIELD]

    for structured in StructuredField:
        name = structured.value
        if isinstance(cleaned.get(name), str):
            try:
                cleaned[name] = parse_structured(cleaned[name])
            except json.JSONDecodeError:
                logger.warning(f"Row {cleaned.get(ID_FIELD)}: field '{name}' is not valid JSON, returning raw text")

    return cleaned


def unknown_fields(schema: Set[str], record: Record) -> List[str]:
    """Fields a record carries that the table does not know, client-only keys excluded."""
    return sorted(key for key in record if key not in schema and not is_client_only_field(key))

#
# End of sanitizer.py
########################################################################################################################
