"""
Phantom identifier resolution.

Once a collection's creations are stored, the phantom ids the client gave those
records map to real row ids. Records added in a dependent collection may still
point at the phantom ids; they are rewritten here before being written.
"""

from typing import Any, Dict, Iterable, List, Optional, Set

from loguru import logger

from .exceptions import UnresolvedReferenceError
from .models import PhantomIdPair, Record


def build_phantom_mapping(pairs: Iterable[PhantomIdPair]) -> Dict[Any, str]:
    """Maps each phantom id to the persistent id the store assigned to it."""
    return {pair.phantom_id: pair.id for pair in pairs}


def resolve_references(
    added: List[Record],
    mapping: Dict[Any, str],
    reference_field: str,
    *,
    known_phantoms: Optional[Set[Any]] = None,
    collection: Optional[str] = None,
) -> List[Record]:
    """
    Rewrites `reference_field` on added records whose value is a resolved phantom id.

    Values that are not keys of `mapping` are assumed to already be persistent ids
    and are left alone. When `known_phantoms` is given, a value that is one of the
    request's phantom ids but has no mapping raises UnresolvedReferenceError instead.

    Returns:
        A new list; rewritten records are shallow copies, the input is not mutated.
    """
    resolved: List[Record] = []
    rewritten = 0
    for record in added:
        value = record.get(reference_field)
        if value is None:
            resolved.append(record)
            continue
        try:
            target = mapping.get(value)
        except TypeError:
            # Unhashable reference values can never be phantom ids
            target = None
        if target is not None:
            record = {**record, reference_field: target}
            rewritten += 1
        elif known_phantoms is not None and _is_known_phantom(value, known_phantoms):
            raise UnresolvedReferenceError(
                f"Reference '{reference_field}' points at a phantom record that was not created",
                field_name=reference_field,
                value=value,
                collection=collection,
            )
        resolved.append(record)

    if rewritten:
        logger.debug(f"Resolved {rewritten} '{reference_field}' reference(s) in {collection or 'added records'}")
    return resolved


def _is_known_phantom(value: Any, known_phantoms: Set[Any]) -> bool:
    try:
        return value in known_phantoms
    except TypeError:
        return False
