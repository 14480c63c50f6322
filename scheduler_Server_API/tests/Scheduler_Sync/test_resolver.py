# test_resolver.py
# Unit tests for phantom id resolution.
#
# Imports
import pytest
from hypothesis import given, strategies as st
#
# Local Imports
from scheduler_Server_API.app.core.Sync_Engine.exceptions import UnresolvedReferenceError
from scheduler_Server_API.app.core.Sync_Engine.models import PhantomIdPair
from scheduler_Server_API.app.core.Sync_Engine.resolver import build_phantom_mapping, resolve_references
#
########################################################################################################################
#
# Functions:


def test_build_phantom_mapping():
    pairs = [PhantomIdPair("tmp1", "a1"), PhantomIdPair("tmp2", "a2")]
    assert build_phantom_mapping(pairs) == {"tmp1": "a1", "tmp2": "a2"}


def test_rewrites_mapped_references_only():
    added = [
        {"$PhantomId": "x1", "eventId": "tmp1"},
        {"$PhantomId": "x2", "eventId": "persisted-7"},
        {"$PhantomId": "x3"},
    ]
    resolved = resolve_references(added, {"tmp1": "e-100"}, "eventId")
    assert [r.get("eventId") for r in resolved] == ["e-100", "persisted-7", None]


def test_input_records_are_not_mutated():
    added = [{"$PhantomId": "x1", "eventId": "tmp1"}]
    resolved = resolve_references(added, {"tmp1": "e-100"}, "eventId")
    assert added[0]["eventId"] == "tmp1"
    assert resolved[0] is not added[0]


def test_preserves_order_and_length():
    added = [{"eventId": f"tmp{i}"} for i in range(10)]
    mapping = {f"tmp{i}": f"id{i}" for i in range(0, 10, 2)}
    resolved = resolve_references(added, mapping, "eventId")
    assert [r["eventId"] for r in resolved] == [
        "id0", "tmp1", "id2", "tmp3", "id4", "tmp5", "id6", "tmp7", "id8", "tmp9"
    ]


def test_unhashable_reference_is_left_alone():
    added = [{"eventId": ["not", "an", "id"]}]
    assert resolve_references(added, {"tmp1": "e1"}, "eventId") == added


def test_numeric_phantom_ids_resolve():
    resolved = resolve_references([{"eventId": 5}], {5: "e-5"}, "eventId")
    assert resolved[0]["eventId"] == "e-5"


def test_strict_mode_rejects_known_but_unmapped_phantom():
    added = [{"eventId": "tmp9"}]
    with pytest.raises(UnresolvedReferenceError) as exc_info:
        resolve_references(added, {}, "eventId", known_phantoms={"tmp9"}, collection="assignments")
    assert exc_info.value.field_name == "eventId"
    assert exc_info.value.value == "tmp9"


def test_strict_mode_passes_persistent_ids_through():
    added = [{"eventId": "persisted-7"}]
    assert resolve_references(added, {}, "eventId", known_phantoms={"tmp9"}) == added


reference_values = st.one_of(st.none(), st.integers(0, 20), st.sampled_from(["tmp1", "tmp2", "persisted"]))


@given(
    st.lists(reference_values, max_size=12),
    st.dictionaries(st.one_of(st.integers(0, 20), st.sampled_from(["tmp1", "tmp2"])), st.text(min_size=1, max_size=6)),
)
def test_resolution_rewrites_exactly_the_mapped_values(values, mapping):
    added = [{"$PhantomId": index, "eventId": value} for index, value in enumerate(values)]
    resolved = resolve_references(added, mapping, "eventId")
    assert len(resolved) == len(added)
    for before, after in zip(added, resolved):
        assert after["$PhantomId"] == before["$PhantomId"]
        expected = mapping.get(before["eventId"], before["eventId"]) if before["eventId"] is not None else None
        assert after["eventId"] == expected

#
# End of test_resolver.py
########################################################################################################################
