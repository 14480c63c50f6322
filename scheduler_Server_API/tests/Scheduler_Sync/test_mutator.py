# test_mutator.py
# Tests for the per-collection row mutator.
#
# Imports
import asyncio
from typing import List, Tuple
#
# Third-Party Imports
import pytest
#
# Local Imports
from scheduler_Server_API.app.core.Sync_Engine.config import SyncEngineConfig
from scheduler_Server_API.app.core.Sync_Engine.exceptions import RowNotFoundError, StoreError, UnknownFieldError
from scheduler_Server_API.app.core.Sync_Engine.models import CollectionDelta
from scheduler_Server_API.app.core.Sync_Engine.mutator import RowMutator
from scheduler_Server_API.app.core.Sync_Engine.row_store import InMemoryRowStore
#
########################################################################################################################
#
# Functions:


class RecordingStore(InMemoryRowStore):
    """In-memory store that logs every write and yields between calls."""

    def __init__(self, schemas):
        super().__init__(schemas)
        self.calls: List[Tuple[str, str]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def _track(self, name: str, key: str):
        self.calls.append((name, key))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        await asyncio.sleep(0)
        self.in_flight -= 1

    async def create_row(self, table_id, row_id, fields):
        await self._track("create", fields.get("name", ""))
        return await super().create_row(table_id, row_id, fields)

    async def update_row(self, table_id, row_id, fields):
        await self._track("update", row_id)
        return await super().update_row(table_id, row_id, fields)

    async def delete_row(self, table_id, row_id):
        await self._track("delete", row_id)
        return await super().delete_row(table_id, row_id)


@pytest.fixture
def store():
    return RecordingStore({"events": ["name", "startDate", "intervals"]})


def _mutator(store, **config):
    return RowMutator(store, "events", {"name", "startDate", "intervals"}, SyncEngineConfig(**config), "events")


@pytest.mark.asyncio
class TestRowMutator:

    async def test_create_returns_pairs_in_input_order(self, store):
        mutator = _mutator(store)
        records = [{"$PhantomId": f"tmp{i}", "name": f"e{i}"} for i in range(5)]
        pairs = await mutator.create_many(records)
        assert [p.phantom_id for p in pairs] == [f"tmp{i}" for i in range(5)]
        for pair, record in zip(pairs, records):
            row = await store.get_row("events", pair.id)
            assert row["name"] == record["name"]

    async def test_create_strips_phantom_and_unknown_fields(self, store):
        mutator = _mutator(store)
        [pair] = await mutator.create_many([{"$PhantomId": "tmp1", "name": "a", "color": "red", "intervals": [[1, 2]]}])
        row = await store.get_row("events", pair.id)
        assert "color" not in row and "$PhantomId" not in row
        assert row["intervals"] == "[[1,2]]"

    async def test_client_id_on_added_record_is_ignored(self, store):
        [pair] = await _mutator(store).create_many([{"$PhantomId": "tmp1", "id": "client-chosen", "name": "a"}])
        assert pair.id != "client-chosen"

    async def test_update_is_partial(self, store):
        row = await store.create_row("events", "e1", {"name": "old", "startDate": "2024-01-01"})
        await _mutator(store).update_many([{"id": row["$id"], "name": "new"}])
        stored = await store.get_row("events", "e1")
        assert stored["name"] == "new"
        assert stored["startDate"] == "2024-01-01"

    async def test_delete_missing_row_propagates(self, store):
        with pytest.raises(RowNotFoundError):
            await _mutator(store).delete_many([{"id": "nope"}])

    async def test_apply_runs_creates_then_deletes_then_updates(self, store):
        await store.create_row("events", "keep", {"name": "keep"})
        await store.create_row("events", "drop", {"name": "drop"})
        store.calls.clear()
        delta = CollectionDelta(
            added=[{"$PhantomId": "tmp1", "name": "new"}],
            updated=[{"id": "keep", "name": "kept"}],
            removed=[{"id": "drop"}],
        )
        created = await _mutator(store).apply(delta)
        assert [name for name, _ in store.calls] == ["create", "delete", "update"]
        assert len(created) == 1

    async def test_strict_mode_rejects_before_any_write(self, store):
        mutator = _mutator(store, reject_unknown_fields=True)
        records = [{"$PhantomId": "tmp1", "name": "ok"}, {"$PhantomId": "tmp2", "colour": "red"}]
        with pytest.raises(UnknownFieldError):
            await mutator.create_many(records)
        assert store.calls == []

    async def test_concurrency_limit(self, store):
        records = [{"$PhantomId": f"tmp{i}", "name": f"e{i}"} for i in range(6)]
        await _mutator(store, max_concurrent_operations=2).create_many(records)
        assert store.max_in_flight <= 2

    async def test_unbounded_by_default(self, store):
        records = [{"$PhantomId": f"tmp{i}", "name": f"e{i}"} for i in range(6)]
        await _mutator(store).create_many(records)
        assert store.max_in_flight > 1

    async def test_failure_waits_for_sibling_writes(self):
        class SlowAndFailingStore(InMemoryRowStore):
            async def create_row(self, table_id, row_id, fields):
                if fields["name"] == "bad":
                    raise StoreError("rejected", operation="create_row", table_id=table_id)
                await asyncio.sleep(0.05)
                return await super().create_row(table_id, row_id, fields)

        store = SlowAndFailingStore({"events": ["name"]})
        mutator = _mutator(store)
        with pytest.raises(StoreError, match="rejected"):
            await mutator.create_many([{"$PhantomId": "s", "name": "slow"}, {"$PhantomId": "b", "name": "bad"}])
        rows_at_failure = len(await store.list_rows("events"))
        await asyncio.sleep(0.1)
        assert rows_at_failure == len(await store.list_rows("events")) == 1

    async def test_empty_delta_makes_no_calls(self, store):
        assert await _mutator(store).apply(CollectionDelta()) == []
        assert store.calls == []

#
# End of test_mutator.py
########################################################################################################################
