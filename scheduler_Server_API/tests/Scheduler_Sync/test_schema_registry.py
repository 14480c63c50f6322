# test_schema_registry.py
# Tests for the table schema cache.
#
# Imports
import pytest
#
# Local Imports
from scheduler_Server_API.app.core.Sync_Engine.exceptions import SchemaLookupError, StoreError
from scheduler_Server_API.app.core.Sync_Engine.schema_registry import SchemaRegistry
#
########################################################################################################################
#
# Functions:


@pytest.mark.asyncio
class TestSchemaRegistry:

    async def test_no_ttl_fetches_every_time(self, memory_store):
        registry = SchemaRegistry(ttl=0)
        await registry.get_schema(memory_store, "events")
        await registry.get_schema(memory_store, "events")
        assert registry.fetch_count == 2

    async def test_positive_ttl_caches(self, memory_store):
        registry = SchemaRegistry(ttl=300)
        first = await registry.get_schema(memory_store, "events")
        second = await registry.get_schema(memory_store, "events")
        assert first == second
        assert registry.fetch_count == 1

    async def test_cached_schema_is_a_copy(self, memory_store):
        registry = SchemaRegistry(ttl=300)
        schema = await registry.get_schema(memory_store, "events")
        schema.add("injected")
        assert "injected" not in await registry.get_schema(memory_store, "events")

    async def test_invalidate_single_table(self, memory_store):
        registry = SchemaRegistry(ttl=300)
        await registry.load(memory_store, ["events", "resources"])
        registry.invalidate("events")
        await registry.load(memory_store, ["events", "resources"])
        assert registry.fetch_count == 3

    async def test_invalidate_all(self, memory_store):
        registry = SchemaRegistry(ttl=300)
        await registry.load(memory_store, ["events", "resources"])
        registry.invalidate()
        await registry.load(memory_store, ["events", "resources"])
        assert registry.fetch_count == 4

    async def test_load_deduplicates(self, memory_store, schemas):
        registry = SchemaRegistry()
        loaded = await registry.load(memory_store, ["events", "events", "calendars"])
        assert loaded == {"events": schemas["events"], "calendars": schemas["calendars"]}
        assert registry.fetch_count == 2

    async def test_store_error_becomes_schema_lookup_error(self, memory_store):
        registry = SchemaRegistry()
        with pytest.raises(SchemaLookupError) as exc_info:
            await registry.get_schema(memory_store, "nope")
        assert isinstance(exc_info.value.original_error, StoreError)
        assert exc_info.value.context["table_id"] == "nope"

#
# End of test_schema_registry.py
########################################################################################################################
