# test_config.py
# Tests for sync engine configuration loading.
#
# Imports
import pytest
#
# Local Imports
from scheduler_Server_API.app.core.Sync_Engine.config import SyncEngineConfig
#
########################################################################################################################
#
# Functions:


def test_defaults_are_permissive():
    config = SyncEngineConfig()
    assert config.phantom_id_field == "$PhantomId"
    assert config.reject_unknown_fields is False
    assert config.reject_unresolved_references is False
    assert config.schema_cache_ttl == 0
    assert config.validate() == []


def test_from_toml_reads_sync_table(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text(
        "[sync]\n"
        "reject_unknown_fields = true\n"
        "schema_cache_ttl = 120\n"
        "not_a_setting = 1\n"
    )
    config = SyncEngineConfig.from_toml(path)
    assert config.reject_unknown_fields is True
    assert config.schema_cache_ttl == 120
    assert config.reject_unresolved_references is False


def test_malformed_toml_falls_back_to_defaults(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text("[sync\nbroken = ")
    assert SyncEngineConfig.from_toml(path) == SyncEngineConfig()


def test_missing_file_falls_back_to_defaults(tmp_path):
    assert SyncEngineConfig.from_toml(tmp_path / "absent.toml") == SyncEngineConfig()


def test_env_overrides_win_over_file(tmp_path, monkeypatch):
    path = tmp_path / "config.toml"
    path.write_text("[sync]\nschema_cache_ttl = 120\n")
    monkeypatch.setenv("SYNC_SCHEMA_CACHE_TTL", "5")
    monkeypatch.setenv("SYNC_REJECT_UNRESOLVED_REFERENCES", "yes")
    monkeypatch.setenv("SYNC_PHANTOM_ID_FIELD", "$tempId")
    config = SyncEngineConfig.from_toml(path)
    assert config.schema_cache_ttl == 5
    assert config.reject_unresolved_references is True
    assert config.phantom_id_field == "$tempId"


def test_bad_env_override_is_ignored(tmp_path, monkeypatch):
    monkeypatch.setenv("SYNC_MAX_CONCURRENT_OPERATIONS", "lots")
    config = SyncEngineConfig.from_toml(tmp_path / "absent.toml")
    assert config.max_concurrent_operations == 0


@pytest.mark.parametrize("overrides,problem", [
    ({"phantom_id_field": ""}, "phantom_id_field"),
    ({"schema_cache_ttl": -1}, "schema_cache_ttl"),
    ({"schema_cache_size": 0}, "schema_cache_size"),
    ({"max_concurrent_operations": -3}, "max_concurrent_operations"),
])
def test_validate_reports_bad_values(overrides, problem):
    errors = SyncEngineConfig(**overrides).validate()
    assert len(errors) == 1
    assert problem in errors[0]


def test_to_dict():
    assert SyncEngineConfig(schema_cache_ttl=30).to_dict()["schema_cache_ttl"] == 30

#
# End of test_config.py
########################################################################################################################
