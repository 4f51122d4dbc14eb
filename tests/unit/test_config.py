"""Tests for configuration loading and precedence."""

import json
import os

import pytest

from neurostore.config import NeuroStoreConfig, env_overrides, load_config
from neurostore.utils.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in list(os.environ):
        if name.startswith("NEUROSTORE_"):
            monkeypatch.delenv(name)


def test_defaults():
    config = load_config(use_env=False)
    assert config == NeuroStoreConfig()
    assert config.store.backend == "memory"
    assert config.retrieval.vector_weight == 0.40
    assert config.retrieval.synapse_depth == 2
    assert config.deduplication.threshold == 0.92
    assert config.association.co_occurrence_weight == 0.5
    assert config.decay.duplicate_boost == 0.1


def test_env_overrides_parses_section_and_key():
    environ = {
        "NEUROSTORE_STORE__BACKEND": "arango",
        "NEUROSTORE_RETRIEVAL__SYNAPSE_DEPTH": "3",
        "NEUROSTORE_MALFORMED": "ignored",
        "NEUROSTORE_A__B__C": "ignored",
        "OTHER_STORE__BACKEND": "ignored",
    }
    assert env_overrides(environ) == {"store": {"backend": "arango"}, "retrieval": {"synapse_depth": "3"}}


def test_precedence_file_then_env_then_overrides(tmp_path, monkeypatch):
    config_file = tmp_path / "neurostore.json"
    config_file.write_text(json.dumps({
        "store": {"backend": "arango", "db_name": "from_file"},
        "retrieval": {"synapse_depth": 4, "seed_count": 3},
    }))
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("NEUROSTORE_RETRIEVAL__SYNAPSE_DEPTH", "1")
    monkeypatch.setenv("NEUROSTORE_STORE__DB_NAME", "from_env")

    config = load_config(config_file, overrides={"store": {"db_name": "from_override"}})

    assert config.store.backend == "arango"
    assert config.store.db_name == "from_override"
    assert config.retrieval.synapse_depth == 1
    assert config.retrieval.seed_count == 3
    # untouched keys of a merged section keep their defaults
    assert config.retrieval.synapse_decay == 0.8


def test_invalid_value_raises_configuration_error():
    with pytest.raises(ConfigurationError) as excinfo:
        load_config(overrides={"deduplication": {"threshold": 1.5}}, use_env=False)
    assert excinfo.value.details


def test_unknown_backend_rejected():
    with pytest.raises(ConfigurationError):
        load_config(overrides={"store": {"backend": "sqlite"}}, use_env=False)


def test_unreadable_file(tmp_path):
    broken = tmp_path / "broken.json"
    broken.write_text("{not json")
    with pytest.raises(ConfigurationError):
        load_config(broken, use_env=False)
    with pytest.raises(ConfigurationError):
        load_config(tmp_path / "missing.json", use_env=False)
