"""
Configuration for the memory engine.

Settings are resolved once at process start, in order of increasing
precedence:

1. defaults declared on the models below
2. an optional JSON config file
3. ``NEUROSTORE_<SECTION>__<KEY>`` environment variables (``.env`` is loaded
   with python-dotenv), e.g. ``NEUROSTORE_STORE__BACKEND=arango``
4. explicit overrides passed by the caller

Nested sections are deep merged with deepmerge.

Documentation references:
- Pydantic: https://docs.pydantic.dev/latest/
- python-dotenv: https://saurabh-kumar.com/python-dotenv/
- deepmerge: https://deepmerge.readthedocs.io/
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Literal, Optional, Union

import pydantic
from deepmerge import always_merger
from dotenv import load_dotenv
from loguru import logger
from pydantic import BaseModel, Field

from neurostore.utils.exceptions import ConfigurationError

ENV_PREFIX = "NEUROSTORE_"


class StoreSettings(BaseModel):
    backend: Literal["memory", "arango"] = "memory"
    hosts: str = "http://localhost:8529"
    db_name: str = "neurostore"
    username: str = "root"
    password: str = "openSesame"
    engrams_collection: str = "engrams"
    synapses_collection: str = "synapses"


class EmbedderSettings(BaseModel):
    provider: Literal["native", "litellm", "sentence-transformers"] = "native"
    model: str = "text-embedding-3-small"
    dimensions: Optional[int] = Field(256, ge=1)
    api_key: Optional[str] = None
    max_retries: int = Field(3, ge=1)


class CompletionSettings(BaseModel):
    provider: Literal["native", "litellm"] = "native"
    model: str = "gpt-4o-mini"
    temperature: float = Field(0.0, ge=0.0, le=2.0)
    api_key: Optional[str] = None
    timeout: float = Field(30.0, gt=0)
    max_retries: int = Field(3, ge=1)


class RetrievalSettings(BaseModel):
    vector_weight: float = 0.40
    keyword_weight: float = 0.20
    recency_weight: float = 0.10
    signal_weight: float = 0.15
    synapse_weight: float = 0.15
    recency_half_life_days: float = Field(7.0, gt=0)
    recency_max_days: float = Field(90.0, gt=0)
    synapse_depth: int = Field(2, ge=0)
    synapse_decay: float = Field(0.8, ge=0.0, le=1.0)
    candidate_multiplier: int = Field(3, ge=1)
    seed_count: int = Field(5, ge=0)
    default_limit: int = Field(10, ge=1)


class DeduplicationSettings(BaseModel):
    threshold: float = Field(0.92, ge=0.0, le=1.0)
    candidate_count: int = Field(5, ge=1)


class AssociationSettings(BaseModel):
    co_occurrence_weight: float = Field(0.5, gt=0.0, le=1.0)
    # "max" keeps the stronger of old/new; "reinforce" combines them as 1-(1-a)(1-b)
    combine_mode: Literal["max", "reinforce"] = "max"


class DecaySettings(BaseModel):
    half_life_days: float = Field(30.0, gt=0)
    min_delta: float = Field(1e-4, ge=0.0)
    duplicate_boost: float = Field(0.1, ge=0.0)
    reinforce_boost: float = Field(0.1, ge=0.0)
    page_size: int = Field(500, ge=1)


class LoggingSettings(BaseModel):
    level: str = "INFO"
    log_file: Optional[str] = None
    file_level: str = "DEBUG"
    rotation: str = "10 MB"
    retention: str = "1 week"


class NeuroStoreConfig(BaseModel):
    store: StoreSettings = Field(default_factory=StoreSettings)
    embedder: EmbedderSettings = Field(default_factory=EmbedderSettings)
    completion: CompletionSettings = Field(default_factory=CompletionSettings)
    retrieval: RetrievalSettings = Field(default_factory=RetrievalSettings)
    deduplication: DeduplicationSettings = Field(default_factory=DeduplicationSettings)
    association: AssociationSettings = Field(default_factory=AssociationSettings)
    decay: DecaySettings = Field(default_factory=DecaySettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def load_config_file(file_path: Union[str, Path]) -> Dict[str, Any]:
    """Load configuration from a JSON file."""
    try:
        with open(file_path, "r") as file:
            return json.load(file)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Failed to load configuration from {file_path}: {e}")
        raise ConfigurationError(f"Cannot read config file {file_path}: {e}") from e


def env_overrides(environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """Collect ``NEUROSTORE_SECTION__KEY`` variables into a nested dict."""
    environ = os.environ if environ is None else environ
    overrides: Dict[str, Any] = {}
    for name, value in environ.items():
        if not name.startswith(ENV_PREFIX):
            continue
        path = name[len(ENV_PREFIX):].lower().split("__")
        if len(path) != 2 or not all(path):
            continue
        section, key = path
        overrides.setdefault(section, {})[key] = value
    return overrides


def load_config(
    path: Optional[Union[str, Path]] = None,
    overrides: Optional[Dict[str, Any]] = None,
    use_env: bool = True
) -> NeuroStoreConfig:
    """
    Resolve the effective configuration.

    Args:
        path: Optional JSON config file
        overrides: Nested dict applied last
        use_env: Whether to read ``.env`` and ``NEUROSTORE_*`` variables

    Returns:
        Validated configuration

    Raises:
        ConfigurationError: If a source is unreadable or a value is invalid
    """
    merged: Dict[str, Any] = NeuroStoreConfig().model_dump()

    if path is not None:
        merged = always_merger.merge(merged, load_config_file(path))

    if use_env:
        load_dotenv()
        merged = always_merger.merge(merged, env_overrides())

    if overrides:
        merged = always_merger.merge(merged, overrides)

    try:
        return NeuroStoreConfig(**merged)
    except pydantic.ValidationError as e:
        raise ConfigurationError("Invalid configuration", details=e.errors()) from e
