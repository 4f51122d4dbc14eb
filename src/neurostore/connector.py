"""
Connector module wiring configuration to a ready MemorySystem.

Store, providers and orchestrator are built once from a resolved
configuration. Logging is configured here too, so a process that starts
through the connector gets the configured sinks and nothing configures
logging on import.
"""

from pathlib import Path
from typing import Any, Dict, Optional, Union

from loguru import logger

from neurostore.config import NeuroStoreConfig, load_config
from neurostore.core.memory.memory_system import MemorySystem
from neurostore.providers import create_completion, create_embedder
from neurostore.store import create_store
from neurostore.utils.logging import configure_from_settings


def get_memory_system(
    config: Optional[NeuroStoreConfig] = None,
    config_path: Optional[Union[str, Path]] = None,
    overrides: Optional[Dict[str, Any]] = None,
    configure_logging: bool = True
) -> MemorySystem:
    """
    Create a MemorySystem from configuration.

    Args:
        config: Resolved configuration; loaded with ``load_config`` when omitted
        config_path: JSON config file used when ``config`` is omitted
        overrides: Nested overrides used when ``config`` is omitted
        configure_logging: Install loguru sinks from the logging section

    Returns:
        Configured MemorySystem
    """
    if config is None:
        config = load_config(config_path, overrides)

    if configure_logging:
        configure_from_settings(config.logging)

    store = create_store(config.store)
    embedder = create_embedder(config.embedder)
    completion = create_completion(config.completion)
    logger.info(f"Memory system ready: store={config.store.backend}, "
                f"embedder={config.embedder.provider}, completion={config.completion.provider}")
    return MemorySystem(store, embedder, completion, config)
