#!/usr/bin/env python3
"""
Memory engine

Ingests free text as engrams, links facts learned together and ranks
memories for retrieval.

Core features:
- Fact extraction with a raw-content fallback
- Two-tier deduplication (exact hash, then vector similarity)
- Symmetric co-occurrence synapses with bounded graph expansion
- Reinforcement on use and exponential decay over time

Documentation references:
- Pydantic: https://docs.pydantic.dev/latest/
- Loguru: https://loguru.readthedocs.io/
"""

# Fact Extraction
from neurostore.core.memory.fact_extraction import (
    EXTRACTION_SYSTEM_PROMPT,
    FactExtractor
)

# Deduplication
from neurostore.core.memory.deduplication import Deduplicator

# Associative Memory
from neurostore.core.memory.associative_memory import (
    combine_weights,
    form_synapse,
    synapses_from,
    traverse_synapses
)

# Memory Decay Management
from neurostore.core.memory.memory_decay import (
    reinforce_access,
    run_decay,
    get_decay_statistics
)

# Main Memory System
from neurostore.core.memory.memory_system import MemorySystem

__all__ = [
    # Fact Extraction
    'EXTRACTION_SYSTEM_PROMPT', 'FactExtractor',

    # Deduplication
    'Deduplicator',

    # Associative Memory
    'combine_weights', 'form_synapse', 'synapses_from', 'traverse_synapses',

    # Memory Decay
    'reinforce_access', 'run_decay', 'get_decay_statistics',

    # Main Memory System
    'MemorySystem'
]
