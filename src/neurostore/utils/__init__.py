"""
Utility functions for the neurostore package.
"""

from .scoring import (
    clamp,
    min_max_normalize,
    cosine_similarity,
    compute_hash
)

from .logging import (
    logger,
    configure_logger,
    configure_from_settings
)

from .background import BackgroundTasks

__all__ = [
    # Scoring utilities
    'clamp',
    'min_max_normalize',
    'cosine_similarity',
    'compute_hash',

    # Logging utilities
    'logger',
    'configure_logger',
    'configure_from_settings',

    # Background work
    'BackgroundTasks'
]
