"""
Text helpers for keyword scoring and the offline embedder.
"""

from typing import List

import regex as re

_TOKEN_PATTERN = re.compile(r"[\p{L}\p{N}]+")


def normalize_text(text: str) -> str:
    """Collapse whitespace and strip HTML tags."""
    regex_patterns = [
        (r'<[^>]+>', ' '),   # Remove HTML tags
        (r'\s+', ' ')        # Normalize whitespace
    ]
    normalized_text = text
    for pattern, replacement in regex_patterns:
        normalized_text = re.sub(pattern, replacement, normalized_text)
    return normalized_text.strip()


def tokenize(text: str) -> List[str]:
    """Lowercased runs of Unicode letters and digits."""
    return _TOKEN_PATTERN.findall(normalize_text(text).lower())
