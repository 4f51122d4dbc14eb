#!/usr/bin/env python3
"""
Fact Extraction for the memory engine

Splits free text into atomic facts, classifies the memory into a strand and
pulls out entity/attribute/value facts that may change over time. The work
is delegated to a completion provider; whatever goes wrong there, extraction
degrades to the raw input as a single general fact so ingestion always
produces at least one memory.
"""

from typing import Any, List

from loguru import logger

from neurostore.core.models import ExtractionResult, Strand, TemporalFact
from neurostore.providers.base import CompletionProvider

EXTRACTION_SYSTEM_PROMPT = """You are a fact extraction engine. Given a piece of text, extract atomic facts, classify the memory type, and identify any temporal facts (things that change over time).

Rules:
1. Break the input into atomic, self-contained facts
2. Each fact should be a single, clear statement
3. Preserve important context and specifics
4. Remove redundancy
5. Classify the overall memory into one strand: factual, experiential, procedural, preferential, relational, general
6. Identify temporal facts: things with an entity, an attribute, and a current value that may change over time. Examples:
   - "I switched to iPhone" -> entity: speaker, attribute: phone, value: iPhone
   - "John lives in Berlin" -> entity: John, attribute: city, value: Berlin
   - "My favorite color is blue" -> entity: speaker, attribute: favorite_color, value: blue
   Only extract temporal facts when there is a clear entity-attribute-value relationship.

Respond with JSON:
{
  "facts": ["fact1", "fact2", ...],
  "strand": "factual|experiential|procedural|preferential|relational|general",
  "temporalFacts": [
    { "entity": "entity_name", "attribute": "attribute_name", "value": "current_value" }
  ]
}"""


def _clean_facts(raw: Any) -> List[str]:
    if not isinstance(raw, list):
        return []
    return [f for f in raw if isinstance(f, str) and f.strip()]


def _clean_temporal_facts(raw: Any) -> List[TemporalFact]:
    if not isinstance(raw, list):
        return []
    triples = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        entity, attribute, value = item.get("entity"), item.get("attribute"), item.get("value")
        if all(isinstance(part, str) and part.strip() for part in (entity, attribute, value)):
            triples.append(TemporalFact(entity=entity, attribute=attribute, value=value))
    return triples


class FactExtractor:
    """Wraps a completion provider with validation and a raw-content fallback."""

    def __init__(self, completion: CompletionProvider, system_prompt: str = EXTRACTION_SYSTEM_PROMPT):
        self.completion = completion
        self.system_prompt = system_prompt

    @staticmethod
    def fallback(content: str) -> ExtractionResult:
        return ExtractionResult(facts=[content], strand=Strand.GENERAL, temporal_facts=[])

    async def extract(self, content: str) -> ExtractionResult:
        """
        Extract facts from ``content``.

        Never raises: provider failures, malformed replies and timeouts all
        produce ``fallback(content)``.
        """
        try:
            reply = await self.completion.complete_json(self.system_prompt, content)
        except Exception as e:
            logger.warning(f"Fact extraction failed, using raw content: {e!r}")
            return self.fallback(content)

        if not isinstance(reply, dict):
            logger.warning(f"Fact extraction returned {type(reply).__name__}, using raw content")
            return self.fallback(content)

        strand = Strand.get_case_insensitive(reply.get("strand")) or Strand.GENERAL
        facts = _clean_facts(reply.get("facts")) or [content]
        temporal_raw = reply.get("temporalFacts", reply.get("temporal_facts"))
        temporal_facts = _clean_temporal_facts(temporal_raw)

        logger.debug(f"Extracted {len(facts)} facts, strand={strand.value}, temporal={len(temporal_facts)}")
        return ExtractionResult(facts=facts, strand=strand, temporal_facts=temporal_facts)
