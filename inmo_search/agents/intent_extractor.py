"""Intent extraction — primary (AI) strategy with an unconditional rule-based fallback."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from inmo_search.agents.rule_parser import RuleParser
from inmo_search.config import Settings
from inmo_search.gazetteer import Gazetteer
from inmo_search.models.criteria import StructuredCriteria

logger = logging.getLogger(__name__)


class IntentExtractionStrategy(ABC):
    """Turns an inquiry into StructuredCriteria."""

    name = "strategy"

    @abstractmethod
    def extract(self, text: str) -> StructuredCriteria:
        ...


class RuleBasedIntentStrategy(IntentExtractionStrategy):
    """Deterministic extraction; never needs the network."""

    name = "rules"

    def __init__(self, gazetteer: Gazetteer, confidence: int = 75) -> None:
        self.parser = RuleParser(gazetteer, confidence)

    def extract(self, text: str) -> StructuredCriteria:
        return self.parser.parse(text)


class IntentExtractor:
    """Tries the primary strategy, falls back on any error.

    There is no quality-based fallback: a primary answer that validates is
    used as is.
    """

    def __init__(
        self,
        fallback: IntentExtractionStrategy,
        primary: IntentExtractionStrategy | None = None,
    ) -> None:
        self.primary = primary
        self.fallback = fallback

    def extract(self, text: str) -> StructuredCriteria:
        if self.primary is None:
            logger.info("AI extraction not configured — using %s strategy", self.fallback.name)
            return self.fallback.extract(text)

        try:
            return self.primary.extract(text)
        except Exception as e:
            logger.warning(
                "%s extraction failed (%s: %s) — falling back to %s",
                self.primary.name, type(e).__name__, e, self.fallback.name,
            )
            return self.fallback.extract(text)


def build_intent_extractor(settings: Settings, gazetteer: Gazetteer) -> IntentExtractor:
    """Wire the extractor from settings; no Ollama URL means rules only."""
    fallback = RuleBasedIntentStrategy(gazetteer, settings.fallback_confidence)
    primary = None
    if settings.ollama_base_url:
        from inmo_search.agents.llm_extractor import LLMIntentStrategy

        primary = LLMIntentStrategy(
            settings.ollama_base_url,
            model=settings.ollama_model,
            timeout=settings.llm_timeout,
        )
    return IntentExtractor(fallback=fallback, primary=primary)
