"""Runtime settings collected from environment variables."""

from __future__ import annotations

import os

from pydantic import BaseModel, Field


class Settings(BaseModel):
    """Tunable knobs for the resolution pipeline.

    Defaults mirror the behaviour agents already rely on; every field can be
    overridden through the environment (see ``.env.example``).
    """

    db_path: str = "data/inmo.db"

    # AI extraction (Ollama); None routes every request to the rule parser
    ollama_base_url: str | None = None
    ollama_model: str = "llama3"
    llm_timeout: float = 60.0

    # Scraping
    scraper_timeout: float = Field(default=8.0, gt=0)
    scraper_max_items: int = Field(default=6, ge=1)

    # Inventory
    inventory_max_results: int = Field(default=5, ge=1)
    price_tolerance: float = Field(default=1.10, ge=1.0)
    published_states: tuple[str, ...] = ("APPROVED", "PUBLISHED")

    # Extraction
    min_input_length: int = 10
    fallback_confidence: int = Field(default=75, ge=0, le=100)
    gazetteer_path: str | None = None

    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from the process environment."""
        data: dict = {}
        mapping = {
            "DB_PATH": "db_path",
            "OLLAMA_BASE_URL": "ollama_base_url",
            "OLLAMA_MODEL": "ollama_model",
            "LLM_TIMEOUT": "llm_timeout",
            "SCRAPER_TIMEOUT": "scraper_timeout",
            "SCRAPER_MAX_ITEMS": "scraper_max_items",
            "INVENTORY_MAX_RESULTS": "inventory_max_results",
            "PRICE_TOLERANCE": "price_tolerance",
            "MIN_INPUT_LENGTH": "min_input_length",
            "FALLBACK_CONFIDENCE": "fallback_confidence",
            "GAZETTEER_PATH": "gazetteer_path",
            "LOG_LEVEL": "log_level",
        }
        for env_name, field_name in mapping.items():
            value = os.getenv(env_name)
            if value is not None and value.strip():
                data[field_name] = value.strip()

        states = os.getenv("PUBLISHED_STATES")
        if states:
            data["published_states"] = tuple(
                s.strip().upper() for s in states.split(",") if s.strip()
            )

        return cls(**data)
