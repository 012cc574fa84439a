"""LLM-based intent extraction using Ollama."""

from __future__ import annotations

import json
import logging
import re

import httpx

from inmo_search.agents.intent_extractor import IntentExtractionStrategy
from inmo_search.models.criteria import StructuredCriteria
from inmo_search.models.extraction import LLMExtractionOutput

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a real-estate assistant for an agency in Santa Fe Capital, Argentina.
You read messages from clients (often WhatsApp, usually in Spanish) describing the property they want,
and you extract the search criteria.

Common Santa Fe Capital neighbourhoods: Candioti, Centro, Microcentro, Barrio Sur, Barrio Norte,
Guadalupe, 7 Jefes, Bulevar, Constituyentes, Mayoraz, Maria Selva, Sargento Cabral, Las Flores, Roma,
Fomento 9 de Julio, Barranquitas, Los Hornos, Ciudadela, San Martín, Recoleta, Puerto, Costanera,
Villa Setubal.

Ignore neighbourhoods of Buenos Aires or other cities: the client is searching in Santa Fe.

Respond ONLY with valid JSON matching this exact schema:
{
    "client_name": string | null,
    "phone": string | null,
    "property_type": "APARTMENT" | "HOUSE" | "LAND" | "COMMERCIAL" | "OFFICE" | "GARAGE" | "OTHER",
    "operation": "PURCHASE" | "RENT",
    "price_min": number | null,
    "price_max": number | null,
    "currency": "USD" | "ARS",
    "locations": [string, ...],
    "bedrooms_min": integer | null,
    "rooms_min": integer | null,
    "has_parking": true/false,
    "features": [string, ...],
    "notes": string,
    "confidence": <integer 0-100>
}

Rules:
- prices are plain numbers ("150 mil" -> 150000, "120k" -> 120000)
- locations: canonical neighbourhood names only, empty list if none is mentioned
- features: use tags such as "needs-renovation", "yard", "pool", "balcony"
- confidence: how sure you are about the extraction

Respond ONLY with the JSON object. No other text.
"""

USER_PROMPT = """Client message:
\"\"\"
{message}
\"\"\"

Extract the search criteria as JSON."""

FENCE_PATTERN = re.compile(r"```[a-zA-Z]*\s*(.*?)```", re.DOTALL)


class LLMExtractionError(Exception):
    """The LLM answer could not be turned into criteria."""


class LLMIntentStrategy(IntentExtractionStrategy):
    """Asks an Ollama model for the criteria JSON.

    Every failure raises; falling back is the orchestrator's job.
    """

    name = "llm"

    def __init__(
        self,
        base_url: str,
        model: str = "llama3",
        timeout: float = 60.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self.transport = transport

    def extract(self, text: str) -> StructuredCriteria:
        raw = self._call_ollama(USER_PROMPT.format(message=text))
        output = parse_extraction_output(raw)
        criteria = output.to_criteria()
        logger.info(
            "LLM extracted (confidence %d): %s", criteria.confidence, criteria.describe()
        )
        return criteria

    def _call_ollama(self, prompt: str) -> str:
        with httpx.Client(transport=self.transport, timeout=self.timeout) as client:
            response = client.post(
                f"{self.base_url}/api/generate",
                json={
                    "model": self.model,
                    "system": SYSTEM_PROMPT,
                    "prompt": prompt,
                    "stream": False,
                    "format": "json",
                    "options": {
                        "temperature": 0.1,
                        "num_predict": 512,
                    },
                },
            )
            response.raise_for_status()
            data = response.json()
        return data.get("response", "")


def parse_extraction_output(raw: str) -> LLMExtractionOutput:
    """Parse and validate an LLM response. Raises on anything unusable."""
    json_str = extract_json(raw or "")
    if not json_str:
        raise LLMExtractionError("No JSON found in LLM response")
    data = json.loads(json_str)
    if not isinstance(data, dict):
        raise LLMExtractionError("LLM response is not a JSON object")
    return LLMExtractionOutput.model_validate(data)


def strip_code_fences(text: str) -> str:
    """Body of the first markdown code block, or the text itself."""
    match = FENCE_PATTERN.search(text)
    return match.group(1).strip() if match else text.strip()


def extract_json(text: str) -> str | None:
    """First decodable JSON object in a model answer."""
    body = strip_code_fences(text)
    decoder = json.JSONDecoder()
    start = body.find("{")
    while start != -1:
        try:
            _, end = decoder.raw_decode(body, start)
        except json.JSONDecodeError:
            start = body.find("{", start + 1)
            continue
        return body[start:end]
    return None
