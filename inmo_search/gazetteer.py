"""Gazetteer — neighbourhood aliases and the regional noise blacklist.

The tables live in ``data/gazetteer.yaml`` and are loaded once per process.
The resulting :class:`Gazetteer` is immutable and is handed explicitly to the
rule parser, the link synthesizer and the scraper noise filter.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

DEFAULT_GAZETTEER_PATH = Path(__file__).parent / "data" / "gazetteer.yaml"


def fold(text: str | None) -> str:
    """Lower-case and strip accents ("Setúbal" -> "setubal")."""
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFD", text)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.lower()


@lru_cache(maxsize=512)
def token_pattern(token: str) -> re.Pattern[str]:
    """Regex matching ``token`` as a whole word or phrase."""
    return re.compile(r"(?<![a-z0-9])" + re.escape(token) + r"(?![a-z0-9])")


@dataclass(frozen=True)
class Alias:
    alias: str
    canonical: str


@dataclass(frozen=True)
class Gazetteer:
    """Alias table plus blacklist, both stored accent-folded."""

    aliases: tuple[Alias, ...]
    blacklist: tuple[str, ...]
    default_location: str = "Santa Fe"

    def find_locations(self, text: str) -> list[str]:
        """Canonical names of every alias present in ``text``.

        Results follow alias-table order without duplicates. An alias whose
        match lies entirely inside a longer matched alias is ignored.
        """
        folded = fold(text)
        spans: list[tuple[int, int]] = []
        hits: list[tuple[int, str]] = []

        by_length = sorted(
            enumerate(self.aliases), key=lambda item: len(item[1].alias), reverse=True
        )
        for index, entry in by_length:
            for match in token_pattern(entry.alias).finditer(folded):
                start, end = match.span()
                if any(s <= start and end <= e for s, e in spans):
                    continue
                spans.append((start, end))
                hits.append((index, entry.canonical))

        found: list[str] = []
        for _, canonical in sorted(hits):
            if canonical not in found:
                found.append(canonical)
        return found

    def blacklisted_token(self, text: str | None, as_url: bool = False) -> str | None:
        """Return the first blacklist token found in ``text``, if any.

        With ``as_url`` each token is also tried in its URL-slug forms
        ("villa-crespo", "villacrespo").
        """
        folded = fold(text)
        if not folded:
            return None
        for token in self.blacklist:
            variants = [token]
            if as_url and " " in token:
                variants += [token.replace(" ", "-"), token.replace(" ", "")]
            for variant in variants:
                if token_pattern(variant).search(folded):
                    return token
        return None


def gazetteer_from_dict(data: dict) -> Gazetteer:
    """Build a :class:`Gazetteer` from the parsed YAML document."""
    aliases = tuple(
        Alias(alias=fold(item["alias"]).strip(), canonical=item["canonical"])
        for item in data.get("aliases", [])
    )
    blacklist = tuple(
        dict.fromkeys(fold(str(token)).strip() for token in data.get("blacklist", []))
    )
    return Gazetteer(
        aliases=aliases,
        blacklist=blacklist,
        default_location=data.get("default_location", "Santa Fe"),
    )


@lru_cache(maxsize=4)
def load_gazetteer(filepath: str | None = None) -> Gazetteer:
    """Load the gazetteer YAML once per path."""
    path = Path(filepath) if filepath else DEFAULT_GAZETTEER_PATH
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    gazetteer = gazetteer_from_dict(data)
    logger.info(
        "Loaded gazetteer from %s: %d aliases, %d blacklist tokens",
        path, len(gazetteer.aliases), len(gazetteer.blacklist),
    )
    return gazetteer
