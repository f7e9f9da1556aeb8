"""
Player catalog: read-only seed records loaded from a JSON document keyed by team.

    {"teams": {"<team_key>": {"name": ..., "logo": ..., "players": [{...}, ...]}}}

Raw records are normalised at the boundary with pydantic: position strings become
Position, market values such as "€1.5m" become integers, non-numeric attributes
are dropped. Records without a usable position are skipped.
"""
from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Iterable

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from fantasy_league.models import Position

logger = logging.getLogger(__name__)

_POSITION_ALIASES = {
    "Striker": Position.CENTRE_FORWARD,
    "Forward": Position.CENTRE_FORWARD,
    "Centre Forward": Position.CENTRE_FORWARD,
    "Centre Back": Position.CENTRE_BACK,
    "Left Back": Position.LEFT_BACK,
    "Right Back": Position.RIGHT_BACK,
}


def parse_position(raw: str | None) -> Position | None:
    """Map a catalog position string to Position; None when unknown."""
    if not raw:
        return None
    text = raw.strip()
    try:
        return Position(text)
    except ValueError:
        return _POSITION_ALIASES.get(text)


def parse_market_value(raw: str | int | float | None) -> int:
    """
    Parse a display market value into whole currency units.
    "€1.5m" -> 1500000, "€800k" -> 800000, "-" or None -> 0.
    """
    if raw is None:
        return 0
    if isinstance(raw, (int, float)):
        return max(0, int(raw))
    text = raw.strip().lower().replace("€", "").replace(",", "").replace(" ", "")
    if not text:
        return 0
    multiplier = 1
    if text.endswith("m"):
        multiplier = 1_000_000
        text = text[:-1]
    elif text.endswith("k"):
        multiplier = 1_000
        text = text[:-1]
    if not re.fullmatch(r"\d+(\.\d+)?", text):
        return 0
    return int(round(float(text) * multiplier))


def format_currency(amount: int) -> str:
    """Short display form: 1500000 -> "€1.5M", 800000 -> "€800K"."""
    if amount >= 1_000_000:
        return f"€{amount / 1_000_000:.1f}M"
    if amount >= 1_000:
        return f"€{amount / 1_000:.0f}K"
    return f"€{amount}"


class CatalogPlayer(BaseModel):
    """One seed record. catalog_id is unique across the whole catalog."""

    catalog_id: str
    name: str
    position: Position
    team_key: str = ""
    nationality: str | None = None
    market_value: int = 0
    image_url: str | None = None
    attributes: dict[str, float] = Field(default_factory=dict)

    @field_validator("catalog_id", mode="before")
    @classmethod
    def _coerce_id(cls, v: Any) -> str:
        return str(v)

    @field_validator("position", mode="before")
    @classmethod
    def _coerce_position(cls, v: Any) -> Position:
        if isinstance(v, Position):
            return v
        position = parse_position(v)
        if position is None:
            raise ValueError(f"unknown position: {v!r}")
        return position

    @field_validator("nationality", mode="before")
    @classmethod
    def _coerce_nationality(cls, v: Any) -> str | None:
        if isinstance(v, list):
            return v[0] if v else None
        return v

    @field_validator("market_value", mode="before")
    @classmethod
    def _coerce_market_value(cls, v: Any) -> int:
        return parse_market_value(v)

    @field_validator("attributes", mode="before")
    @classmethod
    def _numeric_attributes(cls, v: Any) -> dict[str, float]:
        if not v:
            return {}
        return {
            k: float(val)
            for k, val in dict(v).items()
            if isinstance(val, (int, float)) and not isinstance(val, bool)
        }


class PlayerCatalog:
    """In-memory catalog. Lookup by catalog id; iteration keeps document order."""

    def __init__(self, players: Iterable[CatalogPlayer]) -> None:
        self._players: dict[str, CatalogPlayer] = {}
        for p in players:
            if p.catalog_id in self._players:
                logger.warning("Duplicate catalog id %s (%s) ignored", p.catalog_id, p.name)
                continue
            self._players[p.catalog_id] = p

    def __len__(self) -> int:
        return len(self._players)

    def __iter__(self):
        return iter(self._players.values())

    def get(self, catalog_id: str) -> CatalogPlayer | None:
        return self._players.get(str(catalog_id))

    def all(self) -> list[CatalogPlayer]:
        return list(self._players.values())

    def excluding(self, catalog_ids: set[str]) -> list[CatalogPlayer]:
        """Catalog players whose id is not in catalog_ids (e.g. already owned in a server)."""
        return [p for p in self._players.values() if p.catalog_id not in catalog_ids]

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> PlayerCatalog:
        players: list[CatalogPlayer] = []
        skipped = 0
        for team_key, team in (doc.get("teams") or {}).items():
            for raw in team.get("players") or []:
                try:
                    players.append(CatalogPlayer(
                        catalog_id=raw.get("id"),
                        name=raw.get("name") or "",
                        position=raw.get("position"),
                        team_key=team_key,
                        nationality=raw.get("nationality"),
                        market_value=raw.get("market_value"),
                        image_url=raw.get("image_url"),
                        attributes=raw.get("attributes") or {},
                    ))
                except PydanticValidationError as e:
                    skipped += 1
                    logger.warning("Skipping catalog record %r in %s: %s", raw.get("name"), team_key, e.errors()[0]["msg"])
        if skipped:
            logger.info("Catalog loaded with %d records skipped", skipped)
        return cls(players)

    @classmethod
    def from_path(cls, path: str | Path) -> PlayerCatalog:
        """Load from a JSON file (same layout as from_document)."""
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        return cls.from_document(data)
