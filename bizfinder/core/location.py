"""
Location resolution for grid searches.

Splits a free-text query ("cafes in Springfield") into a search term and a
location phrase, then geocodes the phrase into a center and a bounding box.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from ..providers.base import BoundingBox, Coordinate, PlacesProvider, SearchMeta
from .errors import LocationUnresolvableError, UpstreamError

logger = logging.getLogger(__name__)

# Half-width of the synthesized area when geocoding returns no bounds (~25 km).
DEFAULT_RADIUS_DEG = 0.25

_IN_PATTERN = re.compile(r"^(?P<term>.*?)\s+in\s+(?P<location>[^,]+?(?:\s*,\s*[^,]+?)?)\s*$", re.IGNORECASE)
_COMMA_PATTERN = re.compile(r"^(?P<term>[^,]*?)\s*,\s*(?P<location>[^,]+?)\s*$")
_LEADING_IN = re.compile(r"^in\s+", re.IGNORECASE)
_TRAILING_IN = re.compile(r"\s+in$", re.IGNORECASE)

Matcher = Callable[[str], Optional[Tuple[str, str]]]


def _strip_location(query: str, location: str) -> str:
    """Removes the location phrase (and a dangling "in") from the query."""
    idx = query.lower().rfind(location.lower())
    term = query[:idx] + query[idx + len(location):] if idx >= 0 else query
    term = term.strip(" ,")
    term = _TRAILING_IN.sub("", term)
    term = _LEADING_IN.sub("", term)
    return term.strip(" ,")


def _fallback_term(query: str) -> str:
    first = query.split(",")[0].strip()
    if len(first) >= 2:
        return first
    tokens = query.split()
    return tokens[0] if tokens else ""


def match_in_phrase(query: str) -> Optional[Tuple[str, str]]:
    m = _IN_PATTERN.match(query)
    if not m or not m.group("location").strip():
        return None
    location = m.group("location").strip()
    return _strip_location(query, location), location


def match_comma_phrase(query: str) -> Optional[Tuple[str, str]]:
    m = _COMMA_PATTERN.match(query)
    if not m or not m.group("location").strip():
        return None
    location = m.group("location").strip()
    return _strip_location(query, location), location


def match_trailing_tokens(query: str) -> Optional[Tuple[str, str]]:
    tokens = query.split()
    if not tokens:
        return None
    location = " ".join(tokens[-2:])
    return _strip_location(query, location), location


MATCHERS: List[Matcher] = [match_in_phrase, match_comma_phrase, match_trailing_tokens]


def parse_query(query: str) -> Tuple[str, str]:
    """
    Best-effort (search_term, location_phrase) split. Never raises; a query
    nothing matches becomes its own location.
    """
    query = " ".join((query or "").split())
    for matcher in MATCHERS:
        hit = matcher(query)
        if hit is None:
            continue
        term, location = hit
        if len(term) < 2:
            term = _fallback_term(query)
        return term, location
    return _fallback_term(query), query


@dataclass(frozen=True)
class ResolvedLocation:
    phrase: str
    center: Coordinate
    bounds: BoundingBox
    synthesized_bounds: bool


def phrasing_variants(phrase: str, default_country: Optional[str]) -> List[str]:
    variants = [phrase]
    if default_country and not phrase.lower().rstrip(" ,").endswith(default_country.lower()):
        variants.append(f"{phrase}, {default_country}")
    return variants


class LocationResolver:
    def __init__(
        self,
        provider: PlacesProvider,
        *,
        default_country: Optional[str] = "USA",
        default_radius_deg: float = DEFAULT_RADIUS_DEG,
    ):
        self.provider = provider
        self.default_country = default_country
        self.default_radius_deg = default_radius_deg

    async def resolve(self, phrase: str, meta: SearchMeta) -> ResolvedLocation:
        variants = phrasing_variants(phrase, self.default_country)
        for variant in variants:
            meta.geocode_calls += 1
            try:
                result = await self.provider.geocode(variant)
            except UpstreamError as e:
                logger.warning("Geocoding %r failed: %s", variant, e)
                continue
            if result.status != "OK" or result.location is None:
                logger.warning("Geocoding %r returned %s", variant, result.status)
                continue

            bounds = result.bounds
            synthesized = bounds is None
            if bounds is None:
                bounds = BoundingBox.around(result.location, self.default_radius_deg)
            logger.info("Resolved %r to %s (synthesized bounds: %s)", variant, result.location, synthesized)
            return ResolvedLocation(
                phrase=variant,
                center=result.location,
                bounds=bounds,
                synthesized_bounds=synthesized,
            )

        raise LocationUnresolvableError(phrase, len(variants))
