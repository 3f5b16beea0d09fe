"""
Canonical team name resolution across data sources.

Box scores, schedules, injury feeds and defensive tables all spell WNBA
teams differently:

  Box score:    "LVA"
  Schedule:     "Las Vegas Aces (12-11) Table"
  Injury feed:  "LV"
  Odds feed:    "Las Vegas"

This module provides a single `TeamNameResolver` that:
1. Maintains a curated alias table for every franchise
2. Strips source decorations (records, "Table", trailing asterisks)
3. Resolves through exact → alias → containment → fuzzy passes
4. Offers `lookup()`, the one normalize-then-lookup-with-fallback helper
   used wherever a dict is keyed by team
"""

from __future__ import annotations

import difflib
import html
import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Set, TypeVar

logger = logging.getLogger(__name__)

V = TypeVar("V")

# canonical_id -> known aliases. The first entry is the display name,
# the second the standard abbreviation.
_ALIAS_TABLE: Dict[str, List[str]] = {
    "atlanta_dream": ["Atlanta Dream", "ATL", "Atlanta", "Dream"],
    "chicago_sky": ["Chicago Sky", "CHI", "Chicago", "Sky"],
    "connecticut_sun": ["Connecticut Sun", "CON", "CONN", "Connecticut", "Sun"],
    "dallas_wings": ["Dallas Wings", "DAL", "Dallas", "Wings"],
    "golden_state_valkyries": ["Golden State Valkyries", "GSV", "GS", "GV", "Golden State", "Valkyries"],
    "indiana_fever": ["Indiana Fever", "IND", "Indiana", "Fever"],
    "las_vegas_aces": ["Las Vegas Aces", "LVA", "LV", "Las Vegas", "Aces"],
    "los_angeles_sparks": ["Los Angeles Sparks", "LAS", "LA", "Los Angeles", "Sparks"],
    "minnesota_lynx": ["Minnesota Lynx", "MIN", "Minnesota", "Lynx"],
    "new_york_liberty": ["New York Liberty", "NYL", "NY", "New York", "Liberty"],
    "phoenix_mercury": ["Phoenix Mercury", "PHX", "PHO", "Phoenix", "Mercury"],
    "seattle_storm": ["Seattle Storm", "SEA", "Seattle", "Storm"],
    "washington_mystics": ["Washington Mystics", "WAS", "WSH", "Washington", "Mystics"],
}

# "(12-11)", "Table", trailing "*" and similar decorations from scraped tables
_DECORATION_RE = re.compile(r"\(\s*\d+\s*-\s*\d+\s*\)|\btable\b|\*+", re.IGNORECASE)


def clean_team_name(s: str) -> str:
    """Strip record suffixes, table labels and footnote markers."""
    s = html.unescape(s or "")
    s = _DECORATION_RE.sub(" ", s)
    return re.sub(r"\s+", " ", s).strip()


def _normalize_str(s: str) -> str:
    """Normalize a string for matching: lowercase, decode HTML, collapse whitespace."""
    s = clean_team_name(s).lower()
    s = s.replace("&", " and ")
    s = re.sub(r"[^a-z0-9 ]", " ", s)
    s = re.sub(r"\s+", " ", s).strip()
    return s


def _to_canonical_id(s: str) -> str:
    """Convert any string to a canonical team ID format."""
    s = clean_team_name(s).lower()
    s = re.sub(r"[^a-z0-9]", "_", s)
    s = re.sub(r"_+", "_", s)
    return s.strip("_")


@dataclass
class MatchResult:
    """Result of a team name resolution attempt."""

    canonical_id: str
    display_name: str
    abbreviation: str
    confidence: float  # 0.0 to 1.0
    method: str  # "exact_id", "alias", "containment", "fuzzy", "unresolved", "empty"

    @property
    def resolved(self) -> bool:
        return self.method not in ("unresolved", "empty")


class TeamNameResolver:
    """
    Resolves arbitrary team name strings to canonical internal IDs.

    Resolution order:
    1. Exact canonical ID match
    2. Alias table lookup (names, cities, nicknames, abbreviations)
    3. Normalized string containment
    4. SequenceMatcher fuzzy match (threshold=0.80)

    Thread-safe for reads after construction.
    """

    def __init__(self, extra_aliases: Optional[Dict[str, List[str]]] = None):
        self._id_to_display: Dict[str, str] = {}
        self._id_to_abbr: Dict[str, str] = {}
        self._normalized_to_id: Dict[str, str] = {}
        self._all_ids: Set[str] = set()

        combined = dict(_ALIAS_TABLE)
        if extra_aliases:
            for cid, aliases in extra_aliases.items():
                combined[cid] = combined.get(cid, []) + list(aliases)

        for canonical_id, aliases in combined.items():
            self._all_ids.add(canonical_id)
            self._id_to_display[canonical_id] = aliases[0] if aliases else canonical_id
            self._id_to_abbr[canonical_id] = aliases[1] if len(aliases) > 1 else canonical_id.upper()
            self._normalized_to_id[_normalize_str(canonical_id.replace("_", " "))] = canonical_id
            for alias in aliases:
                self._normalized_to_id[_normalize_str(alias)] = canonical_id

    def _result(self, cid: str, confidence: float, method: str) -> MatchResult:
        return MatchResult(cid, self._id_to_display[cid], self._id_to_abbr[cid], confidence, method)

    def resolve(self, name: str) -> MatchResult:
        """
        Resolve a team name to its canonical ID.

        Args:
            name: Any team name string from any source

        Returns:
            MatchResult with canonical_id, display_name, abbreviation, confidence, method
        """
        if not name or not clean_team_name(name):
            return MatchResult("", "", "", 0.0, "empty")

        raw = clean_team_name(name)

        # Pass 1: Exact canonical ID
        cid = _to_canonical_id(raw)
        if cid in self._all_ids:
            return self._result(cid, 1.0, "exact_id")

        # Pass 2: Alias lookup
        norm = _normalize_str(raw)
        if norm in self._normalized_to_id:
            return self._result(self._normalized_to_id[norm], 0.99, "alias")

        # Pass 3: Containment, longest known name wins. Short aliases are
        # abbreviations and only match exactly.
        candidates = [
            (known_id, len(known_norm))
            for known_norm, known_id in self._normalized_to_id.items()
            if len(known_norm) >= 4 and (known_norm in norm or norm in known_norm)
        ]
        if candidates:
            ids = {c[0] for c in candidates}
            candidates.sort(key=lambda x: -x[1])
            return self._result(candidates[0][0], 0.90 if len(ids) == 1 else 0.85, "containment")

        # Pass 4: Fuzzy string matching
        best_score = 0.0
        best_id = ""
        for known_norm, known_id in self._normalized_to_id.items():
            score = difflib.SequenceMatcher(None, norm, known_norm).ratio()
            if score > best_score:
                best_score = score
                best_id = known_id
        if best_score >= 0.80 and best_id:
            return self._result(best_id, best_score, "fuzzy")

        logger.debug("Could not resolve team name %r", name)
        return MatchResult(cid, raw, raw.upper(), best_score, "unresolved")

    def canonical_id(self, name: str) -> str:
        """Canonical ID for a name, or its normalized form when unresolved."""
        return self.resolve(name).canonical_id

    def same_team(self, a: str, b: str) -> bool:
        """True if both strings refer to the same team."""
        ra, rb = self.resolve(a), self.resolve(b)
        return bool(ra.canonical_id) and ra.canonical_id == rb.canonical_id

    def lookup(self, mapping: Mapping[str, V], name: str, default: Optional[V] = None) -> Optional[V]:
        """
        Find the entry for ``name`` in a team-keyed mapping.

        Tries the raw key first, then every key that resolves to the same
        team, then falls back to ``default``.
        """
        if name in mapping:
            return mapping[name]
        target = self.canonical_id(name)
        if not target:
            return default
        for key, value in mapping.items():
            if self.canonical_id(key) == target:
                return value
        return default

    def get_display_name(self, canonical_id: str) -> str:
        """Get display name for a canonical ID."""
        return self._id_to_display.get(canonical_id, canonical_id)

    def get_abbreviation(self, name: str) -> str:
        """Standard abbreviation for any team name string."""
        return self.resolve(name).abbreviation

    def add_alias(self, canonical_id: str, alias: str) -> None:
        """Add a runtime alias mapping."""
        self._normalized_to_id[_normalize_str(alias)] = canonical_id
        if canonical_id not in self._all_ids:
            self._all_ids.add(canonical_id)
            self._id_to_display[canonical_id] = alias
            self._id_to_abbr[canonical_id] = alias.upper()

    @property
    def known_teams(self) -> Set[str]:
        """All known canonical team IDs."""
        return set(self._all_ids)


_default_resolver: Optional[TeamNameResolver] = None


def default_resolver() -> TeamNameResolver:
    """Shared resolver built from the static alias table."""
    global _default_resolver
    if _default_resolver is None:
        _default_resolver = TeamNameResolver()
    return _default_resolver
