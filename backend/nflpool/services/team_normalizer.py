"""
backend/nflpool/services/team_normalizer.py

Purpose:
    Map NFL team name variants (full name, city, nickname, abbreviation,
    city-prefixed abbreviation, legacy franchise names) onto one canonical
    token: the current full franchise name as ESPN displays it.

    Unknown inputs are returned unchanged. Normalization failures degrade
    matching quality instead of raising, and canonical names map to
    themselves, so normalize_team_name is idempotent.

Dependencies:
    - re
    - unicodedata
"""

from __future__ import annotations

import logging
import re
import unicodedata

logger = logging.getLogger("nflpool.team_normalizer")

_PUNCT_RE = re.compile(r"[^a-z0-9\s]")
_SPACE_RE = re.compile(r"\s+")

# abbreviation -> (full name, city, nickname, extra aliases)
NFL_TEAMS: dict[str, tuple[str, str, str, tuple[str, ...]]] = {
    "ARI": ("Arizona Cardinals", "Arizona", "Cardinals", ("ARZ", "Phoenix Cardinals", "St. Louis Cardinals")),
    "ATL": ("Atlanta Falcons", "Atlanta", "Falcons", ()),
    "BAL": ("Baltimore Ravens", "Baltimore", "Ravens", ()),
    "BUF": ("Buffalo Bills", "Buffalo", "Bills", ()),
    "CAR": ("Carolina Panthers", "Carolina", "Panthers", ()),
    "CHI": ("Chicago Bears", "Chicago", "Bears", ()),
    "CIN": ("Cincinnati Bengals", "Cincinnati", "Bengals", ()),
    "CLE": ("Cleveland Browns", "Cleveland", "Browns", ()),
    "DAL": ("Dallas Cowboys", "Dallas", "Cowboys", ()),
    "DEN": ("Denver Broncos", "Denver", "Broncos", ()),
    "DET": ("Detroit Lions", "Detroit", "Lions", ()),
    "GB": ("Green Bay Packers", "Green Bay", "Packers", ("GNB", "GB Packers")),
    "HOU": ("Houston Texans", "Houston", "Texans", ()),
    "IND": ("Indianapolis Colts", "Indianapolis", "Colts", ()),
    "JAX": ("Jacksonville Jaguars", "Jacksonville", "Jaguars", ("JAC", "Jags")),
    "KC": ("Kansas City Chiefs", "Kansas City", "Chiefs", ("KAN", "KC Chiefs")),
    "LV": ("Las Vegas Raiders", "Las Vegas", "Raiders", ("LVR", "OAK", "Oakland Raiders", "LV Raiders")),
    "LAC": ("Los Angeles Chargers", "", "Chargers", ("LA Chargers", "SD", "San Diego Chargers")),
    "LAR": ("Los Angeles Rams", "", "Rams", ("LA", "LA Rams", "STL", "St. Louis Rams")),
    "MIA": ("Miami Dolphins", "Miami", "Dolphins", ()),
    "MIN": ("Minnesota Vikings", "Minnesota", "Vikings", ()),
    "NE": ("New England Patriots", "New England", "Patriots", ("NWE", "Pats")),
    "NO": ("New Orleans Saints", "New Orleans", "Saints", ("NOR", "NO Saints")),
    "NYG": ("New York Giants", "", "Giants", ("NY Giants",)),
    "NYJ": ("New York Jets", "", "Jets", ("NY Jets",)),
    "PHI": ("Philadelphia Eagles", "Philadelphia", "Eagles", ()),
    "PIT": ("Pittsburgh Steelers", "Pittsburgh", "Steelers", ()),
    "SEA": ("Seattle Seahawks", "Seattle", "Seahawks", ()),
    "SF": ("San Francisco 49ers", "San Francisco", "49ers", ("SFO", "SF 49ers", "Niners")),
    "TB": ("Tampa Bay Buccaneers", "Tampa Bay", "Buccaneers", ("TAM", "TB Buccaneers", "Bucs")),
    "TEN": ("Tennessee Titans", "Tennessee", "Titans", ()),
    "WSH": (
        "Washington Commanders", "Washington", "Commanders",
        ("WAS", "Washington Football Team", "Washington Redskins", "Redskins"),
    ),
}


def alias_key(raw: str) -> str:
    """
    Normalize alias text into an ASCII-safe lookup key.

    Steps:
        1. lowercase + trim
        2. NFKD accent removal
        3. punctuation cleanup
        4. whitespace collapse
    """
    text = str(raw or "").strip().lower()
    if not text:
        return ""
    text = unicodedata.normalize("NFKD", text)
    text = text.encode("ascii", "ignore").decode("ascii")
    text = _PUNCT_RE.sub(" ", text)
    return _SPACE_RE.sub(" ", text).strip()


def _build_alias_index() -> tuple[dict[str, str], dict[str, str]]:
    aliases: dict[str, str] = {}
    abbreviations: dict[str, str] = {}
    for abbr, (full_name, city, nickname, extra) in NFL_TEAMS.items():
        abbreviations[full_name] = abbr
        # City-only aliases for shared markets (Los Angeles, New York) are
        # left empty above so they never resolve to a single team.
        for alias in (abbr, full_name, city, nickname, *extra):
            key = alias_key(alias)
            if not key:
                continue
            existing = aliases.get(key)
            if existing and existing != full_name:
                raise ValueError(f"Ambiguous team alias {alias!r}: {existing} / {full_name}")
            aliases[key] = full_name
    return aliases, abbreviations


_ALIASES, _ABBREVIATIONS = _build_alias_index()


def normalize_team_name(raw: str | None) -> str:
    """Return the canonical team name for any known variant.

    Unknown inputs come back unchanged; None/blank yields "".
    """
    if raw is None:
        return ""
    canonical = _ALIASES.get(alias_key(raw))
    if canonical is None:
        if str(raw).strip():
            logger.debug("No team mapping for %r", raw)
        return raw
    return canonical


def is_known_team(raw: str | None) -> bool:
    return alias_key(raw or "") in _ALIASES


def team_abbreviation(raw: str | None) -> str | None:
    """Canonical abbreviation (e.g. "KC") for a team variant, or None."""
    canonical = _ALIASES.get(alias_key(raw or ""))
    return _ABBREVIATIONS.get(canonical) if canonical else None


def teams_match(name_a: str | None, name_b: str | None) -> bool:
    """Return True when both names normalize to the same team."""
    a = normalize_team_name(name_a)
    b = normalize_team_name(name_b)
    if not a or not b:
        return False
    return alias_key(a) == alias_key(b)


def all_team_names() -> list[str]:
    return sorted(full_name for full_name, _, _, _ in NFL_TEAMS.values())
