"""
Slang term catalog with currency metadata (current / fading / deprecated).

The catalog is a versioned JSON resource loaded once at startup. Entries are
immutable; requests only read them.
"""
import json
import logging
import re
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Iterable, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_TERMS_PATH = Path(__file__).parent.parent / "data" / "slang_terms.json"

STATUSES = ("current", "fading", "deprecated")

# Weights for freshness scoring
RECENCY_WEIGHT = 0.3
SOURCE_WEIGHT = 0.25
TREND_WEIGHT = 0.25
AGE_WEIGHT = 0.2

RECENCY_WINDOW_DAYS = 30
SOURCE_COUNT_CAP = 1000
TREND_HITS_CAP = 500
AGE_CAP_MONTHS = 60


@dataclass(frozen=True)
class SlangTerm:
    term: str
    aliases: frozenset
    status: str
    last_seen: date
    source_count_30d: int
    trend_hits_30d: int
    age_months: int
    region: str = "US"
    notes: str = ""
    replacements: tuple = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, data: dict) -> "SlangTerm":
        status = data["status"]
        if status not in STATUSES:
            raise ValueError(f"Unknown status {status!r} for term {data.get('term')!r}")
        return cls(
            term=data["term"],
            aliases=frozenset(data.get("aliases", [])),
            status=status,
            last_seen=date.fromisoformat(data["last_seen"]),
            source_count_30d=int(data.get("source_count_30d", 0)),
            trend_hits_30d=int(data.get("trend_hits_30d", 0)),
            age_months=int(data.get("age_months", 0)),
            region=data.get("region", "US"),
            notes=data.get("notes", ""),
            replacements=tuple(data.get("replacements", [])),
        )

    def spellings(self) -> List[str]:
        return [self.term, *sorted(self.aliases)]


def freshness_score(term: SlangTerm, today: date = None) -> float:
    """Freshness of a term on a 0-1 scale."""
    today = today or date.today()
    days_since_seen = max(0, (today - term.last_seen).days)
    recency = max(0.0, 1 - days_since_seen / RECENCY_WINDOW_DAYS)

    source = min(1.0, term.source_count_30d / SOURCE_COUNT_CAP)
    trend = min(1.0, term.trend_hits_30d / TREND_HITS_CAP)
    age_penalty = min(1.0, term.age_months / AGE_CAP_MONTHS)

    score = (
        RECENCY_WEIGHT * recency
        + SOURCE_WEIGHT * source
        + TREND_WEIGHT * trend
        - AGE_WEIGHT * age_penalty
    )
    return max(0.0, min(1.0, score))


def _spelling_pattern(spelling: str) -> re.Pattern:
    return re.compile(r"(?<!\w)" + re.escape(spelling.lower()) + r"(?!\w)")


def normalize_apostrophes(text: str) -> str:
    return text.replace("’", "'").replace("‘", "'")


class TermCurrencyRegistry:
    """Read-only lookup over the slang catalog."""

    def __init__(self, terms: Iterable[SlangTerm], version: str = ""):
        self._terms = tuple(terms)
        self.version = version
        self._patterns = [
            (term, [_spelling_pattern(s) for s in term.spellings()])
            for term in self._terms
        ]

    @classmethod
    def from_terms(cls, terms: Iterable[dict], version: str = "") -> "TermCurrencyRegistry":
        return cls([SlangTerm.from_dict(t) for t in terms], version=version)

    @classmethod
    def from_json(cls, path) -> "TermCurrencyRegistry":
        path = Path(path)
        data = json.loads(path.read_text(encoding="utf-8"))
        registry = cls.from_terms(data.get("terms", []), version=data.get("version", ""))
        logger.info(f"[Freshness] Loaded {len(registry)} slang terms from {path.name} (version {registry.version or 'n/a'})")
        return registry

    @classmethod
    def load_default(cls) -> "TermCurrencyRegistry":
        return cls.from_json(DEFAULT_TERMS_PATH)

    def __len__(self) -> int:
        return len(self._terms)

    def terms(self) -> tuple:
        return self._terms

    def get(self, spelling: str) -> Optional[SlangTerm]:
        """Look up a term by its main spelling or an alias (case-insensitive)."""
        needle = spelling.strip().lower()
        for term in self._terms:
            if needle in (s.lower() for s in term.spellings()):
                return term
        return None

    def find_in_text(self, text: str) -> List[SlangTerm]:
        """Catalog terms (or aliases) appearing as whole words in text, in catalog order."""
        lowered = normalize_apostrophes(text).lower()
        return [
            term for term, patterns in self._patterns
            if any(p.search(lowered) for p in patterns)
        ]

    def deprecated_spellings(self) -> List[str]:
        return [s for term in self._terms if term.status == "deprecated" for s in term.spellings()]

    def current_terms(self, today: date = None) -> List[SlangTerm]:
        """Current terms, freshest first."""
        current = [t for t in self._terms if t.status == "current"]
        return sorted(current, key=lambda t: freshness_score(t, today), reverse=True)

    def suggested_replacements(self, spelling: str) -> List[str]:
        """Current alternatives for a deprecated term. Empty for anything else."""
        term = self.get(spelling)
        if term is None or term.status != "deprecated":
            return []
        return list(term.replacements)
