"""
Freshness-aware reranking of slang translation candidates.

Candidates are scored against the slang catalog (current terms earn a boost,
deprecated ones a penalty) and against the context of the input text, then
the best candidate without blocked terms wins.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

from .slang_terms import TermCurrencyRegistry, freshness_score, normalize_apostrophes

logger = logging.getLogger(__name__)

FRESHNESS_ALPHA = 0.4      # boost per current term, times its freshness
DEPRECATED_PENALTY = 0.8
WRONG_CONTEXT_PENALTY = 2.0
UNNATURAL_COMBO_PENALTY = 3.0
VIBE_IDIOM_BOOST = 0.3
HUMOR_TERM_BOOST = 0.2

VIBE_IDIOM_SPELLINGS = ("it's giving", "its giving")
HUMOR_COMBO_WORDS = ("comedy", "funny", "hilarious")
HUMOR_TERMS = ("dead", "crying", "weak", "killed me", "💀")

# Checked in order; the first matching rule wins, "status" is the fallback.
CONTEXT_RULES = (
    ("humor", ("funny", "hilarious", "joke", "laugh", "comedy")),
    ("vibe", ("outfit", "look", "style", "setup", "energy", "vibe", "aesthetic", "main character", "luxury")),
    ("emotion", ("tired", "excited", "happy", "sad", "angry", "feeling")),
)
DEFAULT_CONTEXT = "status"


@dataclass
class TranslationCandidate:
    text: str
    model_score: float = 0.0


@dataclass
class FreshnessMetadata:
    mode: str = "disabled"  # disabled | latest
    blocked_terms: List[str] = field(default_factory=list)
    chosen_term: Optional[str] = None
    freshness_score: float = 0.0
    context_type: Optional[str] = None
    suggestions: Dict[str, List[str]] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "slang_mode": self.mode,
            "blocked_terms": list(self.blocked_terms),
            "chosen_term": self.chosen_term,
            "freshness_score": self.freshness_score,
            "context_type": self.context_type,
            "suggested_replacements": {k: list(v) for k, v in self.suggestions.items()},
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FreshnessMetadata":
        return cls(
            mode=data.get("slang_mode", "disabled"),
            blocked_terms=list(data.get("blocked_terms", [])),
            chosen_term=data.get("chosen_term"),
            freshness_score=float(data.get("freshness_score") or 0.0),
            context_type=data.get("context_type"),
            suggestions={k: list(v) for k, v in (data.get("suggested_replacements") or {}).items()},
        )


@dataclass
class RerankResult:
    text: str
    final_score: float
    metadata: FreshnessMetadata


@dataclass
class _Scored:
    candidate: TranslationCandidate
    score: float
    boost: float
    blocked: List[str]
    chosen_term: Optional[str]


def detect_context_type(text: str) -> str:
    lowered = (text or "").lower().strip()
    for context_type, keywords in CONTEXT_RULES:
        if any(kw in lowered for kw in keywords):
            return context_type
    return DEFAULT_CONTEXT


def _dedupe(items: List[str]) -> List[str]:
    seen = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


class FreshnessReranker:
    def __init__(self, registry: TermCurrencyRegistry, today: date = None):
        self.registry = registry
        self._today = today

    @property
    def today(self) -> date:
        return self._today or date.today()

    def score_candidate(self, candidate: TranslationCandidate, context_type: str) -> _Scored:
        text = normalize_apostrophes(candidate.text).lower()
        boost = 0.0
        penalty = 0.0
        blocked = []

        if any(s in text for s in VIBE_IDIOM_SPELLINGS):
            if context_type == "vibe":
                boost += VIBE_IDIOM_BOOST
            else:
                penalty += WRONG_CONTEXT_PENALTY
                blocked.append("it's giving (wrong context)")

            if any(w in text for w in HUMOR_COMBO_WORDS):
                penalty += UNNATURAL_COMBO_PENALTY
                blocked.append("it's giving comedy (unnatural)")

        if context_type == "humor" and any(t in text for t in HUMOR_TERMS):
            boost += HUMOR_TERM_BOOST

        chosen_term = None
        for term in self.registry.find_in_text(candidate.text):
            if term.status == "deprecated":
                penalty += DEPRECATED_PENALTY
                blocked.append(term.term)
            elif term.status == "current":
                boost += FRESHNESS_ALPHA * freshness_score(term, self.today)
                if chosen_term is None:
                    chosen_term = term.term

        return _Scored(
            candidate=candidate,
            score=candidate.model_score + boost - penalty,
            boost=boost,
            blocked=blocked,
            chosen_term=chosen_term,
        )

    def rerank(self, candidates: List[TranslationCandidate], use_latest_slang: bool = True,
               input_text: str = "") -> RerankResult:
        if not candidates:
            raise ValueError("rerank needs at least one candidate")

        if not use_latest_slang or len(candidates) == 1:
            first = candidates[0]
            mode = "latest" if use_latest_slang else "disabled"
            return RerankResult(first.text, first.model_score, FreshnessMetadata(mode=mode))

        context_type = detect_context_type(input_text)
        logger.info(f"[Freshness] Context detected: {context_type}")

        scored = [self.score_candidate(c, context_type) for c in candidates]
        viable = [s for s in scored if not s.blocked] or scored

        winner = viable[0]
        for s in viable[1:]:
            if s.score > winner.score:
                winner = s

        blocked_terms = _dedupe([b for s in scored for b in s.blocked])
        suggestions = {}
        for term in blocked_terms:
            replacements = self.registry.suggested_replacements(term)
            if replacements:
                suggestions[term] = replacements

        metadata = FreshnessMetadata(
            mode="latest",
            blocked_terms=blocked_terms,
            suggestions=suggestions,
            chosen_term=winner.chosen_term,
            freshness_score=winner.boost,
            context_type=context_type,
        )
        logger.info(
            f"[Freshness] Reranked {len(candidates)} candidates: score={winner.score:.2f}, "
            f"blocked={', '.join(metadata.blocked_terms) or 'none'}, chosen={metadata.chosen_term or 'none'}"
        )
        return RerankResult(winner.candidate.text, winner.score, metadata)
