"""
Bridge translation pipeline.

Validate -> direct mapping -> cache -> normalize to Standard English ->
target transform (with freshness reranking for trend slang) -> repair ->
cache write.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Optional

from .freshness import FreshnessMetadata, FreshnessReranker, TranslationCandidate
from .repair import TextRepairChain, restore_contractions
from .slang_terms import TermCurrencyRegistry
from .translate import FORMAL_STYLE, STANDARD_STYLE, STYLE_NAMES, TREND_SLANG_STYLE, StyleTranslator
from .translation_cache import StoreError, TranslationCache, make_cache_key
from .utils.llm import LLMProvider, UpstreamError
from ..config import MAX_TEXT_LENGTH

logger = logging.getLogger(__name__)

# (from_style, to_style, lower-cased input) -> (fixed output, explanation)
DIRECT_MAPPINGS = {
    ("trend-slang", "casual-peer-style", "situationship"): (
        "friends with benefits",
        "Basically they're saying they have friends with benefits. "
        "'Situationship' means a casual romantic or physical relationship without commitment.",
    ),
}


class ValidationError(Exception):
    """Raised when a translation request is malformed."""
    pass


@dataclass
class PipelineRequest:
    text: str
    from_style: str
    to_style: str
    use_latest_slang: bool = True
    context: Optional[str] = None


@dataclass
class StageOutcome:
    text: str
    freshness: Optional[FreshnessMetadata] = None
    degraded: bool = False


@dataclass
class TranslationResult:
    translation: str
    explanation: str = ""
    metadata: dict = field(default_factory=dict)


def validate_request(request: PipelineRequest) -> None:
    if not request.text or not request.text.strip():
        raise ValidationError("Input text is required")
    if len(request.text) > MAX_TEXT_LENGTH:
        raise ValidationError(f"Input text exceeds {MAX_TEXT_LENGTH} characters")
    for style in (request.from_style, request.to_style):
        if style not in STYLE_NAMES:
            raise ValidationError(f"Unknown style: {style}. Must be one of: {', '.join(STYLE_NAMES)}")
    if request.from_style == request.to_style:
        raise ValidationError("Source and target styles must differ")


def candidate_score(text: str) -> float:
    """Stand-in for provider confidence: longer answers up to 50 chars score higher."""
    return min(1.0, len(text) / 50)


class BridgeOrchestrator:
    def __init__(
        self,
        provider: LLMProvider,
        cache: TranslationCache = None,
        registry: TermCurrencyRegistry = None,
        repair_chain: TextRepairChain = None,
        explain: bool = False,
        today: date = None,
    ):
        registry = registry or TermCurrencyRegistry.load_default()
        self.translator = StyleTranslator(provider, registry)
        self.reranker = FreshnessReranker(registry, today=today)
        self.repair_chain = repair_chain or TextRepairChain()
        self.cache = cache
        self.explain = explain
        if cache is not None:
            cache.set_refresh_handler(self._refresh_entry)

    @classmethod
    def from_config(cls) -> "BridgeOrchestrator":
        from .. import config
        from .refresh import RefreshCoordinator

        refresher = RefreshCoordinator(max_workers=config.REFRESH_MAX_WORKERS)
        try:
            cache = TranslationCache(
                config.CACHE_DB_PATH,
                ttl_days=config.CACHE_TTL_DAYS,
                stale_after_days=config.CACHE_STALE_AFTER_DAYS,
                refresher=refresher,
            )
        except StoreError as e:
            logger.error(f"[Cache] {e}; running without cache")
            refresher.shutdown(wait=False)
            cache = None
        return cls(
            LLMProvider.from_config(),
            cache=cache,
            registry=TermCurrencyRegistry.from_json(config.SLANG_TERMS_PATH),
            explain=config.EXPLANATIONS_ENABLED,
        )

    def translate(
        self,
        text: str,
        from_style: str,
        to_style: str,
        use_latest_slang: bool = True,
        bypass_cache: bool = False,
        refresh_cache: bool = False,
        context: Optional[str] = None,
    ) -> TranslationResult:
        """Translate text between styles.

        bypass_cache skips both the cache read and the write; refresh_cache
        skips the read but writes the new result through.

        Raises:
            ValidationError: for malformed input
        """
        request = PipelineRequest(text, from_style, to_style, use_latest_slang, context)
        validate_request(request)

        direct = DIRECT_MAPPINGS.get((from_style, to_style, text.strip().lower()))
        if direct is not None:
            logger.info(f"[Bridge] Direct mapping: {text.strip()!r} -> {direct[0]!r}")
            return TranslationResult(direct[0], direct[1], {"cached": False, "direct_mapping": True})

        if not bypass_cache and not refresh_cache:
            hit = self._check_cache(request)
            if hit is not None:
                return hit

        logger.info(f"[Bridge] Cache MISS - translating {from_style} -> {to_style}")
        outcome = self._run_stages(request)
        explanation = self._generate_explanation(request, outcome.text)

        # a degraded result must not be served from cache for the whole TTL
        if not bypass_cache and not outcome.degraded:
            self._write_cache(request, outcome.text, explanation, outcome.freshness)

        metadata = outcome.freshness.to_dict() if outcome.freshness else {}
        metadata["cached"] = False
        if outcome.degraded:
            metadata["degraded"] = True
        return TranslationResult(outcome.text, explanation, metadata)

    def _check_cache(self, request: PipelineRequest) -> Optional[TranslationResult]:
        if self.cache is None:
            return None
        try:
            entry = self.cache.get(request.from_style, request.to_style, request.text)
        except StoreError as e:
            logger.error(f"[Bridge] Cache lookup failed, treating as miss: {e}")
            return None
        if entry is None:
            return None

        age_ms = self.cache.now_ms() - entry.created_at
        logger.info(f"[Bridge] Cache HIT: {entry.key[:12]} (age: {age_ms // 1000}s)")
        metadata = dict(entry.meta.get("freshness") or {})
        metadata.update({
            "cached": True,
            "cache_age_ms": age_ms,
            "cache_key": entry.key[:12],
            "refreshed": bool(entry.meta.get("refreshed", False)),
        })
        return TranslationResult(entry.output_text, entry.meta.get("explanation", ""), metadata)

    def _stage(self, outcome: StageOutcome, name: str, func: Callable[[str], str], strict: bool) -> None:
        """Run one provider-backed stage; on provider failure keep its input unchanged."""
        try:
            outcome.text = func(outcome.text)
        except UpstreamError as e:
            if strict:
                raise
            logger.error(f"[Bridge] {name} failed, keeping stage input: {e}")
            outcome.degraded = True

    def _run_stages(self, request: PipelineRequest, strict: bool = False) -> StageOutcome:
        """The non-caching inner path: normalize, dispatch, repair."""
        outcome = StageOutcome(request.text.strip())

        if request.from_style != STANDARD_STYLE:
            self._stage(
                outcome,
                "Normalize",
                lambda t: restore_contractions(self.translator.to_standard(t)),
                strict,
            )

        if request.to_style == TREND_SLANG_STYLE:
            self._stage(outcome, "TargetDispatch", lambda t: self._dispatch_slang(t, request, outcome), strict)
        elif request.to_style != STANDARD_STYLE:
            self._stage(
                outcome,
                "TargetDispatch",
                lambda t: self.translator.to_style(t, request.to_style, request.context),
                strict,
            )

        chain = self.repair_chain
        if request.to_style == FORMAL_STYLE:
            chain = chain.without(restore_contractions)
        outcome.text = chain.apply(outcome.text, request.text)
        return outcome

    def _dispatch_slang(self, text: str, request: PipelineRequest, outcome: StageOutcome) -> str:
        candidates = self.translator.slang_candidates(text)
        if not candidates:
            raise UpstreamError("Provider returned no slang candidates")

        scored = [TranslationCandidate(c, candidate_score(c)) for c in candidates]
        result = self.reranker.rerank(scored, request.use_latest_slang, request.text)
        outcome.freshness = result.metadata
        return result.text

    def _generate_explanation(self, request: PipelineRequest, translation: str) -> str:
        if not self.explain:
            return ""
        try:
            return self.translator.explain(request.text, translation, request.from_style, request.to_style)
        except UpstreamError as e:
            logger.warning(f"[Bridge] Explanation generation failed: {e}")
            return ""

    def _build_meta(self, request: PipelineRequest, explanation: str,
                    freshness: Optional[FreshnessMetadata]) -> dict:
        return {
            "explanation": explanation,
            "freshness": freshness.to_dict() if freshness else None,
            "use_latest_slang": request.use_latest_slang,
            "context": request.context,
        }

    def _write_cache(self, request: PipelineRequest, translation: str, explanation: str,
                     freshness: Optional[FreshnessMetadata]) -> None:
        if self.cache is None:
            return
        meta = self._build_meta(request, explanation, freshness)
        try:
            self.cache.set(request.from_style, request.to_style, request.text, translation, meta)
        except StoreError as e:
            logger.error(f"[Bridge] Cache write failed, result not cached: {e}")

    def _refresh_entry(self, entry) -> None:
        """Re-translate a stale cache entry and write it back. Runs on the refresh pool."""
        freshness = FreshnessMetadata.from_dict(entry.meta.get("freshness") or {})
        use_latest = entry.meta.get("use_latest_slang", True)
        if entry.meta.get("freshness") and freshness.mode == "disabled":
            use_latest = False

        request = PipelineRequest(
            entry.source_text, entry.from_style, entry.to_style,
            use_latest_slang=use_latest, context=entry.meta.get("context"),
        )
        outcome = self._run_stages(request, strict=True)
        explanation = self._generate_explanation(request, outcome.text) or entry.meta.get("explanation", "")

        meta = self._build_meta(request, explanation, outcome.freshness)
        meta["refreshed"] = True
        self.cache.set(entry.from_style, entry.to_style, entry.source_text, outcome.text, meta)

    def invalidate(self, key: str = None, from_style: str = None, to_style: str = None, text: str = None) -> bool:
        """Delete one cache entry by key or by (from_style, to_style, text)."""
        if self.cache is None:
            return False
        if key:
            return self.cache.invalidate(key)
        if from_style and to_style and text:
            return self.cache.invalidate(make_cache_key(from_style, to_style, text))
        raise ValidationError("Provide either 'key' or 'from_style', 'to_style' and 'text'")

    def stats(self) -> dict:
        if self.cache is None:
            return {"total": 0, "expired": 0, "stale": 0, "fresh": 0, "refreshing": 0}
        stats = self.cache.stats()
        stats.update({
            "refreshing": self.cache.refresher.in_flight(),
            "ttl_days": self.cache.ttl_days,
            "stale_after_days": self.cache.stale_after_days,
        })
        return stats

    def cleanup_expired(self) -> int:
        if self.cache is None:
            return 0
        return self.cache.cleanup_expired()

    def close(self) -> None:
        if self.cache is not None:
            self.cache.close()
