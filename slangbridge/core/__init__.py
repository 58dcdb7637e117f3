"""
SlangBridge Core - translation pipeline components
"""
from .pipeline import BridgeOrchestrator, TranslationResult, ValidationError
from .translate import StyleTranslator
from .freshness import FreshnessReranker, TranslationCandidate
from .slang_terms import TermCurrencyRegistry
from .repair import TextRepairChain
from .translation_cache import StoreError, TranslationCache
from .refresh import RefreshCoordinator

__all__ = [
    'BridgeOrchestrator',
    'TranslationResult',
    'ValidationError',
    'StyleTranslator',
    'FreshnessReranker',
    'TranslationCandidate',
    'TermCurrencyRegistry',
    'TextRepairChain',
    'StoreError',
    'TranslationCache',
    'RefreshCoordinator',
]
