"""
SlangBridge Core Utilities
"""
from .llm import (
    GeminiQuotaError,
    LLMProvider,
    UpstreamError,
    is_quota_error,
    call_chat_completions,
    call_gemini,
)

__all__ = [
    # LLM utilities
    'GeminiQuotaError',
    'LLMProvider',
    'UpstreamError',
    'is_quota_error',
    'call_chat_completions',
    'call_gemini',
]
