from pydantic import BaseModel
from typing import Optional, Dict, Any
from enum import Enum


class CacheMode(str, Enum):
    SKIP = "skip"        # no read, no write
    REFRESH = "refresh"  # no read, write-through


class TranslateRequest(BaseModel):
    # Styles and length are checked by the pipeline so failures map to 400
    text: str
    from_style: str
    to_style: str
    use_latest_slang: bool = True
    context: Optional[str] = None


class TranslateResponse(BaseModel):
    translation: str
    explanation: str = ""
    metadata: Dict[str, Any] = {}


class InvalidateRequest(BaseModel):
    key: Optional[str] = None
    from_style: Optional[str] = None
    to_style: Optional[str] = None
    text: Optional[str] = None


class InvalidateResponse(BaseModel):
    removed: bool


class CacheStatsResponse(BaseModel):
    total: int = 0
    expired: int = 0
    stale: int = 0
    fresh: int = 0
    refreshing: int = 0
    ttl_days: Optional[int] = None
    stale_after_days: Optional[int] = None


class CleanupResponse(BaseModel):
    removed: int
