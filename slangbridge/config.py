"""
SlangBridge Configuration

All settings can be overridden via environment variables.
"""
import os
from pathlib import Path

from dotenv import load_dotenv

# Base Paths
PROJECT_ROOT = Path(__file__).parent.parent
PACKAGE_DIR = Path(__file__).parent
DATA_DIR = PROJECT_ROOT / "data"

env_path = PROJECT_ROOT / ".env"
if env_path.exists():
    load_dotenv(env_path)

# Server Configuration
HOST = os.environ.get("SLANGBRIDGE_HOST", "0.0.0.0")
PORT = int(os.environ.get("SLANGBRIDGE_PORT", "8000"))
DEBUG = os.environ.get("SLANGBRIDGE_DEBUG", "false").lower() == "true"
LOG_LEVEL = os.environ.get("SLANGBRIDGE_LOG_LEVEL", "INFO").upper()

# CORS Configuration
CORS_ORIGINS = os.environ.get(
    "CORS_ORIGINS",
    "http://localhost:5173,http://127.0.0.1:5173"
).split(",")

# Request limits
MAX_TEXT_LENGTH = 5000

# Translation Cache
CACHE_DB_PATH = os.environ.get("SLANGBRIDGE_CACHE_DB", str(DATA_DIR / "cache.db"))
CACHE_TTL_DAYS = int(os.environ.get("CACHE_TTL_DAYS", "30"))
CACHE_STALE_AFTER_DAYS = int(os.environ.get("CACHE_STALE_AFTER_DAYS", "7"))
CACHE_CLEANUP_INTERVAL_HOURS = float(os.environ.get("SLANGBRIDGE_CACHE_CLEANUP_HOURS", "24"))
REFRESH_MAX_WORKERS = int(os.environ.get("SLANGBRIDGE_REFRESH_WORKERS", "4"))

# LLM provider
LLM_ENGINE = os.environ.get("SLANGBRIDGE_LLM_ENGINE", "openai")  # openai, groq, gemini
LLM_TIMEOUT = int(os.environ.get("SLANGBRIDGE_LLM_TIMEOUT", "60"))
LLM_MAX_RETRIES = int(os.environ.get("SLANGBRIDGE_LLM_RETRIES", "3"))

OPENAI_API_KEY = os.environ.get("OPENAI_API_KEY", "")
OPENAI_MODEL = os.environ.get("OPENAI_MODEL", "gpt-4o")

GROQ_API_KEY = os.environ.get("GROQ_API_KEY", "")
GROQ_MODEL = os.environ.get("GROQ_MODEL", "llama-3.3-70b-versatile")

GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY", "")
GEMINI_MODEL = os.environ.get("GEMINI_MODEL", "gemini-2.5-flash")

# Slang catalog (JSON). Defaults to the catalog shipped with the package.
SLANG_TERMS_PATH = os.environ.get(
    "SLANGBRIDGE_SLANG_TERMS", str(PACKAGE_DIR / "data" / "slang_terms.json")
)

# Explanations add one provider call per cache miss
EXPLANATIONS_ENABLED = os.environ.get("SLANGBRIDGE_EXPLANATIONS", "true").lower() == "true"
