"""
Shared LLM call utilities

Every pipeline stage talks to the completion provider through LLMProvider so
retries, fallback and error mapping live in one place.
"""
import logging
import re
import time

import requests

logger = logging.getLogger(__name__)

OPENAI_API_URL = "https://api.openai.com/v1/chat/completions"
GROQ_API_URL = "https://api.groq.com/openai/v1/chat/completions"


class UpstreamError(Exception):
    """Raised when the completion provider fails or returns nothing."""
    pass


class GeminiQuotaError(UpstreamError):
    """Raised when Gemini API returns 429 / quota exceeded."""
    pass


def is_quota_error(error: Exception) -> bool:
    """Check if an exception indicates API quota/rate limit exceeded."""
    error_str = str(error).lower()
    return any(kw in error_str for kw in ["429", "quota", "resource exhausted", "rate limit"])


def strip_think_tags(text: str) -> str:
    cleaned = re.sub(r'<think>.*?</think>', '', text, flags=re.DOTALL)
    return cleaned.strip()


def call_chat_completions(
    url: str,
    prompt: str,
    api_key: str,
    model_name: str,
    system_prompt: str = None,
    temperature: float = 0.3,
    max_tokens: int = 500,
    timeout: int = 60,
) -> str:
    """
    Call an OpenAI-compatible chat completions endpoint (OpenAI, Groq).

    Args:
        url: Endpoint URL
        prompt: User prompt text
        api_key: Bearer token for the endpoint
        model_name: Model name
        system_prompt: Optional system instruction
        temperature: Generation temperature (default: 0.3)
        max_tokens: Max tokens in response (default: 500)
        timeout: Request timeout in seconds (default: 60)

    Returns:
        Generated text response

    Raises:
        UpstreamError: For missing keys, transport errors and non-200 responses
    """
    if not api_key:
        raise UpstreamError(f"No API key configured for {url}")

    messages = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    messages.append({"role": "user", "content": prompt})

    try:
        response = requests.post(
            url,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json"
            },
            json={
                "model": model_name,
                "messages": messages,
                "temperature": temperature,
                "max_tokens": max_tokens,
            },
            timeout=timeout
        )
    except requests.RequestException as e:
        raise UpstreamError(f"Request to {url} failed: {e}") from e

    if response.status_code == 429:
        raise UpstreamError(f"Rate limit exceeded (429) at {url}")
    if response.status_code != 200:
        raise UpstreamError(f"Provider error ({response.status_code}): {response.text}")

    try:
        data = response.json()
    except ValueError as e:
        raise UpstreamError(f"Provider returned a non-JSON body: {response.text[:200]!r}") from e
    try:
        content = data["choices"][0]["message"]["content"] or ""
    except (KeyError, IndexError, TypeError) as e:
        raise UpstreamError(f"Malformed provider response: {data!r}") from e
    return strip_think_tags(content)


def call_gemini(
    prompt: str,
    api_key: str,
    model_name: str = "gemini-2.5-flash",
    system_prompt: str = None,
    temperature: float = 0.3,
    max_tokens: int = 500,
    timeout: int = 60,
) -> str:
    """
    Call Gemini API with standardized error handling.

    Raises:
        GeminiQuotaError: When API quota is exceeded (429)
        UpstreamError: For other API errors
    """
    if not api_key:
        raise UpstreamError("GEMINI_API_KEY is not configured")

    import google.generativeai as genai

    genai.configure(api_key=api_key)
    model = genai.GenerativeModel(
        model_name,
        system_instruction=system_prompt if system_prompt else None,
    )

    try:
        response = model.generate_content(
            prompt,
            generation_config=genai.types.GenerationConfig(
                temperature=temperature,
                max_output_tokens=max_tokens,
            ),
            request_options={"timeout": timeout}
        )
        return strip_think_tags(response.text)
    except Exception as e:
        if is_quota_error(e):
            raise GeminiQuotaError(f"Gemini API quota exceeded: {e}") from e
        raise UpstreamError(f"Gemini API error: {e}") from e


class LLMProvider:
    """Black-box completion provider: instruction + input text in, text out."""

    def __init__(
        self,
        engine: str = "openai",
        openai_api_key: str = "",
        openai_model: str = "gpt-4o",
        groq_api_key: str = "",
        groq_model: str = "llama-3.3-70b-versatile",
        gemini_api_key: str = "",
        gemini_model: str = "gemini-2.5-flash",
        timeout: int = 60,
        max_retries: int = 3,
        backoff_base: float = 2.0,
    ):
        if engine not in ("openai", "groq", "gemini"):
            raise ValueError(f"Unknown LLM engine: {engine}")
        self.engine = engine
        self.openai_api_key = openai_api_key
        self.openai_model = openai_model
        self.groq_api_key = groq_api_key
        self.groq_model = groq_model
        self.gemini_api_key = gemini_api_key
        self.gemini_model = gemini_model
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.backoff_base = backoff_base

    @classmethod
    def from_config(cls) -> "LLMProvider":
        from ... import config

        return cls(
            engine=config.LLM_ENGINE,
            openai_api_key=config.OPENAI_API_KEY,
            openai_model=config.OPENAI_MODEL,
            groq_api_key=config.GROQ_API_KEY,
            groq_model=config.GROQ_MODEL,
            gemini_api_key=config.GEMINI_API_KEY,
            gemini_model=config.GEMINI_MODEL,
            timeout=config.LLM_TIMEOUT,
            max_retries=config.LLM_MAX_RETRIES,
        )

    def _call(self, engine: str, instruction: str, text: str, temperature: float, max_tokens: int) -> str:
        """Route to the appropriate LLM backend."""
        if engine == "gemini":
            return call_gemini(
                text, self.gemini_api_key, self.gemini_model,
                system_prompt=instruction, temperature=temperature,
                max_tokens=max_tokens, timeout=self.timeout,
            )
        if engine == "groq":
            return call_chat_completions(
                GROQ_API_URL, text, self.groq_api_key, self.groq_model,
                system_prompt=instruction, temperature=temperature,
                max_tokens=max_tokens, timeout=self.timeout,
            )
        return call_chat_completions(
            OPENAI_API_URL, text, self.openai_api_key, self.openai_model,
            system_prompt=instruction, temperature=temperature,
            max_tokens=max_tokens, timeout=self.timeout,
        )

    def complete(self, instruction: str, text: str, temperature: float = 0.3, max_tokens: int = 500) -> str:
        """Run one completion. Auto-fallback from Gemini to Groq on quota error.

        Raises:
            UpstreamError: when every attempt failed or came back empty
        """
        current_engine = self.engine
        last_error = None

        for attempt in range(1, self.max_retries + 1):
            try:
                try:
                    result = self._call(current_engine, instruction, text, temperature, max_tokens)
                except GeminiQuotaError:
                    if not self.groq_api_key or current_engine == "groq":
                        raise
                    # switching engines does not use up an attempt
                    logger.warning("[LLM] Gemini quota exceeded, falling back to Groq")
                    current_engine = "groq"
                    result = self._call(current_engine, instruction, text, temperature, max_tokens)
                if result:
                    return result
                last_error = UpstreamError("Provider returned an empty response")
                logger.warning(f"[LLM] Attempt {attempt} returned empty")
            except GeminiQuotaError:
                raise
            except UpstreamError as e:
                last_error = e
                logger.warning(f"[LLM] {current_engine} error (attempt {attempt}): {e}")

            if attempt < self.max_retries:
                time.sleep(self.backoff_base ** attempt)

        raise UpstreamError(f"Completion failed after {self.max_retries} attempts: {last_error}")

    def status(self) -> dict:
        return {
            "engine": self.engine,
            "openai": "configured" if self.openai_api_key else "missing",
            "groq": "configured" if self.groq_api_key else "missing",
            "gemini": "configured" if self.gemini_api_key else "missing",
        }
