"""
LLM client initialization module.

One LLMClient fronts the chat-completion providers (DeepSeek, Anthropic,
OpenAI and Gemini). Callers pass a preferred provider order; configured
providers are tried in that order, then the rest, each with retries.
"""

import re
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from tenacity import Retrying, stop_after_attempt, wait_exponential

from lexcanada.core.config import get_config
from lexcanada.core.constants import (
    MAX_RETRY_ATTEMPTS,
    RETRY_MULTIPLIER,
    RETRY_MIN_WAIT,
    RETRY_MAX_WAIT,
    PROVIDER_DEEPSEEK,
    PROVIDER_ANTHROPIC,
    PROVIDER_OPENAI,
    PROVIDER_GEMINI,
    DEFAULT_PROVIDER_ORDER,
)
from lexcanada.core.errors import ExternalServiceError

logger = logging.getLogger(__name__)

_CODE_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class LLMUnavailableError(ExternalServiceError):
    def __init__(self, message: str = "No AI provider is available"):
        super().__init__("LLM", message)


class LLMResponseError(ExternalServiceError):
    def __init__(self, message: str = "AI provider returned an unreadable response"):
        super().__init__("LLM", message)


@dataclass
class LLMCompletion:
    text: str
    provider: str


class LLMProvider:
    """Base class for a chat-completion backend."""

    name = ""

    def __init__(self, api_key: Optional[str], model: str, timeout: float = 60.0):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._client = None

    def is_configured(self) -> bool:
        return bool(self.api_key and self.api_key.strip())

    def complete(
        self,
        system: str,
        messages: List[Dict[str, str]],
        max_tokens: int,
        temperature: float,
        json_mode: bool,
    ) -> str:
        raise NotImplementedError


class OpenAIProvider(LLMProvider):
    name = PROVIDER_OPENAI
    base_url: Optional[str] = None

    def _get_client(self):
        if self._client is None:
            from openai import OpenAI
            self._client = OpenAI(api_key=self.api_key, base_url=self.base_url, timeout=self.timeout)
        return self._client

    def complete(self, system, messages, max_tokens, temperature, json_mode):
        kwargs: Dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "system", "content": system}] + messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        response = self._get_client().chat.completions.create(**kwargs)
        return response.choices[0].message.content or ""


class DeepSeekProvider(OpenAIProvider):
    """DeepSeek speaks the OpenAI wire protocol."""

    name = PROVIDER_DEEPSEEK

    def __init__(self, api_key: Optional[str], model: str, base_url: str, timeout: float = 60.0):
        super().__init__(api_key, model, timeout)
        self.base_url = base_url


class AnthropicProvider(LLMProvider):
    name = PROVIDER_ANTHROPIC

    def _get_client(self):
        if self._client is None:
            import anthropic
            self._client = anthropic.Anthropic(api_key=self.api_key, timeout=self.timeout)
        return self._client

    def complete(self, system, messages, max_tokens, temperature, json_mode):
        if json_mode:
            system = f"{system}\n\nRespond with a single valid JSON object and nothing else."

        response = self._get_client().messages.create(
            model=self.model,
            max_tokens=max_tokens,
            temperature=temperature,
            system=system,
            messages=messages,
        )
        return "".join(
            block.text for block in response.content if getattr(block, "type", "text") == "text"
        )


class GeminiProvider(LLMProvider):
    name = PROVIDER_GEMINI

    def _get_client(self):
        if self._client is None:
            from google import genai
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def complete(self, system, messages, max_tokens, temperature, json_mode):
        from google.genai import types

        contents = [
            {"role": "model" if m["role"] == "assistant" else "user", "parts": [{"text": m["content"]}]}
            for m in messages
        ]
        generation_config = types.GenerateContentConfig(
            system_instruction=system,
            max_output_tokens=max_tokens,
            temperature=temperature,
            response_mime_type="application/json" if json_mode else None,
        )
        response = self._get_client().models.generate_content(
            model=self.model,
            contents=contents,
            config=generation_config,
        )
        return response.text or ""


def normalize_messages(messages: List[Dict[str, str]]) -> List[Dict[str, str]]:
    """
    Coerce a conversation into strictly alternating user/assistant turns.

    Roles other than 'assistant' or 'ai' count as user turns; consecutive
    turns from the same side are merged and the list always opens with a
    user turn.
    """
    normalized: List[Dict[str, str]] = []
    for message in messages:
        content = (message.get("content") or "").strip()
        if not content:
            continue
        role = "assistant" if message.get("role") in ("assistant", "ai") else "user"
        if normalized and normalized[-1]["role"] == role:
            normalized[-1]["content"] += f"\n\n{content}"
        else:
            normalized.append({"role": role, "content": content})

    if normalized and normalized[0]["role"] != "user":
        normalized.insert(0, {"role": "user", "content": "(conversation start)"})
    return normalized


def parse_json_response(text: str) -> Dict[str, Any]:
    """Parse a JSON object out of a model reply, tolerating Markdown fences."""
    cleaned = _CODE_FENCE_RE.sub("", text.strip()).strip()
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        # Some models wrap the object in prose
        start, end = cleaned.find("{"), cleaned.rfind("}")
        if start == -1 or end <= start:
            raise LLMResponseError()
        try:
            parsed = json.loads(cleaned[start:end + 1])
        except json.JSONDecodeError:
            raise LLMResponseError()

    if not isinstance(parsed, dict):
        raise LLMResponseError("AI provider returned JSON that is not an object")
    return parsed


def as_string_list(value: Any) -> List[str]:
    """Coerce a model-supplied list field; a lone string becomes a one-item list."""
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value if item is not None and str(item).strip()]
    if isinstance(value, str) and value.strip():
        return [value.strip()]
    return []


class LLMClient:
    """Provider chain with per-provider retries."""

    def __init__(self, providers: List[LLMProvider], max_attempts: int = MAX_RETRY_ATTEMPTS, wait=None):
        self.providers = {provider.name: provider for provider in providers}
        self.max_attempts = max_attempts
        self.wait = wait or wait_exponential(multiplier=RETRY_MULTIPLIER, min=RETRY_MIN_WAIT, max=RETRY_MAX_WAIT)

    def configured_providers(self) -> List[str]:
        return [name for name, provider in self.providers.items() if provider.is_configured()]

    def is_available(self) -> bool:
        return bool(self.configured_providers())

    def _provider_order(self, prefer: Optional[List[str]]) -> List[LLMProvider]:
        order = list(prefer or [])
        order += [name for name in DEFAULT_PROVIDER_ORDER if name not in order]
        order += [name for name in self.providers if name not in order]
        return [
            self.providers[name]
            for name in order
            if name in self.providers and self.providers[name].is_configured()
        ]

    def complete(
        self,
        system: str,
        messages: List[Dict[str, str]],
        max_tokens: int = 1000,
        temperature: float = 0.3,
        json_mode: bool = False,
        prefer: Optional[List[str]] = None,
    ) -> LLMCompletion:
        """
        Generate a reply from the first provider that succeeds.

        Raises:
            LLMUnavailableError: no provider is configured or all of them failed
        """
        candidates = self._provider_order(prefer)
        if not candidates:
            raise LLMUnavailableError("No AI provider is configured")

        conversation = normalize_messages(messages)
        if not conversation:
            raise LLMResponseError("Cannot send an empty conversation")

        for provider in candidates:
            retryer = Retrying(
                stop=stop_after_attempt(self.max_attempts),
                wait=self.wait,
                reraise=True,
            )
            try:
                text = retryer(provider.complete, system, conversation, max_tokens, temperature, json_mode)
            except Exception as e:
                logger.warning(f"Provider {provider.name} failed after {self.max_attempts} attempts: {e}")
                continue

            if not text or not text.strip():
                logger.warning(f"Provider {provider.name} returned an empty reply")
                continue

            logger.info(f"Completion served by {provider.name}")
            return LLMCompletion(text=text.strip(), provider=provider.name)

        raise LLMUnavailableError("All AI providers failed")

    def complete_json(
        self,
        system: str,
        messages: List[Dict[str, str]],
        max_tokens: int = 2000,
        temperature: float = 0.2,
        prefer: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        completion = self.complete(
            system,
            messages,
            max_tokens=max_tokens,
            temperature=temperature,
            json_mode=True,
            prefer=prefer,
        )
        return parse_json_response(completion.text)


# Global client instance
_llm_client: Optional[LLMClient] = None


def build_llm_client() -> LLMClient:
    ai = get_config().ai
    providers = [
        DeepSeekProvider(ai.deepseek_api_key, ai.deepseek_model, ai.deepseek_base_url, ai.llm_timeout_seconds),
        AnthropicProvider(ai.anthropic_api_key, ai.anthropic_model, ai.llm_timeout_seconds),
        OpenAIProvider(ai.openai_api_key, ai.openai_model, ai.llm_timeout_seconds),
        GeminiProvider(ai.gemini_api_key, ai.gemini_model, ai.llm_timeout_seconds),
    ]
    return LLMClient(providers, max_attempts=ai.llm_max_retries)


def initialize_llm_client() -> LLMClient:
    """Build the provider chain once at startup."""
    global _llm_client

    _llm_client = build_llm_client()
    configured = _llm_client.configured_providers()
    if configured:
        logger.info(f"LLM client initialized with providers: {', '.join(configured)}")
    else:
        logger.warning("LLM client initialized without any configured provider - AI features will use fallbacks")
    return _llm_client


def get_llm_client() -> LLMClient:
    """Get the LLM client, building it on first use."""
    global _llm_client

    if _llm_client is None:
        initialize_llm_client()
    return _llm_client
