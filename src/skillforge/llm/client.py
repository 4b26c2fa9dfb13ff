"""OpenAI-compatible LLM client used by every AI flow.

Gemini, OpenAI and a local LM Studio server all expose the chat completions
API, so one client covers them; the provider only decides the endpoint, the
default model, the key variable and whether JSON mode can be requested.

Files (audio, video, PDF) travel with the user message as data URI parts.
"""

from __future__ import annotations

import json
import re
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, Literal

import structlog
import yaml
from openai import APIConnectionError, OpenAI, OpenAIError

from skillforge.config.app_config import AppConfig, load_app_config

logger = structlog.get_logger(__name__)

Provider = Literal["gemini", "openai", "lmstudio"]

# Optional per-deployment override of the llm section of the app config
DEFAULT_CONFIG_PATH = Path("configs/models.yaml")

JSON_REPAIR_PROMPT = """Your previous answer was not valid JSON. Fix it and return ONLY valid JSON:
<<<
{invalid_output}
>>>

No explanations, no markdown fences."""

_REASONING_BLOCKS = re.compile(
    r"<(think|thinking|analysis|reasoning)>.*?</\1>", re.DOTALL | re.IGNORECASE
)
_FENCED_BLOCK = re.compile(r"```(?:json)?\s*([\s\S]*?)```")


def _json_candidates(text: str) -> Iterator[str]:
    """Substrings of a model answer that may hold the JSON object."""
    cleaned = _REASONING_BLOCKS.sub("", text).strip()
    yield cleaned

    fenced = _FENCED_BLOCK.search(cleaned)
    if fenced:
        yield fenced.group(1).strip()

    start, end = cleaned.find("{"), cleaned.rfind("}")
    if 0 <= start < end:
        yield cleaned[start : end + 1]


@dataclass
class LLMConfig:
    """Resolved connection and sampling settings."""

    provider: Provider = "gemini"
    base_url: str = "https://generativelanguage.googleapis.com/v1beta/openai/"
    model: str = "gemini-2.0-flash"
    temperature: float = 0.7
    max_tokens: int = 4096
    timeout: int = 120
    api_key: str | None = None
    supports_json_object: bool = True

    @classmethod
    def from_app_config(
        cls, app_config: AppConfig | None = None, provider: str | None = None
    ) -> LLMConfig:
        """Resolve settings for a provider from the application config.

        The configured model only applies to the configured provider; an
        explicit provider override uses that provider's default model.

        Raises:
            LLMError: If the provider is not configured
        """
        app_config = app_config or load_app_config()
        name = provider or app_config.llm.provider
        entry = app_config.providers.get(name)
        if entry is None:
            raise LLMError(f"Unknown LLM provider: {name}")

        model = app_config.llm.model if provider is None else None
        return cls(
            provider=name,
            base_url=entry.base_url or "",
            model=model or entry.default_model,
            temperature=app_config.llm.temperature,
            max_tokens=app_config.llm.max_tokens,
            timeout=app_config.llm.timeout,
            api_key=entry.get_api_key(),
            supports_json_object=entry.supports_json_object,
        )

    @classmethod
    def from_yaml(cls, config_path: Path | None = None) -> LLMConfig:
        """Settings from a models YAML file layered on the application config.

        Only the file's `llm` section is read (provider, model, temperature,
        max_tokens, timeout). A missing file means the application config
        alone.
        """
        path = config_path or DEFAULT_CONFIG_PATH
        if not path.exists():
            return cls.from_app_config()

        section = (yaml.safe_load(path.read_text(encoding="utf-8")) or {}).get("llm", {})
        config = cls.from_app_config(provider=section.get("provider"))
        for key in ("model", "temperature", "max_tokens", "timeout"):
            if key in section:
                setattr(config, key, section[key])
        return config


@dataclass
class Attachment:
    """A file sent to the model with a prompt, as a data URI."""

    data_uri: str
    filename: str = "upload"

    def to_part(self) -> dict[str, Any]:
        return {
            "type": "file",
            "file": {"file_data": self.data_uri, "filename": self.filename},
        }


@dataclass
class Message:
    role: Literal["system", "user", "assistant"]
    content: str
    attachments: list[Attachment] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Message in chat completions format; multimodal when files are attached."""
        if not self.attachments:
            return {"role": self.role, "content": self.content}
        parts: list[dict[str, Any]] = [{"type": "text", "text": self.content}]
        parts.extend(attachment.to_part() for attachment in self.attachments)
        return {"role": self.role, "content": parts}

    def without_attachments(self) -> Message:
        return Message(role=self.role, content=self.content)


@dataclass
class LLMResponse:
    content: str
    model: str
    provider: str
    usage: dict[str, int] = field(default_factory=dict)
    latency_ms: int = 0

    @property
    def total_tokens(self) -> int:
        return self.usage.get("total_tokens", 0)


class LLMError(Exception):
    """The AI backend could not serve a request."""

    code = "ai-unavailable"


class LLMConnectionError(LLMError):
    """The provider endpoint could not be reached."""


class LLMResponseError(LLMError):
    """The provider answered with something unusable."""


class LLMClient:
    """Chat completions client bound to one provider and model."""

    def __init__(
        self,
        config: LLMConfig | None = None,
        provider: Provider | None = None,
        model: str | None = None,
    ):
        """Create a client.

        Args:
            config: Resolved settings (defaults to the application config)
            provider: Use this provider instead of the configured one
            model: Use this model instead of the provider's
        """
        if config is None or (provider is not None and provider != config.provider):
            config = LLMConfig.from_app_config(provider=provider)
        if model is not None:
            config.model = model
        self.config = config

        self._client = OpenAI(
            base_url=config.base_url,
            api_key=config.api_key or "not-needed",
            timeout=config.timeout,
        )

        logger.info(
            "llm.client_ready",
            provider=config.provider,
            model=config.model,
            base_url=config.base_url,
        )

    def _build_request(
        self,
        messages: list[Message],
        temperature: float | None,
        max_tokens: int | None,
        json_mode: bool,
    ) -> dict[str, Any]:
        request: dict[str, Any] = {
            "model": self.config.model,
            "messages": [m.to_dict() for m in messages],
            "temperature": self.config.temperature if temperature is None else temperature,
            "max_tokens": self.config.max_tokens if max_tokens is None else max_tokens,
        }
        # Providers without JSON mode still get the JSON instructions in the prompt
        if json_mode and self.config.supports_json_object:
            request["response_format"] = {"type": "json_object"}
        return request

    def chat(
        self,
        messages: list[Message],
        temperature: float | None = None,
        max_tokens: int | None = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        """Run one chat completion.

        Raises:
            LLMConnectionError: The endpoint is unreachable
            LLMResponseError: The answer had no choices
            LLMError: Any other provider failure (auth, quota, bad request)
        """
        request = self._build_request(messages, temperature, max_tokens, json_mode)
        started = time.monotonic()

        try:
            completion = self._client.chat.completions.create(**request)
        except APIConnectionError as e:
            raise LLMConnectionError(
                f"Could not connect to {self.config.provider} at {self.config.base_url}: {e}"
            ) from e
        except OpenAIError as e:
            raise LLMError(f"LLM call failed: {e}") from e

        if not completion.choices:
            raise LLMResponseError("Empty response from LLM")

        usage = {}
        if completion.usage:
            usage = {
                "prompt_tokens": completion.usage.prompt_tokens,
                "completion_tokens": completion.usage.completion_tokens,
                "total_tokens": completion.usage.total_tokens,
            }
        response = LLMResponse(
            content=completion.choices[0].message.content or "",
            model=completion.model,
            provider=self.config.provider,
            usage=usage,
            latency_ms=int((time.monotonic() - started) * 1000),
        )

        logger.debug(
            "llm.response",
            provider=response.provider,
            model=response.model,
            tokens=response.total_tokens,
            latency_ms=response.latency_ms,
        )
        return response

    def _try_parse_json(self, content: str) -> dict[str, Any] | None:
        """First JSON object found in an answer, or None.

        Looks at the whole answer, then a fenced block, then the outermost
        braces, after dropping reasoning blocks.
        """
        for candidate in _json_candidates(content):
            try:
                parsed = json.loads(candidate)
            except json.JSONDecodeError:
                continue
            if isinstance(parsed, dict):
                return parsed
        return None

    def chat_json(
        self,
        messages: list[Message],
        temperature: float | None = None,
        max_tokens: int | None = None,
        max_retries: int = 1,
    ) -> dict[str, Any]:
        """Chat completion whose answer must be a JSON object.

        An unparseable answer is sent back with a repair instruction up to
        max_retries times. Attachments are not re-sent on repair turns.

        Raises:
            LLMResponseError: No valid JSON after the retries
        """
        first = self.chat(messages, temperature, max_tokens, json_mode=True)
        parsed = self._try_parse_json(first.content)

        answer = first.content
        for _ in range(max_retries):
            if parsed is not None:
                break
            logger.warning(
                "llm.json_retry",
                provider=self.config.provider,
                content=answer[:100],
            )
            repair = Message(
                role="user", content=JSON_REPAIR_PROMPT.format(invalid_output=answer[:1000])
            )
            retry_messages = [m.without_attachments() for m in messages] + [repair]
            answer = self.chat(retry_messages, temperature, max_tokens, json_mode=True).content
            parsed = self._try_parse_json(answer)
            if parsed is not None:
                logger.info("llm.json_recovered")

        if parsed is None:
            raise LLMResponseError(f"Could not obtain valid JSON: {first.content[:200]}...")
        return parsed

    def simple_chat(
        self,
        system_prompt: str,
        user_message: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """System prompt plus one user turn; returns the answer text."""
        messages = [
            Message(role="system", content=system_prompt),
            Message(role="user", content=user_message),
        ]
        return self.chat(messages, temperature, max_tokens).content

    def simple_json(
        self,
        system_prompt: str,
        user_message: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
        attachments: list[Attachment] | None = None,
    ) -> dict[str, Any]:
        """System prompt plus one user turn (with optional files); returns parsed JSON."""
        messages = [
            Message(role="system", content=system_prompt),
            Message(role="user", content=user_message, attachments=attachments or []),
        ]
        return self.chat_json(messages, temperature, max_tokens)

    def is_available(self) -> bool:
        """Whether the provider answers a model listing request."""
        try:
            self._client.models.list()
        except OpenAIError:
            return False
        return True
