"""Client for OpenAI-compatible chat completion endpoints."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional, Sequence

import requests

from subtitle_translator import config_manager as cfg
from subtitle_translator import logging_manager as log_mgr
from subtitle_translator.errors import APIFailureError

logger = log_mgr.get_logger().getChild("llm")

TokenUsage = Dict[str, int]
Message = Mapping[str, str]

CHAT_COMPLETIONS_PATH = "/chat/completions"


@dataclass(frozen=True)
class ClientSettings:
    """Immutable collection of configuration parameters for an :class:`LLMClient`."""

    model: str = cfg.DEFAULT_MODEL
    api_base: str = ""
    api_key: Optional[str] = None
    temperature: Optional[float] = None
    timeout_seconds: Optional[float] = None
    disable_thinking: bool = False
    debug: bool = False

    @classmethod
    def from_settings(cls, settings: cfg.SubtitleTranslatorSettings) -> "ClientSettings":
        return cls(
            model=settings.llm_model,
            api_base=settings.llm_api_base,
            api_key=settings.api_key_value(),
            temperature=settings.llm_temperature,
            timeout_seconds=settings.llm_timeout_seconds,
            disable_thinking=settings.llm_disable_thinking,
            debug=settings.debug,
        )

    def resolve_api_url(self) -> str:
        return self.api_base.rstrip("/") + CHAT_COMPLETIONS_PATH

    def with_updates(self, **updates: Any) -> "ClientSettings":
        """Return a copy of the settings with provided keyword overrides applied."""

        return replace(self, **updates)


@dataclass
class LLMResponse:
    """Container for a parsed chat completion."""

    text: str
    status_code: int
    token_usage: TokenUsage = field(default_factory=dict)
    raw: Optional[Any] = None


class LLMClient:
    """Issue single, non-streaming chat completion requests.

    The client never retries: callers own their retry policy. Every failure
    mode surfaces as :class:`APIFailureError`.
    """

    def __init__(
        self,
        settings: Optional[ClientSettings] = None,
        *,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._settings = settings or ClientSettings()
        self._session = session or requests.Session()

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    @property
    def model(self) -> str:
        return self._settings.model

    @property
    def api_url(self) -> str:
        return self._settings.resolve_api_url()

    @property
    def debug_enabled(self) -> bool:
        return bool(self._settings.debug)

    def _log_debug(self, message: str, *args: Any) -> None:
        if self.debug_enabled:
            logger.debug(message, *args)

    @staticmethod
    def _extract_token_usage(data: Mapping[str, Any]) -> TokenUsage:
        usage: TokenUsage = {}
        raw_usage = data.get("usage")
        if not isinstance(raw_usage, Mapping):
            return usage
        for key in ("prompt_tokens", "completion_tokens", "total_tokens"):
            value = raw_usage.get(key)
            if isinstance(value, int):
                usage[key] = value
        return usage

    def build_payload(self, messages: Sequence[Message]) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": [dict(message) for message in messages],
            "stream": False,
        }
        if self._settings.temperature is not None:
            payload["temperature"] = self._settings.temperature
        if self._settings.disable_thinking:
            payload["thinking"] = {"type": "disabled"}
        return payload

    def _parse_response(self, response: requests.Response) -> LLMResponse:
        try:
            data = response.json()
        except ValueError as exc:
            raise APIFailureError(
                f"Invalid JSON response: {exc}", status_code=response.status_code
            ) from exc
        if not isinstance(data, Mapping):
            raise APIFailureError(
                "Unexpected response payload type", status_code=response.status_code
            )

        choices = data.get("choices")
        if not isinstance(choices, list) or not choices:
            raise APIFailureError(
                "Response contained no choices", status_code=response.status_code
            )
        first = choices[0] if isinstance(choices[0], Mapping) else {}
        message = first.get("message") if isinstance(first.get("message"), Mapping) else {}
        content = message.get("content")
        if not isinstance(content, str) or not content.strip():
            raise APIFailureError(
                "Response contained no message content", status_code=response.status_code
            )

        usage = self._extract_token_usage(data)
        if usage:
            self._log_debug(
                "Token usage - prompt: %s, completion: %s",
                usage.get("prompt_tokens", 0),
                usage.get("completion_tokens", 0),
            )
        return LLMResponse(
            text=content, status_code=response.status_code, token_usage=usage, raw=data
        )

    def send_chat_request(self, messages: Sequence[Message]) -> LLMResponse:
        """POST ``messages`` to the chat completions endpoint and parse the reply."""

        payload = self.build_payload(messages)
        api_url = self.api_url
        self._log_debug("Dispatching LLM request to %s", api_url)
        self._log_debug("Payload: %s", json.dumps(payload, indent=2, ensure_ascii=False))

        headers = {"Content-Type": "application/json"}
        if self._settings.api_key:
            headers["Authorization"] = f"Bearer {self._settings.api_key}"

        try:
            response = self._session.post(
                api_url,
                json=payload,
                headers=headers,
                timeout=self._settings.timeout_seconds,
            )
        except requests.exceptions.RequestException as exc:
            raise APIFailureError(f"Request to {api_url} failed: {exc}") from exc

        if not 200 <= response.status_code < 300:
            body_preview = response.text[:300]
            self._log_debug(
                "Received non-2xx response: %s - %s", response.status_code, body_preview
            )
            message = f"HTTP {response.status_code}"
            if body_preview:
                message = f"{message}: {body_preview}"
            raise APIFailureError(message, status_code=response.status_code)

        return self._parse_response(response)

    def complete(self, prompt: str) -> str:
        """Send ``prompt`` as a single user message and return the reply text."""

        return self.send_chat_request([{"role": "user", "content": prompt}]).text

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> "LLMClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # pragma: no cover - trivial
        self.close()


def create_client(
    settings: Optional[cfg.SubtitleTranslatorSettings] = None,
    *,
    session: Optional[requests.Session] = None,
    **overrides: Any,
) -> LLMClient:
    """Return a new :class:`LLMClient` built from the active configuration."""

    client_settings = ClientSettings.from_settings(settings or cfg.get_settings())
    if overrides:
        client_settings = client_settings.with_updates(**overrides)
    return LLMClient(settings=client_settings, session=session)


__all__ = ["ClientSettings", "LLMClient", "LLMResponse", "create_client"]
