from __future__ import annotations

import json
import re
from typing import Any

from market.services.config import openai_api_key, openai_model
from market.services.providers.base import ProviderException, ProviderMixin

CHAT_COMPLETIONS_URL = "https://api.openai.com/v1/chat/completions"
_TRAILING_JSON = re.compile(r"\{[\s\S]*\}$")


def parse_json_reply(text: str) -> dict[str, Any] | None:
    """Parse a model reply that should be a JSON object, tolerating leading prose."""
    candidate = (text or "").strip()
    chunks = [candidate]
    match = _TRAILING_JSON.search(candidate)
    if match:
        chunks.append(match.group(0))
    for chunk in chunks:
        try:
            parsed = json.loads(chunk)
        except ValueError:
            continue
        if isinstance(parsed, dict):
            return parsed
    return None


class OpenAIChatClient(ProviderMixin):
    name = "openai"
    timeout_seconds = 30

    def __init__(self, *, api_key: str | None = None, model: str | None = None) -> None:
        self.api_key = (api_key if api_key is not None else openai_api_key()).strip()
        self.model = model or openai_model()

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def complete(
        self,
        messages: list[dict[str, str]],
        *,
        temperature: float = 0.2,
        max_tokens: int = 1200,
        model: str | None = None,
    ) -> str:
        if not self.enabled:
            raise ProviderException("OPENAI_API_KEY missing", error_type="config", http_status=401)
        payload = self._request_json(
            "POST",
            CHAT_COMPLETIONS_URL,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            json_body={
                "model": model or self.model,
                "temperature": temperature,
                "max_tokens": max_tokens,
                "messages": messages,
            },
        )
        try:
            return str(payload["choices"][0]["message"]["content"] or "")
        except (KeyError, IndexError, TypeError):
            return ""
