from __future__ import annotations

import http.client
import json
import urllib.request
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class LLMMessage:
    role: str
    content: str


@dataclass
class LLMResponse:
    content: str
    model: str
    raw: Any | None = None
    tool_calls: List[Dict[str, Any]] = field(default_factory=list)


class LLMError(RuntimeError):
    pass


class LLMClient:
    def __init__(self, model: str) -> None:
        self.model = model

    def complete(self, messages: List[LLMMessage], **kwargs: Any) -> LLMResponse:
        raise NotImplementedError


class OpenAICompatibleClient(LLMClient):
    def __init__(
        self,
        model: str,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        api_path: str = "/v1/chat/completions",
        timeout_s: float = 60,
        extra_headers: Optional[Dict[str, str]] = None,
    ) -> None:
        super().__init__(model=model)
        self.api_key = api_key
        self.base_url = base_url
        self.api_path = api_path
        self.timeout_s = timeout_s
        self.extra_headers = extra_headers or {}

    def complete(
        self,
        messages: List[LLMMessage],
        max_tokens: int = 1024,
        temperature: float = 0.2,
        **kwargs: Any,
    ) -> LLMResponse:
        if not self.base_url:
            raise LLMError("base_url is required for OpenAI-compatible clients")
        if not self.api_key:
            raise LLMError("api_key is required for OpenAI-compatible clients")

        url = self.base_url.rstrip("/") + self.api_path
        timeout_s = kwargs.pop("timeout_s", None)
        payload = {
            "model": self.model,
            "messages": [message.__dict__ for message in messages],
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        payload.update(kwargs)

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        headers.update(self.extra_headers)

        response = _post_json(url, payload, headers=headers, timeout_s=timeout_s or self.timeout_s)
        message = _extract_openai_message(response)
        return LLMResponse(
            content=message.get("content") or "",
            model=self.model,
            raw=response,
            tool_calls=_extract_tool_calls(message),
        )


def _post_json(url: str, payload: Dict[str, Any], headers: Dict[str, str], timeout_s: float) -> Any:
    data = json.dumps(payload).encode("utf-8")
    request = urllib.request.Request(url, data=data, headers=headers, method="POST")
    try:
        with urllib.request.urlopen(request, timeout=timeout_s) as response:
            body = response.read().decode("utf-8")
    except http.client.HTTPException as exc:
        # BadStatusLine, IncompleteRead and friends are not OSErrors
        raise LLMError(f"malformed HTTP response from {url}: {exc!r}") from exc
    except UnicodeDecodeError as exc:
        raise LLMError(f"completion response from {url} is not UTF-8") from exc
    try:
        return json.loads(body)
    except json.JSONDecodeError:
        return {"raw": body}


def _extract_openai_message(response: Any) -> Dict[str, Any]:
    try:
        message = response["choices"][0]["message"]
    except (KeyError, IndexError, TypeError) as exc:
        raise LLMError(f"malformed completion response: {str(response)[:200]}") from exc
    if not isinstance(message, dict):
        raise LLMError("malformed completion response: message is not an object")
    return message


def _extract_tool_calls(message: Dict[str, Any]) -> List[Dict[str, Any]]:
    tool_calls = message.get("tool_calls") or []
    if not isinstance(tool_calls, list):
        return []
    return [call for call in tool_calls if isinstance(call, dict)]
