"""
Remote perception client for AI-type anchors.

Request:  {"prompt", "imageBase64", "mode"?}
Response: {"match"?: bool, "reason"?: str, "value"?: any}
"""
from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from ...core.config import settings


class AiCheckError(RuntimeError):
    """Remote AI request failed."""


class AiCheckClient:
    def __init__(
        self,
        url: Optional[str] = None,
        *,
        api_secret: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._url = (url if url is not None else settings.ai_check_url) or ""
        self._secret = api_secret if api_secret is not None else settings.ai_api_secret
        self._timeout = httpx.Timeout(
            settings.ai_read_timeout_sec,
            connect=settings.ai_connect_timeout_sec,
        )
        self._transport = transport

    def configured(self) -> bool:
        return bool(self._url)

    def check(self, prompt: str, image_base64: str, mode: Optional[str] = None) -> Dict[str, Any]:
        if not self.configured():
            raise AiCheckError("AI_CHECK_URL 未配置")
        body: Dict[str, Any] = {"prompt": prompt, "imageBase64": image_base64}
        if mode:
            body["mode"] = mode
        headers = {}
        if self._secret:
            headers["x-api-secret"] = self._secret

        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                response = client.post(self._url, json=body, headers=headers)
        except httpx.HTTPError as e:
            raise AiCheckError(f"请求失败: {e}") from e

        if response.status_code >= 400:
            raise AiCheckError(f"{response.status_code}: {response.text[:200]}")
        try:
            payload = response.json()
        except ValueError as e:
            raise AiCheckError(f"响应不是 JSON: {response.text[:200]}") from e
        if not isinstance(payload, dict):
            raise AiCheckError("响应格式错误（非 object）")
        return payload


def interpret_ai_response(payload: Dict[str, Any]) -> tuple[bool, Optional[str]]:
    """(matched, value_or_reason)。

    提取模式返回 value：非空即视为命中；判定模式读取 match 字段。
    """
    if "value" in payload:
        value = payload.get("value")
        text = "" if value is None else str(value)
        return (bool(text.strip()), text)
    return (bool(payload.get("match", False)), payload.get("reason") or "")


__all__ = ["AiCheckError", "AiCheckClient", "interpret_ai_response"]
