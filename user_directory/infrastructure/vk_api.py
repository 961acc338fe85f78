"""
Minimal VK API client.

The client uses `requests` internally (sync). Async callers go through
`acall`, which runs the request in a worker thread via `asyncio.to_thread`.
Transport failures are retried with tenacity; API error payloads are raised
as VkApiError without retry.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from user_directory.config import Settings, get_settings
from user_directory.domain.errors import ResolutionError, VkApiError
from user_directory.utils.logging import get_logger

log = get_logger(__name__)


@dataclass
class VkApiConfig:
    token: Optional[str]
    version: str = "5.199"
    base_url: str = "https://api.vk.com/method"
    timeout: float = 10.0

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "VkApiConfig":
        settings = settings or get_settings()
        return cls(
            token=settings.vk_api_token,
            version=settings.vk_api_version,
            base_url=settings.vk_api_base_url,
            timeout=settings.vk_api_timeout,
        )

    def method_url(self, method: str) -> str:
        return f"{self.base_url.rstrip('/')}/{method}"


class VkApiClient:
    def __init__(self, config: VkApiConfig, session: Optional[requests.Session] = None) -> None:
        self.config = config
        self._session = session or requests.Session()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
        retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout)),
        before_sleep=before_sleep_log(log, logging.WARNING),
        reraise=True,
    )
    def _post(self, method: str, payload: Dict[str, Any]) -> requests.Response:
        return self._session.post(
            self.config.method_url(method),
            data=payload,
            timeout=self.config.timeout,
        )

    def call(self, method: str, **params: Any) -> Any:
        """
        Call an API method and return its `response` member.

        Raises
        ------
        VkApiError
            If the API answered with an error payload.
        ResolutionError
            If the API could not be reached or answered with a non-JSON body.
        """
        payload = {key: value for key, value in params.items() if value is not None}
        payload["v"] = self.config.version
        if self.config.token:
            payload["access_token"] = self.config.token

        try:
            resp = self._post(method, payload)
            resp.raise_for_status()
            body = resp.json()
        except requests.HTTPError as exc:
            raise ResolutionError(method, f"HTTP {exc.response.status_code}") from exc
        except requests.JSONDecodeError as exc:
            raise ResolutionError(method, "VK API returned a non-JSON body") from exc
        except requests.RequestException as exc:
            raise ResolutionError(method, f"VK API unreachable: {exc}") from exc

        if "error" in body:
            error = body["error"]
            raise VkApiError(method, int(error.get("error_code", 0)), str(error.get("error_msg", "")))
        return body.get("response")

    async def acall(self, method: str, **params: Any) -> Any:
        return await asyncio.to_thread(self.call, method, **params)

    def close(self) -> None:
        self._session.close()


__all__ = ["VkApiClient", "VkApiConfig"]
