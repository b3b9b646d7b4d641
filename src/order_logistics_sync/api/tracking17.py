from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional
import json
import logging

import requests

from order_logistics_sync.models.env_cfg import DEFAULT_TRACKING17_BASE_URL
from .transport import RequestsTransport

TRACK_INFO_PATH = "/track/v2.2/gettrackinfo"
TOKEN_HEADER = "17token"

_LOG_BODY_LIMIT = 4000


class ProviderUnavailable(RuntimeError):
    """The tracking provider could not answer (transport, HTTP status or body)."""


@dataclass(frozen=True)
class Tracking17Config:
    """Connection settings, passed explicitly to every client instance."""
    token: str
    base_url: str = DEFAULT_TRACKING17_BASE_URL
    timeout: float = 30

    def endpoint(self) -> str:
        base = self.base_url.rstrip("/")
        if base.endswith("gettrackinfo"):
            return base
        return base + TRACK_INFO_PATH


def _clip(text: Optional[str]) -> Optional[str]:
    if text and len(text) > _LOG_BODY_LIMIT:
        return text[:_LOG_BODY_LIMIT] + "..."
    return text


class Tracking17Client:
    """Minimal 17TRACK client.

    post_tracking(numbers) sends ONE gettrackinfo request for all numbers and
    returns the decoded JSON body. Every failure is raised as
    ProviderUnavailable; interpreting the body is left to the caller.
    """

    def __init__(
        self,
        cfg: Tracking17Config,
        transport: Optional[Any] = None,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.cfg = cfg
        self.transport = transport or RequestsTransport(timeout=cfg.timeout)
        self.logger: logging.Logger = logger or logging.getLogger(
            "order_logistics_sync.api.tracking17"
        )

    def _headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json", TOKEN_HEADER: self.cfg.token}

    def post_tracking(self, numbers: List[str]) -> Dict[str, Any]:
        endpoint = self.cfg.endpoint()
        body = [{"number": n} for n in numbers]

        self.logger.debug(
            "17TRACK POST endpoint=%s numbers=%d request_body=%s",
            endpoint,
            len(body),
            _clip(json.dumps(body, ensure_ascii=False)),
        )

        try:
            resp = self.transport.post(
                endpoint, headers=self._headers(), json=body)
        except requests.RequestException as ex:
            raise ProviderUnavailable(f"transport error: {ex}") from ex

        status = getattr(resp, "status_code", None)
        try:
            resp.raise_for_status()
        except requests.HTTPError as ex:
            self.logger.warning(
                "17TRACK POST endpoint=%s returned error status=%s response_body=%s",
                endpoint,
                status,
                _clip(getattr(resp, "text", None)),
            )
            raise ProviderUnavailable(f"HTTP {status}") from ex

        try:
            payload = resp.json()
        except ValueError as ex:
            raise ProviderUnavailable(
                f"response body is not JSON (HTTP {status})") from ex

        self.logger.debug(
            "17TRACK POST endpoint=%s status=%s response_body=%s",
            endpoint,
            status,
            _clip(json.dumps(payload, ensure_ascii=False)),
        )
        return payload

    def close(self) -> None:
        close = getattr(self.transport, "close", None)
        if callable(close):
            close()
