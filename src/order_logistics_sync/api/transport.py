from __future__ import annotations

from typing import Any, Dict, Optional
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry


class RequestsTransport:
    """Requests session wrapper with retry/backoff.

    Retries transient failures and the listed status codes. Once retries are
    exhausted the last response is returned (not raised) so callers can
    classify the failure themselves.
    """

    def __init__(self, timeout: float = 30, max_retries: int = 2, backoff_factor: float = 0.5) -> None:
        self.session = requests.Session()
        self.timeout = timeout

        retry = Retry(
            total=max_retries,
            read=max_retries,
            connect=max_retries,
            backoff_factor=backoff_factor,
            status_forcelist=(429, 502, 503, 504),
            # gettrackinfo is a read-only lookup even though it is a POST
            allowed_methods=("POST",),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry)
        self.session.mount("https://", adapter)
        self.session.mount("http://", adapter)

    def post(self, url: str, *, headers: Optional[Dict[str, str]] = None, json: Any = None) -> requests.Response:
        return self.session.post(url, headers=headers, json=json, timeout=self.timeout)

    def close(self) -> None:
        self.session.close()
