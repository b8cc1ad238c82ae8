"""Thin JSON-over-HTTP wrapper used by every script and the dashboard."""

import json
import logging
import time
from typing import Any, Callable, Dict, Optional, TypeVar

import requests

from .errors import TransportError, response_body

log = logging.getLogger("gswap.api")

T = TypeVar("T")


def clean_base_url(url: str) -> str:
    return url[:-1] if url.endswith("/") else url


class ApiClient:
    def __init__(self, base_url: str, timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.base_url = clean_base_url(base_url)
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json", "Accept": "application/json"})

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _send(self, method: str, path: str, **kwargs) -> Any:
        url = self.url(path)
        try:
            r = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise TransportError(None, str(e))
        if not r.ok:
            raise TransportError(r.status_code, response_body(r))
        return response_body(r)

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self._send("GET", path, params=params)

    def post(self, path: str, body: Dict[str, Any], wallet_address: Optional[str] = None) -> Any:
        headers = {"X-Wallet-Address": wallet_address} if wallet_address else None
        return self._send("POST", path, data=json.dumps(body), headers=headers)


def is_rate_limited(exc: BaseException) -> bool:
    return isinstance(exc, TransportError) and exc.status == 429


def with_backoff(
    fn: Callable[[], T],
    attempts: int = 3,
    base_delay: float = 2.0,
    retry_if: Callable[[BaseException], bool] = is_rate_limited,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Call `fn`, retrying only errors accepted by `retry_if`.
    Delay before attempt n (n >= 2) is base_delay * 2**(n-2).
    """
    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except Exception as e:
            if attempt >= attempts or not retry_if(e):
                raise
            delay = base_delay * (2 ** (attempt - 1))
            log.warning("rate limited, retrying in %.0fs (attempt %d/%d)", delay, attempt, attempts)
            sleep(delay)
    raise RuntimeError("unreachable")
