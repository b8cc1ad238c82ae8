"""
One error shape for everything that talks to the exchange.

TransportError   the remote answered with a non-2xx status (or never answered)
ValidationError  the request was rejected locally or by the chain's DTO validation
UnknownError     anything else
"""

import json
from typing import Any, Dict, Optional, Tuple

import requests


class ApiError(Exception):
    """Base of the tagged error result."""

    def diagnostics(self) -> Dict[str, Any]:
        return {"message": str(self)}


class TransportError(ApiError):
    def __init__(self, status: Optional[int], body: Any = None, message: str = ""):
        self.status = status
        self.body = body
        super().__init__(message or _transport_message(status, body))

    @property
    def code(self) -> str:
        return decode_error_key(self.body)

    def diagnostics(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"message": str(self), "status": self.status, "body": self.body}
        if self.code:
            out["code"] = self.code
        return out


class ValidationError(ApiError):
    pass


class UnknownError(ApiError):
    pass


def _transport_message(status: Optional[int], body: Any) -> str:
    if status is None:
        return f"request failed: {body}"
    key = decode_error_key(body)
    return f"request failed with status {status}" + (f" ({key})" if key else "")


def decode_error_key(body: Any) -> str:
    """
    Canonical UPPER_SNAKE error key from a GalaSwap/GalaChain error body, '' if unknown.
    """
    if isinstance(body, dict):
        # common fields from GalaSwap
        for key in ("error", "ErrorKey", "message", "Message"):
            v = body.get(key)
            if isinstance(v, str) and v.strip():
                return v.strip().upper().replace(" ", "_")
        # nested validation error
        ve = body.get("validationError") or body.get("ValidationError")
        if isinstance(ve, dict):
            name = ve.get("name")
            if name:
                return str(name).upper()
    if isinstance(body, str) and body.strip():
        return body.strip().upper().replace(" ", "_")
    return ""


def response_body(resp: requests.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return resp.text


def classify(exc: BaseException) -> ApiError:
    """Map any exception raised while talking to the exchange onto the tagged shape."""
    if isinstance(exc, ApiError):
        return exc
    if isinstance(exc, requests.HTTPError) and exc.response is not None:
        return TransportError(exc.response.status_code, response_body(exc.response))
    if isinstance(exc, requests.RequestException):
        return TransportError(None, str(exc))
    if isinstance(exc, ValueError):
        return ValidationError(str(exc))
    return UnknownError(str(exc) or exc.__class__.__name__)


def describe(exc: BaseException) -> Tuple[str, str]:
    """(headline, body text) for printing an error to stderr in the scripts."""
    err = classify(exc)
    if isinstance(err, TransportError) and err.status is not None:
        body = err.body
        text = body if isinstance(body, str) else json.dumps(body, indent=2, default=str)
        return f"Request failed with status {err.status}.", text
    return str(err), ""
