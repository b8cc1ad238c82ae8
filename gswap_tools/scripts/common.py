"""Shared plumbing for the one-shot scripts: credentials, usage errors, failure output."""

import json
import logging
import sys
import uuid
from typing import Any, NoReturn, Tuple

from ..config import ConfigError, require_env
from ..errors import describe
from ..keys import normalise_private_key, resolve_gala_address


def setup_logging() -> None:
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(message)s", stream=sys.stderr)


def usage(message: str) -> NoReturn:
    print(message, file=sys.stderr)
    sys.exit(1)


def fail(exc: BaseException) -> NoReturn:
    """Print status/body (or just the message) to stderr and exit 1."""
    headline, body = describe(exc)
    print(headline, file=sys.stderr)
    if body:
        print("Response body:", body, file=sys.stderr)
    sys.exit(1)


def credentials() -> Tuple[str, str]:
    """(0x private key, resolved wallet address); exits 1 when either is missing or malformed."""
    try:
        key = normalise_private_key(require_env("PRIVATE_KEY"))
        wallet = resolve_gala_address(require_env("WALLET_ADDRESS"))
    except (ConfigError, ValueError) as e:
        usage(str(e))
    return key, wallet


def unique_key(prefix: str = "galaconnect-operation") -> str:
    return f"{prefix}-{uuid.uuid4()}"


def print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))
