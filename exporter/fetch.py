"""JSON-over-HTTP fetch for probe targets"""
from typing import Dict, Optional

import httpx

from logging_config import get_logger


logger = get_logger(__name__)


class ProbeError(Exception):
    """Request-level failure that ends a single probe"""


class TargetMissing(ProbeError):
    """The probe request did not name a target"""


class FetchFailed(ProbeError):
    """The target could not be fetched"""

    def __init__(self, target: str, reason: str):
        super().__init__(reason)
        self.target = target
        self.reason = reason


async def fetch_json(client: httpx.AsyncClient, target: str,
                     headers: Optional[Dict[str, str]] = None) -> bytes:
    """GET target and return the raw response body.

    There is no retry: malformed URLs, transport errors and non-2xx responses
    raise FetchFailed.
    """
    if not target:
        raise TargetMissing("Target parameter is missing")

    try:
        response = await client.get(target, headers=headers or {})
    except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
        # Malformed targets fail while the request is built
        logger.warning("Failed to fetch target", target=target, error=str(e),
                       error_type=type(e).__name__)
        raise FetchFailed(target, str(e) or type(e).__name__) from e

    if not response.is_success:
        reason = f"{response.status_code} {response.reason_phrase}".strip()
        logger.warning("Target returned non-success status", target=target,
                       status_code=response.status_code)
        raise FetchFailed(target, reason)

    logger.debug("Fetched target", target=target, bytes=len(response.content))
    return response.content
