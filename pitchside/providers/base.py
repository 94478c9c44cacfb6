"""
Shared HTTP plumbing for upstream API clients.

Maps transport failures and non-2xx answers onto the error taxonomy:
429 -> RateLimited, anything else -> UpstreamUnavailable. Transport errors
are retried with exponential backoff; HTTP errors are not.
"""
import logging
import threading
from typing import Any, Dict, Optional, Tuple

import requests
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from pitchside.errors import RateLimited, UpstreamUnavailable
from pitchside.utils.helpers import safe_int
from config.settings import settings

logger = logging.getLogger("providers")

# Limit concurrent upstream calls across all fan-out pools
_api_semaphore = threading.Semaphore(10)


class _TransportError(Exception):
    """Connection/timeout failure eligible for retry."""
    pass


class BaseAPIClient:
    """
    Minimal JSON-over-HTTP client for one upstream source.

    Subclasses set SOURCE and implement _auth().
    """

    SOURCE = "upstream"

    def __init__(self, base_url: str, api_key: Optional[str], timeout: Optional[float] = None,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout or settings.request_timeout
        self._http = session or requests.Session()

    def _auth(self) -> Tuple[Dict[str, str], Dict[str, Any]]:
        """(headers, query params) carrying the credentials."""
        return {}, {}

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        retry=retry_if_exception_type(_TransportError),
        reraise=True,
    )
    def _send(self, url: str, headers: Dict[str, str], params: Dict[str, Any]) -> requests.Response:
        try:
            with _api_semaphore:
                return self._http.get(url, headers=headers, params=params, timeout=self.timeout)
        except (requests.ConnectionError, requests.Timeout) as e:
            logger.warning(f"{self.SOURCE} transport error, retrying: {e}")
            raise _TransportError(str(e))

    def request(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> requests.Response:
        """
        GET an endpoint and return the successful response.

        Raises:
            RateLimited: upstream answered 429
            UpstreamUnavailable: transport failure or any other non-2xx
        """
        headers, auth_params = self._auth()
        query = {k: v for k, v in (params or {}).items() if v is not None}
        query.update(auth_params)
        url = f"{self.base_url}/{endpoint.lstrip('/')}"

        try:
            response = self._send(url, headers, query)
        except _TransportError as e:
            raise UpstreamUnavailable(self.SOURCE, f"transport failure: {e}")
        except requests.RequestException as e:
            raise UpstreamUnavailable(self.SOURCE, f"request failed: {e}")

        if response.status_code == 429:
            retry_after = safe_int(response.headers.get("Retry-After"), None)
            logger.warning(f"{self.SOURCE} rate limited on {endpoint}")
            raise RateLimited(self.SOURCE, retry_after=retry_after)
        if not 200 <= response.status_code < 300:
            logger.error(f"{self.SOURCE} API error: {response.status_code} on {endpoint}")
            raise UpstreamUnavailable(self.SOURCE, f"HTTP {response.status_code} on {endpoint}",
                                      status_code=response.status_code)
        return response

    def get_json(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        response = self.request(endpoint, params)
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamUnavailable(self.SOURCE, f"invalid JSON from {endpoint}: {e}")
