"""
HTTP client capability injected into the flow executor.
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Protocol
import requests
from requests.exceptions import RequestException, Timeout, ConnectionError
from shared.constants import DEFAULT_HTTP_TIMEOUT_SECONDS
from shared.exceptions import HttpCallError


class HttpClient(Protocol):

    async def request(self, method: str, url: str, headers: Dict[str, str], body: Optional[str]) -> Any:
        """Issues one request and returns the parsed JSON response body"""
        ...


class RequestsHttpClient:
    """
    requests-backed client; blocking calls run in a worker thread.

    Any status code is a response. Only transport failures and bodies that
    are not JSON raise.
    """

    def __init__(self, timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS, session: Optional[requests.Session] = None):
        self.timeout = timeout
        self.session = session or requests.Session()

    async def request(self, method: str, url: str, headers: Dict[str, str], body: Optional[str]) -> Any:
        return await asyncio.to_thread(self._send, method, url, headers, body)

    def _send(self, method: str, url: str, headers: Dict[str, str], body: Optional[str]) -> Any:
        try:
            response = self.session.request(
                method,
                url,
                headers=headers,
                data=body.encode("utf-8") if body is not None else None,
                timeout=self.timeout
            )

        except (Timeout, ConnectionError) as e:
            raise HttpCallError(f"Network error: {str(e)}", url=url, method=method, error_class=type(e).__name__)

        except RequestException as e:
            status_code = e.response.status_code if e.response is not None else None
            raise HttpCallError(f"Request failed: {str(e)}", status_code=status_code, url=url, method=method)

        if response.status_code >= 400:
            logging.warning("API responded with error status", extra={"url": url, "status_code": response.status_code})

        try:
            return response.json()
        except ValueError as e:
            logging.debug("Response body is not JSON", extra={"url": url, "status_code": response.status_code})
            raise HttpCallError(
                f"Response from {url} is not valid JSON: {str(e)}",
                status_code=response.status_code,
                url=url,
                method=method
            )

    def close(self) -> None:
        self.session.close()
