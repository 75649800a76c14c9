# -*- coding: utf-8 -*-
"""
Backend REST client.

Every call to the TLC backend goes through ``ApiClient``:
- the bearer token is read from the session at call time, never captured
- HTTP errors become ``APIError`` (status + server detail), transport
  failures become ``NetworkError``
- only GETs are retried; POSTs (orders, verification) are sent at most once
- a 401 on an authenticated call is reported to ``on_unauthorized``
"""

from typing import Any, Callable, Optional, Tuple, Union

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from config import Settings
from utils.error_handlers import (
    APIError,
    NetworkError,
    describe_http_error,
    describe_network_error,
)
from utils.logging_config import get_logger

logger = get_logger(__name__)

Timeout = Union[float, Tuple[float, float]]
TokenProvider = Callable[[], Optional[str]]

_USER_AGENT = "tlc-library-client"


def _create_secure_session(get_retries: int) -> requests.Session:
    """
    Create a requests session with connection pooling and SSL verification.

    Returns:
        Configured requests.Session with GET-only retries
    """
    session = requests.Session()
    session.verify = True  # Explicit SSL certificate verification
    session.headers.update({"User-Agent": _USER_AGENT, "Accept": "application/json"})

    # POST is excluded so a create-order or verify is never sent twice
    retry_strategy = Retry(
        total=get_retries,
        backoff_factor=0.5,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=["GET"],
        raise_on_status=False,
        respect_retry_after_header=True,
    )
    adapter = HTTPAdapter(
        pool_connections=4,
        pool_maxsize=8,
        max_retries=retry_strategy,
    )
    session.mount("https://", adapter)
    session.mount("http://", adapter)

    return session


def extract_error_detail(response: requests.Response) -> str:
    """
    Pull the server's own message out of an error response.

    Understands ``{"detail": "..."}``, ``{"message": "..."}`` and FastAPI's
    422 list form ``{"detail": [{"msg": "..."}]}``.
    """
    try:
        payload = response.json()
    except ValueError:
        return (response.text or "").strip()[:200]

    detail: Any = ""
    if isinstance(payload, dict):
        detail = payload.get("detail") or payload.get("message") or ""
        if isinstance(detail, list) and detail:
            first = detail[0]
            detail = first.get("msg", "") if isinstance(first, dict) else first
        elif isinstance(detail, dict):
            detail = detail.get("message") or detail.get("msg") or ""
    return str(detail or "").strip()


class ApiClient:
    """
    Thin wrapper over a ``requests.Session`` bound to the configured backend.

    ``token_provider`` is consulted on every authenticated request.
    ``on_unauthorized`` is called (with the failing path) after a 401 on a
    request that carried the session token.
    """

    def __init__(
        self,
        settings: Settings,
        token_provider: Optional[TokenProvider] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = settings.api_base_url
        self.timeout: Timeout = settings.timeout
        self.upload_timeout: Timeout = settings.upload_timeout
        self._session = session or _create_secure_session(settings.get_retries)
        self._token_provider: TokenProvider = token_provider or (lambda: None)
        self.on_unauthorized: Optional[Callable[[str], None]] = None

    def set_token_provider(self, provider: TokenProvider) -> None:
        self._token_provider = provider

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    # -------------------- public verbs --------------------

    def get(self, path: str, **kwargs) -> Any:
        """GET ``path`` and return the decoded JSON body."""
        return self._decode(self._request("GET", path, **kwargs))

    def post(self, path: str, json: Optional[dict] = None, **kwargs) -> Any:
        """POST ``json`` to ``path`` and return the decoded JSON body (None if empty)."""
        return self._decode(self._request("POST", path, json=json, **kwargs))

    def get_bytes(self, path: str, **kwargs) -> bytes:
        """GET ``path`` and return the raw body (PDF downloads)."""
        return self._request("GET", path, accept="application/pdf", **kwargs).content

    # -------------------- internals --------------------

    def _request(
        self,
        method: str,
        path: str,
        json: Optional[dict] = None,
        token: Optional[str] = None,
        authenticated: bool = True,
        report_unauthorized: bool = True,
        timeout: Optional[Timeout] = None,
        accept: Optional[str] = None,
        fallback_message: Optional[str] = None,
    ) -> requests.Response:
        headers = {}
        bearer = None
        if authenticated:
            bearer = token if token is not None else self._token_provider()
            if bearer:
                headers["Authorization"] = f"Bearer {bearer}"
        if accept:
            headers["Accept"] = accept

        url = self.url_for(path)
        logger.debug(f"{method} {path}")

        try:
            response = self._session.request(
                method,
                url,
                headers=headers,
                json=json,
                timeout=timeout or self.timeout,
            )
        except requests.exceptions.Timeout as e:
            logger.error(f"{method} {path} timed out")
            raise NetworkError(
                message=describe_network_error(timed_out=True, connection_failed=False),
                original_error=e,
                timed_out=True,
            ) from e
        except requests.exceptions.ConnectionError as e:
            logger.error(f"{method} {path} connection error: {type(e).__name__}")
            raise NetworkError(
                message=describe_network_error(timed_out=False, connection_failed=True),
                original_error=e,
            ) from e
        except requests.exceptions.RequestException as e:
            logger.error(f"{method} {path} network error: {str(e)[:100]}")
            raise NetworkError(
                message=describe_network_error(False, False, fallback_message),
                original_error=e,
            ) from e

        if response.ok:
            return response

        detail = extract_error_detail(response)
        logger.warning(f"{method} {path} -> HTTP {response.status_code}")

        if response.status_code == 401 and bearer and report_unauthorized and self.on_unauthorized:
            self.on_unauthorized(path)

        raise APIError(
            message=describe_http_error(response.status_code, detail or None, fallback_message),
            status_code=response.status_code,
            detail=detail or None,
        )

    @staticmethod
    def _decode(response: requests.Response) -> Any:
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Unparseable response body from {response.url}")
            raise APIError(
                message="Unable to read server response. Please try again later.",
                original_error=e,
                status_code=response.status_code,
            ) from e
