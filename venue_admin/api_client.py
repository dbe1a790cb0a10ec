"""Client for the venue marketplace admin REST API."""

import json
import logging
from typing import Any, Callable, Dict, Mapping, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from venue_admin.config import get_config_value
from venue_admin.models import ApiResponse, ErrorKind
from venue_admin.session_store import SessionStore

SESSION_EXPIRED_MESSAGE = "Session expired. Please login again."
NETWORK_ERROR_MESSAGE = "Network error occurred"
AUTH_FAILED_MESSAGE = "Invalid credentials"

SENSITIVE_FIELDS = (
    "password",
    "password2",
    "old_password",
    "new_password",
    "new_password2",
    "otp",
)


class ApiClientError(Exception):
    """Raised inside the client; never escapes a public call."""

    error_kind = ErrorKind.API

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status


class NetworkError(ApiClientError):
    error_kind = ErrorKind.NETWORK


class AuthFailedError(ApiClientError):
    error_kind = ErrorKind.AUTH_FAILED


class NotFoundError(ApiClientError):
    error_kind = ErrorKind.NOT_FOUND


class UnexpectedHtmlError(ApiClientError):
    error_kind = ErrorKind.UNEXPECTED_HTML


def build_query_params(params: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Drop None/empty values; lists become repeated keys via requests."""
    if not params:
        return {}
    cleaned: Dict[str, Any] = {}
    for key, value in params.items():
        if value is None or value == "":
            continue
        if isinstance(value, (list, tuple)):
            values = [v for v in value if v is not None and v != ""]
            if values:
                cleaned[key] = values
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        cleaned[key] = value
    return cleaned


def _redact(payload: Any) -> Any:
    if not isinstance(payload, dict):
        return payload
    safe_payload = payload.copy()
    for key in SENSITIVE_FIELDS:
        if key in safe_payload:
            safe_payload[key] = "***REDACTED***"
    return safe_payload


class AdminApiClient:
    """
    Builds authorized requests against the admin backend and normalizes every
    outcome into an ApiResponse envelope.

    The session store is injected so several sessions can coexist (tests,
    multiple consoles). On any 401 the store is cleared and
    on_session_expired is invoked once for that response.
    """

    def __init__(
        self,
        base_url: str,
        session_store: SessionStore,
        on_session_expired: Optional[Callable[[], None]] = None,
        timeout: Optional[float] = None,
        http_session: Optional[requests.Session] = None,
    ):
        self.logger = logging.getLogger(self.__class__.__name__)
        if not base_url:
            self.logger.critical("Missing API base URL at client initialization.")
            raise ValueError("Missing API base URL")

        self.base_url = base_url.rstrip("/")
        self.session_store = session_store
        self.on_session_expired = on_session_expired
        self.timeout = timeout or get_config_value("api.timeout_seconds", 30)
        self.session = http_session or requests.Session()
        self._setup_session()

    def _setup_session(self) -> None:
        """Setup default headers and the transport retry policy"""
        self.session.headers.update(
            {
                "User-Agent": get_config_value(
                    "api.user_agent", "Venue Admin Console/1.0"
                ),
                "Accept": "application/json",
            }
        )
        retries = get_config_value("api.transport_retries", 0)
        retry_strategy = Retry(
            total=retries, backoff_factor=1, status_forcelist=[429, 502, 503, 504]
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)
        self.logger.debug(f"Requests session configured (transport retries={retries}).")

    def url_for(self, endpoint: str) -> str:
        if not endpoint.startswith("/"):
            endpoint = f"/{endpoint}"
        return f"{self.base_url}{endpoint}"

    def _log_api_call(
        self,
        method: str,
        url: str,
        payload: Optional[Any] = None,
        response: Optional[requests.Response] = None,
    ) -> None:
        """Log API calls in debug mode"""
        if not get_config_value("bot_settings.debug_mode", False):
            return

        log_data = {
            "method": method,
            "url": url,
            "payload": _redact(payload),
            "status_code": response.status_code if response is not None else None,
            "response_body": None,
        }
        if response is not None:
            # no secrets from login responses in the log
            if "/login" in url:
                log_data["response_body"] = "(omitted)"
            else:
                log_data["response_body"] = (response.text or "")[:1000]

        self.logger.debug(f"API Call: {json.dumps(log_data, indent=2, default=str)}")

    def _expire_session(self) -> None:
        self.logger.warning("Received 401 from the API; clearing session.")
        self.session_store.clear()
        if self.on_session_expired is None:
            return
        try:
            self.on_session_expired()
        except Exception as e:
            self.logger.error(f"Session expiry handler failed: {e}", exc_info=True)

    def _parse_response(self, response: requests.Response, authorize: bool = True) -> ApiResponse:
        """
        Classify the response; raises ApiClientError for any failure.

        A 401 tears down the session only for calls made with the stored
        token; anonymous auth calls just fail.
        """
        status = response.status_code
        content_type = (response.headers.get("Content-Type") or "").lower()

        if status == 401 and authorize:
            self._expire_session()

        if "text/html" in content_type:
            self.logger.error(
                f"HTML response received (status {status}): {response.text[:200]}"
            )
            if status == 401:
                raise AuthFailedError(
                    "Authentication failed. Please login again.", status
                )
            if status == 404:
                raise NotFoundError("API endpoint not found (404)", status)
            raise UnexpectedHtmlError(
                "Server returned HTML instead of JSON. Check API endpoint.", status
            )

        payload: Any = None
        if status != 204 and response.content:
            if "json" in content_type:
                try:
                    payload = response.json()
                except ValueError as e:
                    raise ApiClientError(
                        f"Failed to parse JSON response: {e}", status
                    ) from e
            else:
                payload = {"message": response.text}

        if not 200 <= status < 300:
            message = None
            if isinstance(payload, dict):
                message = (
                    payload.get("message") or payload.get("error") or payload.get("detail")
                )
            if status == 401:
                raise AuthFailedError(
                    message or (SESSION_EXPIRED_MESSAGE if authorize else AUTH_FAILED_MESSAGE), status
                )
            if status == 404:
                raise NotFoundError(message or f"HTTP error! status: {status}", status)
            raise ApiClientError(message or f"HTTP error! status: {status}", status)

        message = payload.get("message") if isinstance(payload, dict) else None
        return ApiResponse.ok(data=payload, message=message, status=status)

    def request(
        self,
        endpoint: str,
        method: str = "GET",
        body: Optional[Any] = None,
        query: Optional[Mapping[str, Any]] = None,
        files: Optional[Mapping[str, Any]] = None,
        form: Optional[Mapping[str, Any]] = None,
        authorize: bool = True,
    ) -> ApiResponse:
        """
        Perform a request and return the envelope.

        `data` on success is the decoded JSON body as returned by the server
        (resource decoders own unwrapping). JSON bodies set Content-Type;
        multipart requests (files/form) leave it to requests so the boundary
        is filled in. `authorize=False` is for the anonymous auth endpoints:
        no bearer header, and a 401 is an ordinary failure.
        """
        url = self.url_for(endpoint)
        method = method.upper()
        headers: Dict[str, str] = {}

        token = self.session_store.get_token() if authorize else None
        if token:
            headers["Authorization"] = f"Bearer {token}"

        kwargs: Dict[str, Any] = {
            "headers": headers,
            "params": build_query_params(query),
            "timeout": self.timeout,
        }
        if files is not None or form is not None:
            # plain fields as (None, value) parts keep the body multipart
            parts: Dict[str, Any] = {
                key: (None, str(value)) for key, value in (form or {}).items()
            }
            parts.update(files or {})
            kwargs["files"] = parts
        elif body is not None:
            headers["Content-Type"] = "application/json"
            kwargs["data"] = json.dumps(body)

        response = None
        try:
            response = self.session.request(method, url, **kwargs)
            self._log_api_call(method, url, payload=body or form, response=response)
            return self._parse_response(response, authorize)
        except ApiClientError as e:
            self.logger.error(f"{method} {endpoint} failed: {e.message}")
            return ApiResponse.fail(e.message, e.error_kind, e.status)
        except requests.exceptions.RequestException as e:
            self.logger.error(f"Network error calling {method} {endpoint}: {str(e)}")
            return ApiResponse.fail(NETWORK_ERROR_MESSAGE, ErrorKind.NETWORK)
        except Exception as e:
            self.logger.error(
                f"Unexpected error calling {method} {endpoint}: {str(e)}", exc_info=True
            )
            return ApiResponse.fail(
                str(e) or NETWORK_ERROR_MESSAGE,
                ErrorKind.API,
                response.status_code if response is not None else None,
            )

    def get(
        self,
        endpoint: str,
        query: Optional[Mapping[str, Any]] = None,
        authorize: bool = True,
    ) -> ApiResponse:
        return self.request(endpoint, "GET", query=query, authorize=authorize)

    def post(
        self,
        endpoint: str,
        body: Optional[Any] = None,
        query: Optional[Mapping[str, Any]] = None,
        authorize: bool = True,
    ) -> ApiResponse:
        return self.request(endpoint, "POST", body=body, query=query, authorize=authorize)

    def put(self, endpoint: str, body: Optional[Any] = None) -> ApiResponse:
        return self.request(endpoint, "PUT", body=body)

    def patch(self, endpoint: str, body: Optional[Any] = None) -> ApiResponse:
        return self.request(endpoint, "PATCH", body=body)

    def delete(self, endpoint: str, body: Optional[Any] = None) -> ApiResponse:
        return self.request(endpoint, "DELETE", body=body)

    def upload(
        self,
        endpoint: str,
        files: Mapping[str, Any],
        form: Optional[Mapping[str, Any]] = None,
        method: str = "POST",
    ) -> ApiResponse:
        return self.request(endpoint, method, files=files, form=form)
