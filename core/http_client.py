"""
JSON-over-HTTP client shared by the collaborator adapters.

Each adapter (story, payment, orders) owns one CollaboratorClient pointed at
its service's base URL. The client performs a single POST per call with a
bounded timeout and converts every failure mode into a CollaboratorError:

    - connection errors           -> CollaboratorError
    - timeout                     -> CollaboratorTimeoutError
    - non-2xx status              -> CollaboratorError (status_code set)
    - body is not a JSON object   -> CollaboratorError

Adapters translate these into their own error type so the order pipeline
shows one message per service.

Usage:
    client = CollaboratorClient("http://127.0.0.1:5000/api", "story", timeout_seconds=30)
    body = client.post("create-draft", data=fields, files={"coverImage": fh})
"""

from __future__ import annotations

import logging
from typing import Dict, Any, Optional

import requests

from .exceptions import CollaboratorError, CollaboratorTimeoutError


# Longest slice of an error body kept for the log
MAX_ERROR_BODY_CHARS = 500


class CollaboratorClient:
    """
    Thin wrapper around requests.Session for one collaborator service.

    Attributes:
        base_url: Service root, without trailing slash
        service: Short service name used in logs and error details
        timeout_seconds: Timeout applied to every call
    """

    def __init__(
        self,
        base_url: str,
        service: str,
        timeout_seconds: float = 30.0,
        http: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the client.

        Args:
            base_url: Service root URL (e.g. http://127.0.0.1:5000/api)
            service: Service name for logs/errors
            timeout_seconds: Per-call timeout
            http: Session to use (tests pass a MagicMock)
            logger: Logger instance (creates default if not provided)

        Raises:
            ValueError: If base_url is empty or timeout is not positive
        """
        if not base_url:
            raise ValueError(f"base_url is required for the {service} service")
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")

        self.base_url = base_url.rstrip("/")
        self.service = service
        self.timeout_seconds = timeout_seconds
        self._http = http or requests.Session()
        self._logger = logger or logging.getLogger(f"core.http_client.{service}")

    def url_for(self, path: str) -> str:
        """Absolute URL for a path under base_url."""
        return f"{self.base_url}/{path.lstrip('/')}"

    def post(
        self,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """
        POST to the service and return the decoded JSON object.

        Args:
            path: Path under base_url
            json: JSON body (mutually exclusive with data/files)
            data: Form fields for multipart/urlencoded bodies
            files: File parts for multipart bodies
            headers: Extra request headers (e.g. API keys)

        Returns:
            Decoded response body

        Raises:
            CollaboratorTimeoutError: If the call exceeded timeout_seconds
            CollaboratorError: On connection failure, non-2xx, or bad body
        """
        url = self.url_for(path)
        self._logger.debug(f"POST {url}")

        try:
            response = self._http.post(
                url,
                json=json,
                data=data,
                files=files,
                headers=headers,
                timeout=self.timeout_seconds,
            )
        except requests.Timeout as e:
            self._logger.warning(f"{self.service} call to {url} timed out")
            raise CollaboratorTimeoutError(self.service, self.timeout_seconds) from e
        except requests.RequestException as e:
            self._logger.warning(f"{self.service} call to {url} failed: {e}")
            raise self._error(f"Request to {url} failed: {e}") from e

        if not 200 <= response.status_code < 300:
            body = (response.text or "")[:MAX_ERROR_BODY_CHARS]
            self._logger.warning(
                f"{self.service} returned HTTP {response.status_code}: {body}"
            )
            raise self._error(
                f"{self.service} returned HTTP {response.status_code}",
                status_code=response.status_code,
                body=body,
            )

        try:
            payload = response.json()
        except ValueError as e:
            self._logger.warning(f"{self.service} returned a non-JSON body")
            raise self._error(
                f"{self.service} returned a non-JSON body",
                status_code=response.status_code,
            ) from e

        if not isinstance(payload, dict):
            raise self._error(
                f"{self.service} returned {type(payload).__name__}, expected an object",
                status_code=response.status_code,
            )

        return payload

    def _error(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None
    ) -> CollaboratorError:
        details: Dict[str, Any] = {"service_name": self.service}
        if body:
            details["body"] = body
        return CollaboratorError(message, status_code=status_code, details=details)
