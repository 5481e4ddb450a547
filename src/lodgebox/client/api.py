"""HTTP client for the lodge submission endpoint.

This module provides:
- SubmissionClient: Async HTTP client that delivers lodge submissions
- APIError and subclasses: Failures reported by the endpoint or the network
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from lodgebox.core.config import EndpointConfig

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base exception for delivery errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_transient(self) -> bool:
        """True if retrying later may succeed."""
        return self.status_code == 429 or (
            self.status_code is not None and self.status_code >= 500
        )


class NetworkError(APIError):
    """The endpoint could not be reached."""

    @property
    def is_transient(self) -> bool:
        return True


class AuthenticationError(APIError):
    """Authentication failed."""


class ValidationError(APIError):
    """The endpoint rejected the submission."""


class ServerError(APIError):
    """The endpoint failed while handling the submission."""


@dataclass
class CreatedLodge:
    """Result of a successful creation request."""

    lodge_id: str | None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CreatedLodge:
        """Create from API response dictionary."""
        lodge_id = data.get("lodgeId")
        return cls(lodge_id=str(lodge_id) if lodge_id is not None else None)


def _error_detail(response: httpx.Response, default: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return default
    if isinstance(body, dict):
        return str(body.get("error") or body.get("detail") or default)
    return default


class SubmissionClient:
    """Async HTTP client for the lodge submission endpoint.

    The bearer token is sent per request because each queued entry
    carries the token captured when it was created.
    """

    def __init__(
        self,
        config: EndpointConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Endpoint configuration.
            transport: Optional transport (tests, proxies).
        """
        self._config = config
        self._client = httpx.AsyncClient(
            base_url=config.base_url,
            timeout=config.timeout,
            verify=config.verify_ssl,
            transport=transport,
        )

    @property
    def config(self) -> EndpointConfig:
        """Endpoint configuration."""
        return self._config

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> SubmissionClient:
        """Context manager entry."""
        return self

    async def __aexit__(self, *args: object) -> None:
        """Context manager exit."""
        await self.close()

    def _handle_response(self, response: httpx.Response) -> httpx.Response:
        """Handle API response and raise appropriate exceptions."""
        if response.is_success:
            return response
        status = response.status_code
        if status == 401:
            raise AuthenticationError(_error_detail(response, "Unauthorized"), 401)
        if status == 400:
            raise ValidationError(_error_detail(response, "Bad request"), 400)
        if status >= 500:
            raise ServerError(_error_detail(response, "Server error"), status)
        raise APIError(_error_detail(response, f"HTTP {status}"), status)

    async def health_check(self) -> bool:
        """Check if the application server is reachable.

        Returns:
            True if the server answered without a server error.
        """
        try:
            response = await self._client.get("/")
        except httpx.RequestError:
            return False
        return response.status_code < 500

    async def create_lodge(
        self,
        payload: dict[str, Any],
        units: list[dict[str, Any]],
        auth_token: str,
    ) -> CreatedLodge:
        """Deliver a lodge creation request.

        Args:
            payload: Lodge record (``lodgeData``).
            units: Unit records.
            auth_token: Bearer token of the submitting user.

        Returns:
            The created lodge reference.

        Raises:
            NetworkError: If the endpoint could not be reached.
            APIError: If the endpoint answered with a non-success status.
        """
        try:
            response = await self._client.post(
                self._config.create_path,
                json={"lodgeData": payload, "units": units},
                headers={"Authorization": f"Bearer {auth_token}"},
            )
        except httpx.RequestError as e:
            raise NetworkError(f"Request to {self._config.create_url} failed: {e}") from e

        self._handle_response(response)
        try:
            data = response.json()
        except ValueError:
            data = {}
        return CreatedLodge.from_dict(data if isinstance(data, dict) else {})
