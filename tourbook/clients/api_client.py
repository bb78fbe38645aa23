"""HTTP client for the remote tour/booking/review store."""

import logging
import time
from typing import Any, Optional
from uuid import uuid4

import httpx

from ..core.exceptions import (
    AuthError,
    ConflictError,
    NetworkError,
    NotFoundError,
    ProblemDetailsException,
    RemoteServiceError,
    ValidationError,
)
from ..core.observability import metrics_collector

logger = logging.getLogger(__name__)


def _error_message(response: httpx.Response) -> Optional[str]:
    """Pull the human-readable message out of the remote error envelope."""
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        message = body.get("message") or body.get("detail")
        if isinstance(message, str) and message:
            return message
    return None


def error_from_response(response: httpx.Response, path: str) -> ProblemDetailsException:
    """
    Translate a non-2xx remote response into the error taxonomy.

    Args:
        response: Response received from the remote store
        path: Request path, used as the problem instance

    Returns:
        The matching ProblemDetailsException (not raised)
    """
    status_code = response.status_code
    message = _error_message(response)

    if status_code in (401, 403):
        return AuthError(
            detail=message or "You are not allowed to perform this action",
            status_code=status_code,
            instance=path,
        )
    if status_code in (400, 422):
        return ValidationError(detail=message or "The request data failed validation", instance=path)
    if status_code == 404:
        return NotFoundError(detail=message, instance=path)
    if status_code == 409:
        return ConflictError(detail=message or "The request conflicts with the current state of the resource", instance=path)
    if status_code >= 500:
        return RemoteServiceError(
            upstream_status=status_code,
            detail=message or "The remote service failed to process the request",
            instance=path,
        )
    return RemoteServiceError(
        upstream_status=status_code,
        detail=message or f"Unexpected response status {status_code}",
        instance=path,
    )


class RemoteApiClient:
    """
    Thin wrapper over a shared ``httpx.AsyncClient`` bound to one user's token.

    The underlying ``httpx.AsyncClient`` owns the connection pool, base URL
    and timeout; it is shared between sessions and closed by its owner.
    """

    def __init__(self, http: httpx.AsyncClient, token: Optional[str] = None):
        self.http = http
        self.token = token

    def _headers(self) -> dict[str, str]:
        headers = {"X-Request-ID": str(uuid4()), "Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[dict[str, Any]] = None,
    ) -> Any:
        """
        Perform one round trip and return the decoded JSON body.

        Raises:
            NetworkError: If the remote store is unreachable or times out
            AuthError: On 401/403
            ValidationError: On 400/422 or a non-JSON success body
            NotFoundError: On 404
            ConflictError: On 409
            RemoteServiceError: On 5xx and other unexpected statuses
        """
        start_time = time.perf_counter()
        try:
            response = await self.http.request(method, path, json=json, headers=self._headers())
        except httpx.TimeoutException as e:
            metrics_collector.record_remote_request(method, "timeout", time.perf_counter() - start_time)
            logger.warning(
                "Remote request timed out",
                extra={"method": method, "path": path, "error": str(e)}
            )
            raise NetworkError(detail=f"Request to {path} timed out", instance=path) from e
        except httpx.HTTPError as e:
            metrics_collector.record_remote_request(method, "network_error", time.perf_counter() - start_time)
            logger.warning(
                "Remote request failed at transport level",
                extra={"method": method, "path": path, "error": str(e)}
            )
            raise NetworkError(detail=f"Could not reach the remote service: {e}", instance=path) from e

        duration = time.perf_counter() - start_time

        if response.status_code >= 400:
            metrics_collector.record_remote_request(method, str(response.status_code), duration)
            error = error_from_response(response, path)
            logger.info(
                "Remote request rejected",
                extra={
                    "method": method,
                    "path": path,
                    "status_code": response.status_code,
                    "error_code": error.code,
                }
            )
            raise error

        metrics_collector.record_remote_request(method, "ok", duration)

        if response.status_code == 204 or not response.content:
            return {}

        try:
            return response.json()
        except ValueError as e:
            raise ValidationError(
                detail=f"Remote response for {path} is not valid JSON",
                instance=path,
            ) from e

    async def get(self, path: str) -> Any:
        return await self.request("GET", path)

    async def post(self, path: str, json: Optional[dict[str, Any]] = None) -> Any:
        return await self.request("POST", path, json=json)

    async def patch(self, path: str, json: Optional[dict[str, Any]] = None) -> Any:
        return await self.request("PATCH", path, json=json)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)


def build_http_client(
    base_url: str,
    timeout_seconds: float,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Create the shared async HTTP client used by every session."""
    return httpx.AsyncClient(
        base_url=base_url,
        timeout=httpx.Timeout(timeout_seconds),
        transport=transport,
    )
