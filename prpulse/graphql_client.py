"""GitHub GraphQL transport."""

import logging
from typing import Any, Optional

import httpx

from .errors import AuthenticationError, InsufficientScopeError, ProtocolError, TransportError

logger = logging.getLogger(__name__)

DEFAULT_GRAPHQL_URL = "https://api.github.com/graphql"
DEFAULT_TIMEOUT = 10.0


class GitHubGraphQLClient:
    """Executes GraphQL documents against GitHub with a bearer token."""

    def __init__(
        self,
        token: str,
        graphql_url: str = DEFAULT_GRAPHQL_URL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            token: GitHub personal access token.
            graphql_url: GraphQL endpoint.
            timeout: Upper bound in seconds for each request.
            transport: Optional httpx transport (used by tests).
        """
        self.token = token
        self.graphql_url = graphql_url
        self.timeout = timeout
        self._transport = transport

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def execute(
        self, query: str, strict: bool = False, required: Optional[str] = None
    ) -> dict[str, Any]:
        """
        POST a single GraphQL document and return its ``data`` object.

        Args:
            query: GraphQL document.
            strict: Treat any entry in ``errors`` as a failure, even when
                partial ``data`` came back.
            required: Top-level field of ``data`` that must be an object;
                partial data without it is a failure.

        Returns:
            The ``data`` member of the response.

        Raises:
            AuthenticationError: HTTP 401.
            InsufficientScopeError: HTTP 403.
            TransportError: Network failure, timeout or any other non-200 status.
            ProtocolError: Body is not JSON, carries errors and no data, or lacks
                the ``required`` field.
        """
        async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
            try:
                response = await client.post(
                    self.graphql_url,
                    headers=self.headers,
                    json={"query": query},
                )
            except httpx.TimeoutException as e:
                logger.warning("GraphQL request timed out after %.1fs", self.timeout)
                raise TransportError(f"Request timed out after {self.timeout:g}s") from e
            except httpx.HTTPError as e:
                logger.warning("GraphQL request failed: %s", e)
                raise TransportError(f"Network error: {e}") from e

        return self._parse_response(response, strict, required)

    def _parse_response(
        self, response: httpx.Response, strict: bool, required: Optional[str] = None
    ) -> dict[str, Any]:
        if response.status_code == 401:
            raise AuthenticationError()
        if response.status_code == 403:
            raise InsufficientScopeError()
        if response.status_code != 200:
            logger.error("GraphQL error (HTTP %d): %s", response.status_code, response.text[:200])
            raise TransportError(
                f"GraphQL error (HTTP {response.status_code}): {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise ProtocolError("Invalid JSON response") from e

        if not isinstance(payload, dict):
            raise ProtocolError("Invalid JSON response")

        data = payload.get("data")
        errors = payload.get("errors") or []
        first_message = _first_error_message(errors)

        if errors and (data is None or strict):
            raise ProtocolError(first_message or "Unexpected GraphQL response")
        if not isinstance(data, dict):
            raise ProtocolError("Unexpected GraphQL response")
        if required is not None and not isinstance(data.get(required), dict):
            raise ProtocolError(first_message or "Unexpected GraphQL response")
        if errors:
            logger.warning("GraphQL returned partial data with %d error(s): %s", len(errors), first_message)

        return data


def _first_error_message(errors: Any) -> Optional[str]:
    if not isinstance(errors, list) or not errors:
        return None
    first = errors[0]
    if isinstance(first, dict) and isinstance(first.get("message"), str):
        return first["message"]
    return None
