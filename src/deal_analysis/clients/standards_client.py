"""HTTP client for the industry-standards benchmark lookup."""

from typing import Any

import httpx
import structlog

from ..errors import StandardsLookupError

logger = structlog.get_logger(__name__)


class StandardsClient:
    """
    Fetches benchmark data for a ZIP code.

    POSTs {"zipCode", "propertyType"} to the configured endpoint. Any
    transport failure, non-2xx status or non-JSON body raises
    StandardsLookupError; callers decide how to degrade.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout_seconds: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url
        headers = {'Content-Type': 'application/json'}
        if api_key:
            headers['Authorization'] = f'Bearer {api_key}'
        self._client = http_client or httpx.AsyncClient(
            timeout=timeout_seconds,
            headers=headers,
        )

    async def fetch(self, zip_code: str, property_type: str = 'laundromat') -> dict[str, Any]:
        """
        Fetch the benchmark document for a ZIP code.

        Raises:
            StandardsLookupError: On any lookup failure
        """
        ctx = {'zip_code': zip_code, 'url': self.base_url}
        try:
            response = await self._client.post(
                self.base_url,
                json={'zipCode': zip_code, 'propertyType': property_type},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise StandardsLookupError(
                f'Standards lookup returned HTTP {e.response.status_code}',
                context={**ctx, 'status_code': e.response.status_code},
            ) from e
        except httpx.HTTPError as e:
            raise StandardsLookupError(
                f'Standards lookup failed: {type(e).__name__}: {e}',
                context=ctx,
            ) from e

        try:
            payload = response.json()
        except ValueError as e:
            raise StandardsLookupError('Standards lookup returned non-JSON body', context=ctx) from e

        if not isinstance(payload, dict):
            raise StandardsLookupError('Standards lookup returned a non-object body', context=ctx)

        logger.debug('standards_client.fetched', zip_code=zip_code)
        return payload

    async def close(self) -> None:
        await self._client.aclose()
