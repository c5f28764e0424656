"""
Industry-standards resolution.

The benchmark lookup is best-effort enrichment: a missing address, a missing
ZIP code, a failed request or an empty response all resolve to None and the
stages run without benchmarks.
"""

from __future__ import annotations

import re

from ..clients.standards_client import StandardsClient
from ..errors import StandardsLookupError
from ..logging import get_logger
from ..models.standards import StandardsContext

logger = get_logger(__name__)

_ZIP_CODE = re.compile(r'\b\d{5}\b')


def extract_zip_code(address: str | None) -> str | None:
    """
    Pull a five-digit ZIP code out of a free-form address.

    The last match wins, since street numbers come first in US addresses.
    """
    if not address:
        return None
    matches = _ZIP_CODE.findall(address)
    return matches[-1] if matches else None


class StandardsResolver:
    """Resolves benchmark context for a deal's address."""

    def __init__(self, client: StandardsClient | None):
        self.client = client

    async def resolve(self, address: str | None) -> StandardsContext | None:
        """
        Look up benchmarks for the address's ZIP code.

        Returns:
            StandardsContext, or None when unavailable for any reason
        """
        if self.client is None:
            return None

        zip_code = extract_zip_code(address)
        if zip_code is None:
            logger.info('standards.skipped', reason='no_zip_code')
            return None

        try:
            payload = await self.client.fetch(zip_code)
        except StandardsLookupError as e:
            logger.warning('standards.lookup_failed', zip_code=zip_code, error=str(e))
            return None
        except Exception as e:
            logger.exception('standards.lookup_crashed', zip_code=zip_code, error_type=type(e).__name__)
            return None

        context = StandardsContext.from_lookup(payload, zip_code)
        if context is None:
            logger.info('standards.empty', zip_code=zip_code)
            return None

        logger.info('standards.resolved', zip_code=zip_code, benchmarks=list(context.available))
        return context

    async def close(self) -> None:
        if self.client is not None:
            await self.client.close()
