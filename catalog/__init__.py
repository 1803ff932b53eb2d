"""Catalog module for the third-party unit reference API.

This module provides:
- Unit lookups used to validate and prefill unit names before listing
- Image, icon and detail page URL builders for catalog units
- The list of editions (collections) accepted by the marketplace
"""

import logging
from typing import Any, Dict, Optional

import httpx

from config import settings_conf
from .editions import HC_UNIT_EDITIONS, EDITION_LABELS, get_collection_label, is_known_collection

logger = logging.getLogger(__name__)

class CatalogError(Exception):
    """Base exception for catalog lookups."""
    pass

class CatalogUnitNotFoundError(CatalogError):
    """Raised when the catalog has no unit for a collection/number pair."""
    pass

class CatalogUnavailableError(CatalogError):
    """Raised when the catalog API cannot be reached or answers with an error."""
    pass

def get_unit_code(collection: str, unit_number: str) -> str:
    """Catalog identifier of a unit, e.g. ``xm97`` + ``001`` -> ``xm97001``."""
    return f"{collection.strip().lower()}{unit_number.strip().lower()}"

def get_unit_image_url(collection: str, unit_number: str) -> str:
    return f"{settings_conf['catalog_image_url']}/{collection}/{unit_number}.png"

def get_collection_icon_url(collection: str) -> str:
    return f"{settings_conf['catalog_image_url']}/{collection}/icon.png"

def get_unit_details_url(collection: str, unit_number: str) -> str:
    return f"{settings_conf['catalog_site_url']}/units/{collection}{unit_number}/"

class CatalogClient:
    """Async client for the catalog API.

    Only ``GET /units/{collection}{unit_number}/`` is used; the response is a
    JSON object carrying at least the unit ``name``.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None
    ) -> None:
        """Initialize client with optional shared HTTP client."""
        self.base_url = (base_url or settings_conf['catalog_url']).rstrip('/')
        self.timeout = timeout or settings_conf['catalog_timeout']
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={'Accept': 'application/json'},
            )
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_client and self._client and not self._client.is_closed:
            await self._client.aclose()

    async def lookup_unit(self, collection: str, unit_number: str) -> Dict[str, Any]:
        """Look up a unit in the catalog.

        Args:
            collection: Collection (edition) code, e.g. ``xm97``
            unit_number: Unit number within the collection, e.g. ``001`` or ``001b``

        Returns:
            Dict containing name, collection, unit_number, image_url and details_url

        Raises:
            CatalogUnitNotFoundError: If the catalog does not know the unit
            CatalogUnavailableError: If the catalog cannot be queried
        """
        code = get_unit_code(collection, unit_number)
        url = f"{self.base_url}/units/{code}/"

        try:
            response = await self._get_client().get(url)
        except httpx.HTTPError as e:
            logger.error(f"Catalog request for {code} failed: {e}")
            raise CatalogUnavailableError(f"Catalog lookup failed: {e}")

        if response.status_code == 404:
            raise CatalogUnitNotFoundError(f"Unit {code} not found in catalog")
        if response.status_code != 200:
            logger.error(f"Catalog API error for {code}: {response.status_code}")
            raise CatalogUnavailableError(
                f"Catalog lookup failed with status {response.status_code}"
            )

        try:
            data = response.json()
        except ValueError:
            raise CatalogUnavailableError(f"Catalog returned an invalid response for {code}")

        name = (data.get('name') or '').strip() if isinstance(data, dict) else ''
        if not name:
            raise CatalogUnitNotFoundError(f"Unit {code} has no name in catalog")

        logger.debug(f"Catalog lookup {code}: {name}")
        return {
            'name': name,
            'collection': collection,
            'unit_number': unit_number,
            'image_url': get_unit_image_url(collection, unit_number),
            'details_url': get_unit_details_url(collection, unit_number)
        }

__all__ = [
    'CatalogClient',
    'CatalogError',
    'CatalogUnitNotFoundError',
    'CatalogUnavailableError',
    'HC_UNIT_EDITIONS',
    'EDITION_LABELS',
    'get_collection_label',
    'is_known_collection',
    'get_unit_code',
    'get_unit_image_url',
    'get_collection_icon_url',
    'get_unit_details_url'
]
