"""Fetches full asset records for identifiers chosen in the picker."""

import logging
from typing import Any, Dict, List, Optional

import httpx

from ..auth.retry import async_retry_with_backoff
from ..exceptions import SelectionEmpty, SelectionResolutionFailed, TokenRejected

logger = logging.getLogger(__name__)

GRAPHQL_PATH = "/graphql"

ASSET_BY_IDS_QUERY = """
query AssetByIds($ids: [ID!]!) {
  assets(ids: $ids) {
    id
    title
    description
    type: __typename
    creator {
      name
    }
    createdAt
    expiresAt
    tags {
      value
      source
    }
    copyright {
      status
      notice
    }
    licenses {
      title
      text: license
    }
    metadataValues {
      value
      metadataField {
        id
        label
      }
    }
    ... on Image {
      filename
      extension
      size
      downloadUrl(validityInDays: 1)
      previewUrl
      width
      height
      focalPoint
    }
    ... on Document {
      filename
      extension
      size
      downloadUrl(validityInDays: 1)
      previewUrl
      focalPoint
    }
    ... on File {
      filename
      extension
      size
      downloadUrl(validityInDays: 1)
      icon: previewUrl
    }
    ... on Audio {
      filename
      extension
      size
      downloadUrl(validityInDays: 1)
      previewUrl
    }
    ... on Video {
      filename
      extension
      size
      downloadUrl(validityInDays: 1)
      previewUrl
      width
      height
      duration
      bitrate
    }
  }
}
"""


class AssetResolver:
    """Resolves asset identifiers against a domain's GraphQL endpoint.

    Failures are logged here, where they are classified, and raised as
    ``FinderError`` subclasses so callers know not to log them again.
    """

    def __init__(self, timeout: float = 30.0, client: Optional[httpx.AsyncClient] = None):
        """Initialize the resolver.

        Args:
            timeout: Request timeout in seconds
            client: Pre-configured HTTP client (tests inject a mock transport)
        """
        self.client = client or httpx.AsyncClient(timeout=timeout)

    @async_retry_with_backoff(
        max_retries=2,
        retryable_exceptions=(httpx.TransportError,),
    )
    async def _query(self, domain: str, access_token: str, ids: List[str]) -> httpx.Response:
        return await self.client.post(
            f"https://{domain}{GRAPHQL_PATH}",
            headers={
                "Authorization": f"Bearer {access_token}",
                "Content-Type": "application/json",
                "X-Frontify-Beta": "enabled",
            },
            json={"query": ASSET_BY_IDS_QUERY, "variables": {"ids": ids}},
        )

    async def resolve(self, domain: str, access_token: str, ids: List[str]) -> List[Dict[str, Any]]:
        """Fetch the records for ``ids``.

        Args:
            domain: Domain the token belongs to
            access_token: Bearer token
            ids: Asset identifiers in selection order

        Returns:
            Asset records as returned by the domain

        Raises:
            TokenRejected: If the domain answered 401
            SelectionEmpty: If no records came back
            SelectionResolutionFailed: For any other failure
        """
        try:
            response = await self._query(domain, access_token, ids)
        except httpx.HTTPError as e:
            error = SelectionResolutionFailed(f"Assets data request failed: {type(e).__name__}")
            logger.error("%s: %s", error.code, error.message)
            raise error from e

        if response.status_code == 401:
            error = TokenRejected("Access token was rejected by the domain.")
            logger.error("%s: %s", error.code, error.message)
            raise error

        try:
            response.raise_for_status()
            result = response.json()
            if not isinstance(result, dict):
                raise ValueError("unexpected response shape")
        except (httpx.HTTPError, ValueError) as e:
            error = SelectionResolutionFailed(f"Assets data request failed: {type(e).__name__}")
            logger.error("%s: %s", error.code, error.message)
            raise error from e

        if result.get("errors"):
            # Partial data may still be usable; report and continue
            logger.error(
                "%s: Assets data request returned errors: %s",
                SelectionResolutionFailed.code,
                result["errors"][0].get("message"),
            )

        assets = (result.get("data") or {}).get("assets") or []
        if not assets:
            error = SelectionEmpty("Assets data request returned no valid values.")
            logger.error("%s: %s", error.code, error.message)
            raise error

        return [self._clean(asset) for asset in assets]

    @staticmethod
    def _clean(asset: Dict[str, Any]) -> Dict[str, Any]:
        preview_url = asset.get("previewUrl")
        if preview_url and "width={width}" in preview_url:
            asset["previewUrl"] = preview_url.split("?")[0]
        return asset

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()
