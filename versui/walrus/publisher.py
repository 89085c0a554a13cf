"""Walrus blob storage client using the publisher and aggregator HTTP APIs."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

import httpx

from versui.exceptions import BlobStoreError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredBlob:
    """Result of storing one blob."""

    blob_id: str
    object_id: str | None
    size: int
    already_exists: bool = False


@runtime_checkable
class BlobStore(Protocol):
    """Content-addressed blob storage with a retention period."""

    def store(self, content: bytes, epochs: int) -> StoredBlob:
        """Store ``content`` and return its blob ID."""
        ...


def _parse_store_response(data: dict[str, Any]) -> StoredBlob:
    """Map a publisher response to a ``StoredBlob``.

    The publisher answers either ``newlyCreated`` with the new blob object,
    or ``alreadyCertified`` when identical content is already stored.
    """
    created = data.get("newlyCreated")
    if isinstance(created, dict):
        blob_object = created.get("blobObject") or {}
        blob_id = blob_object.get("blobId")
        if not blob_id:
            raise BlobStoreError("Publisher response is missing newlyCreated.blobObject.blobId")
        return StoredBlob(
            blob_id=blob_id,
            object_id=blob_object.get("id"),
            size=int(blob_object.get("size", 0)),
        )

    certified = data.get("alreadyCertified")
    if isinstance(certified, dict) and certified.get("blobId"):
        return StoredBlob(
            blob_id=certified["blobId"],
            object_id=certified.get("object"),
            size=0,
            already_exists=True,
        )

    raise BlobStoreError("Unexpected response format from Walrus publisher")


class WalrusClient:
    """Stores blobs through a publisher and reads them back from aggregators."""

    def __init__(
        self,
        publisher_url: str,
        aggregator_urls: list[str],
        timeout: float = 60.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.publisher_url = publisher_url.rstrip("/")
        self.aggregator_urls = [url.rstrip("/") for url in aggregator_urls]
        self.client = httpx.Client(timeout=timeout, transport=transport)

    def close(self) -> None:
        """Close the HTTP client."""
        self.client.close()

    def __enter__(self) -> WalrusClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def store(self, content: bytes, epochs: int) -> StoredBlob:
        """Store ``content`` for ``epochs`` storage epochs."""
        try:
            resp = self.client.put(
                f"{self.publisher_url}/v1/blobs",
                params={"epochs": epochs},
                content=content,
                headers={"Content-Type": "application/octet-stream"},
            )
        except httpx.HTTPError as exc:
            raise BlobStoreError(f"Failed to upload blob: {exc}") from exc

        if resp.status_code >= 400:
            raise BlobStoreError(f"Failed to upload blob: HTTP {resp.status_code}")
        try:
            data = resp.json()
        except ValueError as exc:
            raise BlobStoreError("Publisher returned a non-JSON response") from exc
        if not isinstance(data, dict):
            raise BlobStoreError("Unexpected response format from Walrus publisher")

        stored = _parse_store_response(data)
        logger.debug(
            "Stored blob %s (%d bytes, already_exists=%s)",
            stored.blob_id,
            len(content),
            stored.already_exists,
        )
        return stored

    def read(self, blob_id: str) -> bytes:
        """Download a blob, trying each aggregator in order."""
        if not self.aggregator_urls:
            raise BlobStoreError("No aggregator configured")

        failures: list[str] = []
        for aggregator in self.aggregator_urls:
            try:
                resp = self.client.get(f"{aggregator}/v1/blobs/{blob_id}")
            except httpx.HTTPError as exc:
                failures.append(f"{aggregator}: {exc}")
                continue
            if resp.status_code == 200:
                return resp.content
            failures.append(f"{aggregator}: HTTP {resp.status_code}")

        logger.warning("Blob %s unavailable from all aggregators", blob_id)
        raise BlobStoreError(f"Failed to download blob {blob_id}: {'; '.join(failures)}")
