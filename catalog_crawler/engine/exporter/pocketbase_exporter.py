"""PocketBase exporter using the batch API for bulk upserts."""

from __future__ import annotations

from typing import Any, Sequence
from urllib.parse import quote

import httpx
import structlog

from ...config import DestinationConfig
from ...errors import AuthenticationError, UploadError
from ..normalizer import NormalizedRecord
from .base import BaseExporter


class PocketBaseExporter(BaseExporter):
    """Upsert records into a PocketBase collection in one batch request."""

    def __init__(
        self,
        config: DestinationConfig,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.config = config
        self.base_url = config.base_url.rstrip("/")
        self.logger = logger or structlog.get_logger("catalog_crawler.exporter")
        self._client = httpx.Client(base_url=self.base_url, timeout=config.timeout)
        self._token: str | None = None

    @property
    def authenticated(self) -> bool:
        return self._token is not None

    def authenticate(self) -> None:
        url = f"/api/collections/{quote(self.config.auth_collection)}/auth-with-password"
        try:
            response = self._client.post(
                url,
                json={"identity": self.config.email, "password": self.config.password},
            )
            response.raise_for_status()
            token = response.json().get("token")
        except (httpx.HTTPError, ValueError) as exc:
            raise AuthenticationError(f"PocketBase authentication failed: {exc}") from exc
        if not token:
            raise AuthenticationError("PocketBase authentication returned no token")
        self._token = token
        self.logger.info("destination_authenticated", base_url=self.base_url)

    def upsert_batch(self, records: Sequence[NormalizedRecord]) -> None:
        if not records:
            return
        url = f"/api/collections/{quote(self.config.collection)}/records"
        payload = {
            "requests": [
                {"method": "PUT", "url": url, "body": record.to_payload()} for record in records
            ]
        }
        try:
            response = self._client.post("/api/batch", json=payload, headers=self._headers())
        except httpx.HTTPError as exc:
            raise UploadError(f"Batch request failed: {exc}") from exc
        if response.status_code >= 400:
            raise UploadError(
                f"Batch rejected with status {response.status_code}: {response.text[:200]}"
            )

    def close(self) -> None:
        self._client.close()

    def _headers(self) -> dict[str, Any]:
        if self._token is None:
            return {}
        return {"Authorization": self._token}


__all__ = ["PocketBaseExporter"]
