"""HTTP client for the garage catalog service.

Every lookup is best-effort: transport errors, non-2xx answers and payloads
that do not decode are returned as an unavailable `CatalogLookup` and logged,
never raised. Callers decide whether absence is fatal (booking creation,
favorite creation) or degrades a single field (listings).
"""

import logging
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, TypeVar

import httpx
from fastapi import Request

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

DEFAULT_TIMEOUT_SECONDS = 5.0
DEFAULT_MAX_WORKERS = 8


@dataclass(frozen=True)
class CatalogLookup:
    """Outcome of one catalog fetch: a decoded document or the reason it is missing."""

    payload: dict[str, Any] | None = None
    reason: str | None = None

    @property
    def available(self) -> bool:
        return self.payload is not None

    @classmethod
    def found(cls, payload: dict[str, Any]) -> "CatalogLookup":
        return cls(payload=payload)

    @classmethod
    def unavailable(cls, reason: str) -> "CatalogLookup":
        return cls(reason=reason)

    def get(self, key: str, default: Any = None) -> Any:
        if self.payload is None:
            return default
        return self.payload.get(key, default)


class CatalogClient:
    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        max_workers: int = DEFAULT_MAX_WORKERS,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.max_workers = max(1, max_workers)
        self._http = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    def get_garage(self, garage_id: int) -> CatalogLookup:
        return self._fetch(f"/garages/{garage_id}", "garage")

    def get_service(self, service_id: int) -> CatalogLookup:
        return self._fetch(f"/services/{service_id}", "service")

    def _fetch(self, path: str, key: str) -> CatalogLookup:
        try:
            response = self._http.get(path)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning("Catalog request %s failed: %s", path, exc)
            return CatalogLookup.unavailable(f"transport error: {exc.__class__.__name__}")

        if not response.is_success:
            logger.warning("Catalog request %s returned %s", path, response.status_code)
            return CatalogLookup.unavailable(f"status {response.status_code}")

        try:
            body = response.json()
        except ValueError:
            logger.warning("Catalog request %s returned a non-JSON body", path)
            return CatalogLookup.unavailable("invalid body")

        document = body.get(key) if isinstance(body, dict) else None
        if not isinstance(document, dict):
            logger.warning("Catalog request %s has no '%s' document", path, key)
            return CatalogLookup.unavailable(f"missing {key}")

        return CatalogLookup.found(document)

    def fan_out(self, items: Sequence[T], fetch: Callable[[T], R]) -> list[R]:
        """Run `fetch` for every item concurrently; results keep the input order."""
        if not items:
            return []
        if len(items) == 1:
            return [fetch(items[0])]

        workers = min(self.max_workers, len(items))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(fetch, items))


def get_catalog_client(request: Request) -> CatalogClient:
    """The application's shared catalog client."""
    return request.app.state.catalog
