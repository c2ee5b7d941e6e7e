"""
Record store capability.

The booking core talks to an external tabular store (Airtable or Baserow)
only through RecordStore. Each backend translates list/create/find calls
into its own REST shape and maps transport failures onto the shared error
taxonomy.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from ..errors import AmbiguousWrite, UpstreamUnavailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoreRecord:
    id: str
    fields: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RecordFilter:
    """Field conditions combined with AND"""

    equals: dict[str, Any] = field(default_factory=dict)
    not_equals: dict[str, Any] = field(default_factory=dict)

    def matches(self, fields: dict[str, Any]) -> bool:
        return all(fields.get(k) == v for k, v in self.equals.items()) and all(
            fields.get(k) != v for k, v in self.not_equals.items()
        )


class RecordStore(ABC):
    """Async record store shared by every backend"""

    name = "record-store"

    def __init__(
        self,
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout_seconds = timeout_seconds
        # Injected in tests (httpx.MockTransport)
        self._transport = transport

    @abstractmethod
    async def list_records(
        self, table: str, record_filter: Optional[RecordFilter] = None
    ) -> list[StoreRecord]:
        """All records in table matching record_filter"""

    @abstractmethod
    async def create_record(self, table: str, fields: dict[str, Any]) -> StoreRecord:
        """Create one record and return it with its store-assigned id"""

    @abstractmethod
    async def find_by_field(self, table: str, field_name: str, value: Any) -> list[StoreRecord]:
        """Records whose field_name equals value"""

    def _client(self, **kwargs) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport, **kwargs)

    async def _send(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        operation: str,
        is_write: bool = False,
        **kwargs,
    ) -> Any:
        """
        Perform one HTTP call and decode its JSON body.

        Raises:
            UpstreamUnavailable: Connection failure, read timeout or non-2xx status
            AmbiguousWrite: Timeout after a write request may have reached the store
        """
        try:
            response = await client.request(method, url, **kwargs)
        except (httpx.ConnectError, httpx.ConnectTimeout, httpx.PoolTimeout) as e:
            logger.error(f"❌ {self.name} {operation}: connection failed: {e}")
            raise UpstreamUnavailable(
                f"{self.name} unreachable", operation=operation
            ) from e
        except httpx.TimeoutException as e:
            if is_write:
                logger.error(f"⏰ {self.name} {operation}: timed out after the write was sent")
                raise AmbiguousWrite(
                    "The booking write timed out; retry with the same idempotency key"
                ) from e
            logger.error(f"⏰ {self.name} {operation}: timed out: {e}")
            raise UpstreamUnavailable(f"{self.name} timed out", operation=operation) from e
        except httpx.HTTPError as e:
            logger.error(f"❌ {self.name} {operation}: transport error: {e}")
            raise UpstreamUnavailable(f"{self.name} request failed", operation=operation) from e

        if response.status_code >= 400:
            logger.error(
                f"❌ {self.name} {operation} failed: {response.status_code} {response.text[:500]}"
            )
            raise UpstreamUnavailable(
                f"{self.name} returned {response.status_code}",
                operation=operation,
                upstream_status=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"❌ {self.name} {operation}: response was not JSON")
            raise UpstreamUnavailable(
                f"{self.name} returned an unreadable response",
                operation=operation,
                upstream_status=response.status_code,
            ) from e
