"""
Remote event store over NATS request/reply.

Requests are JSON documents sent to the row-storage subjects built by
Subjects; replies look like {"success": true, "rows": [...]} or
{"success": false, "error": "..."}. Changes are announced on a per-owner
subject, and any announcement triggers a reload of the owner's rows.
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional, Sequence

from nats.errors import Error as NATSError
from nats.errors import NoRespondersError

from .adapter import ChangeCallback, RemoteEventStore, Row, Unsubscribe
from .errors import RemoteResponseError, RemoteStoreError, RemoteTimeoutError
from .subjects import Subjects


class NatsEventStore(RemoteEventStore):
    """
    RemoteEventStore backed by a NATS row-storage service.

    Args:
        nats_client: Connected NATS client (nats.aio.client.Client).
        namespace: Subject namespace (default: "tminus").
        table: Row table holding events (default: "events").
        timeout: Seconds to wait for each reply.
        logger: Optional logger.

    Example:
        nc = NATS()
        await nc.connect(servers=["nats://localhost:4222"])
        store = NatsEventStore(nc)
        rows = await store.load_events("alice")
    """

    def __init__(
        self,
        nats_client,
        namespace: str = "tminus",
        table: str = "events",
        timeout: float = 5.0,
        logger: Optional[logging.Logger] = None
    ):
        super().__init__(logger)
        self.nats = nats_client
        self.table = table
        self.timeout = timeout
        self.subjects = Subjects(namespace, table)

    async def _request(self, subject: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Send a request and decode a successful reply.

        Raises:
            RemoteTimeoutError: No reply within the timeout, or no responders.
            RemoteResponseError: Reply is malformed or reports failure.
            RemoteStoreError: Any other NATS failure.
        """
        try:
            response = await self.nats.request(
                subject,
                json.dumps(payload).encode(),
                timeout=self.timeout
            )
        except (asyncio.TimeoutError, NoRespondersError) as e:
            self.logger.error(f"Remote request timed out: {subject}")
            raise RemoteTimeoutError(f"No reply on {subject}") from e
        except NATSError as e:
            self.logger.error(f"Remote request failed: {subject}: {e}")
            raise RemoteStoreError(f"Request on {subject} failed: {e}") from e

        try:
            result = json.loads(response.data.decode())
        except (UnicodeDecodeError, ValueError) as e:
            raise RemoteResponseError(f"Malformed reply on {subject}: {e}") from e

        if not isinstance(result, dict) or not result.get("success"):
            error = result.get("error", "unknown error") if isinstance(result, dict) else result
            raise RemoteResponseError(f"{subject} failed: {error}")
        return result

    async def upsert_events(self, rows: Sequence[Row]) -> None:
        if not rows:
            return
        await self._request(self.subjects.upsert, {
            "table": self.table,
            "rows": list(rows),
        })
        self.logger.debug(f"Upserted {len(rows)} rows")

    async def load_events(self, owner_id: str) -> List[Row]:
        result = await self._request(self.subjects.select, {
            "table": self.table,
            "filters": {"user_id": {"$eq": owner_id}},
            "order_by": [{"field": "target_date", "direction": "asc"}],
        })
        rows = result.get("rows") or []
        self.logger.debug(f"Loaded {len(rows)} rows for {owner_id}")
        return rows

    async def delete_event(self, event_id: str) -> None:
        await self._request(self.subjects.delete, {
            "table": self.table,
            "filters": {"id": {"$eq": event_id}},
        })
        self.logger.debug(f"Deleted row {event_id}")

    async def subscribe_to_changes(self, owner_id: str, callback: ChangeCallback) -> Unsubscribe:
        subject = self.subjects.changed(owner_id)

        async def handler(msg):
            try:
                rows = await self.load_events(owner_id)
                await callback(rows)
            except Exception as e:
                self.logger.exception(f"Error handling change on {subject}: {e}")

        subscription = await self.nats.subscribe(subject, cb=handler)
        self.logger.info(f"Subscribed to {subject}")

        async def unsubscribe() -> None:
            try:
                await subscription.unsubscribe()
            except NATSError as e:
                self.logger.warning(f"Error unsubscribing from {subject}: {e}")
            self.logger.info(f"Unsubscribed from {subject}")

        return unsubscribe
