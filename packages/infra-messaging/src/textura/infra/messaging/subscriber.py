"""Redis Streams consumer-group subscriber.

One long-lived task per subject reads one entry at a time with
``XREADGROUP`` and hands it to the :class:`MessageRouter`. Entries are
acknowledged only after the router returns, so a handler failure leaves the
entry pending. Pending entries idle for longer than ``claim_idle_ms`` are
taken over with ``XAUTOCLAIM`` and processed again, which gives redelivery
across restarts and across instances sharing the consumer group.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

import structlog
from redis.exceptions import ResponseError

from textura.infra.messaging.publisher import DATA_FIELD
from textura.infra.messaging.router import InboundMessage, MessageRouter

logger = logging.getLogger(__name__)


class RedisStreamSubscriber:
    """Consumes subjects as a member of a Redis consumer group.

    Args:
        redis: A ``redis.asyncio.Redis`` client with ``decode_responses=True``.
        router: Router that dispatches each entry.
        group: Consumer group shared by all instances of the service.
        consumer: Name of this consumer within the group.
        block_ms: How long one ``XREADGROUP`` call blocks waiting for entries.
        claim_idle_ms: Minimum idle time before a pending entry is reclaimed.
        claim_interval_s: How often each loop checks for reclaimable entries.
        error_backoff_s: Pause after a transport error before reading again.
    """

    def __init__(
        self,
        redis: Any,
        router: MessageRouter,
        *,
        group: str,
        consumer: str,
        block_ms: int = 5000,
        claim_idle_ms: int = 60_000,
        claim_interval_s: float = 30.0,
        error_backoff_s: float = 1.0,
    ) -> None:
        self._redis = redis
        self._router = router
        self._group = group
        self._consumer = consumer
        self._block_ms = block_ms
        self._claim_idle_ms = claim_idle_ms
        self._claim_interval_s = claim_interval_s
        self._error_backoff_s = error_backoff_s
        self._tasks: list[asyncio.Task[None]] = []
        self._running = False
        self.messages_processed = 0

    @property
    def running(self) -> bool:
        return self._running

    async def start(self, subjects: list[str]) -> None:
        """Create consumer groups and start one consume loop per subject."""
        self._running = True
        for subject in subjects:
            await self._ensure_group(subject)
            task = asyncio.create_task(
                self._consume_loop(subject),
                name=f"consumer-{subject}-{self._group}",
            )
            self._tasks.append(task)
        logger.info(
            "subscriber: started group=%s consumer=%s subjects=%s",
            self._group,
            self._consumer,
            subjects,
        )

    async def stop(self) -> None:
        """Cancel the consume loops and wait for them to finish."""
        self._running = False
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        logger.info("subscriber: stopped group=%s", self._group)

    async def _ensure_group(self, subject: str) -> None:
        try:
            await self._redis.xgroup_create(subject, self._group, id="0", mkstream=True)
        except ResponseError as exc:
            if "BUSYGROUP" not in str(exc):
                raise

    async def _consume_loop(self, subject: str) -> None:
        next_claim = time.monotonic()
        while self._running:
            try:
                if time.monotonic() >= next_claim:
                    await self._reclaim_pending(subject)
                    next_claim = time.monotonic() + self._claim_interval_s

                entries = await self._redis.xreadgroup(
                    groupname=self._group,
                    consumername=self._consumer,
                    streams={subject: ">"},
                    count=1,
                    block=self._block_ms,
                )
                for _stream, messages in entries or []:
                    for message_id, fields in messages:
                        await self._process(subject, message_id, fields)
            except asyncio.CancelledError:
                break
            except Exception:
                logger.exception("subscriber: consume loop error on %s", subject)
                await asyncio.sleep(self._error_backoff_s)

    async def _reclaim_pending(self, subject: str) -> None:
        """Take over entries other consumers (or a previous run) left pending."""
        start_id = "0-0"
        while True:
            result = await self._redis.xautoclaim(
                subject,
                self._group,
                self._consumer,
                min_idle_time=self._claim_idle_ms,
                start_id=start_id,
                count=10,
            )
            start_id, claimed = result[0], result[1]
            for message_id, fields in claimed:
                if fields is None:
                    continue
                logger.info("subscriber: reclaimed pending message %s on %s", message_id, subject)
                await self._process(subject, message_id, fields)
            if not claimed or start_id in ("0-0", b"0-0"):
                return

    async def _process(self, subject: str, message_id: str, fields: dict[str, Any]) -> bool:
        """Route one entry; acknowledge it unless the handler raised.

        Returns:
            True if the entry was acknowledged.
        """
        data = fields.get(DATA_FIELD)
        if data is None:
            logger.warning(
                "subscriber: message %s on %s has no %r field, dropping",
                message_id,
                subject,
                DATA_FIELD,
            )
            await self._redis.xack(subject, self._group, message_id)
            return True

        message = InboundMessage(subject=subject, data=data, message_id=str(message_id))
        with structlog.contextvars.bound_contextvars(
            message_id=str(message_id), subject=subject
        ):
            try:
                await self._router.route(message)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception(
                    "subscriber: handler failed for message %s on %s, leaving pending",
                    message_id,
                    subject,
                )
                return False

        await self._redis.xack(subject, self._group, message_id)
        self.messages_processed += 1
        return True
