"""
Downstream fan-out
Relays upstream notifications to every attached WebSocket consumer
"""

import asyncio
from contextlib import suppress
from typing import Any, Dict, Optional, Protocol

from loguru import logger

from ..errors import DownstreamDeliveryFailure
from ..models import LcuConnect, LcuConnectError, LcuDisconnect, LcuEvent, NormalizedEvent, dump_message
from ..models.messages import ConnectData


class Consumer(Protocol):
    """Anything that can receive JSON (fastapi.WebSocket qualifies)"""

    async def send_json(self, data: Any) -> None: ...


class _Outbox:
    """Per-consumer FIFO queue drained by one sender task"""

    def __init__(self, consumer: Consumer):
        self.consumer = consumer
        self.queue: asyncio.Queue = asyncio.Queue()
        self.sender: Optional[asyncio.Task] = None


def _discard_pending(outbox: _Outbox):
    # Releases anyone waiting in flush()
    while not outbox.queue.empty():
        outbox.queue.get_nowait()
        outbox.queue.task_done()


class Broadcaster:
    """Manages downstream consumers and the current LCU status"""

    def __init__(self):
        self._outboxes: Dict[int, _Outbox] = {}
        self._status: Dict[str, Any] = dump_message(LcuDisconnect())

    @property
    def consumer_count(self) -> int:
        return len(self._outboxes)

    @property
    def status(self) -> Dict[str, Any]:
        """Status message a newly attached consumer receives first"""
        return dict(self._status)

    def attach(self, consumer: Consumer):
        """Start delivering to a consumer, beginning with the current status"""
        key = id(consumer)
        if key in self._outboxes:
            return

        outbox = _Outbox(consumer)
        outbox.queue.put_nowait(self.status)
        outbox.sender = asyncio.create_task(self._deliver(key, outbox), name=f"downstream-{key}")
        self._outboxes[key] = outbox
        logger.info(f"Consumer attached. Total consumers: {len(self._outboxes)}")

    def detach(self, consumer: Consumer):
        outbox = self._outboxes.pop(id(consumer), None)
        if outbox is None:
            return
        if outbox.sender is not None and outbox.sender is not asyncio.current_task():
            outbox.sender.cancel()
        _discard_pending(outbox)
        logger.info(f"Consumer detached. Total consumers: {len(self._outboxes)}")

    def publish(self, message: Dict[str, Any]):
        """Queue a message for every attached consumer"""
        for outbox in list(self._outboxes.values()):
            outbox.queue.put_nowait(message)

    async def flush(self):
        """Wait until every queued message has been sent (or dropped)"""
        for outbox in list(self._outboxes.values()):
            await outbox.queue.join()

    async def close(self):
        outboxes = list(self._outboxes.values())
        self._outboxes.clear()
        for outbox in outboxes:
            if outbox.sender is not None:
                outbox.sender.cancel()
                with suppress(asyncio.CancelledError):
                    await outbox.sender

    async def _deliver(self, key: int, outbox: _Outbox):
        while True:
            message = await outbox.queue.get()
            try:
                await outbox.consumer.send_json(message)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                failure = DownstreamDeliveryFailure(f"{message.get('type')}: {e}")
                logger.error(f"Error broadcasting message: {failure}")
                self._drop(key, outbox)
                return
            finally:
                outbox.queue.task_done()

    def _drop(self, key: int, outbox: _Outbox):
        if self._outboxes.get(key) is outbox:
            del self._outboxes[key]
            logger.info(f"Dropped failed consumer. Total consumers: {len(self._outboxes)}")
        _discard_pending(outbox)

    # ------------------------------------------------------------------
    # UpstreamListener
    # ------------------------------------------------------------------

    def on_connect(self, port: str):
        self._status = dump_message(LcuConnect(data=ConnectData(port=port)))
        self.publish(self.status)

    def on_disconnect(self, error: Optional[str]):
        self._status = dump_message(LcuDisconnect(error=error))
        self.publish(self.status)

    def on_connect_error(self, error: str):
        self._status = dump_message(LcuDisconnect(error=error))
        self.publish(dump_message(LcuConnectError(error=error)))

    def on_event(self, event: NormalizedEvent):
        self.publish(dump_message(LcuEvent.from_event(event)))
