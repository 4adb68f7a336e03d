"""
进程内排班变更推送：按店铺订阅，任何 insert/update/delete 都会通知该店铺的全部订阅者。
"""
import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

from core.logger import get_logger

logger = get_logger(__name__)

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"


@dataclass
class ChangeEvent:
    shop_id: str
    event_type: str
    record: Dict[str, Any] = field(default_factory=dict)
    at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> Dict[str, Any]:
        return {"shop_id": self.shop_id, "event_type": self.event_type, "record": self.record, "at": self.at}


ChangeCallback = Callable[[ChangeEvent], Awaitable[None]]


class Subscription:
    """
    每个订阅者一条投递队列 + 一个投递任务，publish 只负责入队，
    慢的或卡住的订阅者不会拖住写排班的请求。
    """

    def __init__(self, feed: "ChangeFeed", shop_id: str, callback: ChangeCallback, max_pending: int = 100):
        self.feed = feed
        self.shop_id = shop_id
        self.callback = callback
        self.active = True
        self.queue: "asyncio.Queue[ChangeEvent]" = asyncio.Queue(maxsize=max_pending)
        self._task: Optional[asyncio.Task] = None

    def start(self) -> None:
        self._task = asyncio.get_running_loop().create_task(self._deliver())

    def offer(self, event: ChangeEvent) -> bool:
        try:
            self.queue.put_nowait(event)
        except asyncio.QueueFull:
            return False
        return True

    async def _deliver(self) -> None:
        while True:
            event = await self.queue.get()
            try:
                await self.callback(event)
            except Exception as exc:
                # 推送失败的订阅者（通常是断开的 WebSocket）直接摘掉
                logger.warning("Change feed delivery failed; dropping subscriber",
                               shop_id=self.shop_id, error=str(exc))
                self._close()
                return
            finally:
                self.queue.task_done()

    def _discard_pending(self) -> None:
        while not self.queue.empty():
            self.queue.get_nowait()
            self.queue.task_done()

    def _close(self) -> None:
        if self.active:
            self.feed._remove(self)
            self.active = False
        self._discard_pending()

    def unsubscribe(self) -> None:
        self._close()
        if self._task is not None and self._task is not asyncio.current_task() and not self._task.done():
            self._task.cancel()


class ChangeFeed:
    def __init__(self, max_pending: int = 100) -> None:
        self.max_pending = max_pending
        self._subscribers: Dict[str, List[Subscription]] = {}

    def subscribe(self, shop_id: str, callback: ChangeCallback) -> Subscription:
        subscription = Subscription(self, shop_id, callback, self.max_pending)
        subscription.start()
        self._subscribers.setdefault(shop_id, []).append(subscription)
        logger.info("Change feed subscribed", shop_id=shop_id, total=len(self._subscribers[shop_id]))
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        subs = self._subscribers.get(subscription.shop_id, [])
        if subscription in subs:
            subs.remove(subscription)
        if not subs:
            self._subscribers.pop(subscription.shop_id, None)
        logger.info("Change feed unsubscribed", shop_id=subscription.shop_id, total=len(subs))

    def subscriber_count(self, shop_id: Optional[str] = None) -> int:
        if shop_id is not None:
            return len(self._subscribers.get(shop_id, []))
        return sum(len(subs) for subs in self._subscribers.values())

    async def publish(self, event: ChangeEvent) -> None:
        """入队即返回，不等待订阅者处理"""
        for sub in list(self._subscribers.get(event.shop_id, [])):
            if not sub.offer(event):
                logger.warning("Change feed subscriber is not keeping up; dropping it",
                               shop_id=event.shop_id, pending=sub.queue.qsize())
                sub.unsubscribe()

    async def wait_idle(self) -> None:
        """等当前所有已入队的事件投递完（测试和优雅停机用）"""
        for subs in list(self._subscribers.values()):
            for sub in list(subs):
                await sub.queue.join()


_FEED = ChangeFeed()


def get_change_feed() -> ChangeFeed:
    return _FEED
