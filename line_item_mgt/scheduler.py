import asyncio
import inspect
import logging
from typing import Awaitable, Callable, List, Optional, Union

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from .lifecycle import now_ms

logger = logging.getLogger(__name__)

TickCallback = Callable[[int], Union[None, Awaitable[None]]]

TICK_JOB_ID = "tick"


class Ticker:
    """
    一定間隔で購読者に現在時刻を通知するスケジューラー。

    期限切れアイテムの削除や残り時間の表示更新に使用します。
    購読者はミリ秒の現在時刻を受け取り、コルーチン関数の場合はawaitされます。
    ティックは実行中のイベントループ上の AsyncIOScheduler から呼び出されます。

    Parameters
    ----------
    interval : float
        通知間隔（秒）。
    time_source : Callable[[], int], optional
        現在時刻（エポックからのミリ秒）を返す関数。
    """

    def __init__(self, interval: float, time_source: Callable[[], int] = now_ms) -> None:
        self.interval = interval
        self._time = time_source
        self._subscribers: List[TickCallback] = []
        self._scheduler: Optional[AsyncIOScheduler] = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def subscribe(self, callback: TickCallback) -> Callable[[], None]:
        """
        購読者を登録します。

        Returns
        -------
        Callable[[], None]
            購読を解除する関数。
        """
        self._subscribers.append(callback)
        return lambda: self.unsubscribe(callback)

    def unsubscribe(self, callback: TickCallback) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    async def tick(self) -> int:
        """
        全購読者に現在時刻を1回通知します。

        購読者で発生した例外はログに記録し、他の購読者への通知は継続します。

        Returns
        -------
        int
            通知した現在時刻。
        """
        now = self._time()
        for callback in list(self._subscribers):
            try:
                result = callback(now)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("ティック処理中にエラーが発生しました。")
        return now

    def start(self) -> None:
        """
        ティックのジョブを登録してスケジューラーを起動します。

        実行中のイベントループ内から呼び出す必要があります。
        """
        if self.running:
            return
        scheduler = AsyncIOScheduler(event_loop=asyncio.get_running_loop())
        scheduler.add_job(
            self.tick,
            trigger="interval",
            seconds=self.interval,
            id=TICK_JOB_ID,
            name="期限切れアイテムの削除と表示更新",
            max_instances=1,
            coalesce=True,
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info(f"[SCHEDULER] Started (interval={self.interval}s)")

    def stop(self) -> None:
        """スケジューラーを停止します。"""
        scheduler = self._scheduler
        self._scheduler = None
        if scheduler is None:
            return
        scheduler.shutdown(wait=False)
        logger.info("[SCHEDULER] Stopped")
