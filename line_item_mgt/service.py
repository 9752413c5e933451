import asyncio
import logging
from typing import Callable, Dict, List, Optional
from zoneinfo import ZoneInfo

from sqlalchemy.exc import SQLAlchemyError

from . import lifecycle, projection, storage
from .config import settings
from .inventory import InventoryStore
from .schemas import (
    ConsumeItemAction,
    DeleteUserAction,
    Item,
    ItemType,
    PendingAction,
    PendingActionRead,
    PurgeExpiredAction,
    RenameUserAction,
    User,
    UserView,
)

logger = logging.getLogger(__name__)

# 確認待ち操作の保持上限（超えた場合は古いものから破棄）
MAX_PENDING_ACTIONS = 100

CONFIRMATION_MESSAGES = {
    "rename": "ユーザー名を変更しますか？",
    "delete-user": "ユーザーを削除しますか？",
    "consume-item": "アイテムを使用（削除）しますか？",
    "purge-expired": "期限切れのアイテムを削除しますか？",
}


class ActionNotFoundError(LookupError):
    """確認待ちの操作が見つからない場合の例外。"""


class InventoryService:
    """
    ストアの操作と永続化、確認待ち操作をまとめるサービス。

    ユーザー名の変更・ユーザー削除・アイテム使用・期限切れ削除は、
    `request_action` で確認待ちとして登録し、`confirm_action` で確定したときにのみ実行されます。

    Parameters
    ----------
    session_factory : Callable
        非同期データベースセッションのファクトリ。
    store : Optional[InventoryStore]
        使用するストア。省略時は空のストアを作成します。
    clock : Callable[[], int], optional
        現在時刻（エポックからのミリ秒）を返す関数。
    storage_key : Optional[str]
        ストレージキー。省略時は設定値を使用します。
    """

    def __init__(
            self,
            session_factory: Callable,
            store: Optional[InventoryStore] = None,
            clock: Callable[[], int] = lifecycle.now_ms,
            storage_key: Optional[str] = None
            ) -> None:
        self.store = store or InventoryStore()
        self.clock = clock
        self.storage_key = storage_key or settings.storage_key
        self.timezone = ZoneInfo(settings.display_timezone)
        self._session_factory = session_factory
        self._pending: Dict[str, PendingAction] = {}
        self._persist_lock = asyncio.Lock()

    async def load(self) -> None:
        """保存されたスナップショットを読み込んでストアを置き換えます。"""
        async with self._session_factory() as db:
            snapshot = await storage.load_snapshot(db, self.storage_key)
        self.store = InventoryStore(snapshot, id_factory=self.store.id_factory)

    async def persist(self) -> bool:
        """
        現在のスナップショットを保存します。

        保存に失敗した場合はログに記録し、メモリ上の状態をそのまま使い続けます（再試行はしません）。

        Returns
        -------
        bool
            保存に成功した場合はTrue。
        """
        async with self._persist_lock:
            try:
                async with self._session_factory() as db:
                    await storage.save_snapshot(db, self.store.snapshot, self.storage_key)
            except SQLAlchemyError:
                logger.exception("スナップショットの保存に失敗しました。")
                return False
        return True

    def views(self, now: Optional[int] = None) -> List[UserView]:
        if now is None:
            now = self.clock()
        return projection.build_user_views(self.store.snapshot, now, self.timezone)

    async def on_tick(self, now: int) -> bool:
        """
        ティックごとに期限切れアイテムを削除し、変更があれば保存します。

        対象ユーザーが存在しなくなった確認待ちの操作もあわせて破棄します。

        Returns
        -------
        bool
            削除が発生した場合はTrue。
        """
        self.prune_pending_actions()
        if self.store.periodic_sweep(now) is None:
            return False
        await self.persist()
        return True

    async def add_user(self, name: Optional[str] = None) -> User:
        user = self.store.add_user(name)
        await self.persist()
        return user

    async def add_item(self, user_id: str, item_type: ItemType) -> Optional[Item]:
        item = self.store.add_item(user_id, item_type, self.clock())
        if item is not None:
            await self.persist()
        return item

    def request_action(self, action: PendingAction) -> PendingActionRead:
        """
        確認が必要な操作を確認待ちとして登録します。

        Parameters
        ----------
        action : PendingAction
            実行する操作。

        Returns
        -------
        PendingActionRead
            確認待ち操作のIDと確認メッセージ。
        """
        while len(self._pending) >= MAX_PENDING_ACTIONS:
            oldest_id = next(iter(self._pending))
            self._pending.pop(oldest_id)
            logger.warning(f"確認待ちの操作が上限に達したため、古い操作を破棄しました（ID: {oldest_id}）。")
        action_id = lifecycle.new_id()
        self._pending[action_id] = action
        logger.info(f"確認待ちの操作 '{action.kind}' を登録しました（ID: {action_id}）。")
        return self._read(action_id, action)

    def get_action(self, action_id: str) -> PendingActionRead:
        action = self._pending.get(action_id)
        if action is None:
            raise ActionNotFoundError(action_id)
        return self._read(action_id, action)

    def cancel_action(self, action_id: str) -> None:
        if self._pending.pop(action_id, None) is None:
            raise ActionNotFoundError(action_id)
        logger.info(f"確認待ちの操作を取り消しました（ID: {action_id}）。")

    def prune_pending_actions(self) -> int:
        """
        対象ユーザーが存在しない確認待ちの操作を破棄します。

        Returns
        -------
        int
            破棄した操作の件数。
        """
        stale_ids = [
            action_id for action_id, action in self._pending.items()
            if self.store.get_user(action.user_id) is None
        ]
        for action_id in stale_ids:
            self._pending.pop(action_id)
        if stale_ids:
            logger.info(f"対象ユーザーが存在しない確認待ちの操作を {len(stale_ids)} 件破棄しました。")
        return len(stale_ids)

    async def confirm_action(self, action_id: str) -> bool:
        """
        確認待ちの操作を確定して実行します。

        Parameters
        ----------
        action_id : str
            確認待ち操作のID。

        Returns
        -------
        bool
            ストアに変更があった場合はTrue。

        Raises
        ------
        ActionNotFoundError
            指定したIDの確認待ち操作が存在しない場合。
        """
        action = self._pending.pop(action_id, None)
        if action is None:
            raise ActionNotFoundError(action_id)
        changed = self._execute(action)
        logger.info(f"操作 '{action.kind}' を実行しました（変更: {changed}）。")
        if changed:
            await self.persist()
        return changed

    def _execute(self, action: PendingAction) -> bool:
        if isinstance(action, RenameUserAction):
            return self.store.rename_user(action.user_id, action.new_name)
        if isinstance(action, DeleteUserAction):
            return self.store.delete_user(action.user_id)
        if isinstance(action, ConsumeItemAction):
            return self.store.consume_item(action.user_id, action.item_id)
        if isinstance(action, PurgeExpiredAction):
            return self.store.purge_expired_items(action.user_id, self.clock(), action.item_type)
        raise TypeError(f"Unknown action: {action!r}")

    @staticmethod
    def _read(action_id: str, action: PendingAction) -> PendingActionRead:
        return PendingActionRead(
            action_id=action_id,
            message=CONFIRMATION_MESSAGES[action.kind],
            action=action,
        )
