import logging
import re
from typing import Callable, Iterable, List, Optional

from . import lifecycle
from .schemas import Item, ItemType, Snapshot, User

logger = logging.getLogger(__name__)

DEFAULT_NAME_PREFIX = "ユーザー"
_DEFAULT_NAME_PATTERN = re.compile(rf"^{DEFAULT_NAME_PREFIX}(\d+)$")


def next_default_name(users: Iterable[User]) -> str:
    """
    自動採番されたユーザー名（ユーザーNN）を返します。

    既存の「ユーザー<数字>」形式の名前のうち最大の番号に1を加え、2桁にゼロ埋めします。

    Parameters
    ----------
    users : Iterable[User]
        既存のユーザー。

    Returns
    -------
    str
        新しいユーザー名。
    """
    max_num = 0
    for user in users:
        match = _DEFAULT_NAME_PATTERN.match(user.name)
        if match:
            max_num = max(max_num, int(match.group(1)))
    return f"{DEFAULT_NAME_PREFIX}{max_num + 1:02d}"


class InventoryStore:
    """
    ユーザーと所持アイテムのインメモリストア。

    すべての変更操作は新しいユーザー一覧（スナップショット）を作成して置き換えます。
    存在しないユーザーやアイテムを対象とした操作は何もしません。
    変更後のスナップショットの永続化は呼び出し側の責務です。

    Parameters
    ----------
    users : Optional[Snapshot]
        初期状態のユーザー一覧。
    id_factory : Callable[[], str], optional
        ユーザーおよびアイテムのIDの生成関数。
    """

    def __init__(
            self,
            users: Optional[Snapshot] = None,
            id_factory: Callable[[], str] = lifecycle.new_id
            ) -> None:
        self._users: List[User] = list(users or [])
        self.id_factory = id_factory

    @property
    def snapshot(self) -> Snapshot:
        return list(self._users)

    def get_user(self, user_id: str) -> Optional[User]:
        for user in self._users:
            if user.id == user_id:
                return user
        return None

    def _replace_user(self, updated: User) -> None:
        self._users = [updated if u.id == updated.id else u for u in self._users]

    def add_user(self, name: Optional[str] = None) -> User:
        """
        新しいユーザーを末尾に追加します。

        Parameters
        ----------
        name : Optional[str]
            ユーザー名。省略または空白のみの場合は自動で採番されます。

        Returns
        -------
        User
            追加されたユーザー。
        """
        name_to_use = (name or "").strip()
        if not name_to_use:
            name_to_use = next_default_name(self._users)
        user = User(id=self.id_factory(), name=name_to_use, items=[])
        self._users = self._users + [user]
        logger.info(f"ユーザー '{user.name}' を追加しました。")
        return user

    def rename_user(self, user_id: str, new_name: str) -> bool:
        """
        ユーザー名を変更します。空白のみの名前は無視されます。

        Returns
        -------
        bool
            変更した場合はTrue。
        """
        trimmed = (new_name or "").strip()
        if not trimmed:
            return False
        user = self.get_user(user_id)
        if user is None:
            logger.debug(f"名前変更対象のユーザー '{user_id}' が見つかりません。")
            return False
        self._replace_user(user.model_copy(update={"name": trimmed}))
        logger.info(f"ユーザー '{user.name}' の名前を '{trimmed}' に変更しました。")
        return True

    def delete_user(self, user_id: str) -> bool:
        """
        ユーザーを所持アイテムごと削除します。

        Returns
        -------
        bool
            削除した場合はTrue。
        """
        remaining_users = [u for u in self._users if u.id != user_id]
        if len(remaining_users) == len(self._users):
            logger.debug(f"削除対象のユーザー '{user_id}' が見つかりません。")
            return False
        self._users = remaining_users
        logger.info(f"ユーザー '{user_id}' を削除しました。")
        return True

    def add_item(self, user_id: str, item_type: ItemType, now: int) -> Optional[Item]:
        """
        ユーザーにアイテムを追加します。

        Parameters
        ----------
        user_id : str
            対象ユーザーのID。
        item_type : ItemType
            追加するアイテムの種類。
        now : int
            取得日時（エポックからのミリ秒）。

        Returns
        -------
        Optional[Item]
            追加されたアイテム。ユーザーが存在しない場合はNone。
        """
        user = self.get_user(user_id)
        if user is None:
            logger.debug(f"アイテム追加対象のユーザー '{user_id}' が見つかりません。")
            return None
        item = lifecycle.create_item(item_type, now, id_factory=self.id_factory)
        self._replace_user(user.model_copy(update={"items": user.items + [item]}))
        logger.info(f"ユーザー '{user.name}' に {item_type.value} を追加しました。")
        return item

    def consume_item(self, user_id: str, item_id: str) -> bool:
        """
        アイテムを1つ使用（削除）します。

        Returns
        -------
        bool
            削除した場合はTrue。
        """
        user = self.get_user(user_id)
        if user is None:
            return False
        items = [i for i in user.items if i.id != item_id]
        if len(items) == len(user.items):
            logger.debug(f"使用対象のアイテム '{item_id}' が見つかりません。")
            return False
        self._replace_user(user.model_copy(update={"items": items}))
        logger.info(f"ユーザー '{user.name}' のアイテム '{item_id}' を使用しました。")
        return True

    def purge_expired_items(
            self,
            user_id: str,
            now: int,
            item_type: Optional[ItemType] = None
            ) -> bool:
        """
        ユーザーの期限切れアイテムを削除します。

        Parameters
        ----------
        user_id : str
            対象ユーザーのID。
        now : int
            現在時刻（エポックからのミリ秒）。
        item_type : Optional[ItemType]
            指定した場合はその種類のアイテムのみを対象とします。

        Returns
        -------
        bool
            1件以上削除した場合はTrue。
        """
        user = self.get_user(user_id)
        if user is None:
            return False
        items = [
            i for i in user.items
            if not (lifecycle.is_expired(i, now) and (item_type is None or i.type == item_type))
        ]
        removed = len(user.items) - len(items)
        if removed == 0:
            return False
        self._replace_user(user.model_copy(update={"items": items}))
        logger.info(f"ユーザー '{user.name}' の期限切れアイテムを {removed} 件削除しました。")
        return True

    def periodic_sweep(self, now: int) -> Optional[Snapshot]:
        """
        全ユーザーの期限切れアイテムを削除します。

        Parameters
        ----------
        now : int
            現在時刻（エポックからのミリ秒）。

        Returns
        -------
        Optional[Snapshot]
            1件以上削除した場合は新しいスナップショット、削除がなければNone。
        """
        removed = 0
        users = []
        for user in self._users:
            items = [i for i in user.items if lifecycle.is_active(i, now)]
            if len(items) != len(user.items):
                removed += len(user.items) - len(items)
                user = user.model_copy(update={"items": items})
            users.append(user)
        if removed == 0:
            return None
        self._users = users
        logger.info(f"期限切れアイテムを {removed} 件削除しました。")
        return self.snapshot
