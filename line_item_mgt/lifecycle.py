import time
import uuid
from datetime import timedelta
from typing import Callable, Optional

from .schemas import Item, ItemType, Remaining

MS_PER_MINUTE = 60 * 1000
MS_PER_HOUR = 60 * MS_PER_MINUTE
MS_PER_DAY = 24 * MS_PER_HOUR

# アイテムの有効期間（取得から5日）
ITEM_LIFETIME = timedelta(days=5)
ITEM_LIFETIME_MS = int(ITEM_LIFETIME.total_seconds() * 1000)


def new_id() -> str:
    """
    一意の識別子を生成します。

    Returns
    -------
    str
        UUID4の文字列表現。
    """
    return str(uuid.uuid4())


def now_ms() -> int:
    """現在時刻をエポックからのミリ秒で返します。"""
    return int(time.time() * 1000)


def create_item(item_type: ItemType, now: int, id_factory: Callable[[], str] = new_id) -> Item:
    """
    新しいアイテムを作成します。

    Parameters
    ----------
    item_type : ItemType
        アイテムの種類。
    now : int
        取得日時（エポックからのミリ秒）。
    id_factory : Callable[[], str], optional
        IDの生成関数（デフォルトはUUID4）。

    Returns
    -------
    Item
        取得日時の5日後を有効期限とするアイテム。
    """
    return Item(
        id=id_factory(),
        type=item_type,
        acquired_at=now,
        expires_at=now + ITEM_LIFETIME_MS,
    )


def is_active(item: Item, now: int) -> bool:
    return item.expires_at > now


def is_expired(item: Item, now: int) -> bool:
    return not is_active(item, now)


def remaining(item: Item, now: int) -> Optional[Remaining]:
    """
    有効期限までの残り時間を日・時間・分に分解します（切り捨て）。

    Parameters
    ----------
    item : Item
        対象のアイテム。
    now : int
        現在時刻（エポックからのミリ秒）。

    Returns
    -------
    Optional[Remaining]
        残り時間。期限切れの場合はNone。
    """
    if not is_active(item, now):
        return None
    diff = item.expires_at - now
    days, rest = divmod(diff, MS_PER_DAY)
    hours, rest = divmod(rest, MS_PER_HOUR)
    minutes = rest // MS_PER_MINUTE
    return Remaining(days=days, hours=hours, minutes=minutes)
