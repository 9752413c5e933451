import math
from datetime import datetime, tzinfo
from typing import List, Optional, Tuple

from . import lifecycle
from .schemas import (
    Item,
    ItemType,
    ItemTypeSummary,
    ItemView,
    Remaining,
    Snapshot,
    User,
    UserView,
)

EXPIRY_FORMAT = "%m/%d %H:%M"


def earliest_active_expiry(user: User, now: int, item_type: ItemType = ItemType.GLOVE) -> float:
    """
    ユーザーの有効なアイテムのうち最も早い有効期限を返します。

    期限切れのアイテムは対象外です。該当するアイテムがない場合は無限大を返します。
    """
    expiries = [
        i.expires_at for i in user.items
        if i.type == item_type and lifecycle.is_active(i, now)
    ]
    return min(expiries) if expiries else math.inf


def sorted_users(snapshot: Snapshot, now: int) -> List[User]:
    """
    有効なグローブの有効期限が早い順にユーザーを並べ替えます。

    有効なグローブを持たないユーザーは末尾になり、同じキーのユーザーは元の順序を保ちます。

    Parameters
    ----------
    snapshot : Snapshot
        ユーザー一覧。
    now : int
        現在時刻（エポックからのミリ秒）。

    Returns
    -------
    List[User]
        並べ替えたユーザー一覧。
    """
    return sorted(snapshot, key=lambda u: earliest_active_expiry(u, now, ItemType.GLOVE))


def items_of_type(user: User, item_type: ItemType, now: int) -> Tuple[List[Item], List[Item]]:
    """
    指定した種類のアイテムを有効なものと期限切れのものに分けます。

    Returns
    -------
    Tuple[List[Item], List[Item]]
        (有効なアイテム, 期限切れのアイテム)。有効なアイテムは取得日時の古い順です。
    """
    active = []
    expired = []
    for item in user.items:
        if item.type != item_type:
            continue
        if lifecycle.is_active(item, now):
            active.append(item)
        else:
            expired.append(item)
    active.sort(key=lambda i: i.acquired_at)
    return active, expired


def active_count(user: User, item_type: ItemType, now: int) -> int:
    return len(items_of_type(user, item_type, now)[0])


def next_to_expire_display(user: User, item_type: ItemType, now: int) -> Optional[Remaining]:
    """次に使用されるアイテムの残り時間を返します。有効なアイテムがない場合はNone。"""
    active, _ = items_of_type(user, item_type, now)
    if not active:
        return None
    return lifecycle.remaining(active[0], now)


def format_expiry(item: Item, tz: Optional[tzinfo] = None) -> str:
    """有効期限を MM/dd HH:mm 形式で返します。"""
    expires = datetime.fromtimestamp(item.expires_at / 1000, tz=tz)
    return expires.strftime(EXPIRY_FORMAT)


def format_remaining(remaining: Remaining) -> str:
    return f"残り {remaining.days}日 {remaining.hours}時間 {remaining.minutes}分"


def summarize(user: User, item_type: ItemType, now: int) -> ItemTypeSummary:
    """
    ユーザーの指定した種類のアイテムを集計します。

    Parameters
    ----------
    user : User
        対象のユーザー。
    item_type : ItemType
        集計するアイテムの種類。
    now : int
        現在時刻（エポックからのミリ秒）。

    Returns
    -------
    ItemTypeSummary
        有効・期限切れの件数と、次に使用されるアイテムの残り時間。
    """
    active, expired = items_of_type(user, item_type, now)
    summary = ItemTypeSummary(
        type=item_type,
        label=item_type.label,
        active_count=len(active),
        expired_count=len(expired),
    )
    if active:
        rest = lifecycle.remaining(active[0], now)
        summary.next_item_id = active[0].id
        summary.remaining = rest
        summary.remaining_text = format_remaining(rest)
    return summary


def build_user_views(snapshot: Snapshot, now: int, tz: Optional[tzinfo] = None) -> List[UserView]:
    """
    表示用のユーザー一覧を作成します。

    並び順は `sorted_users` に従い、各ユーザーについて種類ごとの集計と
    アイテム一覧（期限切れフラグと有効期限の表示を含む）を返します。

    Parameters
    ----------
    snapshot : Snapshot
        ユーザー一覧。
    now : int
        現在時刻（エポックからのミリ秒）。
    tz : Optional[tzinfo]
        有効期限の表示に使うタイムゾーン。

    Returns
    -------
    List[UserView]
        表示用のユーザー一覧。
    """
    views = []
    for user in sorted_users(snapshot, now):
        views.append(UserView(
            id=user.id,
            name=user.name,
            summaries=[summarize(user, item_type, now) for item_type in ItemType],
            items=[
                ItemView(
                    id=item.id,
                    type=item.type,
                    acquired_at=item.acquired_at,
                    expires_at=item.expires_at,
                    expires_label=format_expiry(item, tz),
                    expired=lifecycle.is_expired(item, now),
                )
                for item in user.items
            ],
        ))
    return views
