import pytest

from line_item_mgt import lifecycle
from line_item_mgt.schemas import ItemType, Remaining

DAY = 24 * 60 * 60 * 1000
HOUR = 60 * 60 * 1000
MINUTE = 60 * 1000
T0 = 1704067200000


def test_create_item_expires_five_days_after_acquisition():
    """
    アイテムの有効期限が取得日時のちょうど5日後になることを確認します。
    """
    item = lifecycle.create_item(ItemType.GLOVE, T0)
    assert item.acquired_at == T0
    assert item.expires_at - item.acquired_at == 5 * DAY
    assert item.type == ItemType.GLOVE
    assert item.id


def test_create_item_uses_id_factory():
    """
    id_factoryで指定した関数でIDが生成されることを確認します。
    """
    item = lifecycle.create_item(ItemType.TIME, T0, id_factory=lambda: "fixed-id")
    assert item.id == "fixed-id"


def test_new_id_is_unique():
    ids = {lifecycle.new_id() for _ in range(100)}
    assert len(ids) == 100


def test_is_active_boundary():
    """
    有効期限の直前までは有効、有効期限以降は期限切れであることを確認します。
    """
    item = lifecycle.create_item(ItemType.GLOVE, T0)
    assert lifecycle.is_active(item, T0)
    assert lifecycle.is_active(item, item.expires_at - 1)
    assert not lifecycle.is_active(item, item.expires_at)
    assert not lifecycle.is_active(item, item.expires_at + 1)
    assert lifecycle.is_expired(item, item.expires_at)
    assert not lifecycle.is_expired(item, item.expires_at - 1)


def test_remaining_at_acquisition():
    item = lifecycle.create_item(ItemType.GLOVE, T0)
    assert lifecycle.remaining(item, T0) == Remaining(days=5, hours=0, minutes=0)


@pytest.mark.parametrize("elapsed", [1, MINUTE - 1, MINUTE, HOUR + 30 * 1000, DAY + 3 * HOUR + 59 * MINUTE + 1, 5 * DAY - 1])
def test_remaining_is_truncated(elapsed: int):
    """
    残り時間が切り捨てで日・時間・分に分解されることを確認します。
    """
    item = lifecycle.create_item(ItemType.GLOVE, T0)
    now = T0 + elapsed
    rest = lifecycle.remaining(item, now)
    floor_ms = rest.days * DAY + rest.hours * HOUR + rest.minutes * MINUTE
    assert floor_ms <= item.expires_at - now < floor_ms + MINUTE
    assert 0 <= rest.hours <= 23
    assert 0 <= rest.minutes <= 59


def test_remaining_example():
    item = lifecycle.create_item(ItemType.GLOVE, T0)
    # 1日と2時間3分経過 → 残り3日21時間57分
    now = T0 + DAY + 2 * HOUR + 3 * MINUTE
    assert lifecycle.remaining(item, now) == Remaining(days=3, hours=21, minutes=57)


def test_remaining_is_none_when_expired():
    """
    期限切れのアイテムの残り時間はNoneになることを確認します。
    """
    item = lifecycle.create_item(ItemType.GLOVE, T0)
    assert lifecycle.remaining(item, item.expires_at) is None
    assert lifecycle.remaining(item, item.expires_at + DAY) is None
