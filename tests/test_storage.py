import json

import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from line_item_mgt import crud, storage
from line_item_mgt.schemas import Item, ItemType, User

FIVE_DAYS = 5 * 24 * 60 * 60 * 1000
T0 = 1704067200000


@pytest.fixture
def snapshot():
    return [
        User(id="u1", name="ユーザー01", items=[
            Item(id="i1", type=ItemType.GLOVE, acquired_at=T0, expires_at=T0 + FIVE_DAYS),
            Item(id="i2", type=ItemType.TIME, acquired_at=T0 + 5, expires_at=T0 + 5 + FIVE_DAYS),
        ]),
        User(id="u2", name="太郎", items=[]),
    ]


def test_serialize_round_trip(snapshot):
    """
    シリアライズしたデータを復元すると元のスナップショットと一致することを確認します。
    """
    assert storage.deserialize(storage.serialize(snapshot)) == snapshot
    assert storage.deserialize(storage.serialize([])) == []


def test_serialize_uses_camel_case_fields(snapshot):
    """
    保存形式のフィールド名がキャメルケースであることを確認します。
    """
    data = json.loads(storage.serialize(snapshot))
    assert list(data[0].keys()) == ["id", "name", "items"]
    assert data[0]["items"][0] == {"id": "i1", "type": "Glove", "acquiredAt": T0, "expiresAt": T0 + FIVE_DAYS}


@pytest.mark.parametrize("blob", [None, "", "not json", "{\"users\": []}", "[{\"id\": 1}]", "[{\"id\": \"u\", \"name\": \"n\", \"items\": [{\"id\": \"i\"}]}]"])
def test_deserialize_malformed_returns_empty(blob):
    """
    データがない場合や不正な場合は空のスナップショットになることを確認します。
    """
    assert storage.deserialize(blob) == []


@pytest.mark.asyncio
async def test_save_and_load_snapshot(db_session: AsyncSession, snapshot, storage_key: str):
    """
    データベースへの保存と読み込みでスナップショットが変わらないことを確認します。
    """
    await storage.save_snapshot(db_session, snapshot, storage_key)
    loaded = await storage.load_snapshot(db_session, storage_key)
    assert loaded == snapshot

    # 上書き保存
    await storage.save_snapshot(db_session, snapshot[1:], storage_key)
    assert await storage.load_snapshot(db_session, storage_key) == snapshot[1:]


@pytest.mark.asyncio
async def test_load_snapshot_missing_key(db_session: AsyncSession, storage_key: str):
    assert await storage.load_snapshot(db_session, storage_key) == []


@pytest.mark.asyncio
async def test_load_snapshot_malformed_blob(db_session: AsyncSession, storage_key: str):
    """
    保存データが壊れている場合、空のスナップショットが返されることを確認します。
    """
    await crud.set_value(db_session, storage_key, "{broken")
    assert await storage.load_snapshot(db_session, storage_key) == []


@pytest.mark.asyncio
async def test_load_snapshot_undecodable_blob(db_session: AsyncSession, storage_key: str):
    """
    保存データがUTF-8として読み出せない場合も、空のスナップショットが返されることを確認します。
    """
    await db_session.execute(
        text("INSERT INTO kv_store (key, value) VALUES (:key, CAST(X'FFFE5B5D' AS TEXT))"),
        {"key": storage_key},
    )
    await db_session.commit()

    assert await storage.load_snapshot(db_session, storage_key) == []

    # 読み出しに失敗した後も同じセッションで保存できる
    await storage.save_snapshot(db_session, [], storage_key)
    assert await storage.load_snapshot(db_session, storage_key) == []
    assert await crud.get_value(db_session, storage_key) == "[]"
