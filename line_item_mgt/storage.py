import logging
from typing import List, Optional

from pydantic import TypeAdapter, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from . import crud
from .config import settings
from .schemas import Snapshot, User

logger = logging.getLogger(__name__)

_snapshot_adapter = TypeAdapter(List[User])


def serialize(snapshot: Snapshot) -> str:
    """
    スナップショットをJSON文字列に変換します。

    フィールド名はキャメルケース（acquiredAt, expiresAt）で出力されます。
    """
    return _snapshot_adapter.dump_json(snapshot, by_alias=True).decode("utf-8")


def deserialize(blob: Optional[str]) -> Snapshot:
    """
    JSON文字列からスナップショットを復元します。

    Parameters
    ----------
    blob : Optional[str]
        保存されていたJSON文字列。

    Returns
    -------
    Snapshot
        復元したユーザー一覧。データがない場合や不正な場合は空のリスト。
    """
    if not blob:
        return []
    try:
        return _snapshot_adapter.validate_json(blob)
    except ValidationError as e:
        logger.warning(f"保存データの読み込みに失敗しました。空の状態で開始します: {e.error_count()} 件のエラー")
        return []


async def load_snapshot(db: AsyncSession, key: Optional[str] = None) -> Snapshot:
    """
    データベースからスナップショットを読み込みます。

    Parameters
    ----------
    db : AsyncSession
        データベースセッション。
    key : Optional[str]
        ストレージキー。省略時は設定値を使用します。

    Returns
    -------
    Snapshot
        読み込んだユーザー一覧。保存データを読み出せない場合は空のリスト。
    """
    key = key or settings.storage_key
    try:
        blob = await crud.get_value(db, key)
    except SQLAlchemyError:
        logger.warning(f"'{key}' の保存データを読み出せませんでした。空の状態で開始します。", exc_info=True)
        await db.rollback()
        return []
    snapshot = deserialize(blob)
    logger.info(f"'{key}' から {len(snapshot)} 人のユーザーを読み込みました。")
    return snapshot


async def save_snapshot(db: AsyncSession, snapshot: Snapshot, key: Optional[str] = None) -> None:
    """
    スナップショットをデータベースに保存します。

    Parameters
    ----------
    db : AsyncSession
        データベースセッション。
    snapshot : Snapshot
        保存するユーザー一覧。
    key : Optional[str]
        ストレージキー。省略時は設定値を使用します。
    """
    key = key or settings.storage_key
    await crud.set_value(db, key, serialize(snapshot))
    logger.debug(f"'{key}' に {len(snapshot)} 人のユーザーを保存しました。")
