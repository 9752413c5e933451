from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import update
from . import models
from typing import Optional


# キーでレコードを取得する関数
async def get_blob(db: AsyncSession, key: str) -> Optional[models.StoredBlob]:
    """
    キーでレコードを取得します。

    Parameters
    ----------
    db : AsyncSession
        データベースセッション。
    key : str
        取得するレコードのキー。

    Returns
    -------
    Optional[models.StoredBlob]
        見つかった場合はレコード、存在しない場合はNone。
    """
    result = await db.execute(select(models.StoredBlob).filter(models.StoredBlob.key == key))
    return result.scalars().first()

# キーで値を取得する関数
async def get_value(db: AsyncSession, key: str) -> Optional[str]:
    """
    キーに保存された値を取得します。

    Parameters
    ----------
    db : AsyncSession
        データベースセッション。
    key : str
        取得する値のキー。

    Returns
    -------
    Optional[str]
        保存された値。存在しない場合はNone。
    """
    db_blob = await get_blob(db, key)
    if db_blob is None:
        return None
    return db_blob.value

# キーに値を保存する関数
async def set_value(db: AsyncSession, key: str, value: str) -> models.StoredBlob:
    """
    キーに値を保存します。既に存在する場合は上書きします。

    Parameters
    ----------
    db : AsyncSession
        データベースセッション。
    key : str
        保存先のキー。
    value : str
        保存する値。

    Returns
    -------
    models.StoredBlob
        保存されたレコード。
    """
    # 既存の値は読み出さずに上書きする
    result = await db.execute(
        update(models.StoredBlob)
        .where(models.StoredBlob.key == key)
        .values(value=value)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.add(models.StoredBlob(key=key, value=value))
    await db.commit()
    db_blob = await get_blob(db, key)
    await db.refresh(db_blob)
    return db_blob
