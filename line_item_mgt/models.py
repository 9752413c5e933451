from sqlalchemy import Column, String, Text
from .database import BaseDatabase


class StoredBlob(BaseDatabase):
    """
    キーバリューストアのレコード。シリアライズ済みのスナップショットを保持します。

    Attributes
    ----------
    key : sqlalchemy.Column
        ストレージキー。プライマリキーです。
    value : sqlalchemy.Column
        シリアライズされたデータ（JSON文字列）。必須項目です。
    """
    __tablename__ = "kv_store"

    key = Column(String, primary_key=True, index=True)
    value = Column(Text, nullable=False)
