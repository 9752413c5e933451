from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, RootModel, model_validator
from pydantic.alias_generators import to_camel


class ItemType(str, Enum):
    """
    アイテムの種類。

    現行の種類は `Glove` のみですが、以前のデータとの互換性のため `Time` も受け付けます。
    """
    GLOVE = "Glove"
    TIME = "Time"

    @property
    def label(self) -> str:
        return ITEM_TYPE_LABELS[self]


ITEM_TYPE_LABELS = {
    ItemType.GLOVE: "グローブ",
    ItemType.TIME: "タイム",
}


class Item(BaseModel):
    """
    ユーザーが所持するアイテム（作成後は不変）

    Attributes
    ----------
    id : str
        アイテムの一意のID。
    type : ItemType
        アイテムの種類。
    acquired_at : int
        取得日時（エポックからのミリ秒）。
    expires_at : int
        有効期限（エポックからのミリ秒）。取得日時の5日後。
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    id: str
    type: ItemType
    acquired_at: int
    expires_at: int

    @model_validator(mode="after")
    def check_expiry_after_acquisition(self) -> "Item":
        if self.expires_at <= self.acquired_at:
            raise ValueError("expiresAt must be after acquiredAt")
        return self


class User(BaseModel):
    """
    アイテムを所持するユーザー

    Attributes
    ----------
    id : str
        ユーザーの一意のID。
    name : str
        表示名。
    items : List[Item]
        所持アイテム（取得順）。
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    id: str
    name: str
    items: List[Item] = Field(default_factory=list)


# 永続化の単位となるユーザー一覧
Snapshot = List[User]


class Remaining(BaseModel):
    """
    有効期限までの残り時間（切り捨て）

    Attributes
    ----------
    days : int
        残り日数。
    hours : int
        日未満の残り時間（0〜23）。
    minutes : int
        時間未満の残り分（0〜59）。
    """
    days: int
    hours: int
    minutes: int


class UserCreate(BaseModel):
    """
    ユーザー作成時のモデル

    Attributes
    ----------
    name : Optional[str]
        ユーザー名。省略または空白のみの場合は自動で採番されます。
    """
    name: Optional[str] = None


class ItemCreate(BaseModel):
    """
    アイテム追加時のモデル

    Attributes
    ----------
    type : ItemType
        追加するアイテムの種類。
    """
    type: ItemType = ItemType.GLOVE


class ItemView(BaseModel):
    """
    表示用のアイテム情報
    """
    id: str
    type: ItemType
    acquired_at: int
    expires_at: int
    expires_label: str  # 有効期限の表示（MM/dd HH:mm）
    expired: bool


class ItemTypeSummary(BaseModel):
    """
    種類ごとの集計

    Attributes
    ----------
    type : ItemType
        アイテムの種類。
    label : str
        種類の表示名。
    active_count : int
        有効なアイテム数。
    expired_count : int
        期限切れ（未削除）のアイテム数。
    next_item_id : Optional[str]
        次に使用されるアイテム（最も古く取得された有効なアイテム）のID。
    remaining : Optional[Remaining]
        次に使用されるアイテムの残り時間。
    remaining_text : Optional[str]
        残り時間の表示文字列。
    """
    type: ItemType
    label: str
    active_count: int
    expired_count: int
    next_item_id: Optional[str] = None
    remaining: Optional[Remaining] = None
    remaining_text: Optional[str] = None


class UserView(BaseModel):
    """
    表示用のユーザー情報
    """
    id: str
    name: str
    summaries: List[ItemTypeSummary]
    items: List[ItemView]


class RenameUserAction(BaseModel):
    kind: Literal["rename"] = "rename"
    user_id: str
    new_name: str


class DeleteUserAction(BaseModel):
    kind: Literal["delete-user"] = "delete-user"
    user_id: str


class ConsumeItemAction(BaseModel):
    kind: Literal["consume-item"] = "consume-item"
    user_id: str
    item_id: str


class PurgeExpiredAction(BaseModel):
    kind: Literal["purge-expired"] = "purge-expired"
    user_id: str
    item_type: Optional[ItemType] = None


# 確認待ちの操作（kindで判別）
PendingAction = Annotated[
    Union[RenameUserAction, DeleteUserAction, ConsumeItemAction, PurgeExpiredAction],
    Field(discriminator="kind"),
]


class PendingActionRead(BaseModel):
    """
    確認待ち操作の取得時のモデル

    Attributes
    ----------
    action_id : str
        確認待ち操作のID。
    message : str
        確認メッセージ。
    action : PendingAction
        実行される操作の内容。
    """
    action_id: str
    message: str
    action: PendingAction


class PendingActionCreate(RootModel[PendingAction]):
    """
    確認待ち操作の登録時のモデル（kindで操作の種類を判別）
    """
    pass
