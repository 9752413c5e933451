from fastapi import APIRouter, Depends
from typing import List
from .. import schemas
from ..dependencies import get_service
from ..service import InventoryService
import logging

# ロガーの設定
logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/users",
    tags=["users"],
)


@router.get("/", response_model=List[schemas.UserView])
async def read_users(
        service: InventoryService = Depends(get_service)
        ) -> List[schemas.UserView]:
    """
    表示用のユーザー一覧を取得します。

    有効なグローブの有効期限が早いユーザーから順に並べ、
    種類ごとの有効件数と次に使用されるアイテムの残り時間を含めて返します。

    Parameters
    ----------
    service : InventoryService
        アプリケーションのサービス。依存関係として提供されます。

    Returns
    -------
    List[schemas.UserView]
        表示用のユーザー一覧。
    """
    return service.views()


@router.post("/", response_model=List[schemas.UserView])
async def create_user(
        user: schemas.UserCreate,
        service: InventoryService = Depends(get_service)
        ) -> List[schemas.UserView]:
    """
    新しいユーザーを追加します。

    名前が省略された場合や空白のみの場合は「ユーザーNN」形式で自動採番されます。

    Parameters
    ----------
    user : schemas.UserCreate
        作成するユーザーの情報を含むスキーマ。
    service : InventoryService
        アプリケーションのサービス。依存関係として提供されます。

    Returns
    -------
    List[schemas.UserView]
        追加後のユーザー一覧。
    """
    await service.add_user(user.name)
    return service.views()


@router.post("/{user_id}/items", response_model=List[schemas.UserView])
async def create_item(
        user_id: str,
        item: schemas.ItemCreate,
        service: InventoryService = Depends(get_service)
        ) -> List[schemas.UserView]:
    """
    ユーザーにアイテムを追加します。有効期限は追加時刻の5日後です。

    ユーザーが存在しない場合は何もせず、現在のユーザー一覧を返します。

    Parameters
    ----------
    user_id : str
        対象ユーザーのID。
    item : schemas.ItemCreate
        追加するアイテムの種類を含むスキーマ。
    service : InventoryService
        アプリケーションのサービス。依存関係として提供されます。

    Returns
    -------
    List[schemas.UserView]
        追加後のユーザー一覧。
    """
    created = await service.add_item(user_id, item.type)
    if created is None:
        logger.warning(f"ユーザー '{user_id}' が見つからないため、アイテムを追加しませんでした。")
    return service.views()
