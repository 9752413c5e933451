from fastapi import APIRouter, Depends, HTTPException, status
from typing import List
from .. import schemas
from ..dependencies import get_service
from ..service import ActionNotFoundError, InventoryService
import logging

# ロガーの設定
logger = logging.getLogger(__name__)

# 確認が必要な操作用のルーターを設定
router = APIRouter(
    prefix="/actions",
    tags=["actions"],
    responses={404: {"description": "Not found"}},
)


@router.post("/", response_model=schemas.PendingActionRead)
async def request_action(
        action: schemas.PendingActionCreate,
        service: InventoryService = Depends(get_service)
        ) -> schemas.PendingActionRead:
    """
    確認が必要な操作を登録します。

    ユーザー名の変更・ユーザー削除・アイテム使用・期限切れアイテム削除は、
    ここで登録した後に確認エンドポイントを呼び出すまで実行されません。

    Parameters
    ----------
    action : schemas.PendingActionCreate
        実行する操作（kindで種類を指定）。
    service : InventoryService
        アプリケーションのサービス。依存関係として提供されます。

    Returns
    -------
    schemas.PendingActionRead
        確認待ち操作のIDと確認メッセージ。
    """
    return service.request_action(action.root)


@router.get("/{action_id}", response_model=schemas.PendingActionRead)
async def read_action(
        action_id: str,
        service: InventoryService = Depends(get_service)
        ) -> schemas.PendingActionRead:
    """
    確認待ちの操作を取得します。

    Raises
    ------
    HTTPException
        確認待ち操作が存在しない場合に404 Not Foundエラーを返します。
    """
    try:
        return service.get_action(action_id)
    except ActionNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Action not found")


@router.post("/{action_id}/confirm", response_model=List[schemas.UserView])
async def confirm_action(
        action_id: str,
        service: InventoryService = Depends(get_service)
        ) -> List[schemas.UserView]:
    """
    確認待ちの操作を確定して実行します。

    対象のユーザーやアイテムが既に存在しない場合は何もせず、現在のユーザー一覧を返します。

    Parameters
    ----------
    action_id : str
        確認待ち操作のID。
    service : InventoryService
        アプリケーションのサービス。依存関係として提供されます。

    Returns
    -------
    List[schemas.UserView]
        実行後のユーザー一覧。

    Raises
    ------
    HTTPException
        確認待ち操作が存在しない場合に404 Not Foundエラーを返します。
    """
    try:
        await service.confirm_action(action_id)
    except ActionNotFoundError:
        logger.warning(f"確認待ちの操作 '{action_id}' が見つかりません。")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Action not found")
    return service.views()


@router.delete("/{action_id}", response_model=dict)
async def cancel_action(
        action_id: str,
        service: InventoryService = Depends(get_service)
        ) -> dict:
    try:
        service.cancel_action(action_id)
    except ActionNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Action not found")
    return {"detail": "Action cancelled"}
