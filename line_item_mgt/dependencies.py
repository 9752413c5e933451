from fastapi import Request
from .service import InventoryService


def get_service(request: Request) -> InventoryService:
    """
    アプリケーションのサービスを取得するための依存関係。

    Returns:
        InventoryService: 起動時に作成されたサービスオブジェクト。
    """
    return request.app.state.service
