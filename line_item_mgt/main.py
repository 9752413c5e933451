import logging

from fastapi import FastAPI
from . import database
from .config import settings
from .routers import actions, users
from .scheduler import Ticker
from .service import InventoryService

logging.basicConfig(level=settings.log_level)

app = FastAPI(title="LINE アイテム管理")
app.state.service = InventoryService(database.AsyncSessionLocal)
app.state.ticker = Ticker(settings.tick_interval_seconds)


@app.on_event("startup")
async def on_startup():
    """
    アプリケーションの起動時にテーブルを作成し、保存データを読み込みます。

    このイベントハンドラーは、アプリケーションが起動する際に呼び出され、
    全てのテーブルを自動的に作成した後、スナップショットを読み込み、
    期限切れアイテムを削除するティックを開始します。
    """
    async with database.engine.begin() as conn:
        await conn.run_sync(database.Base.metadata.create_all)
    service: InventoryService = app.state.service
    await service.load()
    ticker: Ticker = app.state.ticker
    ticker.subscribe(service.on_tick)
    ticker.start()


@app.on_event("shutdown")
async def on_shutdown():
    """アプリケーションの終了時にティックを停止します。"""
    ticker: Ticker = app.state.ticker
    ticker.stop()
    ticker.unsubscribe(app.state.service.on_tick)


# ルーターの登録
app.include_router(users.router)
app.include_router(actions.router)
