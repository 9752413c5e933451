import pytest
import pytest_asyncio
import uuid
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from line_item_mgt.main import app
from line_item_mgt.dependencies import get_service
from line_item_mgt.database import Base
from line_item_mgt.service import InventoryService


# テスト用データベースURL（SQLiteのメモリデータベースを使用）
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# 2024-01-01T00:00:00Z（ミリ秒）
BASE_TIME = 1704067200000


class FakeClock:
    """テスト用の時計。advanceで時刻を進めます。"""

    def __init__(self, now: int = BASE_TIME):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


@pytest_asyncio.fixture
async def test_engine():
    # テスト用データベースのテーブルを作成
    engine = create_async_engine(TEST_DATABASE_URL, poolclass=StaticPool, future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    # テスト後にテーブルを削除
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()

@pytest.fixture
def session_factory(test_engine):
    # 非同期セッションファクトリ
    return sessionmaker(bind=test_engine, class_=AsyncSession, expire_on_commit=False)

@pytest_asyncio.fixture
async def db_session(session_factory):
    # 非同期セッションを生成
    async with session_factory() as session:
        yield session

@pytest.fixture
def clock():
    return FakeClock()

@pytest.fixture
def storage_key():
    """ユニークなストレージキーを生成するフィクスチャ"""
    return f"test-users-{uuid.uuid4()}"

@pytest.fixture
def service(session_factory, clock, storage_key):
    return InventoryService(session_factory, clock=clock, storage_key=storage_key)

@pytest.fixture
def override_get_service(service):
    # 依存関係をオーバーライド
    app.dependency_overrides[get_service] = lambda: service
    yield
    app.dependency_overrides.pop(get_service, None)

@pytest_asyncio.fixture
async def client(override_get_service):
    # AsyncClientを使用してテストクライアントを作成
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
