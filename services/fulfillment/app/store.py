"""
Fulfillment Service — ストアハンドル

プロセス起動時に一度だけ生成し、OutletDirectory / OrderStore に注入する。
DATABASE_URL が無い実行コンテキスト（ビルド時など）では engine を持たない
ハンドルになり、session() は StoreUnavailable を送出する。
読み取り系はこれを捕捉してフォールバックデータを返す。

テーブル:
    outlets       : アウトレット (id = ドキュメント ID)
    orders        : 注文のリードモデル
    order_events  : 注文のステータス履歴 (order_id, version) が主キー
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from .errors import StoreUnavailable

logger = logging.getLogger(__name__)

# 接続できない場合に発生する例外。StoreUnavailable に変換する。
_UNREACHABLE = (OSError, InterfaceError, OperationalError)

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS outlets (
        id                 VARCHAR(64) PRIMARY KEY,
        name               TEXT NOT NULL,
        description        TEXT NOT NULL DEFAULT '',
        image_id           TEXT NOT NULL DEFAULT '',
        is_active          BOOLEAN NOT NULL DEFAULT TRUE,
        base_delivery_time INTEGER NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS orders (
        id         VARCHAR(64) PRIMARY KEY,
        outlet_id  VARCHAR(64) NOT NULL,
        items      TEXT NOT NULL,
        status     VARCHAR(16) NOT NULL,
        version    INTEGER NOT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS ix_orders_outlet_id ON orders (outlet_id)",
    """
    CREATE TABLE IF NOT EXISTS order_events (
        order_id   VARCHAR(64) NOT NULL,
        version    INTEGER NOT NULL,
        event_type VARCHAR(32) NOT NULL,
        event_data TEXT NOT NULL,
        created_at TEXT NOT NULL,
        PRIMARY KEY (order_id, version)
    )
    """,
)


class Store:
    def __init__(self, engine: AsyncEngine | None) -> None:
        self.engine = engine
        self._session_factory = (
            sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
            if engine is not None
            else None
        )

    @classmethod
    def from_url(cls, database_url: str | None, **engine_kwargs) -> "Store":
        if not database_url:
            logger.warning("DATABASE_URL is not set; store is unreachable in this context")
            return cls(None)
        return cls(create_async_engine(database_url, echo=False, **engine_kwargs))

    @property
    def configured(self) -> bool:
        return self.engine is not None

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """1 回のストア呼び出し = 1 セッション。複数呼び出しをまたぐ原子性はない。"""
        if self._session_factory is None:
            raise StoreUnavailable("store is not configured in this execution context")
        try:
            async with self._session_factory() as session:
                yield session
        except _UNREACHABLE as exc:
            raise StoreUnavailable(str(exc)) from exc

    async def create_schema(self) -> None:
        if self.engine is None:
            raise StoreUnavailable("store is not configured in this execution context")
        try:
            async with self.engine.begin() as conn:
                for statement in SCHEMA:
                    await conn.execute(text(statement))
        except _UNREACHABLE as exc:
            raise StoreUnavailable(str(exc)) from exc

    async def dispose(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()
