"""
Fulfillment Service — アウトレットディレクトリ

outlets テーブルに対する CRUD。

読み取り系 (get_all / get_by_id) はビルド時など、ストアに到達できない
実行コンテキストからも呼ばれる。その場合は警告を出して合成データを返し、
例外は送出しない。書き込み系は決してフォールバックしない。
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from uuid import uuid4

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from .errors import NotFound, OutletInUse, StoreUnavailable
from .models import Outlet, OutletCreate, OutletUpdate
from .store import Store

logger = logging.getLogger(__name__)

# ストア非到達時に返す合成データ。id で本番データでないことがわかる。
FALLBACK_OUTLETS = (
    Outlet(
        id="offline-outlet-1",
        name="Sample Outlet One (offline)",
        description="Placeholder outlet shown while the store is unreachable.",
        image_id="",
        is_active=True,
        base_delivery_time=15,
    ),
    Outlet(
        id="offline-outlet-2",
        name="Sample Outlet Two (offline)",
        description="Placeholder outlet shown while the store is unreachable.",
        image_id="",
        is_active=True,
        base_delivery_time=15,
    ),
)


def synthetic_outlet(outlet_id: str) -> Outlet:
    """要求された id をそのまま持つ合成アウトレット"""
    return Outlet(
        id=outlet_id,
        name=f"Outlet {outlet_id} (offline)",
        description="Placeholder outlet shown while the store is unreachable.",
        image_id="",
        is_active=True,
        base_delivery_time=15,
    )


def _row_to_outlet(row) -> Outlet:
    return Outlet(
        id=row.id,
        name=row.name,
        description=row.description,
        image_id=row.image_id,
        is_active=bool(row.is_active),
        base_delivery_time=row.base_delivery_time,
    )


@dataclass
class SeedReport:
    uploaded: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


class OutletDirectory:
    def __init__(self, store: Store) -> None:
        self.store = store

    # ── 読み取り (フォールバックあり) ─────────────────

    async def get_all(self) -> list[Outlet]:
        try:
            async with self.store.session() as session:
                result = await session.execute(text("SELECT * FROM outlets ORDER BY id"))
                return [_row_to_outlet(row) for row in result.fetchall()]
        except StoreUnavailable as exc:
            logger.warning("Store unreachable, serving fallback outlets: %s", exc)
            return list(FALLBACK_OUTLETS)

    async def get_by_id(self, outlet_id: str) -> Outlet | None:
        try:
            async with self.store.session() as session:
                result = await session.execute(
                    text("SELECT * FROM outlets WHERE id = :id"),
                    {"id": outlet_id},
                )
                row = result.fetchone()
        except StoreUnavailable as exc:
            logger.warning("Store unreachable, serving synthetic outlet %s: %s", outlet_id, exc)
            return synthetic_outlet(outlet_id)
        if not row:
            return None
        return _row_to_outlet(row)

    # ── 書き込み (フォールバックなし) ─────────────────

    async def create(self, data: OutletCreate) -> Outlet:
        """ストアが新しい id を採番し、id 付きのアウトレットを返す。"""
        outlet = Outlet(id=uuid4().hex, **data.model_dump())
        async with self.store.session() as session:
            await session.execute(
                text("""
                    INSERT INTO outlets
                        (id, name, description, image_id, is_active, base_delivery_time)
                    VALUES
                        (:id, :name, :description, :image_id, :is_active, :base_delivery_time)
                """),
                outlet.model_dump(),
            )
            await session.commit()
        return outlet

    async def update(self, outlet_id: str, fields: OutletUpdate | dict) -> None:
        if not isinstance(fields, OutletUpdate):
            fields = OutletUpdate.model_validate(fields)
        changes = fields.model_dump(exclude_unset=True, exclude_none=True)

        async with self.store.session() as session:
            if not changes:
                result = await session.execute(
                    text("SELECT id FROM outlets WHERE id = :id"), {"id": outlet_id}
                )
                if not result.fetchone():
                    raise NotFound("Outlet", outlet_id)
                return

            # 列名は OutletUpdate のフィールドに限られる
            assignments = ", ".join(f"{column} = :{column}" for column in changes)
            result = await session.execute(
                text(f"UPDATE outlets SET {assignments} WHERE id = :id"),
                {**changes, "id": outlet_id},
            )
            if result.rowcount == 0:
                raise NotFound("Outlet", outlet_id)
            await session.commit()

    async def delete(self, outlet_id: str) -> None:
        async with self.store.session() as session:
            result = await session.execute(
                text("""
                    SELECT COUNT(*) FROM orders
                    WHERE outlet_id = :id AND status NOT IN ('completed', 'cancelled')
                """),
                {"id": outlet_id},
            )
            active_orders = result.scalar_one()
            if active_orders:
                raise OutletInUse(
                    f"outlet {outlet_id} is referenced by {active_orders} active order(s)"
                )

            result = await session.execute(
                text("DELETE FROM outlets WHERE id = :id"), {"id": outlet_id}
            )
            if result.rowcount == 0:
                raise NotFound("Outlet", outlet_id)
            await session.commit()

    # ── 一括投入 ─────────────────────────────────────

    async def seed(self, outlets: Iterable[Outlet]) -> SeedReport:
        """
        静的データを id をキーに upsert する。

        1 件ごとに独立して書き込み、失敗しても残りの投入は続ける。
        """
        if not self.store.configured:
            raise StoreUnavailable("cannot seed outlets: store is not configured")

        report = SeedReport()
        for outlet in outlets:
            try:
                async with self.store.session() as session:
                    await session.execute(
                        text("""
                            INSERT INTO outlets
                                (id, name, description, image_id, is_active, base_delivery_time)
                            VALUES
                                (:id, :name, :description, :image_id, :is_active, :base_delivery_time)
                            ON CONFLICT (id) DO UPDATE SET
                                name = excluded.name,
                                description = excluded.description,
                                image_id = excluded.image_id,
                                is_active = excluded.is_active,
                                base_delivery_time = excluded.base_delivery_time
                        """),
                        outlet.model_dump(),
                    )
                    await session.commit()
            except (StoreUnavailable, SQLAlchemyError):
                logger.exception("Error uploading outlet %s (ID: %s)", outlet.name, outlet.id)
                report.failed.append(outlet.id)
                continue
            logger.info("Uploaded outlet: %s (ID: %s)", outlet.name, outlet.id)
            report.uploaded.append(outlet.id)
        return report
