"""
Fulfillment Service — 注文ストア

orders テーブル（リードモデル）と order_events（ステータス履歴）を扱う。

書き込みは 1 呼び出し = 1 トランザクション:
    1. order_events にイベントを追記 (version で競合検知)
    2. orders のリードモデルを更新
    3. コミット後、Redis Pub/Sub の order_events チャネルへ発行

Redis への発行はベストエフォート。永続化済みの遷移を発行失敗で
失敗扱いにはしない。
"""

import json
import logging
from collections.abc import Sequence
from datetime import datetime, timezone
from uuid import uuid4

import redis.asyncio as aioredis
from pydantic import BaseModel
from redis.exceptions import RedisError
from sqlalchemy import text

from . import event_store
from .errors import ConcurrentModification, NotFound
from .events import OrderPlaced, OrderStatusChanged
from .models import Order, OrderItem, OrderStatus
from .store import Store

logger = logging.getLogger(__name__)

EVENTS_CHANNEL = "order_events"


def _row_to_order(row) -> Order:
    return Order(
        id=row.id,
        outlet_id=row.outlet_id,
        items=json.loads(row.items),
        status=row.status,
        created_at=row.created_at,
        updated_at=row.updated_at,
        version=row.version,
    )


class OrderStore:
    def __init__(self, store: Store, redis: aioredis.Redis | None = None) -> None:
        self.store = store
        self.redis = redis

    # ── Write 側 ─────────────────────────────────────

    async def create(self, outlet_id: str, items: Sequence[OrderItem]) -> Order:
        """
        注文を pending で作成する。

        outlet_id は既存のアウトレットを参照していなければならない。
        """
        now = datetime.now(timezone.utc)
        order = Order(
            id=str(uuid4()),
            outlet_id=outlet_id,
            items=list(items),
            status=OrderStatus.PENDING,
            created_at=now,
            updated_at=now,
            version=0,
        )
        event = OrderPlaced(
            order_id=order.id, outlet_id=outlet_id, items=order.items, timestamp=now
        )

        async with self.store.session() as session:
            result = await session.execute(
                text("SELECT id FROM outlets WHERE id = :id"), {"id": outlet_id}
            )
            if not result.fetchone():
                raise NotFound("Outlet", outlet_id)

            version = await event_store.append_event(
                session, order.id, "OrderPlaced", event.model_dump(mode="json"), 0, now
            )
            await session.execute(
                text("""
                    INSERT INTO orders
                        (id, outlet_id, items, status, version, created_at, updated_at)
                    VALUES
                        (:id, :outlet_id, :items, :status, :version, :now, :now)
                """),
                {
                    "id": order.id,
                    "outlet_id": outlet_id,
                    "items": json.dumps([item.model_dump() for item in order.items]),
                    "status": order.status.value,
                    "version": version,
                    "now": now.isoformat(),
                },
            )
            await session.commit()

        await self._publish("OrderPlaced", event)
        return order.model_copy(update={"version": version})

    async def persist(self, order: Order) -> Order:
        """
        遷移済みの注文を保存し、新しい version を持つ注文を返す。

        order.version は読み込み時点の値。ストア側が既に進んでいれば
        ConcurrentModification を送出する（自動リトライはしない）。
        """
        expected_version = order.version
        now = order.updated_at

        async with self.store.session() as session:
            result = await session.execute(
                text("SELECT status, version FROM orders WHERE id = :id"),
                {"id": order.id},
            )
            row = result.fetchone()
            if not row:
                raise NotFound("Order", order.id)
            if row.version != expected_version:
                raise ConcurrentModification(
                    f"order {order.id} is at version {row.version}, expected {expected_version}"
                )

            event = OrderStatusChanged(
                order_id=order.id,
                outlet_id=order.outlet_id,
                from_status=row.status,
                to_status=order.status,
                timestamp=now,
            )
            version = await event_store.append_event(
                session,
                order.id,
                "OrderStatusChanged",
                event.model_dump(mode="json"),
                expected_version,
                now,
            )
            result = await session.execute(
                text("""
                    UPDATE orders
                    SET status = :status, version = :version, updated_at = :now
                    WHERE id = :id AND version = :expected
                """),
                {
                    "id": order.id,
                    "status": order.status.value,
                    "version": version,
                    "expected": expected_version,
                    "now": now.isoformat(),
                },
            )
            if result.rowcount == 0:
                raise ConcurrentModification(f"order {order.id} changed while saving")
            await session.commit()

        await self._publish("OrderStatusChanged", event)
        return order.model_copy(update={"version": version})

    # ── Read 側 ──────────────────────────────────────

    async def get(self, order_id: str) -> Order | None:
        async with self.store.session() as session:
            result = await session.execute(
                text("SELECT * FROM orders WHERE id = :id"), {"id": order_id}
            )
            row = result.fetchone()
        if not row:
            return None
        return _row_to_order(row)

    async def list_for_outlet(self, outlet_id: str, active_only: bool = False) -> list[Order]:
        """アウトレットの注文を古い順に返す。"""
        query = "SELECT * FROM orders WHERE outlet_id = :outlet_id"
        if active_only:
            query += " AND status NOT IN ('completed', 'cancelled')"
        query += " ORDER BY created_at ASC, id ASC"
        async with self.store.session() as session:
            result = await session.execute(text(query), {"outlet_id": outlet_id})
            return [_row_to_order(row) for row in result.fetchall()]

    async def history(self, order_id: str) -> list[dict]:
        """注文のイベント履歴（タイムライン）"""
        async with self.store.session() as session:
            return await event_store.load_events(session, order_id)

    async def _publish(self, event_type: str, event: BaseModel) -> None:
        if self.redis is None:
            return
        try:
            await self.redis.publish(
                EVENTS_CHANNEL,
                json.dumps({"event_type": event_type, "data": event.model_dump(mode="json")}),
            )
        except RedisError:
            logger.warning("Failed to publish %s", event_type, exc_info=True)
