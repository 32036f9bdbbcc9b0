"""
Fulfillment Service — 注文イベントストア

注文のステータス履歴を order_events に追記する。
(order_id, version) を主キーにしているので、同じ version を二重に書こうとすると
一意制約違反で失敗する → 別のスタッフセッションとの競合を検知できる。
"""

import json
from datetime import datetime

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .errors import ConcurrentModification


async def append_event(
    session: AsyncSession,
    order_id: str,
    event_type: str,
    event_data: dict,
    expected_version: int,
    now: datetime,
) -> int:
    """
    イベントをストアに追記し、新しいバージョン番号を返す。

    コミットは呼び出し側が行う（リードモデル更新と同じトランザクションにするため）。
    """
    new_version = expected_version + 1
    try:
        await session.execute(
            text("""
                INSERT INTO order_events
                    (order_id, version, event_type, event_data, created_at)
                VALUES
                    (:order_id, :version, :event_type, :event_data, :now)
            """),
            {
                "order_id": order_id,
                "version": new_version,
                "event_type": event_type,
                "event_data": json.dumps(event_data, default=str),
                "now": now.isoformat(),
            },
        )
    except IntegrityError as exc:
        await session.rollback()
        raise ConcurrentModification(
            f"order {order_id} already has version {new_version}"
        ) from exc
    return new_version


async def load_events(session: AsyncSession, order_id: str) -> list[dict]:
    """指定した注文の全イベントをバージョン順に読み出す。"""
    result = await session.execute(
        text("""
            SELECT event_type, event_data, version, created_at
            FROM order_events
            WHERE order_id = :order_id
            ORDER BY version ASC
        """),
        {"order_id": order_id},
    )
    return [
        {
            "event_type": row.event_type,
            "event_data": json.loads(row.event_data),
            "version": row.version,
            "created_at": row.created_at,
        }
        for row in result.fetchall()
    ]
