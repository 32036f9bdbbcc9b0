"""
Fulfillment Service — スタッフダッシュボード

partition: 注文を表示用の固定バケットに振り分ける純粋関数。
    pending, accepted → New Orders
    preparing         → In Preparation
    ready             → Ready for Pickup
    completed / cancelled はどのバケットにも入らない。

StaffDashboard: 1 アウトレット分のローカルな注文ビュー。
変更のたびにバケットを再計算する。既定では永続化が成功してから
ローカル状態に反映する。optimistic=True のときは先にローカルへ反映し、
永続化に失敗したら元に戻す。
"""

import logging
from collections.abc import Iterable

from .errors import ConcurrentModification, NotFound, StoreUnavailable
from .lifecycle import OrderLifecycle
from .models import Order, OrderStatus
from .orders import OrderStore

logger = logging.getLogger(__name__)

NEW_ORDERS = "New Orders"
IN_PREPARATION = "In Preparation"
READY_FOR_PICKUP = "Ready for Pickup"

BUCKETS = (NEW_ORDERS, IN_PREPARATION, READY_FOR_PICKUP)

BUCKET_FOR_STATUS = {
    OrderStatus.PENDING: NEW_ORDERS,
    OrderStatus.ACCEPTED: NEW_ORDERS,
    OrderStatus.PREPARING: IN_PREPARATION,
    OrderStatus.READY: READY_FOR_PICKUP,
}


def partition(orders: Iterable[Order]) -> dict[str, list[Order]]:
    """
    各バケット内では入力の相対順序を保つ。
    3 つのキーは注文が無くても常に存在する。
    """
    buckets: dict[str, list[Order]] = {name: [] for name in BUCKETS}
    for order in orders:
        bucket = BUCKET_FOR_STATUS.get(order.status)
        if bucket is not None:
            buckets[bucket].append(order)
    return buckets


class StaffDashboard:
    def __init__(
        self,
        outlet_id: str,
        orders: OrderStore,
        lifecycle: OrderLifecycle,
        optimistic: bool = False,
    ) -> None:
        self.outlet_id = outlet_id
        self.store = orders
        self.lifecycle = lifecycle
        self.optimistic = optimistic
        self._orders: list[Order] = []
        self.buckets = partition(self._orders)

    @property
    def orders(self) -> tuple[Order, ...]:
        return tuple(self._orders)

    async def refresh(self) -> None:
        self._orders = await self.store.list_for_outlet(self.outlet_id, active_only=True)
        self._recompute()

    async def advance(self, order_id: str, target: OrderStatus) -> Order:
        """
        スタッフ操作で注文を 1 つ進める（またはキャンセルする）。

        不正な遷移はローカル状態を変えずに IllegalTransition を送出する。
        他セッションとの競合 (ConcurrentModification) ではストアから
        読み直してから再送出する。
        """
        current = self._find(order_id)
        updated = self.lifecycle.transition(current, target)

        if self.optimistic:
            self._replace(updated)
            self._recompute()
        try:
            saved = await self.store.persist(updated)
        except ConcurrentModification:
            self._replace(current)
            self._recompute()
            try:
                await self.refresh()
            except StoreUnavailable:
                logger.warning(
                    "Re-fetch after conflict on order %s failed", order_id, exc_info=True
                )
            raise
        except Exception:
            self._replace(current)
            self._recompute()
            raise

        self._replace(saved)
        self._recompute()
        return saved

    def _find(self, order_id: str) -> Order:
        for order in self._orders:
            if order.id == order_id:
                return order
        raise NotFound("Order", order_id)

    def _replace(self, order: Order) -> None:
        self._orders = [order if o.id == order.id else o for o in self._orders]

    def _recompute(self) -> None:
        self.buckets = partition(self._orders)
