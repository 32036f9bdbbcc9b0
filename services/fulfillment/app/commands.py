"""
Fulfillment Service — コマンド

状態を変更する操作の流れをまとめる。

スタッフ操作の流れ:
    OrderLifecycle.transition → OrderStore.persist → (呼び出し側で) partition 再計算
"""

from .cart import CartSession
from .errors import InactiveOutlet, NotFound
from .lifecycle import OrderLifecycle
from .models import CartSnapshot, Order, OrderItem, OrderStatus
from .orders import OrderStore
from .outlets import OutletDirectory


async def add_to_cart(
    directory: OutletDirectory,
    cart: CartSession,
    outlet_id: str,
    item: OrderItem,
) -> None:
    """アウトレットの存在と営業状態を確認してからカートに追加する。"""
    outlet = await directory.get_by_id(outlet_id)
    if outlet is None:
        raise NotFound("Outlet", outlet_id)
    if not outlet.is_active:
        raise InactiveOutlet(f"outlet {outlet_id} is not accepting orders")
    cart.add_item(outlet_id, item)


async def place_order(orders: OrderStore, snapshot: CartSnapshot) -> Order:
    """チェックアウト済みのカートから注文を作成する。"""
    return await orders.create(snapshot.outlet_id, snapshot.items)


async def change_order_status(
    orders: OrderStore,
    lifecycle: OrderLifecycle,
    order_id: str,
    target: OrderStatus,
    outlet_id: str | None = None,
) -> Order:
    """
    注文ステータス変更コマンド

    1. 現在の注文をストアから読み込む
    2. 状態機械で遷移の可否を判定 (不正なら IllegalTransition、注文は変更されない)
    3. ストアに永続化して新しい注文を返す

    outlet_id を渡した場合、別アウトレットの注文は NotFound として扱う。
    """
    current = await orders.get(order_id)
    if current is None or (outlet_id is not None and current.outlet_id != outlet_id):
        raise NotFound("Order", order_id)
    updated = lifecycle.transition(current, target)
    return await orders.persist(updated)
