"""
Fulfillment Service — FastAPI エントリーポイント

アウトレット・注文・スタッフダッシュボードの HTTP API。
GET /outlets と GET /outlets/{id} は、ビルド時の静的ページ列挙
(StaticParamResolver) が読むサーフェスでもある。

ストアハンドル・Redis 接続は lifespan で一度だけ生成し、
app.state 経由で各エンドポイントに注入する。

スタッフ権限は外部の認証プロバイダが発行する X-Staff-Outlets ヘッダ
（担当アウトレット id のカンマ区切り）だけを見る。
アウトレット単位の注文一覧はスタッフ限定。GET /orders/{id} と
その履歴は、推測できない注文 id を知っている注文者向けの照会として公開する。
"""

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis
from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from . import commands
from .config import Settings
from .dashboard import partition
from .errors import (
    ConcurrentModification,
    EmptyCart,
    FulfillmentError,
    IllegalTransition,
    InactiveOutlet,
    NotFound,
    OutletInUse,
    StoreUnavailable,
)
from .lifecycle import OrderLifecycle
from .models import CartSnapshot, Order, OrderStatus, Outlet, OutletCreate, OutletUpdate
from .orders import OrderStore
from .outlets import OutletDirectory
from .store import Store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = Settings.from_env()
    store = Store.from_url(settings.database_url)
    redis_pool = (
        aioredis.from_url(settings.redis_url, decode_responses=True)
        if settings.redis_url
        else None
    )
    app.state.outlets = OutletDirectory(store)
    app.state.orders = OrderStore(store, redis_pool)
    app.state.lifecycle = OrderLifecycle(allow_skip_ahead=settings.allow_skip_ahead)
    yield
    if redis_pool is not None:
        await redis_pool.aclose()
    await store.dispose()


app = FastAPI(title="Fulfillment Service", lifespan=lifespan)


# ── 例外 → HTTP ステータス ───────────────────────

_STATUS_FOR_ERROR = {
    NotFound: 404,
    OutletInUse: 409,
    ConcurrentModification: 409,
    IllegalTransition: 422,
    EmptyCart: 422,
    InactiveOutlet: 422,
    StoreUnavailable: 503,
}


@app.exception_handler(FulfillmentError)
async def fulfillment_error_handler(request: Request, exc: FulfillmentError):
    status_code = next(
        (code for error, code in _STATUS_FOR_ERROR.items() if isinstance(exc, error)),
        500,
    )
    if status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


# ── Dependencies ─────────────────────────────────


def get_outlets(request: Request) -> OutletDirectory:
    return request.app.state.outlets


def get_orders(request: Request) -> OrderStore:
    return request.app.state.orders


def get_lifecycle(request: Request) -> OrderLifecycle:
    return request.app.state.lifecycle


def staff_outlets(x_staff_outlets: str = Header(default="")) -> frozenset[str]:
    return frozenset(part.strip() for part in x_staff_outlets.split(",") if part.strip())


def require_staff(outlet_id: str, staff: frozenset[str] = Depends(staff_outlets)) -> str:
    if outlet_id not in staff:
        raise HTTPException(403, "Caller is not staff for this outlet")
    return outlet_id


# ── Request Models ───────────────────────────────


class StatusChangeRequest(BaseModel):
    status: OrderStatus


# ── Outlets ──────────────────────────────────────


@app.get("/outlets")
async def list_outlets(outlets: OutletDirectory = Depends(get_outlets)) -> list[Outlet]:
    return await outlets.get_all()


@app.get("/outlets/{outlet_id}")
async def get_outlet(outlet_id: str, outlets: OutletDirectory = Depends(get_outlets)) -> Outlet:
    outlet = await outlets.get_by_id(outlet_id)
    if outlet is None:
        raise HTTPException(404, "Outlet not found")
    return outlet


@app.post("/outlets", status_code=201)
async def create_outlet(
    req: OutletCreate, outlets: OutletDirectory = Depends(get_outlets)
) -> Outlet:
    return await outlets.create(req)


@app.patch("/outlets/{outlet_id}")
async def update_outlet(
    outlet_id: str, req: OutletUpdate, outlets: OutletDirectory = Depends(get_outlets)
) -> Outlet:
    await outlets.update(outlet_id, req)
    return await outlets.get_by_id(outlet_id)


@app.delete("/outlets/{outlet_id}", status_code=204)
async def delete_outlet(outlet_id: str, outlets: OutletDirectory = Depends(get_outlets)) -> None:
    await outlets.delete(outlet_id)


@app.get("/outlets/{outlet_id}/orders")
async def list_outlet_orders(
    outlet_id: str = Depends(require_staff),
    active_only: bool = False,
    orders: OrderStore = Depends(get_orders),
) -> list[Order]:
    return await orders.list_for_outlet(outlet_id, active_only=active_only)


# ── Orders ───────────────────────────────────────


@app.post("/orders", status_code=201)
async def place_order(snapshot: CartSnapshot, orders: OrderStore = Depends(get_orders)) -> Order:
    """チェックアウト済みカートのスナップショットから注文を作成する。"""
    return await commands.place_order(orders, snapshot)


@app.get("/orders/{order_id}")
async def get_order(order_id: str, orders: OrderStore = Depends(get_orders)) -> Order:
    order = await orders.get(order_id)
    if order is None:
        raise HTTPException(404, "Order not found")
    return order


@app.get("/orders/{order_id}/history")
async def get_order_history(order_id: str, orders: OrderStore = Depends(get_orders)):
    return await orders.history(order_id)


# ── Staff Dashboard ──────────────────────────────


@app.get("/staff/outlets/{outlet_id}/dashboard")
async def get_dashboard(
    outlet_id: str = Depends(require_staff),
    orders: OrderStore = Depends(get_orders),
):
    active = await orders.list_for_outlet(outlet_id, active_only=True)
    return {"outlet_id": outlet_id, "buckets": partition(active)}


@app.post("/staff/outlets/{outlet_id}/orders/{order_id}/status")
async def change_order_status(
    order_id: str,
    req: StatusChangeRequest,
    outlet_id: str = Depends(require_staff),
    orders: OrderStore = Depends(get_orders),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
):
    """
    スタッフによるステータス変更。

    永続化が成功してからバケットを再計算して返す。
    """
    order = await commands.change_order_status(
        orders, lifecycle, order_id, req.status, outlet_id=outlet_id
    )
    active = await orders.list_for_outlet(outlet_id, active_only=True)
    return {"order": order, "buckets": partition(active)}


@app.get("/health")
async def health():
    return {"status": "ok", "service": "fulfillment-service"}
