"""
Fulfillment Service — ドメインモデル

アウトレット・注文・カートスナップショットを Pydantic モデルで定義する。
注文は状態遷移以外では変更しないため、ステータス変更は常に新しい
インスタンスを返す（model_copy）。
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field


class OrderStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    PREPARING = "preparing"
    READY = "ready"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED})


# ── Outlet ───────────────────────────────────────


class OutletCreate(BaseModel):
    """id を持たないアウトレット（作成時にストアが採番する）"""
    model_config = ConfigDict(extra="forbid")

    name: str
    description: str = ""
    image_id: str = ""
    is_active: bool = True
    base_delivery_time: int = Field(default=15, ge=0)


class Outlet(OutletCreate):
    id: str


class OutletUpdate(BaseModel):
    """部分更新。id は不変なので含めない。"""
    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    description: str | None = None
    image_id: str | None = None
    is_active: bool | None = None
    base_delivery_time: int | None = Field(default=None, ge=0)


# ── Order ────────────────────────────────────────


class OrderItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    menu_item_id: str
    quantity: int = Field(gt=0)
    unit_price: float = Field(ge=0)

    @property
    def line_total(self) -> float:
        return self.quantity * self.unit_price


class Order(BaseModel):
    id: str
    outlet_id: str
    items: list[OrderItem] = Field(min_length=1)
    status: OrderStatus = OrderStatus.PENDING
    created_at: datetime
    updated_at: datetime
    version: int = 1

    @computed_field
    @property
    def total(self) -> float:
        return sum(item.line_total for item in self.items)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class CartSnapshot(BaseModel):
    """チェックアウト時点のカートの不変コピー"""
    model_config = ConfigDict(frozen=True)

    outlet_id: str
    items: tuple[OrderItem, ...] = Field(min_length=1)

    @property
    def total(self) -> float:
        return sum(item.line_total for item in self.items)
