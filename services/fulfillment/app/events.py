"""
Fulfillment Service — イベント定義

注文に起きた事実(イベント)を定義する。
イベントは過去形で命名し、不変(immutable)として扱う。
order_events テーブルへの追記と Redis への発行の両方で同じ形を使う。
"""

from datetime import datetime

from pydantic import BaseModel

from .models import OrderItem, OrderStatus


class OrderPlaced(BaseModel):
    """注文が作成された（カートのチェックアウト）"""
    order_id: str
    outlet_id: str
    items: list[OrderItem]
    timestamp: datetime


class OrderStatusChanged(BaseModel):
    """スタッフ操作で注文ステータスが遷移した"""
    order_id: str
    outlet_id: str
    from_status: OrderStatus
    to_status: OrderStatus
    timestamp: datetime
