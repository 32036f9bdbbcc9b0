"""
Fulfillment Service — カートセッション

ブラウズ中のセッションが持つローカル状態。サーバー側には保存しない。
カートは常に 1 つのアウトレットにだけ紐づき、別のアウトレットの商品を
追加すると既存のカートは破棄される。
"""

from .errors import EmptyCart
from .models import CartSnapshot, OrderItem


class CartSession:
    def __init__(self) -> None:
        self._outlet_id: str | None = None
        # menu_item_id → OrderItem (挿入順を保つ)
        self._lines: dict[str, OrderItem] = {}

    def __len__(self) -> int:
        return len(self._lines)

    @property
    def items(self) -> tuple[OrderItem, ...]:
        return tuple(self._lines.values())

    @property
    def total(self) -> float:
        return sum(item.line_total for item in self._lines.values())

    def get_outlet_id(self) -> str | None:
        return self._outlet_id

    def add_item(self, outlet_id: str, item: OrderItem) -> None:
        """
        商品を追加する。

        別アウトレットに切り替わる場合はカートを空にしてから追加する。
        同じ menu_item_id が既にあれば数量を加算する（行は増やさない）。
        """
        if self._outlet_id is not None and self._outlet_id != outlet_id:
            self.clear()
        self._outlet_id = outlet_id

        existing = self._lines.get(item.menu_item_id)
        if existing is not None:
            item = existing.model_copy(update={"quantity": existing.quantity + item.quantity})
        self._lines[item.menu_item_id] = item

    def set_quantity(self, menu_item_id: str, quantity: int) -> None:
        """数量を上書きする。0 以下なら行を削除する。"""
        if quantity <= 0:
            self.remove_item(menu_item_id)
            return
        existing = self._lines.get(menu_item_id)
        if existing is not None:
            self._lines[menu_item_id] = existing.model_copy(update={"quantity": quantity})

    def remove_item(self, menu_item_id: str) -> None:
        self._lines.pop(menu_item_id, None)

    def clear(self) -> None:
        self._lines.clear()
        self._outlet_id = None

    def checkout(self) -> CartSnapshot:
        if not self._lines or self._outlet_id is None:
            raise EmptyCart("cannot check out an empty cart")
        snapshot = CartSnapshot(outlet_id=self._outlet_id, items=self.items)
        self.clear()
        return snapshot
