"""
Fulfillment Service — 注文ライフサイクル (状態機械)

状態遷移:
    pending → accepted → preparing → ready → completed
    (completed 以外の非終端状態) → cancelled

completed / cancelled は終端状態で、そこからの遷移はすべて拒否する。
既定では 1 ステップずつしか進めない。allow_skip_ahead=True にすると
パイプライン上の任意の後続状態へ進める（ORDER_ALLOW_SKIP_AHEAD）。
"""

from datetime import datetime, timezone

from .errors import IllegalTransition
from .models import TERMINAL_STATUSES, Order, OrderStatus

PIPELINE = (
    OrderStatus.PENDING,
    OrderStatus.ACCEPTED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.COMPLETED,
)


def is_terminal(status: OrderStatus) -> bool:
    return status in TERMINAL_STATUSES


def next_status(status: OrderStatus) -> OrderStatus | None:
    """パイプライン上の次の状態。終端状態なら None。"""
    if is_terminal(status):
        return None
    return PIPELINE[PIPELINE.index(status) + 1]


class OrderLifecycle:
    def __init__(self, allow_skip_ahead: bool = False) -> None:
        self.allow_skip_ahead = allow_skip_ahead

    def allowed_targets(self, status: OrderStatus) -> frozenset[OrderStatus]:
        if is_terminal(status):
            return frozenset()
        position = PIPELINE.index(status)
        if self.allow_skip_ahead:
            forward = PIPELINE[position + 1:]
        else:
            forward = PIPELINE[position + 1:position + 2]
        return frozenset(forward) | {OrderStatus.CANCELLED}

    def can_transition(self, current: OrderStatus, target: OrderStatus) -> bool:
        return target in self.allowed_targets(current)

    def transition(self, order: Order, target: OrderStatus) -> Order:
        """
        遷移後の新しい Order を返す。元の order は変更しない。

        永続化はここでは行わない。OrderStore.persist に渡して初めて
        ダッシュボードに反映してよい状態になる。
        """
        try:
            target = OrderStatus(target)
        except ValueError:
            raise IllegalTransition(order.status.value, str(target)) from None
        if not self.can_transition(order.status, target):
            raise IllegalTransition(order.status.value, target.value)
        return order.model_copy(
            update={"status": target, "updated_at": datetime.now(timezone.utc)}
        )
