"""
Fulfillment Service — 例外定義

呼び出し側が捕捉しやすいよう、すべて FulfillmentError を基底とする。
読み取り系は StoreUnavailable / NotFound を吸収してフォールバックするが、
書き込み系は必ず呼び出し元へ伝播させる（自動リトライはしない）。
"""


class FulfillmentError(Exception):
    """サービス全体の基底例外"""


class ConfigurationError(FulfillmentError):
    """必須の環境変数が未設定、または値が不正"""


class StoreUnavailable(FulfillmentError):
    """バックエンドストアに到達できない"""


class NotFound(FulfillmentError):
    def __init__(self, kind: str, key: str) -> None:
        super().__init__(f"{kind} not found: {key}")
        self.kind = kind
        self.key = key


class OutletInUse(FulfillmentError):
    """未完了の注文が参照しているアウトレットは削除できない"""


class InactiveOutlet(FulfillmentError):
    """営業していないアウトレットへのカート追加"""


class StaticGenerationFailure(FulfillmentError):
    """ビルド時のアウトレット列挙に失敗した（ビルドを中断させる）"""


class IllegalTransition(FulfillmentError):
    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Cannot transition from {current} to {target}")
        self.current = current
        self.target = target


class EmptyCart(FulfillmentError):
    """空のカートでチェックアウトしようとした"""


class ConcurrentModification(FulfillmentError):
    """
    別のスタッフセッションが先に同じ注文を更新した。

    order_events の (order_id, version) 一意制約違反、
    またはリードモデルの version 不一致で検知する。
    """
