"""
Fulfillment Service — 静的パラメータ解決

ビルド時にアウトレット id を列挙し、アウトレットごとのページを事前生成する。
一部だけ生成されたページ群は、失敗したビルドより悪いので、
取得に失敗したら必ず StaticGenerationFailure でビルドを止める。
SKIP_STATIC_FETCH=true のときだけネットワークに触れずに空を返す。
"""

import logging

import httpx

from .api_client import OutletApiClient
from .config import Settings

logger = logging.getLogger(__name__)


class StaticParamResolver:
    def __init__(self, client: OutletApiClient, skip_fetch: bool = False) -> None:
        self.client = client
        self.skip_fetch = skip_fetch

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "StaticParamResolver":
        """API_URL の検証はバイパス指定より先に行う (ConfigurationError)。"""
        client = OutletApiClient(
            settings.require_api_url(),
            timeout=settings.static_fetch_timeout,
            transport=transport,
        )
        return cls(client, skip_fetch=settings.skip_static_fetch)

    async def resolve_outlet_ids(self) -> list[str]:
        if self.skip_fetch:
            logger.warning("SKIP_STATIC_FETCH=true: skipping network fetch for static params")
            return []
        ids = await self.client.list_outlet_ids()
        # 重複は最初の出現だけ残す
        return list(dict.fromkeys(ids))

    async def generate_static_params(self) -> list[dict[str, str]]:
        return [{"outlet_id": outlet_id} for outlet_id in await self.resolve_outlet_ids()]
