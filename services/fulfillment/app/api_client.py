"""
Fulfillment Service — アウトレット API クライアント

デプロイ済み API の HTTP サーフェスを httpx で読む。
ストアとは別経路で、ビルド時の静的ページ列挙とサーバーレンダリングの
ダッシュボードページから使う。

レスポンスは呼び出し側で使う前に decode_* で形を検証し、
Decoded / DecodeFailure のどちらかに変換する。
"""

import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError

from .config import DEFAULT_STATIC_FETCH_TIMEOUT
from .errors import StaticGenerationFailure

logger = logging.getLogger(__name__)


class OutletRef(BaseModel):
    """GET /outlets の要素。id 以外のフィールドは問わない。"""
    model_config = ConfigDict(extra="allow")

    id: str | int


class OutletSummary(BaseModel):
    """GET /outlets/{id} の結果"""
    model_config = ConfigDict(extra="allow")

    id: str
    name: str


@dataclass(frozen=True)
class Decoded:
    value: Any


@dataclass(frozen=True)
class DecodeFailure:
    reason: str


_OUTLET_REFS = TypeAdapter(list[OutletRef])


def decode_outlet_refs(payload: Any) -> Decoded | DecodeFailure:
    if not isinstance(payload, list):
        return DecodeFailure(f"expected an array, got {type(payload).__name__}")
    try:
        refs = _OUTLET_REFS.validate_python(payload)
    except ValidationError as exc:
        return DecodeFailure(f"malformed outlet entry ({exc.error_count()} error(s))")
    return Decoded([str(ref.id) for ref in refs])


def decode_outlet_summary(outlet_id: str, payload: Any) -> Decoded | DecodeFailure:
    """name が無いオブジェクトには代替名を付ける。"""
    if not isinstance(payload, dict):
        return DecodeFailure(f"expected an object, got {type(payload).__name__}")
    data = {**payload, "id": outlet_id}
    if not isinstance(data.get("name"), str) or not data["name"]:
        data["name"] = f"Fallback Outlet Name {outlet_id}"
    return Decoded(OutletSummary.model_validate(data))


class OutletApiClient:
    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_STATIC_FETCH_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def list_outlet_ids(self) -> list[str]:
        """
        全アウトレットの id を取得する。

        ステータス異常・配列以外のボディ・タイムアウト・接続失敗はすべて
        StaticGenerationFailure。フォールバックはしない。
        """
        url = f"{self.base_url}/outlets"
        async with self._client() as client:
            try:
                resp = await client.get(url)
            except httpx.TimeoutException as exc:
                raise StaticGenerationFailure(
                    f"Timed out after {self.timeout}s fetching outlets from {url}"
                ) from exc
            except httpx.HTTPError as exc:
                raise StaticGenerationFailure(f"Failed to fetch outlets from {url}: {exc}") from exc

        if not resp.is_success:
            raise StaticGenerationFailure(
                f"Failed to fetch outlets from {url}: {resp.status_code} {resp.reason_phrase}"
            )
        try:
            payload = resp.json()
        except ValueError as exc:
            raise StaticGenerationFailure(f"Response from {url} is not valid JSON") from exc

        result = decode_outlet_refs(payload)
        if isinstance(result, DecodeFailure):
            raise StaticGenerationFailure(f"Unexpected response shape from {url}: {result.reason}")
        return result.value

    async def get_outlet_summary(self, outlet_id: str) -> OutletSummary | None:
        """実行時の取得。失敗はすべて「見つからない」扱い (None)。"""
        url = f"{self.base_url}/outlets/{quote(outlet_id, safe='')}"
        try:
            async with self._client() as client:
                resp = await client.get(url)
        except httpx.HTTPError as exc:
            logger.warning("Failed to fetch outlet %s from %s: %s", outlet_id, url, exc)
            return None

        if not resp.is_success:
            return None
        try:
            payload = resp.json()
        except ValueError:
            logger.warning("Outlet %s response from %s is not valid JSON", outlet_id, url)
            return None

        result = decode_outlet_summary(outlet_id, payload)
        if isinstance(result, DecodeFailure):
            logger.warning("Unexpected outlet %s response shape: %s", outlet_id, result.reason)
            return None
        return result.value
