"""
Fulfillment Service — 設定

環境変数から設定を読み込む。実行コンテキスト（ビルド時 / サーバー / クライアント）
によって到達できるものが異なるため、ストア関連は未設定を許容し、
静的ページ列挙に必要な API_URL だけは厳密に検証する。
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass
from urllib.parse import urlsplit

from .errors import ConfigurationError

DEFAULT_STATIC_FETCH_TIMEOUT = 10.0


def _flag(value: str | None) -> bool:
    return value == "true"


def _timeout(value: str | None) -> float:
    if value is None or value.strip() == "":
        return DEFAULT_STATIC_FETCH_TIMEOUT
    try:
        timeout = float(value)
    except ValueError:
        raise ConfigurationError(
            f"Invalid STATIC_FETCH_TIMEOUT value ({value!r}); expected a number of seconds."
        ) from None
    if timeout <= 0:
        raise ConfigurationError("STATIC_FETCH_TIMEOUT must be greater than zero.")
    return timeout


@dataclass(frozen=True)
class Settings:
    database_url: str | None = None
    redis_url: str | None = None
    api_url: str | None = None
    skip_static_fetch: bool = False
    static_fetch_timeout: float = DEFAULT_STATIC_FETCH_TIMEOUT
    allow_skip_ahead: bool = False

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = os.environ) -> "Settings":
        return cls(
            database_url=environ.get("DATABASE_URL") or None,
            redis_url=environ.get("REDIS_URL") or None,
            api_url=environ.get("API_URL") or environ.get("NEXT_PUBLIC_API_URL") or None,
            skip_static_fetch=_flag(environ.get("SKIP_STATIC_FETCH")),
            static_fetch_timeout=_timeout(environ.get("STATIC_FETCH_TIMEOUT")),
            allow_skip_ahead=_flag(environ.get("ORDER_ALLOW_SKIP_AHEAD")),
        )

    def require_api_url(self) -> str:
        """
        静的ページ列挙用のベース URL を返す。

        未設定、またはスキーム付きの絶対 URL でない場合は ConfigurationError。
        メッセージには CI での対処方法を含める。
        """
        if not self.api_url:
            raise ConfigurationError(
                "Missing API_URL environment variable needed for static generation. "
                'Set API_URL (e.g. "https://api.example.com") in your environment or CI secrets.'
            )
        parts = urlsplit(self.api_url)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ConfigurationError(
                f"Invalid API_URL value ({self.api_url}): it must be an absolute URL "
                'including protocol (e.g. "https://api.example.com").'
            )
        return self.api_url.rstrip("/")
