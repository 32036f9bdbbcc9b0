"""
Fulfillment Service — 管理 CLI

Usage:
    python -m app.manage init-db          # テーブルを作成
    python -m app.manage seed-outlets     # 静的データを outlets に upsert
    python -m app.manage static-params    # ビルド時のアウトレット id 列挙 (JSON を出力)

static-params は設定不備・取得失敗のときに終了コード 1 でビルドを止める。
"""

import argparse
import asyncio
import json
import logging
import sys

from .config import Settings
from .data import OUTLETS
from .errors import ConfigurationError, StaticGenerationFailure, StoreUnavailable
from .outlets import OutletDirectory
from .static_params import StaticParamResolver
from .store import Store


async def init_db(settings: Settings) -> None:
    store = Store.from_url(settings.database_url)
    try:
        await store.create_schema()
    finally:
        await store.dispose()
    print("Schema ready.")


async def seed_outlets(settings: Settings) -> int:
    store = Store.from_url(settings.database_url)
    try:
        report = await OutletDirectory(store).seed(OUTLETS)
    finally:
        await store.dispose()
    print(f"Uploaded {len(report.uploaded)} outlet(s), {len(report.failed)} failed.")
    return 1 if report.failed else 0


async def static_params(settings: Settings) -> None:
    resolver = StaticParamResolver.from_settings(settings)
    params = await resolver.generate_static_params()
    print(json.dumps(params, indent=2))


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Fulfillment service management")
    parser.add_argument(
        "command",
        choices=["init-db", "seed-outlets", "static-params"],
        help="Command to run",
    )
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    try:
        settings = Settings.from_env()
        if args.command == "init-db":
            asyncio.run(init_db(settings))
        elif args.command == "seed-outlets":
            return asyncio.run(seed_outlets(settings))
        else:
            asyncio.run(static_params(settings))
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1
    except StaticGenerationFailure as exc:
        print(f"Static generation failed: {exc}", file=sys.stderr)
        print(
            "Fix the API or set SKIP_STATIC_FETCH=true to build without outlet pages.",
            file=sys.stderr,
        )
        return 1
    except StoreUnavailable as exc:
        print(f"Store unavailable: {exc}", file=sys.stderr)
        print("Set DATABASE_URL to a reachable database.", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
