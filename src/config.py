from __future__ import annotations

from functools import cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parents[1]
ARTIFACTS_DIR = PROJECT_ROOT / "artifacts"


class AppSettings(BaseSettings):
    gateway_url: str = "http://localhost:8545"
    gateway_api_key: str
    gateway_timeout: float = 10.0

    base_asset_id: str = "ETH"
    base_asset_precision: int = 18

    # Ledger units (6 fractional digits): 10_000_000000 is 10,000.000000.
    capacity: int = 10_000_000000
    withdrawal_limit: int = 5_000_000000

    feed_id: str = "ETH-USD"
    feed_decimals: int = 8
    feed_heartbeat_seconds: int = 3600

    admins: list[str] = []
    db_file: Path = ARTIFACTS_DIR / "custody_ledger.db"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


@cache
def config() -> AppSettings:
    return AppSettings()
