"""Deploy configuration loaded from environment variables."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from versui.services.batch_service import BatchLimits


class Settings(BaseSettings):
    """Versui deploy settings."""

    model_config = SettingsConfigDict(
        env_prefix="VERSUI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    debug: bool = False

    # Walrus blob storage
    publisher_url: str = "https://publisher.walrus-testnet.walrus.space"
    aggregator_urls: list[str] = Field(
        default_factory=lambda: [
            "https://aggregator.walrus-testnet.walrus.space",
            "https://aggregator.testnet.blob.store",
        ]
    )
    epochs: int = Field(default=1, ge=1, le=200)
    http_timeout_seconds: float = Field(default=60.0, gt=0)

    # Public addressing
    site_domain: str = "wal.app"

    # Local state
    manifest_file: str = ".versui-manifest.json"
    ignore_file: str = ".versuignore"

    # Path validation
    max_path_length: int = Field(default=10_000, ge=1)

    # Ledger batching. Gas amounts are in MIST (1 SUI = 10^9 MIST). A
    # programmable transaction allows 1024 commands; 50 per batch keeps
    # each transaction well below that.
    batch_cardinality_ceiling: int = Field(default=50, ge=1, le=1024)
    gas_floor: int = Field(default=50_000_000, ge=0)
    gas_base: int = Field(default=1_000_000, ge=0)
    gas_per_item: int = Field(default=1_000_000, ge=0)

    def batch_limits(self) -> BatchLimits:
        """Return the batch planner limits configured for this deploy."""
        return BatchLimits(
            cardinality_ceiling=self.batch_cardinality_ceiling,
            gas_floor=self.gas_floor,
            gas_base=self.gas_base,
            gas_per_item=self.gas_per_item,
        )
