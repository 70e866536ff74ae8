"""Runtime settings for the ordering context, read from the environment."""

import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict, field_validator

from menu.shared.money import DEFAULT_CURRENCY, VALID_CURRENCIES


class OrderingSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    environment: str = "development"
    log_level: str | None = None
    log_dir: Path | None = Path("logs")
    currency: str = DEFAULT_CURRENCY
    cart_path: Path = Path("data/cart.json")
    catalog_path: Path = Path("data/catalog.json")

    @field_validator("currency")
    @classmethod
    def currency_must_be_supported(cls, value: str) -> str:
        if value not in VALID_CURRENCIES:
            raise ValueError(f"Unsupported currency: {value}")
        return value

    @classmethod
    def from_env(cls) -> "OrderingSettings":
        """Build settings from ENVIRONMENT (or ENV), LOG_LEVEL, LOG_DIR and the NIDUS_* variables."""
        values = {
            "environment": (os.getenv("ENVIRONMENT") or os.getenv("ENV") or "development").lower(),
            "log_level": os.getenv("LOG_LEVEL"),
        }
        if "LOG_DIR" in os.environ:
            # An empty LOG_DIR disables file logging
            values["log_dir"] = Path(os.environ["LOG_DIR"]) if os.environ["LOG_DIR"] else None
        if os.getenv("NIDUS_CURRENCY"):
            values["currency"] = os.environ["NIDUS_CURRENCY"].upper()
        if os.getenv("NIDUS_CART_PATH"):
            values["cart_path"] = Path(os.environ["NIDUS_CART_PATH"])
        if os.getenv("NIDUS_CATALOG_PATH"):
            values["catalog_path"] = Path(os.environ["NIDUS_CATALOG_PATH"])
        return cls(**values)
