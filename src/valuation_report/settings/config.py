"""Application-wide configuration defaults and helpers."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


def _to_bool(value: Optional[str], default: bool = False) -> bool:
    """Parse truthy environment values like '1' or 'true'."""
    if value is None:
        return default
    # Normalize non-string inputs (e.g., int defaults) before parsing.
    if not isinstance(value, str):
        value = str(value)
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _to_int(value: Optional[str], default: int) -> int:
    """Safely parse an integer env var, falling back to ``default`` on failure."""
    if value is None:
        return default
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default


def _to_float(value: Optional[str], default: float) -> float:
    if value is None:
        return default
    try:
        return float(str(value).strip())
    except (TypeError, ValueError):
        return default


@dataclass
class Config:
    """Runtime configuration loaded from environment variables."""

    debug: bool = False
    output_dir: Path = field(default_factory=lambda: Path("output"))
    symbols_path: Path = field(default_factory=lambda: Path("input") / "symbols.csv")
    database_path: Path = field(default_factory=lambda: Path("output") / "reports.db")
    sqlite_echo: bool = False
    batch_parallelism: int = 3
    provider_max_retries: int = 5
    provider_retry_delay: float = 2.0
    provider_verbose: bool = False
    save_payloads: bool = False
    # Five years and one month of daily closes.
    price_lookback_days: int = 1857

    @classmethod
    def from_env(cls) -> "Config":
        """Build a configuration instance using environment overrides."""
        base = Path.cwd()
        output_dir = Path(os.getenv("OUTPUT_DIR", base / "output"))
        return cls(
            debug=_to_bool(os.getenv("APP_DEBUG")),
            output_dir=output_dir,
            symbols_path=Path(os.getenv("SYMBOLS_PATH", base / "input" / "symbols.csv")),
            database_path=Path(os.getenv("DATABASE_PATH", output_dir / "reports.db")),
            sqlite_echo=_to_bool(os.getenv("SQLITE_ECHO")),
            batch_parallelism=max(_to_int(os.getenv("BATCH_PARALLELISM"), 3), 1),
            provider_max_retries=max(_to_int(os.getenv("PROVIDER_MAX_RETRIES"), 5), 0),
            provider_retry_delay=_to_float(os.getenv("PROVIDER_RETRY_DELAY"), 2.0),
            provider_verbose=_to_bool(os.getenv("PROVIDER_VERBOSE")),
            save_payloads=_to_bool(os.getenv("SAVE_PAYLOADS")),
            price_lookback_days=_to_int(os.getenv("PRICE_LOOKBACK_DAYS"), 1857),
        )

    @property
    def payload_dir(self) -> Path:
        return self.output_dir / "payloads"

    def ensure_directories(self) -> None:
        """Create directories needed for runtime artifacts."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.database_path.parent.mkdir(parents=True, exist_ok=True)
        if self.save_payloads:
            self.payload_dir.mkdir(parents=True, exist_ok=True)
