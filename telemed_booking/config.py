"""Runtime settings loaded from the environment (.env supported)."""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(override=True)

DEFAULT_DB_PATH = Path(__file__).parent / "clinic" / "telemed.db"
DEFAULT_CACHE_PATH = Path.home() / ".telemed_booking" / "offline_cache.json"


@dataclass
class Settings:
    db_path: Path = DEFAULT_DB_PATH
    # Flat price per medicine unit, applied to every pharmacy order line
    unit_price: float = 2.50
    delivery_days: int = 2
    meeting_base_url: str = "https://meet.telemedicine.com"
    api_url: str = "http://localhost:3001"
    offline_cache_path: Path = DEFAULT_CACHE_PATH
    log_level: str = "INFO"
    cors_origins: str = "*"
    port: int = 3001

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from TELEMED_* environment variables."""
        return cls(
            db_path=Path(os.getenv("TELEMED_DB_PATH", str(DEFAULT_DB_PATH))),
            unit_price=float(os.getenv("TELEMED_UNIT_PRICE", "2.50")),
            delivery_days=int(os.getenv("TELEMED_DELIVERY_DAYS", "2")),
            meeting_base_url=os.getenv("TELEMED_MEETING_BASE_URL", "https://meet.telemedicine.com"),
            api_url=os.getenv("TELEMED_API_URL", "http://localhost:3001"),
            offline_cache_path=Path(os.getenv("TELEMED_OFFLINE_CACHE", str(DEFAULT_CACHE_PATH))),
            log_level=os.getenv("TELEMED_LOG_LEVEL", "INFO"),
            cors_origins=os.getenv("TELEMED_CORS_ORIGINS", "*"),
            port=int(os.getenv("PORT", "3001")),
        )
