import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from sqlalchemy.orm import declarative_base

BASE_DIR = Path(__file__).resolve().parent

load_dotenv(BASE_DIR / ".env")

Base = declarative_base()


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


@dataclass(frozen=True)
class Settings:
    """Process configuration, read from the environment."""

    environment: str = "dev"
    port: int = 3000
    data_dir: Path = BASE_DIR / "data"
    store_backend: str = "sql"
    database_url: Optional[str] = None
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    openai_timeout: float = 30.0
    rates_file: Optional[Path] = None
    static_dir: Path = BASE_DIR / "static"

    @property
    def resolved_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return f"sqlite:///{self.data_dir / 'estimates.db'}"

    @property
    def estimates_file(self) -> Path:
        return self.data_dir / "estimates.json"

    @classmethod
    def from_env(cls) -> "Settings":
        rates_file = os.getenv("QUICKBID_RATES_FILE")
        return cls(
            environment=os.getenv("ENVIRONMENT", "dev"),
            port=int(os.getenv("PORT", "3000")),
            data_dir=Path(os.getenv("DATA_DIR", str(BASE_DIR / "data"))),
            store_backend=os.getenv("QUICKBID_STORE", "sql").lower(),
            database_url=os.getenv("DATABASE_URL") or None,
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
            openai_timeout=_env_float("OPENAI_TIMEOUT", 30.0),
            rates_file=Path(rates_file) if rates_file else None,
        )
