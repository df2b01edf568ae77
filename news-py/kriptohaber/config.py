import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv
import yaml

BASE_DIR = Path(__file__).resolve().parents[2]
load_dotenv(dotenv_path=BASE_DIR / ".env.local")
load_dotenv(dotenv_path=BASE_DIR / ".env")
load_dotenv(dotenv_path=BASE_DIR / "news-py" / ".env.local")
load_dotenv(dotenv_path=BASE_DIR / "news-py" / ".env")


@dataclass
class Settings:
    openai_api_key: str | None
    openai_model: str
    exa_api_key: str | None
    deepl_api_key: str | None
    request_timeout: float
    scrape_timeout: float
    backfill_cap: int
    backfill_batch_size: int
    max_workers: int
    redis_url: str | None
    translation_ttl_seconds: int
    sources: list[dict] = field(default_factory=list)


def _load_yaml_config() -> dict:
    config_path = os.getenv("CONFIG_PATH", str(BASE_DIR / "news-py" / "config.yaml"))
    try:
        with open(config_path, "r", encoding="utf-8") as handle:
            return yaml.safe_load(handle) or {}
    except FileNotFoundError:
        return {}


def load_settings() -> Settings:
    cfg = _load_yaml_config()
    return Settings(
        openai_api_key=os.getenv("OPENAI_API_KEY"),
        openai_model=os.getenv("OPENAI_MODEL", cfg.get("openai_model") or "gpt-4o-mini"),
        exa_api_key=os.getenv("EXA_API_KEY"),
        deepl_api_key=os.getenv("DEEPL_API_KEY"),
        request_timeout=float(os.getenv("REQUEST_TIMEOUT", cfg.get("request_timeout") or 15)),
        scrape_timeout=float(os.getenv("SCRAPE_TIMEOUT", cfg.get("scrape_timeout") or 15)),
        backfill_cap=int(os.getenv("IMAGE_BACKFILL_CAP", cfg.get("backfill_cap") or 50)),
        backfill_batch_size=int(os.getenv("IMAGE_BACKFILL_BATCH_SIZE", cfg.get("backfill_batch_size") or 10)),
        max_workers=int(os.getenv("FETCH_MAX_WORKERS", cfg.get("max_workers") or 16)),
        redis_url=os.getenv("REDIS_URL") or cfg.get("redis_url"),
        translation_ttl_seconds=int(
            os.getenv("TRANSLATION_TTL_SECONDS", cfg.get("translation_ttl_seconds") or 7 * 24 * 60 * 60)
        ),
        sources=cfg.get("sources") or [],
    )
