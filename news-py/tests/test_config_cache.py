from __future__ import annotations

from kriptohaber import config
from kriptohaber.infra.cache import cache_key, init_cache
from kriptohaber.providers.base import SourceConfig


def test_load_settings_from_yaml(monkeypatch, tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "backfill_cap: 30\n"
        "backfill_batch_size: 5\n"
        "sources:\n"
        "  - name: Decrypt\n"
        "    feed_url: https://decrypt.co/feed\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("CONFIG_PATH", str(path))
    for key in ("IMAGE_BACKFILL_CAP", "IMAGE_BACKFILL_BATCH_SIZE", "REQUEST_TIMEOUT"):
        monkeypatch.delenv(key, raising=False)

    settings = config.load_settings()
    assert settings.backfill_cap == 30
    assert settings.backfill_batch_size == 5
    assert settings.request_timeout == 15.0
    assert settings.sources[0]["name"] == "Decrypt"


def test_env_overrides_yaml(monkeypatch, tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("backfill_cap: 30\n", encoding="utf-8")
    monkeypatch.setenv("CONFIG_PATH", str(path))
    monkeypatch.setenv("IMAGE_BACKFILL_CAP", "7")
    assert config.load_settings().backfill_cap == 7


def test_missing_config_file_uses_defaults(monkeypatch, tmp_path):
    monkeypatch.setenv("CONFIG_PATH", str(tmp_path / "absent.yaml"))
    monkeypatch.delenv("IMAGE_BACKFILL_CAP", raising=False)
    monkeypatch.delenv("IMAGE_BACKFILL_BATCH_SIZE", raising=False)
    settings = config.load_settings()
    assert settings.backfill_cap == 50
    assert settings.backfill_batch_size == 10
    assert settings.sources == []


def test_memory_cache_roundtrip():
    cache = init_cache(None, ttl_seconds=60)
    assert cache.get("tr:abc") is None
    cache.set("tr:abc", {"summary": "Özet", "sentiment": "neutral"})
    assert cache.get("tr:abc") == {"summary": "Özet", "sentiment": "neutral"}
    assert cache_key("translation", "", "tr:abc") == "translation:tr:abc"


def test_unreachable_redis_falls_back_to_memory():
    cache = init_cache("redis://127.0.0.1:1/0", ttl_seconds=60)
    assert cache.redis_client is None
    cache.set("k", {"v": 1})
    assert cache.get("k") == {"v": 1}


def test_source_config_from_dict_ignores_unknown_keys():
    cfg = SourceConfig.from_dict({"name": "X", "kind": "html", "title_selectors": ["h2"], "colour": "red"})
    assert cfg.title_selectors == ("h2",)
    assert cfg.kind == "html"
