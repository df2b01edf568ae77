from __future__ import annotations

import hashlib
import logging
import os
from threading import RLock

from cachetools import TTLCache
from fastapi import FastAPI
from fastapi.responses import JSONResponse

from kriptohaber.config import load_settings
from kriptohaber.engine.text import html_to_text
from kriptohaber.errors import SourceUnavailable, TranslationUnavailable
from kriptohaber.infra.cache import init_cache, now_iso
from kriptohaber.llm.openai_client import llm_enabled
from kriptohaber.models import NewsItem, ScrapeRequest, SummarizeRequest, TranslateRequest
from kriptohaber.services.aggregator import fetch_all_news, last_run_stats
from kriptohaber.services.article import fetch_full_article, scrape_article
from kriptohaber.services.translation import (
    summarize_and_translate,
    summarize_in_english,
    translate_article_text,
)


logger = logging.getLogger("api")

NEWS_CACHE_TTL_SECONDS = 60

app = FastAPI()
settings = load_settings()
cache = init_cache(settings.redis_url, settings.translation_ttl_seconds)

_news_cache: TTLCache = TTLCache(maxsize=1, ttl=NEWS_CACHE_TTL_SECONDS)
_news_lock = RLock()


def _summary_key(language: str, title: str, text: str | None) -> str:
    digest = hashlib.sha1(f"{title}\n{text or ''}".encode("utf-8")).hexdigest()[:20]
    return f"{language}:{digest}"


@app.get("/health")
def health():
    return {
        "ok": True,
        "service": "news-py",
        "version": os.getenv("SERVICE_VERSION") or os.getenv("GIT_SHA") or "dev",
        "tsISO": now_iso(),
        "last_run": last_run_stats(),
        "env": {
            "OPENAI_API_KEY": bool(os.getenv("OPENAI_API_KEY")),
            "OPENAI_MODEL": bool(os.getenv("OPENAI_MODEL")),
            "EXA_API_KEY": bool(os.getenv("EXA_API_KEY")),
            "DEEPL_API_KEY": bool(os.getenv("DEEPL_API_KEY")),
            "REDIS_URL": bool(os.getenv("REDIS_URL")),
        },
        "features": {
            "llm_enabled": llm_enabled(),
            "exa_enabled": bool(settings.exa_api_key),
            "deepl_enabled": bool(settings.deepl_api_key),
            "redis_cache": cache.redis_client is not None,
        },
    }


@app.get("/news", response_model=list[NewsItem])
def news(refresh: bool = False):
    if not refresh:
        with _news_lock:
            cached = _news_cache.get("all")
        if cached is not None:
            return cached
    items = fetch_all_news(settings=settings)
    with _news_lock:
        _news_cache["all"] = items
    return items


@app.post("/scrape")
def scrape(req: ScrapeRequest):
    if not req.url:
        return JSONResponse({"error": "URL is required"}, status_code=400)
    try:
        result = scrape_article(req.url, timeout=settings.scrape_timeout)
    except ValueError as exc:
        return JSONResponse({"error": str(exc)}, status_code=400)
    except SourceUnavailable as exc:
        logger.warning("scrape failed url=%s error=%s", req.url, exc)
        return JSONResponse(
            {"error": str(exc), "content": "", "success": False},
            status_code=exc.status_code or 500,
        )
    return result.model_dump(exclude_none=True)


@app.post("/fetch-full-article")
def full_article(req: ScrapeRequest):
    if not req.url:
        return JSONResponse({"error": "Invalid URL provided"}, status_code=400)
    try:
        text = fetch_full_article(req.url, timeout=settings.scrape_timeout)
    except ValueError as exc:
        return JSONResponse({"error": str(exc)}, status_code=400)
    except SourceUnavailable as exc:
        logger.warning("full article fetch failed url=%s error=%s", req.url, exc)
        return JSONResponse({"error": "Failed to fetch article"}, status_code=exc.status_code or 500)
    if not text:
        return JSONResponse({"error": "Could not extract article content"}, status_code=404)
    return {"text": text}


@app.post("/translate")
def translate(req: TranslateRequest):
    if not req.text or not req.text.strip():
        return JSONResponse({"error": "Invalid text provided"}, status_code=400)
    try:
        return {"translation": translate_article_text(req.text)}
    except Exception as exc:
        logger.exception("translate failed: %s", exc)
        return JSONResponse(
            {"error": "Translation failed", "translation": html_to_text(req.text)},
            status_code=500,
        )


@app.post("/summarize")
def summarize(req: SummarizeRequest):
    key = _summary_key(req.language, req.title, req.text)
    cached = cache.get(key)
    if cached:
        return cached
    if req.language == "en":
        result = summarize_in_english(req.title, req.text)
    else:
        try:
            result = summarize_and_translate(req.title, req.text)
        except TranslationUnavailable as exc:
            return JSONResponse({"error": str(exc), "skip": True}, status_code=422)
    payload = result.model_dump()
    cache.set(key, payload)
    return payload
