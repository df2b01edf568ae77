#!/usr/bin/env python3
import json
import os
import sys
import urllib.request

NEWS_URL = os.getenv("NEWS_HEALTH_URL", "http://localhost:8001/health")

ENV_KEYS = [
    "OPENAI_API_KEY",
    "OPENAI_MODEL",
    "EXA_API_KEY",
    "DEEPL_API_KEY",
    "REDIS_URL",
]

def fetch_json(url: str):
    with urllib.request.urlopen(url, timeout=6) as f:
        return json.loads(f.read().decode("utf-8"))

def validate(resp, label: str):
    env = resp.get("env") or {}
    features = resp.get("features") or {}
    missing = [k for k in ENV_KEYS if k not in env]
    if missing:
        raise AssertionError(f"{label}: missing env keys in health response: {missing}")
    if features.get("exa_enabled") and not env.get("EXA_API_KEY"):
        raise AssertionError(f"{label}: exa_enabled without EXA_API_KEY")
    if features.get("llm_enabled") and not env.get("OPENAI_API_KEY"):
        raise AssertionError(f"{label}: llm_enabled without OPENAI_API_KEY")
    if not isinstance(resp.get("last_run"), dict):
        raise AssertionError(f"{label}: last_run missing")


def main():
    try:
        news = fetch_json(NEWS_URL)
        validate(news, "news")
    except Exception as exc:
        print(f"news health check failed: {exc}")
        sys.exit(1)

    print("health smoke test ok")

if __name__ == "__main__":
    main()
