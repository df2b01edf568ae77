import json
import threading
import unittest
from unittest.mock import patch

from kriptohaber.errors import TranslationUnavailable
from kriptohaber.models import NewsItem, SummaryWithSentiment
from kriptohaber.services import translation
from kriptohaber.services.translation import (
    ARTICLE_PROMPT_TR,
    SUMMARY_PROMPT_TR,
    build_content,
    clean_turkish_summary,
    summarize_and_translate,
    summarize_in_english,
    summarize_news_items,
    translate_article_text,
    translate_batch,
    translate_text,
)


def _reply(summary, sentiment="positive"):
    return json.dumps({"summary": summary, "sentiment": sentiment}, ensure_ascii=False)


def _always_fails(system_prompt, user_content):
    raise RuntimeError("llm down")


class FakeStore:
    def __init__(self, initial=None):
        self.data = dict(initial or {})
        self.lock = threading.Lock()

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        with self.lock:
            self.data[key] = value


@patch("kriptohaber.infra.retry.time.sleep")
class SummarizeAndTranslateTests(unittest.TestCase):
    def test_contract_reply_passes_through_unmodified(self, _sleep):
        seen = {}

        def complete(system_prompt, user_content):
            seen["system"] = system_prompt
            seen["user"] = user_content
            return '{"summary": "Bitcoin yükseldi.", "sentiment": "positive"}'

        out = summarize_and_translate("Bitcoin Hits 100k", "Bitcoin surged today", complete=complete)
        self.assertEqual(out, SummaryWithSentiment(summary="Bitcoin yükseldi.", sentiment="positive"))
        self.assertEqual(seen["system"], SUMMARY_PROMPT_TR)
        self.assertEqual(seen["user"], "Bitcoin Hits 100k\n\nBitcoin surged today")

    def test_code_fences_stripped(self, _sleep):
        reply = "```json\n" + _reply("Ethereum ağı güncellendi.", "neutral") + "\n```"
        out = summarize_and_translate("ETH update", complete=lambda s, u: reply)
        self.assertEqual(out.summary, "Ethereum ağı güncellendi.")
        self.assertEqual(out.sentiment, "neutral")

    def test_english_tail_removed(self, _sleep):
        reply = _reply("Bitcoin yükseldi. The price rose sharply.")
        out = summarize_and_translate("Bitcoin Hits 100k", complete=lambda s, u: reply)
        self.assertEqual(out.summary, "Bitcoin yükseldi.")

    def test_invalid_sentiment_becomes_neutral(self, _sleep):
        out = summarize_and_translate("t", complete=lambda s, u: _reply("Piyasa bugün yatay seyretti.", "bullish"))
        self.assertEqual(out.sentiment, "neutral")

    def test_short_summary_falls_back_to_title(self, _sleep):
        out = summarize_and_translate("Bitcoin Hits 100k", complete=lambda s, u: _reply("Kısa", "negative"))
        self.assertEqual(out.summary, "Bitcoin Hits 100k")
        self.assertEqual(out.sentiment, "negative")

    def test_non_json_reply_used_verbatim(self, _sleep):
        out = summarize_and_translate("t", complete=lambda s, u: "Bitcoin bugün yüzde beş yükseldi")
        self.assertEqual(out.summary, "Bitcoin bugün yüzde beş yükseldi")
        self.assertEqual(out.sentiment, "neutral")

    def test_retries_with_backoff_then_succeeds(self, mock_sleep):
        attempts = {"n": 0}

        def flaky(system_prompt, user_content):
            attempts["n"] += 1
            if attempts["n"] < 3:
                raise RuntimeError("429")
            return _reply("Solana ağı yeniden çalışıyor.", "positive")

        out = summarize_and_translate("Solana back online", complete=flaky)
        self.assertEqual(out.summary, "Solana ağı yeniden çalışıyor.")
        self.assertEqual([c.args[0] for c in mock_sleep.call_args_list], [1.0, 2.0])

    def test_degrades_to_title_translation(self, _sleep):
        with patch.object(translation, "translate_to_turkish", return_value="Bitcoin 100 bin doları aştı") as mock_tr:
            out = summarize_and_translate("Bitcoin Hits 100k", "text", complete=_always_fails)
        self.assertEqual(out, SummaryWithSentiment(summary="Bitcoin 100 bin doları aştı", sentiment="neutral"))
        self.assertEqual(mock_tr.call_args.args[0], "Bitcoin Hits 100k")

    def test_total_failure_raises(self, _sleep):
        with patch.object(translation, "translate_to_turkish", side_effect=lambda text, complete=None: text):
            with self.assertRaises(TranslationUnavailable):
                summarize_and_translate("Bitcoin Hits 100k", "text", complete=_always_fails)

    def test_total_failure_with_real_fallback_raises(self, _sleep):
        with self.assertRaises(TranslationUnavailable):
            summarize_and_translate("Bitcoin Hits 100k", "text", complete=_always_fails)

    def test_empty_input(self, _sleep):
        out = summarize_and_translate("", None, complete=_always_fails)
        self.assertEqual(out, SummaryWithSentiment(summary="", sentiment="neutral"))


class HelperTests(unittest.TestCase):
    def test_build_content_truncates(self):
        content = build_content("T", "x" * 3000)
        self.assertEqual(len(content), 2003)
        self.assertTrue(content.endswith("..."))
        self.assertEqual(build_content("Only title"), "Only title")

    def test_clean_keeps_turkish(self):
        self.assertEqual(clean_turkish_summary("Bitcoin yükseldi."), "Bitcoin yükseldi.")

    def test_clean_drops_according_to(self):
        text = "SEC kararını erteledi. According to sources the vote moved."
        self.assertEqual(clean_turkish_summary(text), "SEC kararını erteledi.")

    @patch("kriptohaber.infra.retry.time.sleep")
    def test_english_summary_falls_back_to_title(self, _sleep):
        out = summarize_in_english("Bitcoin Hits 100k", "text", complete=_always_fails)
        self.assertEqual(out, SummaryWithSentiment(summary="Bitcoin Hits 100k", sentiment="neutral"))

    def test_english_summary_not_cleaned(self):
        reply = _reply("Bitcoin rose. The price jumped sharply.", "positive")
        out = summarize_in_english("t", complete=lambda s, u: reply)
        self.assertEqual(out.summary, "Bitcoin rose. The price jumped sharply.")

    def test_translate_text_english_only_cleans(self):
        out = translate_text("<p>Bitcoin surged today | via feed</p>", "en", complete=_always_fails)
        self.assertEqual(out, "Bitcoin surged today")

    def test_translate_batch_keeps_order(self):
        out = translate_batch(
            ["Hello world one", "Hello world two", "Hello world three"],
            complete=lambda s, u: f"çeviri {u}",
        )
        self.assertEqual(out, ["çeviri Hello world one", "çeviri Hello world two", "çeviri Hello world three"])

    def test_translate_to_turkish_failure_returns_clean_input(self):
        out = translation.translate_to_turkish("<b>Bitcoin Hits 100k</b>", complete=_always_fails)
        self.assertEqual(out, "Bitcoin Hits 100k")

    def test_article_translation_prefers_deepl(self):
        out = translate_article_text(
            "<p>Bitcoin surged</p>",
            complete=_always_fails,
            deepl=lambda text: "<b>Bitcoin yükseldi</b>",
        )
        self.assertEqual(out, "Bitcoin yükseldi")

    def test_article_translation_falls_back_to_llm(self):
        seen = {}

        def complete(system_prompt, user_content):
            seen["system"] = system_prompt
            return "Bitcoin  yükseldi"

        out = translate_article_text("<p>Bitcoin surged</p>", complete=complete, deepl=lambda text: None)
        self.assertEqual(out, "Bitcoin yükseldi")
        self.assertEqual(seen["system"], ARTICLE_PROMPT_TR)


@patch("kriptohaber.infra.retry.time.sleep")
class SummarizeNewsItemsTests(unittest.TestCase):
    def test_cache_compute_and_omit(self, _sleep):
        items = [
            NewsItem(id="a", title="Cached headline", url="https://x.com/a"),
            NewsItem(id="b", title="Broken headline fail", url="https://x.com/b"),
            NewsItem(id="c", title="Fresh headline", url="https://x.com/c", text="body"),
        ]
        store = FakeStore({"tr:a": {"summary": "Önbellekten gelen özet", "sentiment": "negative"}})
        calls = []

        def complete(system_prompt, user_content):
            calls.append(user_content)
            if "fail" in user_content:
                raise RuntimeError("llm down")
            return _reply("Yeni özet metni burada.", "positive")

        out = summarize_news_items(items, store=store, complete=complete)

        self.assertEqual(list(out), ["a", "c"])
        self.assertEqual(out["a"].sentiment, "negative")
        self.assertEqual(out["c"].summary, "Yeni özet metni burada.")
        self.assertEqual(store.data["tr:c"], {"summary": "Yeni özet metni burada.", "sentiment": "positive"})
        self.assertNotIn("tr:b", store.data)
        self.assertFalse(any("Cached" in c for c in calls))

    def test_without_store(self, _sleep):
        items = [NewsItem(id="a", title="Headline", url="https://x.com/a")]
        out = summarize_news_items(items, complete=lambda s, u: _reply("Başlık özeti burada.", "neutral"))
        self.assertEqual(out["a"].summary, "Başlık özeti burada.")


if __name__ == "__main__":
    unittest.main()
