"""Turkish summarization/translation on top of an opaque LLM call.

Every public function accepts ``complete``: a callable
``complete(system_prompt, user_content) -> str``. It defaults to the OpenAI
chat client, and tests pass stubs.

Policy: when no trustworthy Turkish text can be produced,
``summarize_and_translate`` raises ``TranslationUnavailable`` instead of
returning English or mixed-language output; callers drop the item.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
import json
import logging
import re
from typing import Callable, Iterable

from kriptohaber.engine.text import html_to_text, strip_html
from kriptohaber.errors import TranslationUnavailable
from kriptohaber.infra.cache import TranslationStore
from kriptohaber.infra.retry import retry_with_backoff
from kriptohaber.llm.deepl_client import translate_with_deepl
from kriptohaber.llm.openai_client import chat_complete
from kriptohaber.models import SENTIMENTS, NewsItem, SummaryWithSentiment


logger = logging.getLogger("translation")

LLMComplete = Callable[[str, str], str]

MAX_CONTENT_CHARS = 2000
MIN_SUMMARY_CHARS = 10

SUMMARY_PROMPT_TR = """Sen kripto haber analiz uzmanısın. Verilen haberi analiz et ve şu formatta JSON döndür:
{
  "summary": "Haberin kısa Türkçe özeti (2-3 cümle, önemli detayları koru)",
  "sentiment": "positive veya negative veya neutral"
}

KRİTİK UYARILAR - MUTLAKA UYULMASI GEREKEN KURALLAR:
- Summary TAMAMEN, SADECE ve KESINLIKLE Türkçe olmalı
- Hiçbir İngilizce kelime, cümle veya ifade KULLANMA
- Orijinal İngilizce metni kesinlikle dahil etme
- Summary'nin sonuna İngilizce açıklama ekleme
- İngilizce cümlelerle bitirme (örn: "The..." "According to..." gibi)
- Kripto terimleri (Bitcoin, Ethereum, blockchain, NFT, DeFi, DAO vb.) olduğu gibi kalabilir
- Kişi isimleri (Elon Musk, Vitalik Buterin vb.) ve şirket isimleri değiştirilmez
- 100% Türkçe özet döndür, hiçbir İngilizce içerik olmasın

Sentiment belirleme kriterleri:
- positive: Fiyat artışları, pozitif gelişmeler, iyi haberler, büyüme, başarılar
- negative: Fiyat düşüşleri, hack'ler, dolandırıcılıklar, yasal sorunlar, kötü haberler
- neutral: Objektif bilgiler, analizler, nötr duyurular

SADECE JSON formatında döndür ve summary tamamen Türkçe olsun."""

SUMMARY_PROMPT_EN = """You are a crypto news analysis expert. Analyze the given news and return in this JSON format:
{
  "summary": "Brief English summary of the news (2-3 sentences, keep important details)",
  "sentiment": "positive or negative or neutral"
}

IMPORTANT NOTES:
- Summary must be ONLY in English, no other languages
- Keep it concise and clear
- Do not include the original text in other languages
- Only return the English summary, nothing else

Sentiment criteria:
- positive: Price increases, positive developments, good news, growth, achievements
- negative: Price drops, hacks, scams, legal issues, bad news
- neutral: Objective information, analysis, neutral announcements

Return only JSON format, nothing else."""

TRANSLATE_PROMPT_TR = (
    "Sen profesyonel bir çevirmensin. Verilen metni Türkçeye çevir. SADECE Türkçe çeviriyi döndür, "
    "başka hiçbir şey ekleme. Orijinal İngilizce metni dahil etme. HTML kodlarını dahil etme. "
    "Sadece sade Türkçe metin döndür. Kripto terimleri için yaygın Türkçe karşılıklarını kullan "
    "(örn: Bitcoin, Ethereum, blockchain gibi terimler olduğu gibi kalabilir)."
)

ARTICLE_PROMPT_TR = (
    "Sen profesyonel bir çevirmensin. Verilen kripto haber metnini Türkçeye çevir. SADECE Türkçe "
    "çeviriyi döndür, başka hiçbir şey ekleme. Orijinal İngilizce metni dahil etme. HTML kodlarını "
    "dahil etme. Sadece sade Türkçe metin döndür. Kripto terimleri için yaygın kullanımları koru "
    "(Bitcoin, Ethereum, blockchain vb.). Doğal ve akıcı Türkçe kullan."
)

_FENCE_RE = re.compile(r"```json\n?|```\n?")

# Ordered; each pass removes an English sentence or tail the model leaked
# into a Turkish summary.
_ENGLISH_LEAK_PATTERNS: tuple[tuple[re.Pattern, str], ...] = (
    (
        re.compile(
            r"\. [A-Z][a-z]+ (is|are|was|were|has|have|will|would|could|should|can|may|might|had|been|being)[^.]*\."
        ),
        ".",
    ),
    *[
        (re.compile(rf"\. {starter} [^.]*\."), ".")
        for starter in ("The", "This", "It", "According to", "In", "On", "At", "For", "With", "From", "By", "As")
    ],
    *[
        (re.compile(rf"\. {starter}[^.]*\."), ".")
        for starter in ("However", "Additionally", "Furthermore", "Meanwhile", "Moreover")
    ],
    (re.compile(r"\s+(is|are|was|were|has|have|had|been|being)\s+[a-z][^.]*$", re.IGNORECASE), ""),
    (re.compile(r"\s+(the|this|that|these|those|it|he|she|they)\s+[a-z][^.]*$", re.IGNORECASE), ""),
    (re.compile(r"\s+[A-Z][a-z]+\s*$"), ""),
)


def _summary_complete(system_prompt: str, user_content: str) -> str:
    return chat_complete(system_prompt, user_content, temperature=0.3, max_tokens=500)


def _translate_complete(system_prompt: str, user_content: str) -> str:
    return chat_complete(system_prompt, user_content)


def _article_complete(system_prompt: str, user_content: str) -> str:
    return chat_complete(system_prompt, user_content, temperature=0.3, max_tokens=4000)


def build_content(title: str, text: str | None = None) -> str:
    content = f"{title}\n\n{text}" if text else (title or "")
    if len(content) > MAX_CONTENT_CHARS:
        content = content[:MAX_CONTENT_CHARS] + "..."
    return content


def clean_turkish_summary(summary: str) -> str:
    cleaned = summary
    for pattern, replacement in _ENGLISH_LEAK_PATTERNS:
        cleaned = pattern.sub(replacement, cleaned)
    cleaned = cleaned.strip()
    cleaned = re.sub(r"\.+", ".", cleaned)
    cleaned = re.sub(r"\.\s*$", ".", cleaned)
    return cleaned


def _valid_sentiment(value) -> str:
    return value if value in SENTIMENTS else "neutral"


def parse_summary_response(raw: str, title: str, clean: bool = True) -> SummaryWithSentiment:
    """Turn an LLM reply into a summary.

    Non-JSON replies longer than ten characters are used verbatim with a
    neutral sentiment; anything shorter raises ``ValueError``.
    """
    raw = raw or ""
    try:
        parsed = json.loads(_FENCE_RE.sub("", raw).strip())
    except ValueError:
        if len(raw) > MIN_SUMMARY_CHARS:
            logger.warning("llm reply is not json, using raw text chars=%s", len(raw))
            return SummaryWithSentiment(summary=raw, sentiment="neutral")
        raise

    parsed = parsed if isinstance(parsed, dict) else {}
    summary = parsed.get("summary") if isinstance(parsed.get("summary"), str) else ""
    summary = summary or title
    if clean:
        summary = clean_turkish_summary(summary)
    return SummaryWithSentiment(
        summary=summary if len(summary) > MIN_SUMMARY_CHARS else title,
        sentiment=_valid_sentiment(parsed.get("sentiment")),
    )


def translate_to_turkish(text: str, complete: LLMComplete | None = None) -> str:
    """LLM translation of ``text``.

    On LLM failure returns the cleaned input, which callers detect as a no-op.
    """
    if not text or not text.strip():
        return text
    clean_text = strip_html(text)
    if not clean_text.strip():
        return text
    complete = complete or _translate_complete
    try:
        translation = complete(TRANSLATE_PROMPT_TR, clean_text) or clean_text
    except Exception as exc:
        logger.warning("translate_to_turkish failed error=%s", exc)
        return strip_html(text)
    return strip_html(translation)


def translate_text(text: str, target_lang: str = "tr", complete: LLMComplete | None = None) -> str:
    if target_lang == "en":
        return strip_html(text)
    return translate_to_turkish(text, complete=complete)


def translate_batch(texts: list[str], complete: LLMComplete | None = None, max_workers: int = 4) -> list[str]:
    if not texts:
        return []
    try:
        with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(texts)))) as ex:
            return list(ex.map(lambda t: translate_to_turkish(t, complete=complete), texts))
    except Exception as exc:
        logger.warning("translate_batch failed error=%s", exc)
        return list(texts)


def summarize_and_translate(title: str, text: str | None = None, complete: LLMComplete | None = None) -> SummaryWithSentiment:
    content = build_content(title, text)
    if not content.strip():
        return SummaryWithSentiment(summary=title, sentiment="neutral")

    llm = complete or _summary_complete
    try:
        raw = retry_with_backoff(lambda: llm(SUMMARY_PROMPT_TR, content), 3, 1.0)
        return parse_summary_response(raw, title, clean=True)
    except Exception as exc:
        logger.warning("summarize failed, trying title translation error=%s", exc)

    try:
        translated = retry_with_backoff(lambda: translate_to_turkish(title, complete=complete), 2, 0.5)
    except Exception as exc:
        raise TranslationUnavailable("Failed to translate to Turkish") from exc
    if translated and translated != title and len(translated) > MIN_SUMMARY_CHARS:
        return SummaryWithSentiment(summary=translated, sentiment="neutral")
    logger.error("title translation unusable, skipping item title=%r", (title or "")[:80])
    raise TranslationUnavailable("Failed to translate to Turkish")


def summarize_in_english(title: str, text: str | None = None, complete: LLMComplete | None = None) -> SummaryWithSentiment:
    content = build_content(title, text)
    if not content.strip():
        return SummaryWithSentiment(summary=title, sentiment="neutral")
    llm = complete or _summary_complete
    try:
        raw = retry_with_backoff(lambda: llm(SUMMARY_PROMPT_EN, content), 3, 1.0)
        return parse_summary_response(raw, title, clean=False)
    except Exception as exc:
        logger.warning("english summary failed, using title error=%s", exc)
        return SummaryWithSentiment(summary=title, sentiment="neutral")


def translate_article_text(
    text: str,
    complete: LLMComplete | None = None,
    deepl: Callable[[str], str | None] = translate_with_deepl,
) -> str:
    """Full-text translation: DeepL first, the LLM translator when DeepL yields nothing.

    LLM errors propagate.
    """
    clean_text = html_to_text(text)
    if not clean_text:
        return text
    translation = deepl(clean_text)
    if not translation:
        logger.info("deepl returned nothing, using llm translation")
        translation = (complete or _article_complete)(ARTICLE_PROMPT_TR, clean_text) or clean_text
    return html_to_text(translation)


def store_key(item_id: str, language: str = "tr") -> str:
    return f"{language}:{item_id}"


def summarize_news_items(
    items: Iterable[NewsItem],
    store: TranslationStore | None = None,
    complete: LLMComplete | None = None,
    language: str = "tr",
    max_workers: int = 4,
) -> dict[str, SummaryWithSentiment]:
    """Summaries keyed by item id, in input order.

    Cached entries come from ``store``; the rest are computed and written
    back. Items whose Turkish translation is unavailable are left out.
    """
    items = list(items)
    out: dict[str, SummaryWithSentiment] = {}
    missing: list[NewsItem] = []
    for item in items:
        cached = store.get(store_key(item.id, language)) if store is not None else None
        if cached:
            out[item.id] = SummaryWithSentiment(**cached)
        else:
            missing.append(item)

    summarize = summarize_in_english if language == "en" else summarize_and_translate
    computed: dict[str, SummaryWithSentiment] = {}
    if missing:
        with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(missing)))) as ex:
            futures = {ex.submit(summarize, item.title, item.text, complete): item for item in missing}
            for fut in as_completed(futures):
                item = futures[fut]
                try:
                    computed[item.id] = fut.result()
                except TranslationUnavailable:
                    logger.info("item omitted, no translation id=%s", item.id)
                except Exception as exc:
                    logger.warning("item omitted id=%s error=%s", item.id, exc)

    for item_id, summary in computed.items():
        if store is not None:
            store.set(store_key(item_id, language), summary.model_dump())

    ordered: dict[str, SummaryWithSentiment] = {}
    for item in items:
        if item.id in out:
            ordered[item.id] = out[item.id]
        elif item.id in computed:
            ordered[item.id] = computed[item.id]
    return ordered
