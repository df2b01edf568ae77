import unittest
from unittest.mock import patch

import httpx

from kriptohaber.providers.base import SourceConfig
from kriptohaber.providers.html_scrape import (
    fetch_html_source,
    scrape_bloomberg,
    scrape_listing,
)


LISTING_HTML = """
<html>
  <body>
    <article class="post">
      <h2><a href="/news/bitcoin-etf-inflows-record">Bitcoin ETF inflows hit a record high</a></h2>
      <p>Spot ETFs took in more than a billion dollars.</p>
      <time datetime="2024-03-01T10:00:00Z">March 1</time>
      <img src="/uploads/etf-hero-1200x800.jpg" width="1200" height="800">
    </article>
    <article class="post">
      <h2><a href="https://othersite.com/news/foo">Some other site article title</a></h2>
    </article>
    <article class="post">
      <h2><a href="/news/short">Short</a></h2>
    </article>
    <article>
      <h3><a href="/news/eth-staking-update">Ethereum staking queue shrinks again</a></h3>
    </article>
    <article class="post">
      <h2><a href="/news/bitcoin-etf-inflows-record">Bitcoin ETF inflows hit a record high</a></h2>
    </article>
  </body>
</html>
"""

BLOOMBERG_HTML = """
<html>
  <body>
    <article>
      <a href="/news/articles/2024-03-01/bitcoin-tops-60000"><h3>Bitcoin Tops $60,000 for First Time Since 2021</h3></a>
      <time datetime="2024-03-01T08:30:00Z"></time>
      <p>The largest cryptocurrency extended its rally.</p>
    </article>
    <article>
      <a href="/news/articles/2024-03-01/ether-rallies" aria-label="Ether Rallies as ETF Hopes Build"></a>
    </article>
    <article>
      <a href="/markets">Markets</a>
    </article>
  </body>
</html>
"""


def _watcher_cfg(**overrides):
    base = dict(name="Watcher Guru", kind="html", page_url="https://watcher.guru/", domain="watcher.guru")
    base.update(overrides)
    return SourceConfig(**base)


class ScrapeListingTests(unittest.TestCase):
    def test_valid_blocks_only(self):
        items = scrape_listing(LISTING_HTML, _watcher_cfg())
        self.assertEqual(
            [it.url for it in items],
            [
                "https://watcher.guru/news/bitcoin-etf-inflows-record",
                "https://watcher.guru/news/eth-staking-update",
            ],
        )

    def test_fields_of_first_block(self):
        first = scrape_listing(LISTING_HTML, _watcher_cfg())[0]
        self.assertEqual(first.id, first.url)
        self.assertEqual(first.title, "Bitcoin ETF inflows hit a record high")
        self.assertEqual(first.text, "Spot ETFs took in more than a billion dollars.")
        self.assertEqual(first.publishedDate, "2024-03-01T10:00:00.000Z")
        self.assertEqual(first.image, "https://watcher.guru/uploads/etf-hero-1200x800.jpg")
        self.assertEqual(first.source, "Watcher Guru")
        self.assertAlmostEqual(first.score, 0.9)

    def test_missing_date_defaults_to_now(self):
        second = scrape_listing(LISTING_HTML, _watcher_cfg())[1]
        self.assertEqual(second.publishedDate, second.fetchedAt)
        self.assertEqual(second.text, second.title)

    def test_cap(self):
        self.assertEqual(len(scrape_listing(LISTING_HTML, _watcher_cfg(max_items=1))), 1)

    def test_anchor_blocks(self):
        html = (
            '<div><a href="/news/sec-delays-decision" title="SEC delays decision on altcoin ETF">x</a>'
            '<a href="/about">About us page link</a></div>'
        )
        cfg = _watcher_cfg(item_selectors=('a[href*="/news/"]',))
        items = scrape_listing(html, cfg)
        self.assertEqual(len(items), 1)
        self.assertEqual(items[0].title, "SEC delays decision on altcoin ETF")
        self.assertEqual(items[0].url, "https://watcher.guru/news/sec-delays-decision")


class ScrapeBloombergTests(unittest.TestCase):
    def test_articles(self):
        cfg = SourceConfig(name="Bloomberg Crypto", kind="bloomberg", page_url="https://www.bloomberg.com/crypto")
        items = scrape_bloomberg(BLOOMBERG_HTML, cfg)
        self.assertEqual(len(items), 2)
        self.assertEqual(items[0].title, "Bitcoin Tops $60,000 for First Time Since 2021")
        self.assertEqual(items[0].url, "https://www.bloomberg.com/news/articles/2024-03-01/bitcoin-tops-60000")
        self.assertEqual(items[0].publishedDate, "2024-03-01T08:30:00.000Z")
        self.assertEqual(items[0].text, "The largest cryptocurrency extended its rally.")
        self.assertEqual(items[1].title, "Ether Rallies as ETF Hopes Build")
        self.assertIsNone(items[1].publishedDate)


class FetchHtmlSourceTests(unittest.TestCase):
    @patch("kriptohaber.providers.html_scrape.get_text", return_value=BLOOMBERG_HTML)
    def test_dispatches_bloomberg_parser(self, _mock_get_text):
        cfg = SourceConfig(name="Bloomberg Crypto", kind="bloomberg", page_url="https://www.bloomberg.com/crypto")
        self.assertEqual(len(fetch_html_source(cfg, timeout=0.1)), 2)

    @patch("kriptohaber.providers.html_scrape.get_text", side_effect=httpx.ConnectError("refused"))
    def test_failure_returns_empty(self, _mock_get_text):
        self.assertEqual(fetch_html_source(_watcher_cfg(), timeout=0.1), [])


class ListingUrlTests(unittest.TestCase):
    def test_relative_links_resolved_against_page_origin(self):
        html = (
            "<div class=\"post\"><a href=\"news/bitcoin-etf-flows-hit-record\">Bitcoin ETF flows hit a record high</a></div>"
            "<div class=\"post\"><a href=\"//watcher.guru/news/eth-upgrade\">Ethereum upgrade goes live on mainnet</a></div>"
            "<div class=\"post\"><a>Headline without any link at all here</a></div>"
        )
        cfg = SourceConfig(name="WG", kind="html", page_url="https://watcher.guru/news", item_selectors=(".post",))
        urls = [it.url for it in scrape_listing(html, cfg)]
        self.assertEqual(urls, ["https://watcher.guru/news/bitcoin-etf-flows-hit-record", "https://watcher.guru/news/eth-upgrade"])


if __name__ == "__main__":
    unittest.main()
