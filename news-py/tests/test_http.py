import unittest
from unittest.mock import patch

import httpx

from kriptohaber.infra.http import browser_headers, get_json, get_text


class HttpHelperTests(unittest.TestCase):
    @patch("kriptohaber.infra.http.httpx.Client")
    def test_get_text_fails_fast_with_a_single_request(self, mock_client):
        session = mock_client.return_value.__enter__.return_value
        session.get.side_effect = httpx.ConnectError("refused")
        with self.assertRaises(httpx.ConnectError):
            get_text("https://example.com/feed")
        self.assertEqual(session.get.call_count, 1)

    @patch("kriptohaber.infra.http.httpx.Client")
    def test_get_json_returns_payload(self, mock_client):
        session = mock_client.return_value.__enter__.return_value
        session.get.return_value.json.return_value = [{"_id": "a"}]
        self.assertEqual(get_json("https://example.com/api"), [{"_id": "a"}])
        self.assertEqual(session.get.call_count, 1)

    def test_browser_headers_refer_to_origin(self):
        headers = browser_headers("https://watcher.guru/news/a?x=1")
        self.assertEqual(headers["Referer"], "https://watcher.guru")
        self.assertEqual(headers["Cache-Control"], "no-cache")
        self.assertTrue(headers["User-Agent"].startswith("Mozilla/5.0"))


if __name__ == "__main__":
    unittest.main()
