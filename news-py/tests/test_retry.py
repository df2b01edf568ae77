import unittest
from unittest.mock import patch

from kriptohaber.infra.retry import retry_with_backoff


@patch("kriptohaber.infra.retry.time.sleep")
class RetryWithBackoffTests(unittest.TestCase):
    def test_first_success_does_not_sleep(self, mock_sleep):
        self.assertEqual(retry_with_backoff(lambda: "ok", 3, 1.0), "ok")
        mock_sleep.assert_not_called()

    def test_reraises_last_error_without_trailing_sleep(self, mock_sleep):
        errors = iter([ValueError("one"), ValueError("two"), ValueError("three")])

        def fn():
            raise next(errors)

        with self.assertRaises(ValueError) as ctx:
            retry_with_backoff(fn, 3, 0.5)
        self.assertEqual(str(ctx.exception), "three")
        self.assertEqual([c.args[0] for c in mock_sleep.call_args_list], [0.5, 1.0])

    def test_two_attempts(self, mock_sleep):
        calls = []

        def fn():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("flaky")
            return 42

        self.assertEqual(retry_with_backoff(fn, 2, 0.5), 42)
        self.assertEqual(len(calls), 2)
        mock_sleep.assert_called_once_with(0.5)

    def test_zero_retries_still_calls_once(self, mock_sleep):
        with self.assertRaises(KeyError):
            retry_with_backoff(lambda: {}["missing"], 0, 1.0)
        mock_sleep.assert_not_called()


if __name__ == "__main__":
    unittest.main()
