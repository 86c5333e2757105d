"""
Tests for the retry executor and error classification
======================================================
"""

import unittest
from unittest.mock import Mock

import requests

from oroswap_bot.retry import RetryExecutor, RetryState, classify_error
from oroswap_bot.utils import ChainError, ErrorKind


def _http_error(status_code):
    return requests.exceptions.HTTPError(f"{status_code} error", response=Mock(status_code=status_code))


class TestClassifyError(unittest.TestCase):

    def test_rate_limit_message_is_transient(self):
        error = classify_error(Exception("Request failed with status code 429"), "getBalance uzig")
        self.assertEqual(error.kind, ErrorKind.TRANSIENT)
        self.assertEqual(error.context, "getBalance uzig")

    def test_too_many_requests_any_case(self):
        self.assertTrue(classify_error(Exception("Too Many Requests")).is_transient)

    def test_header_timeout_markers(self):
        self.assertTrue(classify_error(Exception("UND_ERR_HEADERS_TIMEOUT")).is_transient)
        self.assertTrue(classify_error(Exception("Headers Timeout Error")).is_transient)

    def test_requests_network_faults_are_transient(self):
        self.assertTrue(classify_error(requests.exceptions.Timeout("read timed out")).is_transient)
        self.assertTrue(classify_error(requests.exceptions.ConnectionError("reset")).is_transient)

    def test_http_status_codes(self):
        self.assertEqual(classify_error(_http_error(429)).kind, ErrorKind.TRANSIENT)
        self.assertEqual(classify_error(_http_error(404)).kind, ErrorKind.NOT_FOUND)
        self.assertEqual(classify_error(_http_error(500)).kind, ErrorKind.PERMANENT)

    def test_not_found_message(self):
        self.assertEqual(classify_error(Exception("contract: not found")).kind, ErrorKind.NOT_FOUND)

    def test_everything_else_is_permanent(self):
        error = classify_error(ValueError("insufficient funds"))
        self.assertEqual(error.kind, ErrorKind.PERMANENT)
        self.assertEqual(str(error), "insufficient funds")

    def test_chain_error_passes_through(self):
        original = ChainError("boom", kind=ErrorKind.NOT_FOUND)
        self.assertIs(classify_error(original, "query"), original)
        self.assertEqual(original.context, "query")


class TestRetryExecutor(unittest.TestCase):

    def setUp(self):
        self.sleep = Mock()
        self.executor = RetryExecutor(delay_seconds=600, sleep=self.sleep)

    def test_success_first_try(self):
        operation = Mock(return_value=42)

        self.assertEqual(self.executor.execute(operation, "query"), 42)
        operation.assert_called_once()
        self.sleep.assert_not_called()
        self.assertEqual(self.executor.state, RetryState.DONE)

    def test_two_transient_failures_then_success(self):
        operation = Mock(side_effect=[
            Exception("429 Too Many Requests"),
            Exception("UND_ERR_HEADERS_TIMEOUT"),
            "ok",
        ])

        result = self.executor.execute(operation, "swap ORO")

        self.assertEqual(result, "ok")
        self.assertEqual(operation.call_count, 3)
        self.assertEqual(self.executor.backoff_count, 2)
        self.assertEqual(self.sleep.call_count, 2)
        self.sleep.assert_called_with(600)
        self.assertEqual(self.executor.state, RetryState.DONE)

    def test_permanent_failure_raises_without_retry(self):
        cause = ValueError("out of gas")
        operation = Mock(side_effect=cause)

        with self.assertRaises(ChainError) as ctx:
            self.executor.execute(operation, "swap ORO")

        self.assertEqual(ctx.exception.kind, ErrorKind.PERMANENT)
        self.assertEqual(ctx.exception.context, "swap ORO")
        self.assertIs(ctx.exception.__cause__, cause)
        operation.assert_called_once()
        self.sleep.assert_not_called()
        self.assertEqual(self.executor.backoff_count, 0)
        self.assertEqual(self.executor.state, RetryState.FAILED)

    def test_not_found_is_not_retried(self):
        operation = Mock(side_effect=Exception("no such contract"))

        with self.assertRaises(ChainError) as ctx:
            self.executor.execute(operation, "query zig1abc")

        self.assertEqual(ctx.exception.kind, ErrorKind.NOT_FOUND)
        operation.assert_called_once()

    def test_transient_then_permanent(self):
        operation = Mock(side_effect=[Exception("429"), RuntimeError("rejected")])

        with self.assertRaises(ChainError):
            self.executor.execute(operation, "tx")

        self.assertEqual(operation.call_count, 2)
        self.assertEqual(self.sleep.call_count, 1)


if __name__ == "__main__":
    unittest.main()
