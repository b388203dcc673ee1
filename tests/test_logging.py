import json
import logging
import unittest

from codeql_fly.core.logging import ServiceJSONFormatter, request_id_var


class TestServiceJSONFormatter(unittest.TestCase):
    def setUp(self):
        self.formatter = ServiceJSONFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={"asctime": "timestamp", "levelname": "level"},
            service="codeql-fly-test",
        )

    def record(self, message="hello"):
        return logging.LogRecord("codeql_fly.test", logging.WARNING, __file__, 1, message, None, None)

    def test_fields(self):
        payload = json.loads(self.formatter.format(self.record()))
        self.assertEqual(payload["message"], "hello")
        self.assertEqual(payload["level"], "WARNING")
        self.assertEqual(payload["service"], "codeql-fly-test")
        self.assertNotIn("request_id", payload)
        self.assertNotIn("trace_id", payload)

    def test_request_id_from_context(self):
        token = request_id_var.set("req-42")
        try:
            payload = json.loads(self.formatter.format(self.record()))
        finally:
            request_id_var.reset(token)
        self.assertEqual(payload["request_id"], "req-42")


if __name__ == "__main__":
    unittest.main()
