import json
import logging
import sys

from mathdoc.core.logging_config import StructuredFormatter
from mathdoc.core.logging_utils import sanitize_owner_id, sanitize_url


def make_record(msg="Job accepted", **extra):
    record = logging.LogRecord("mathdoc.test", logging.INFO, __file__, 10, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    def test_known_extras_included(self):
        line = StructuredFormatter().format(make_record(job_id="job-1", owner_id="use***23"))
        data = json.loads(line)

        assert data["message"] == "Job accepted"
        assert data["level"] == "INFO"
        assert data["job_id"] == "job-1"
        assert data["owner_id"] == "use***23"
        assert data["timestamp"].endswith("Z")

    def test_unknown_extras_ignored(self):
        data = json.loads(StructuredFormatter().format(make_record(password="hunter2")))
        assert "password" not in data

    def test_exception_info(self):
        try:
            raise ValueError("bad")
        except ValueError:
            record = make_record()
            record.exc_info = sys.exc_info()

        data = json.loads(StructuredFormatter().format(record))

        assert data["exception"]["type"] == "ValueError"
        assert data["exception"]["message"] == "bad"


class TestSanitizers:
    def test_owner_id_masked(self):
        assert sanitize_owner_id("user-123456") == "use***56"
        assert sanitize_owner_id("abc") == "***"
        assert sanitize_owner_id(None) == "***"

    def test_url_query_dropped(self):
        url = "https://storage.test/b/uploads/u1/a.pdf?X-Amz-Signature=secret"
        assert sanitize_url(url) == "https://storage.test/b/uploads/u1/a.pdf"
        assert sanitize_url(None) == "N/A"
