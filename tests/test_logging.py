import logging

from incident_scribe.util.logging import StructuredLogger, sanitize_payload


class TestStructuredLogger:

    def test_merge_logged(self, caplog):
        log = StructuredLogger("incident_scribe.test")
        with caplog.at_level(logging.INFO, logger="incident_scribe.test"):
            log.log_merge("s1", {"behavior"}, {"antecedent"})

        assert "Operation: merge, Status: applied" in caplog.text
        assert "'changed_fields': ['behavior']" in caplog.text

    def test_noop_merge(self, caplog):
        log = StructuredLogger("incident_scribe.test")
        with caplog.at_level(logging.INFO, logger="incident_scribe.test"):
            log.log_merge("s1", set(), set())

        assert "Status: noop" in caplog.text

    def test_out_of_order_extraction_is_a_warning(self, caplog):
        log = StructuredLogger("incident_scribe.test")
        with caplog.at_level(logging.INFO, logger="incident_scribe.test"):
            log.log_extraction("s1", 1, status="out_of_order")

        assert caplog.records[-1].levelno == logging.WARNING

    def test_failed_audit_write_is_an_error(self, caplog):
        log = StructuredLogger("incident_scribe.test")
        with caplog.at_level(logging.INFO, logger="incident_scribe.test"):
            log.log_audit_write("r1", "a", ["summary"], status="failed", details={"error": "disk full"})

        assert caplog.records[-1].levelno == logging.ERROR
        assert "disk full" in caplog.text


def test_sanitize_payload():
    payload = {"narrative": "x" * 150, "tags": ["short"], "n": 3}
    sanitized = sanitize_payload(payload)

    assert sanitized["narrative"] == "x" * 100 + "..."
    assert sanitized["tags"] == ["short"]
    assert sanitized["n"] == 3
