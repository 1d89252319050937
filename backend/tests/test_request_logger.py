import logging

from incident_analysis.services.logging.request_logger import get_request_logger, mask_url, safe_preview


def test_request_logger_prefixes_request_id_and_operation(caplog):
    log = get_request_logger(logging.getLogger("incident_analysis.test"), "extract_fields", request_id="abc12345")

    with caplog.at_level(logging.INFO, logger="incident_analysis.test"):
        log.info("START")

    assert caplog.messages == ["[req=abc12345 op=extract_fields] START"]


def test_request_logger_generates_request_id():
    first = get_request_logger(logging.getLogger(__name__), "list_history")
    second = get_request_logger(logging.getLogger(__name__), "list_history")

    assert len(first.request_id) == 8
    assert first.request_id != second.request_id


def test_safe_preview_collapses_whitespace_and_truncates():
    assert safe_preview("a\n\n b\t c") == "a b c"
    assert safe_preview(None) == ""
    assert safe_preview("x" * 15, limit=10) == "xxxxxxxxxx...(+5 chars)"


def test_mask_url_drops_credentials_and_query():
    assert mask_url("https://user:pw@llm.example.com:8443/v1/chat?key=secret") == (
        "https://llm.example.com:8443/v1/chat"
    )
