import pytest
from loguru import logger

from srg_market_history.base.enhanced_logging import (
    ErrorContextManager, classify_error, generate_correlation_id, get_correlation_id, set_correlation_id,
    get_system_state
)
from srg_market_history.subgraph import (
    SubgraphTimeoutError, SubgraphTransportError, SubgraphQueryError, SubgraphResponseError,
    InvalidTokenAddressError
)


@pytest.fixture
def records():
    captured = []
    handler_id = logger.add(lambda message: captured.append(message.record), level="DEBUG")
    yield captured
    logger.remove(handler_id)


@pytest.mark.parametrize("error, category", [
    (SubgraphTimeoutError("timed out"), "timeout_error"),
    (SubgraphTransportError("connection refused"), "connection_error"),
    (SubgraphQueryError("GraphQL errors: block not indexed"), "graphql_error"),
    (SubgraphResponseError("no data object"), "response_shape_error"),
    (InvalidTokenAddressError("bad address"), "validation_error"),
    (KeyError("ticker"), "unknown_error"),
])
def test_classify_error(error, category):
    assert classify_error(error) == category


def test_correlation_id_roundtrip():
    correlation_id = generate_correlation_id()

    set_correlation_id(correlation_id)
    try:
        assert get_correlation_id() == correlation_id
    finally:
        set_correlation_id(None)

    assert get_correlation_id() is None
    assert correlation_id.startswith("req_")


def test_system_state_reports_process_usage():
    state = get_system_state()

    assert "memory_usage_mb" in state
    assert "threads" in state


def test_log_error_binds_context(records):
    try:
        raise SubgraphTimeoutError("Subgraph query timed out after 30s")
    except SubgraphTimeoutError as e:
        ErrorContextManager("test-service").log_error("Ticker query failed", e, window_key=3600, block_number="9")

    record = records[-1]
    assert record["level"].name == "ERROR"
    assert record["message"] == "Ticker query failed: Subgraph query timed out after 30s"
    assert record["extra"]["error_type"] == "SubgraphTimeoutError"
    assert record["extra"]["error_category"] == "timeout_error"
    assert record["extra"]["window_key"] == 3600
    assert "SubgraphTimeoutError" in record["extra"]["stack_trace"]


def test_log_business_decision(records):
    ErrorContextManager("test-service").log_business_decision(
        "omit_window", "no_previous_window", window_key=86400
    )

    record = records[-1]
    assert record["message"] == "Business decision: omit_window"
    assert record["extra"]["reason"] == "no_previous_window"
