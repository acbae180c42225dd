import re

import pytest

from toolbridge.errors import (
    ERROR_RULES,
    ErrorCategory,
    ErrorRule,
    Explanation,
    classify,
    create_friendly_error_response,
    format_error_for_user,
)
from toolbridge.exceptions import ToolTimeoutError


def test_http_404_is_a_recoverable_tool_error() -> None:
    enhanced = classify("HTTP 404: not found")

    assert enhanced.category is ErrorCategory.TOOL
    assert "not found" in enhanced.user_message
    assert enhanced.recoverable is True
    assert enhanced.raw_message == "HTTP 404: not found"


@pytest.mark.parametrize("message", ["HTTP 401", "Status: 403 Forbidden"])
def test_auth_failures_are_not_recoverable(message) -> None:
    enhanced = classify(message)
    assert enhanced.category is ErrorCategory.TOOL
    assert enhanced.user_message == "Authentication failed for this tool"
    assert enhanced.recoverable is False


def test_http_statuses_have_distinct_copy() -> None:
    messages = {status: classify(f"HTTP {status}") for status in (400, 401, 404, 429, 502)}

    assert len({e.user_message for e in messages.values()}) == 5
    assert len({tuple(e.suggestions) for e in messages.values()}) == 5
    assert messages[429].user_message == "Rate limit exceeded"
    assert messages[502].user_message == "The external service is temporarily unavailable"
    assert all(e.recoverable for status, e in messages.items() if status != 401)


def test_unlisted_status_falls_back_to_generic_tool_copy() -> None:
    enhanced = classify("HTTP 302")
    assert enhanced.user_message == "The tool returned an error"
    assert enhanced.suggestions == []


def test_timeouts_are_network_errors_suggesting_retry() -> None:
    enhanced = classify("request timed out")

    assert enhanced.category is ErrorCategory.NETWORK
    assert any("try again" in s.lower() for s in enhanced.suggestions)


def test_tool_timeout_exception_is_classified() -> None:
    assert classify(ToolTimeoutError("search", 30000)).category is ErrorCategory.NETWORK


@pytest.mark.parametrize(
    "message, category",
    [
        ("foo is not defined", ErrorCategory.RUNTIME),
        ("helpers.uniprot is undefined", ErrorCategory.VALIDATION),
        ("connect ECONNREFUSED 127.0.0.1:8000", ErrorCategory.NETWORK),
        ("MISSING_REQUIRED_PARAM: query", ErrorCategory.VALIDATION),
        ("Invalid argument for limit", ErrorCategory.VALIDATION),
        ("Unexpected token < in JSON at position 0", ErrorCategory.SYNTAX),
        ("Function declarations are not allowed", ErrorCategory.SYNTAX),
    ],
)
def test_rule_categories(message, category) -> None:
    assert classify(message).category is category


def test_missing_server_names_the_server() -> None:
    assert classify("helpers.uniprot is undefined").user_message == 'Server "uniprot" is not available'


def test_earlier_rule_wins_when_several_match() -> None:
    # Matches both the network rule and the later timeout rule.
    assert classify("ETIMEDOUT").user_message == "Could not connect to the tool server"
    # Matches both the HTTP rule and the later missing-parameter rule.
    assert classify("HTTP 400: missing required parameter").user_message == "Invalid parameters were sent to the tool"


def test_rule_order_is_respected_for_custom_tables() -> None:
    first = ErrorRule(re.compile("boom"), ErrorCategory.RUNTIME, lambda m: Explanation("first", []))
    second = ErrorRule(re.compile("boom"), ErrorCategory.TOOL, lambda m: Explanation("second", []))

    assert classify("boom", [first, second]).user_message == "first"
    assert classify("boom", [second, first]).user_message == "second"


def test_unknown_messages_fall_back() -> None:
    enhanced = classify("something odd happened")

    assert enhanced.category is ErrorCategory.UNKNOWN
    assert enhanced.user_message == "An unexpected error occurred"
    assert len(enhanced.suggestions) == 3
    assert enhanced.recoverable is True


def test_rules_are_ordered_table() -> None:
    categories = [rule.category for rule in ERROR_RULES]
    assert categories[0] is ErrorCategory.RUNTIME
    assert categories[-1] is ErrorCategory.NETWORK


def test_format_error_for_user() -> None:
    text = format_error_for_user(classify("HTTP 429"))
    assert text == (
        "Rate limit exceeded\n"
        "\n"
        "Suggestions:\n"
        "• Wait a moment and try again\n"
        "• Reduce the number of API calls"
    )


def test_format_without_suggestions() -> None:
    assert format_error_for_user(classify("HTTP 302")) == "The tool returned an error"


def test_friendly_error_response_envelope() -> None:
    response = create_friendly_error_response(RuntimeError("HTTP 401 Unauthorized"), logs=["calling search"])

    assert response == {
        "error": format_error_for_user(classify("HTTP 401 Unauthorized")),
        "errorCode": "TOOL",
        "userFriendly": True,
        "suggestions": ["The API may require authentication", "Check if API keys are configured"],
        "recoverable": False,
        "logs": ["calling search"],
    }


def test_friendly_error_response_defaults_logs() -> None:
    response = create_friendly_error_response("something odd happened")
    assert response["errorCode"] == "UNKNOWN"
    assert response["logs"] == []
