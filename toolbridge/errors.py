"""Turn raw failure messages into explanations a user can act on.

Classification is an ordered rule table: the first rule whose pattern matches
wins, so more specific rules must come before broader ones (the network rule
sits ahead of the generic timeout rule, HTTP statuses ahead of parameter
validation).
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Pattern, Union

from pydantic import BaseModel, ConfigDict, Field


class ErrorCategory(str, Enum):
    VALIDATION = "validation"
    NETWORK = "network"
    TOOL = "tool"
    SYNTAX = "syntax"
    RUNTIME = "runtime"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class EnhancedError:
    raw_message: str
    user_message: str
    category: ErrorCategory
    suggestions: List[str] = field(default_factory=list)
    recoverable: bool = True


@dataclass(frozen=True)
class Explanation:
    user_message: str
    suggestions: List[str]
    recoverable: bool = True


Transform = Callable[[re.Match], Explanation]


@dataclass(frozen=True)
class ErrorRule:
    pattern: Pattern[str]
    category: ErrorCategory
    transform: Transform


def _fixed(user_message: str, *suggestions: str) -> Transform:
    explanation = Explanation(user_message=user_message, suggestions=list(suggestions))
    return lambda _match: explanation


def _undefined_name(match: re.Match) -> Explanation:
    return Explanation(
        user_message=f'Variable "{match.group(1)}" was not found',
        suggestions=[
            "Check for typos in the variable name",
            "Ensure the variable is defined before use",
            "If using a helper, check it exists: helpers.serverName.listTools()",
        ],
    )


def _missing_server(match: re.Match) -> Explanation:
    return Explanation(
        user_message=f'Server "{match.group(1) or match.group(2)}" is not available',
        suggestions=[
            "Check the server name spelling",
            "List available servers in the system prompt",
            "The server may not be connected - check MCP server status",
        ],
    )


def _http_status(match: re.Match) -> Explanation:
    status = int(match.group(1) or match.group(2))
    if status == 400:
        return Explanation(
            "Invalid parameters were sent to the tool",
            ["Check required parameters with getToolSchema()", "Verify parameter types (string vs number)"],
        )
    if status in (401, 403):
        return Explanation(
            "Authentication failed for this tool",
            ["The API may require authentication", "Check if API keys are configured"],
            recoverable=False,
        )
    if status == 404:
        return Explanation(
            "The requested resource was not found",
            ["Check if the ID or query is correct", "The data may not exist in the database"],
        )
    if status == 429:
        return Explanation(
            "Rate limit exceeded",
            ["Wait a moment and try again", "Reduce the number of API calls"],
        )
    if status >= 500:
        return Explanation(
            "The external service is temporarily unavailable",
            ["This is not your fault - the upstream API has issues", "Try again in a few moments"],
        )
    return Explanation("The tool returned an error", [])


ERROR_RULES: List[ErrorRule] = [
    ErrorRule(re.compile(r"(\w+) is not defined"), ErrorCategory.RUNTIME, _undefined_name),
    ErrorRule(
        re.compile(r"helpers\.(\w+) is undefined|Cannot read.*helpers\.(\w+)"),
        ErrorCategory.VALIDATION,
        _missing_server,
    ),
    ErrorRule(
        re.compile(r"Failed to reach (?:the )?tool proxy|ECONNREFUSED|ETIMEDOUT|network", re.IGNORECASE),
        ErrorCategory.NETWORK,
        _fixed(
            "Could not connect to the tool server",
            "This is usually temporary - try again in a moment",
            "Check if the MCP servers are running",
            "The external API may be experiencing issues",
        ),
    ),
    ErrorRule(re.compile(r"HTTP (\d+)|Status: (\d+)"), ErrorCategory.TOOL, _http_status),
    ErrorRule(
        re.compile(r"missing required|required parameter|MISSING_REQUIRED_PARAM", re.IGNORECASE),
        ErrorCategory.VALIDATION,
        _fixed(
            "A required parameter is missing",
            "Use getToolSchema(toolName) to see required parameters",
            "Check the tool documentation for required fields",
        ),
    ),
    ErrorRule(
        re.compile(r"invalid.*argument|type.*error|expected.*got|INVALID_ARGUMENTS", re.IGNORECASE),
        ErrorCategory.VALIDATION,
        _fixed(
            "Parameter type mismatch",
            "Check if strings should be numbers or vice versa",
            'Arrays should be passed as [...] not "..."',
            "Use getToolSchema() to see expected types",
        ),
    ),
    ErrorRule(
        re.compile(r"JSON.*parse|Unexpected token|SyntaxError.*JSON|JSONDecodeError", re.IGNORECASE),
        ErrorCategory.SYNTAX,
        _fixed(
            "Invalid data format received",
            "The tool may have returned unexpected data",
            "Try a simpler query first",
            "Check if the tool is working correctly",
        ),
    ),
    ErrorRule(
        re.compile(r"TypeScript syntax is not allowed", re.IGNORECASE),
        ErrorCategory.SYNTAX,
        _fixed(
            "TypeScript syntax is not supported in the sandbox",
            "Remove type annotations (: string, : number, etc.)",
            'Remove "as Type" casts',
            "Use plain JavaScript syntax",
        ),
    ),
    ErrorRule(
        re.compile(r"Function declarations are not allowed", re.IGNORECASE),
        ErrorCategory.SYNTAX,
        _fixed(
            "Function declarations are not supported",
            "Use top-level code instead of function declarations",
            "Write code that executes directly, not wrapped in functions",
        ),
    ),
    ErrorRule(
        re.compile(r"timeout|timed out|ETIMEDOUT", re.IGNORECASE),
        ErrorCategory.NETWORK,
        _fixed(
            "The request took too long",
            "Try a simpler query with fewer results",
            "The external API may be slow - try again",
            "Break the query into smaller parts",
        ),
    ),
]

GENERIC_SUGGESTIONS = (
    "Try simplifying your query",
    "Check if the tool name is correct",
    "Review the error details for more information",
)


def classify(error: Union[BaseException, str], rules: Optional[List[ErrorRule]] = None) -> EnhancedError:
    message = error if isinstance(error, str) else str(error)

    for rule in ERROR_RULES if rules is None else rules:
        match = rule.pattern.search(message)
        if match is None:
            continue
        explanation = rule.transform(match)
        return EnhancedError(
            raw_message=message,
            user_message=explanation.user_message or message,
            category=rule.category,
            suggestions=list(explanation.suggestions),
            recoverable=explanation.recoverable,
        )

    return EnhancedError(
        raw_message=message,
        user_message="An unexpected error occurred",
        category=ErrorCategory.UNKNOWN,
        suggestions=list(GENERIC_SUGGESTIONS),
        recoverable=True,
    )


def format_error_for_user(enhanced: EnhancedError) -> str:
    lines = [enhanced.user_message]
    if enhanced.suggestions:
        lines.append("")
        lines.append("Suggestions:")
        lines.extend(f"• {suggestion}" for suggestion in enhanced.suggestions)
    return "\n".join(lines)


class FriendlyErrorResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    error: str = Field(..., description="Formatted message with suggestions")
    error_code: str = Field(..., alias="errorCode", description="Upper-cased error category")
    user_friendly: bool = Field(True, alias="userFriendly")
    suggestions: List[str] = Field(default_factory=list)
    recoverable: bool = True
    logs: List[str] = Field(default_factory=list)


def create_friendly_error_response(error: Union[BaseException, str], logs: Optional[List[str]] = None) -> dict:
    """Envelope handed back to a running sandbox script when a tool call fails."""
    enhanced = classify(error)
    response = FriendlyErrorResponse(
        error=format_error_for_user(enhanced),
        error_code=enhanced.category.value.upper(),
        suggestions=enhanced.suggestions,
        recoverable=enhanced.recoverable,
        logs=list(logs or []),
    )
    return response.model_dump(by_alias=True)
