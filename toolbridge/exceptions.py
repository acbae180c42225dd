class ToolbridgeError(RuntimeError):
    """Base error for the tool integration layer."""


class ToolNotCallableError(ToolbridgeError):
    """Raised when a tool descriptor exposes no invocation entry point."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Tool '{name}' is not callable")
        self.name = name


class ToolTimeoutError(ToolbridgeError, TimeoutError):
    """Raised when a tool invocation exceeds its timeout."""

    def __init__(self, name: str, timeout_ms: int) -> None:
        super().__init__(f"Tool '{name}' timed out after {timeout_ms}ms")
        self.name = name
        self.timeout_ms = timeout_ms
