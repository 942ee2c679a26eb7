"""Tool-call error taxonomy.

Every subclass is caught at the dispatcher boundary and turned into an
``{"error": message}`` result, so the model can read the message and react.
"""


class ToolError(Exception):
    """Base class for failures reported back to the model as a tool result."""


class AuthRequired(ToolError):
    """No authenticated credential context for this session."""

    def __init__(self, message: str = "authentication required") -> None:
        super().__init__(message)


class UnknownTool(ToolError):
    """The requested tool name is not in the catalog."""

    def __init__(self, name: str) -> None:
        super().__init__(f"unknown tool: {name}")
        self.name = name


class ValidationError(ToolError):
    """An argument is missing, malformed, or not declared by the tool."""

    def __init__(self, param: str, message: str) -> None:
        super().__init__(f"invalid argument '{param}': {message}")
        self.param = param


class ResolutionError(ToolError):
    """A recipient name could not be mapped to an address."""

    def __init__(self, recipient: str, field: str = "to") -> None:
        label = "CC recipient" if field == "cc" else "attendee" if field == "attendees" else "recipient"
        super().__init__(f'Could not resolve email address for {label} "{recipient}"')
        self.recipient = recipient
        self.field = field
