"""Summary: Error taxonomy for the preferences exchange.

Importance: Gives every failure a typed class and the text line returned to clients.
Alternatives: Return error strings directly from each function.
"""

from __future__ import annotations


class ExchangeError(Exception):
    """Summary: Base class for exchange failures.

    Importance: Lets the request handler map any failure to a response line.
    Alternatives: Catch a broad Exception at the HTTP layer.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def response_text(self) -> str:
        """Summary: Text sent back to the client for this failure.

        Importance: Keeps the wire wording next to the error definition.
        Alternatives: Keep a lookup table in the handler.
        """

        return self.message


class EncodeError(ExchangeError, ValueError):
    """Summary: Raised when a preference set cannot be written as a blob."""


class DecodeError(ExchangeError, ValueError):
    """Summary: Raised when a blob does not follow the line grammar.

    Importance: Surfaces malformed uploads instead of dropping lines.
    Alternatives: Skip unreadable lines and log them.
    """

    def __init__(self, reason: str, message: str, line_number: int | None = None, line: str | None = None) -> None:
        super().__init__(message)
        self.reason = reason
        self.line_number = line_number
        self.line = line

    @classmethod
    def malformed_line(cls, line_number: int, line: str) -> "DecodeError":
        return cls(
            "malformed_line",
            f"Malformed preference line {line_number}: {line}",
            line_number=line_number,
            line=line,
        )


class ValueFormatError(ValueError):
    """Summary: Raised when a typed preference value cannot be parsed or formatted."""


class InvalidToken(ExchangeError):
    """Summary: Raised when a save key is unknown or already consumed."""

    def __init__(self, token: str) -> None:
        super().__init__(f"Unknown PrefsSaveKey: {token}")
        self.token = token


class IncompleteUpload(ExchangeError):
    """Summary: Raised when a token upload lacks its closing sentinel line."""

    def __init__(self) -> None:
        super().__init__("Upload did not complete")


class UploadInterrupted(ExchangeError):
    """Summary: Raised when a credential upload lacks its closing sentinel."""

    def __init__(self) -> None:
        super().__init__("Upload of preferences interrupted\n")


class MissingCredential(ExchangeError):
    """Summary: Raised when a credential exchange omits the username or password.

    Importance: Distinguishes truncated requests from wrong credentials.
    Alternatives: Treat missing fields as an authentication failure.
    """

    def __init__(self, field: str) -> None:
        super().__init__(f"Missing {field} in POST data\n")
        self.field = field


class AuthenticationFailure(ExchangeError):
    """Summary: Raised when the authenticator rejects the presented credentials."""

    def __init__(self) -> None:
        super().__init__("Wrong username or password\n")


class AuthenticatorError(ExchangeError):
    """Summary: Raised when the authenticator itself fails, not the credentials.

    Importance: A broken credentials source must answer with a text line like any other failure.
    Alternatives: Report it as wrong username or password.
    """

    def __init__(self, detail: str) -> None:
        super().__init__(f"Authentication service error - {detail}\n")
        self.detail = detail


class StoreError(ExchangeError):
    """Summary: Raised when the preference store fails.

    Importance: Keeps storage failures typed as connect, read, or write problems.
    Alternatives: Let sqlite3 exceptions reach the HTTP layer.
    """

    KINDS = ("connect", "read", "write")

    def __init__(self, kind: str, detail: str) -> None:
        if kind not in self.KINDS:
            raise ValueError(f"Unknown store error kind: {kind}")
        super().__init__(f"Preference store {kind} error - {detail}\n")
        self.kind = kind
        self.detail = detail


class KeyIssueError(ExchangeError):
    """Summary: Raised when no unused save key could be generated."""

    def __init__(self, attempts: int) -> None:
        super().__init__(f"Could not generate a unique PrefsSaveKey after {attempts} attempts\n")
        self.attempts = attempts
