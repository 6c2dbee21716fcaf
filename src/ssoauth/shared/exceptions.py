from enum import Enum

from pydantic import BaseModel


class AuthErrorKind(str, Enum):
    NOT_LOGGED_IN = "not_logged_in"
    INVALID_CREDENTIALS = "invalid_credentials"
    TWO_FACTOR_REQUIRED = "two_factor_required"
    BUSY = "busy"
    CANCELLED = "cancelled"
    TIMEOUT = "timeout"
    TRANSPORT_FAILURE = "transport_failure"
    UNKNOWN = "unknown"


class ErrorInfo(BaseModel):
    """Failure details gathered where an operation failed.

    Attributes:
        remote_message: Message supplied by the authority, if it sent one
        transport_reason: HTTP reason phrase or network-level failure reason
    """

    remote_message: str | None = None
    transport_reason: str | None = None


class AuthError(Exception):
    """Exception raised when a login, credential lookup or signing fails.

    The string form of the exception is the normalized, human-readable
    description produced by `describe_error`.

    Attributes:
        kind: What went wrong
        info: The remote message and/or transport reason behind the failure
    """

    kind: AuthErrorKind
    info: ErrorInfo

    def __init__(self, kind: AuthErrorKind, info: ErrorInfo | None = None):
        """Initialize AuthError.

        Args:
            kind: The failure category
            info: Failure details; an empty ErrorInfo when omitted
        """
        # deferred, error_reporting imports this module
        from ssoauth.shared.error_reporting import describe_error

        self.kind = kind
        self.info = info if info is not None else ErrorInfo()
        super().__init__(describe_error(self.info))

    def __repr__(self) -> str:
        return f"AuthError(kind={self.kind.value!r}, info={self.info!r})"
