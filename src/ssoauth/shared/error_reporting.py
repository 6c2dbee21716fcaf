"""Normalization of failure details into a single human-readable message."""

from ssoauth.shared.exceptions import AuthError, ErrorInfo

GENERIC_ERROR_MESSAGE = "request failed"


def _non_blank(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value
    return None


def describe_error(error: ErrorInfo | AuthError | None) -> str:
    """Describe a failure for display to the user.

    The authority's own message wins over the transport reason, and the
    transport reason wins over the generic fallback. The result is never empty.

    Args:
        error: Failure details, or an AuthError carrying them

    Returns:
        Non-empty description of the failure
    """
    info = error.info if isinstance(error, AuthError) else error
    if info is None:
        return GENERIC_ERROR_MESSAGE

    message = _non_blank(getattr(info, "remote_message", None))
    if message is not None:
        return message
    reason = _non_blank(getattr(info, "transport_reason", None))
    if reason is not None:
        return reason
    return GENERIC_ERROR_MESSAGE
