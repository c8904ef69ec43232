# =============================================================================
# Sails Python Client -- Request Construction
# =============================================================================

from __future__ import annotations

import re

from typing import Any

from .errors import SailsValidationError
from .types import PendingRequest, RequestMethod, ResponseCallback

# Trailing slashes and whitespace, keeping at least one character
_TRAILING_RE = re.compile(r"^(.+?)[/\s]*\Z", re.DOTALL)


def _usage(method: Any) -> str:
    name = method.value if isinstance(method, RequestMethod) else (method or "request")
    return (
        "Usage:\n socket."
        f"{name}( destination_url, [data_to_send], [fn_to_call_when_complete] )"
    )


def normalize_url(url: str) -> str:
    """Strip trailing slashes and whitespace: ``"/foo/  "`` -> ``"/foo"``."""
    match = _TRAILING_RE.match(url)
    return match.group(1) if match else url


def build_request(
    method: RequestMethod | str,
    url: Any,
    data: dict[str, Any] | ResponseCallback | None = None,
    callback: ResponseCallback | None = None,
    *,
    headers: dict[str, Any] | None = None,
) -> PendingRequest:
    """Validate arguments and build a :class:`PendingRequest`.

    *data* is optional: when a callable is passed in its place it becomes
    the callback.

    Raises:
        SailsValidationError: If *url* is not a string or *method* is not
            one of :class:`RequestMethod`.
    """
    if callable(data) and callback is None:
        callback = data
        data = None

    if not isinstance(url, str):
        raise SailsValidationError(f"Invalid or missing URL!\n{_usage(method)}")

    try:
        verb = RequestMethod(method.lower() if isinstance(method, str) else method)
    except ValueError:
        raise SailsValidationError(
            f"Unknown request method {method!r}\n{_usage(method)}"
        ) from None

    return PendingRequest(
        method=verb,
        url=normalize_url(url),
        data=data or {},
        headers=headers or {},
        callback=callback,
    )
