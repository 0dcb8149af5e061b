"""
Error taxonomy.

Each error subclasses the builtin that best describes it, so callers that only
care about the broad category (``ValueError``, ``LookupError``...) keep working.
Nothing here is retried internally; every error surfaces to the immediate
caller.
"""

from __future__ import annotations

from typing import Optional


class ItemValidationError(ValueError):
    """A raw item was rejected on a single-item path (missing or blank name).

    Batch extraction never raises this: invalid batch entries are dropped.
    """


class ItemNotFoundError(LookupError):
    """An update/delete/get referenced an ``item_id`` the store does not hold."""

    def __init__(self, item_id: int) -> None:
        super().__init__(f"Item {item_id} not found.")
        self.item_id = item_id


class UpstreamFetchError(RuntimeError):
    """The external item API failed (non-2xx status, transport error, bad body).

    Attributes:
        url: The request URL, when known.
        status_code: HTTP status for non-2xx responses; ``None`` for
            transport-level failures.
    """

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code
