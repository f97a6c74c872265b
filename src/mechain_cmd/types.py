"""Value types shared by the transaction and bulk-operation engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from mechain_cmd.errors import ErrorKind

DEFAULT_PAGE_SIZE = 1000


@dataclass(frozen=True)
class TransactionHandle:
    tx_hash: str
    submitted_at: float


@dataclass(frozen=True)
class TransactionOutcome:
    tx_hash: str
    code: int
    height: int | None = None
    raw_log: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.code == 0


@dataclass(frozen=True)
class PageCursor:
    """Continuation token issued by a listing endpoint.

    ``PageCursor()`` requests the first page. The token is opaque and is only
    ever compared for equality.
    """

    token: str = ""
    exhausted: bool = False


@dataclass(frozen=True)
class ListingFilter:
    prefix: str = ""
    page_size: int = DEFAULT_PAGE_SIZE
    include_removed: bool = False

    def __post_init__(self) -> None:
        if self.page_size < 1:
            raise ValueError("page_size must be >= 1")


@dataclass(frozen=True)
class Page:
    items: tuple[Any, ...]
    cursor: PageCursor


@dataclass(frozen=True)
class ResourceName:
    container: str
    member: str | None = None


@dataclass(frozen=True)
class ItemFailure:
    item_name: str
    cause: ErrorKind
    message: str = ""


@dataclass
class BulkOperationReport:
    attempted: int = 0
    succeeded: int = 0
    failed: list[ItemFailure] = field(default_factory=list)

    def record_success(self) -> None:
        self.attempted += 1
        self.succeeded += 1

    def record_failure(self, item_name: str, cause: ErrorKind, message: str = "") -> ItemFailure:
        failure = ItemFailure(item_name=item_name, cause=cause, message=message)
        self.attempted += 1
        self.failed.append(failure)
        return failure

    def to_dict(self) -> dict:
        return {
            "attempted": self.attempted,
            "succeeded": self.succeeded,
            "failed": [
                {"item_name": f.item_name, "cause": f.cause.value, "message": f.message}
                for f in self.failed
            ],
        }
