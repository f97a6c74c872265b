"""Apply a transaction-producing action to every item of a paginated listing."""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from mechain_cmd.cancellation import CancellationToken
from mechain_cmd.errors import (
    EnumerationError,
    ErrorKind,
    MechainCmdError,
    OperationCancelledError,
    TransportFailureError,
)
from mechain_cmd.paginator import Paginator
from mechain_cmd.types import BulkOperationReport, ItemFailure, ListingFilter, TransactionOutcome

logger = logging.getLogger(__name__)

ItemAction = Callable[[Any], TransactionOutcome]
ItemProgress = Callable[[str, Optional[ItemFailure]], None]


def _default_item_name(item: Any) -> str:
    name = getattr(item, "name", None)
    return name if isinstance(name, str) else str(item)


class BulkOperationRunner:
    """Sequentially act on every listed item, isolating per-item failures.

    Items are processed one at a time in server order so that transactions from
    the signing account keep their submission order. An action is never
    retried: a timed-out confirmation is reported, not resubmitted.
    """

    def __init__(
        self,
        paginator: Paginator,
        *,
        cancel: CancellationToken | None = None,
        item_name: Callable[[Any], str] | None = None,
        on_item: ItemProgress | None = None,
    ) -> None:
        self.paginator = paginator
        self.cancel = cancel or CancellationToken()
        self._item_name = item_name or _default_item_name
        self._on_item = on_item

    def _notify(self, name: str, failure: ItemFailure | None) -> None:
        if self._on_item is not None:
            self._on_item(name, failure)

    def _act(self, report: BulkOperationReport, item: Any, action: ItemAction) -> None:
        name = self._item_name(item)
        try:
            outcome = action(item)
        except OperationCancelledError as exc:
            self._notify(name, report.record_failure(name, ErrorKind.CANCELLED, str(exc)))
            raise
        except MechainCmdError as exc:
            logger.info("action on %s failed: %s", name, exc)
            self._notify(name, report.record_failure(name, exc.kind, str(exc)))
            return
        except Exception as exc:
            logger.exception("action on %s raised unexpectedly", name)
            message = f"{type(exc).__name__}: {exc}"
            self._notify(
                name, report.record_failure(name, ErrorKind.TRANSPORT_FAILURE, message)
            )
            return

        if outcome.succeeded:
            report.record_success()
            self._notify(name, None)
            return
        message = f"txn {outcome.tx_hash} failed with response code: {outcome.code}"
        if outcome.raw_log:
            message = f"{message} ({outcome.raw_log})"
        logger.info("action on %s rejected on chain: %s", name, message)
        self._notify(name, report.record_failure(name, ErrorKind.DOMAIN_REJECTION, message))

    def _skip(self, report: BulkOperationReport, items: list[Any]) -> None:
        # Observed but never acted on; counted so attempted matches what was listed.
        for item in items:
            name = self._item_name(item)
            self._notify(
                name, report.record_failure(name, ErrorKind.CANCELLED, "not attempted: cancelled")
            )

    def run_over_pages(
        self,
        listing_filter: ListingFilter,
        action: ItemAction,
    ) -> BulkOperationReport:
        report = BulkOperationReport()
        pages = self.paginator.iter_pages(listing_filter, cancel=self.cancel)
        while True:
            try:
                page = next(pages)
            except StopIteration:
                break
            except OperationCancelledError as exc:
                exc.report = report
                raise
            except TransportFailureError as exc:
                raise EnumerationError(
                    f"failed to list items: {exc}",
                    report=report,
                    cursor=self.paginator.last_cursor,
                ) from exc

            items = list(page.items)
            for index, item in enumerate(items):
                if self.cancel.cancelled:
                    self._skip(report, items[index:])
                    raise OperationCancelledError("bulk operation cancelled", report=report)
                try:
                    self._act(report, item, action)
                except OperationCancelledError as exc:
                    self._skip(report, items[index + 1 :])
                    raise OperationCancelledError(str(exc), report=report) from exc

        logger.info(
            "bulk run finished: attempted=%d succeeded=%d failed=%d",
            report.attempted,
            report.succeeded,
            len(report.failed),
        )
        return report
