"""Wait for a broadcast transaction to reach a terminal on-chain state."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from mechain_cmd.cancellation import CancellationToken
from mechain_cmd.errors import (
    ConfirmationTimeoutError,
    OperationCancelledError,
    TransportFailureError,
)
from mechain_cmd.types import TransactionHandle, TransactionOutcome

logger = logging.getLogger(__name__)

QueryTransaction = Callable[[str, float], Optional[TransactionOutcome]]

# Floor for the per-query time budget; HTTP clients reject a zero timeout.
MIN_QUERY_TIMEOUT = 0.5


class TransactionExecutor:
    """Turn asynchronous ledger inclusion into a bounded blocking call.

    ``query(tx_hash, time_budget)`` returns the terminal outcome of a
    transaction hash, or ``None`` while it is not yet included. ``time_budget``
    is what is left of the deadline, so one slow query cannot outlast it. The
    executor never broadcasts.
    """

    def __init__(
        self,
        query: QueryTransaction,
        *,
        interval: float = 1.0,
        max_query_failures: int = 3,
    ) -> None:
        if max_query_failures < 1:
            raise ValueError("max_query_failures must be >= 1")
        self._query = query
        self.interval = max(0.0, float(interval))
        self.max_query_failures = max_query_failures

    def confirm(
        self,
        handle: TransactionHandle,
        timeout: float,
        *,
        cancel: CancellationToken | None = None,
    ) -> TransactionOutcome:
        token = cancel or CancellationToken()
        deadline = time.monotonic() + max(0.0, float(timeout))
        failures = 0
        last_error: TransportFailureError | None = None

        while True:
            if token.cancelled:
                raise OperationCancelledError(
                    f"cancelled while waiting for txn {handle.tx_hash}; "
                    "it has been submitted, please check it later"
                )
            try:
                budget = max(MIN_QUERY_TIMEOUT, deadline - time.monotonic())
                outcome = self._query(handle.tx_hash, budget)
            except TransportFailureError as exc:
                failures += 1
                last_error = exc
                logger.warning(
                    "query for txn %s failed (%d/%d): %s",
                    handle.tx_hash,
                    failures,
                    self.max_query_failures,
                    exc,
                )
                if failures >= self.max_query_failures:
                    raise TransportFailureError(
                        f"failed to query txn {handle.tx_hash} after {failures} attempts: {exc}"
                    ) from exc
            else:
                failures = 0
                last_error = None
                if outcome is not None:
                    logger.debug(
                        "txn %s included at height %s with code %d",
                        outcome.tx_hash,
                        outcome.height,
                        outcome.code,
                    )
                    return outcome

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                if last_error is not None:
                    # last query failed, so nothing was observed at the deadline
                    raise TransportFailureError(
                        f"failed to query txn {handle.tx_hash} before the deadline: {last_error}"
                    ) from last_error
                raise ConfirmationTimeoutError(
                    f"the txn {handle.tx_hash} has been submitted, please check it later: "
                    f"no terminal state within {timeout}s",
                    tx_hash=handle.tx_hash,
                )
            if token.wait(min(self.interval, remaining)):
                raise OperationCancelledError(
                    f"cancelled while waiting for txn {handle.tx_hash}; "
                    "it has been submitted, please check it later"
                )
