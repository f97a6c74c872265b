"""Error taxonomy for mechain-cmd."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    MALFORMED_RESOURCE = "MalformedResource"
    TRANSPORT_FAILURE = "TransportFailure"
    CONFIRMATION_TIMEOUT = "ConfirmationTimeout"
    DOMAIN_REJECTION = "DomainRejection"
    CANCELLED = "Cancelled"
    BROADCAST_REJECTED = "BroadcastRejected"


class MechainCmdError(RuntimeError):
    """Base error."""

    kind: ErrorKind = ErrorKind.TRANSPORT_FAILURE


class MalformedResourceError(MechainCmdError, ValueError):
    """Resource URL could not be resolved into names."""

    kind = ErrorKind.MALFORMED_RESOURCE


class TransportFailureError(MechainCmdError):
    """Gateway could not be reached or answered with an error."""

    kind = ErrorKind.TRANSPORT_FAILURE


class GatewayRequestError(TransportFailureError):
    """Gateway returned a structured HTTP error response."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        detail: object | None = None,
        body: object | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail
        self.body = body


class EnumerationError(TransportFailureError):
    """A page fetch failed in the middle of a bulk run."""

    def __init__(self, message: str, *, report=None, cursor=None) -> None:  # noqa: ANN001
        super().__init__(message)
        self.report = report
        self.cursor = cursor


class BroadcastRejectedError(MechainCmdError):
    """Transaction was refused at broadcast time and never entered the mempool."""

    kind = ErrorKind.BROADCAST_REJECTED

    def __init__(self, message: str, *, code: int | None = None, raw_log: str | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.raw_log = raw_log


class ConfirmationTimeoutError(MechainCmdError):
    """Transaction was submitted but no terminal state was observed in time."""

    kind = ErrorKind.CONFIRMATION_TIMEOUT

    def __init__(self, message: str, *, tx_hash: str | None = None) -> None:
        super().__init__(message)
        self.tx_hash = tx_hash


class OperationCancelledError(MechainCmdError):
    """The invocation scope was cancelled."""

    kind = ErrorKind.CANCELLED

    def __init__(self, message: str = "operation cancelled", *, report=None) -> None:  # noqa: ANN001
        super().__init__(message)
        self.report = report
