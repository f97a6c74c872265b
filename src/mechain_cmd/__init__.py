"""mechain-cmd public surface."""

from mechain_cmd.bulk import BulkOperationRunner
from mechain_cmd.cancellation import CancellationToken
from mechain_cmd.client import ChainClient
from mechain_cmd.errors import (
    BroadcastRejectedError,
    ConfirmationTimeoutError,
    EnumerationError,
    ErrorKind,
    GatewayRequestError,
    MalformedResourceError,
    MechainCmdError,
    OperationCancelledError,
    TransportFailureError,
)
from mechain_cmd.locator import (
    locate,
    parse_bucket,
    parse_bucket_and_object,
    parse_bucket_and_prefix,
)
from mechain_cmd.operations import delete_objects_by_prefix, submit_and_confirm
from mechain_cmd.paginator import Paginator
from mechain_cmd.txn import TransactionExecutor
from mechain_cmd.types import (
    BulkOperationReport,
    ItemFailure,
    ListingFilter,
    Page,
    PageCursor,
    ResourceName,
    TransactionHandle,
    TransactionOutcome,
)

__all__ = [
    "MechainCmdError",
    "ErrorKind",
    "MalformedResourceError",
    "TransportFailureError",
    "GatewayRequestError",
    "EnumerationError",
    "BroadcastRejectedError",
    "ConfirmationTimeoutError",
    "OperationCancelledError",
    "ChainClient",
    "CancellationToken",
    "TransactionExecutor",
    "Paginator",
    "BulkOperationRunner",
    "submit_and_confirm",
    "delete_objects_by_prefix",
    "locate",
    "parse_bucket",
    "parse_bucket_and_object",
    "parse_bucket_and_prefix",
    "BulkOperationReport",
    "ItemFailure",
    "ListingFilter",
    "Page",
    "PageCursor",
    "ResourceName",
    "TransactionHandle",
    "TransactionOutcome",
]
