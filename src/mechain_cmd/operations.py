"""Submit-and-confirm helpers composed from the client, signer and executor."""

from __future__ import annotations

import logging
from typing import Protocol

from mechain_cmd.bulk import BulkOperationRunner, ItemAction, ItemProgress
from mechain_cmd.cancellation import CancellationToken
from mechain_cmd.keystore import LocalAccount
from mechain_cmd.messages import build_delete_object_msg
from mechain_cmd.paginator import Paginator
from mechain_cmd.signing import sign_message
from mechain_cmd.txn import TransactionExecutor
from mechain_cmd.types import (
    BulkOperationReport,
    ListingFilter,
    Page,
    PageCursor,
    TransactionHandle,
    TransactionOutcome,
)

logger = logging.getLogger(__name__)


class Gateway(Protocol):
    def broadcast(self, envelope: dict) -> TransactionHandle: ...

    def list_objects(
        self, bucket_name: str, listing_filter: ListingFilter, cursor: PageCursor
    ) -> Page: ...


def submit_and_confirm(
    *,
    client: Gateway,
    executor: TransactionExecutor,
    account: LocalAccount,
    msg: dict,
    chain_id: str,
    timeout: float,
    cancel: CancellationToken | None = None,
) -> tuple[TransactionHandle, TransactionOutcome]:
    """Sign and broadcast ``msg``, then block until it is included or times out."""
    if cancel is not None:
        cancel.raise_if_cancelled(f"cancelled before submitting {msg.get('type')}")
    envelope = sign_message(msg, account, chain_id=chain_id)
    handle = client.broadcast(envelope)
    logger.info("%s submitted as txn %s", msg.get("type"), handle.tx_hash)
    outcome = executor.confirm(handle, timeout, cancel=cancel)
    return handle, outcome


def recursive_delete_prefix(object_name: str | None) -> str:
    """Listing prefix for a recursive delete; empty means the whole bucket."""
    if not object_name:
        return ""
    if object_name.endswith("/"):
        return object_name
    return f"{object_name}/"


def delete_object_action(
    *,
    client: Gateway,
    executor: TransactionExecutor,
    account: LocalAccount,
    bucket_name: str,
    chain_id: str,
    timeout: float,
    cancel: CancellationToken | None = None,
) -> ItemAction:
    def _delete(item) -> TransactionOutcome:  # noqa: ANN001
        _, outcome = submit_and_confirm(
            client=client,
            executor=executor,
            account=account,
            msg=build_delete_object_msg(bucket_name=bucket_name, object_name=item.object_name),
            chain_id=chain_id,
            timeout=timeout,
            cancel=cancel,
        )
        return outcome

    return _delete


def delete_objects_by_prefix(
    *,
    client: Gateway,
    executor: TransactionExecutor,
    account: LocalAccount,
    bucket_name: str,
    prefix: str,
    chain_id: str,
    timeout: float,
    page_size: int,
    cancel: CancellationToken | None = None,
    on_item: ItemProgress | None = None,
) -> BulkOperationReport:
    """Delete every live object under ``prefix``, one transaction per object."""
    token = cancel or CancellationToken()
    paginator = Paginator(
        lambda listing_filter, cursor: client.list_objects(bucket_name, listing_filter, cursor)
    )
    runner = BulkOperationRunner(
        paginator,
        cancel=token,
        item_name=lambda item: item.object_name,
        on_item=on_item,
    )
    action = delete_object_action(
        client=client,
        executor=executor,
        account=account,
        bucket_name=bucket_name,
        chain_id=chain_id,
        timeout=timeout,
        cancel=token,
    )
    listing_filter = ListingFilter(prefix=prefix, page_size=page_size, include_removed=False)
    return runner.run_over_pages(listing_filter, action)
