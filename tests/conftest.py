from __future__ import annotations

import pytest

from mechain_cmd.errors import GatewayRequestError
from mechain_cmd.keystore import create_account
from mechain_cmd.schemas import (
    BucketInfo,
    BucketReadQuota,
    GroupInfo,
    ObjectInfo,
    PaymentAccount,
    StorageProvider,
)
from mechain_cmd.types import ListingFilter, Page, PageCursor, TransactionHandle, TransactionOutcome


class FakeChain:
    """In-memory stand-in for the gateway shared by one CLI invocation."""

    def __init__(self) -> None:
        self.objects: list[str] = []
        self.buckets: dict[str, BucketInfo] = {}
        self.broadcasts: list[dict] = []
        self.codes: dict[str, int] = {}
        self.pending: set[str] = set()
        self.included: dict[str, TransactionOutcome] = {}
        self.list_errors: dict[int, Exception] = {}
        self.list_calls = 0

    def client_class(self):  # noqa: ANN201
        chain = self

        class _Client:
            def __init__(self, *, base_url: str) -> None:
                self.base_url = base_url

            def broadcast(self, envelope: dict) -> TransactionHandle:
                chain.broadcasts.append(envelope)
                return TransactionHandle(tx_hash=f"A{len(chain.broadcasts)}", submitted_at=0.0)

            def query_transaction(
                self, tx_hash: str, timeout: float | None = None
            ) -> TransactionOutcome | None:
                if tx_hash in chain.included:
                    return chain.included[tx_hash]
                if tx_hash in chain.pending or not tx_hash[1:].isdigit():
                    return None
                msg = chain.broadcasts[int(tx_hash[1:]) - 1]["msg"]
                key = msg.get("object_name") or msg.get("bucket_name") or msg["type"]
                return TransactionOutcome(tx_hash=tx_hash, code=chain.codes.get(key, 0), height=7)

            def list_objects(
                self, bucket_name: str, listing_filter: ListingFilter, cursor: PageCursor
            ) -> Page:
                chain.list_calls += 1
                if chain.list_calls in chain.list_errors:
                    raise chain.list_errors[chain.list_calls]
                matching = [n for n in chain.objects if n.startswith(listing_filter.prefix)]
                start = int(cursor.token) if cursor.token else 0
                end = start + listing_filter.page_size
                exhausted = end >= len(matching)
                return Page(
                    items=tuple(
                        ObjectInfo(bucket_name=bucket_name, object_name=n, create_at=1700000000)
                        for n in matching[start:end]
                    ),
                    cursor=PageCursor(token="" if exhausted else str(end), exhausted=exhausted),
                )

            def head_bucket(self, bucket_name: str) -> BucketInfo:
                if bucket_name not in chain.buckets:
                    raise GatewayRequestError(
                        "gateway request failed: 404 bucket not found", status_code=404
                    )
                return chain.buckets[bucket_name]

            def list_buckets(self, owner: str, *, show_removed: bool = False) -> list[BucketInfo]:
                return list(chain.buckets.values())

            def get_bucket_read_quota(self, bucket_name: str) -> BucketReadQuota:
                return BucketReadQuota(read_quota_size=100, sp_free_read_quota_size=50)

            def list_storage_providers(self) -> list[StorageProvider]:
                return [StorageProvider(id=1, operator_address="0xsp1")]

            def list_groups(self, owner: str) -> list[GroupInfo]:
                return [GroupInfo(group_name="editors", id="7", owner=owner)]

            def list_payment_accounts(self, owner: str) -> list[PaymentAccount]:
                return [PaymentAccount(address="0xpay", owner=owner)]

        return _Client


@pytest.fixture
def fake_chain(monkeypatch) -> FakeChain:
    chain = FakeChain()
    monkeypatch.setattr("mechain_cmd.cli.main.ChainClient", chain.client_class())
    return chain


@pytest.fixture
def cli_config(tmp_path, monkeypatch):  # noqa: ANN201
    """Config file with a fresh key and a private sessions dir; returns its path."""
    for name in ("MECHAIN_GATEWAY_BASE", "MECHAIN_CHAIN_ID", "MECHAIN_KEY_FILE"):
        monkeypatch.delenv(name, raising=False)
    key_path = tmp_path / "key.json"
    create_account(key_path, address="0xowner")
    config_path = tmp_path / "config.toml"
    config_path.write_text(
        "\n".join(
            [
                f'key_file = "{key_path}"',
                f'sessions_dir = "{tmp_path / "sessions"}"',
                "page_size = 2",
                "tx_timeout_seconds = 5",
                "",
            ]
        ),
        encoding="utf-8",
    )
    return config_path
