"""Typed client for the mechain gateway endpoints."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from mechain_cmd.errors import BroadcastRejectedError, GatewayRequestError, TransportFailureError
from mechain_cmd.schemas import (
    BroadcastResult,
    BucketInfo,
    BucketReadQuota,
    GroupInfo,
    ListObjectsResult,
    PaymentAccount,
    StorageProvider,
    TxResult,
)
from mechain_cmd.types import ListingFilter, Page, PageCursor, TransactionHandle, TransactionOutcome

logger = logging.getLogger(__name__)


@dataclass
class ChainClient:
    base_url: str
    timeout: float = 10.0
    retries: int = 2

    def __post_init__(self) -> None:
        import requests
        from requests.adapters import HTTPAdapter
        from urllib3.util.retry import Retry

        self._requests = requests
        self._session = requests.Session()
        # POST is excluded: a retried broadcast could submit the same transaction twice.
        retry = Retry(
            total=max(0, int(self.retries)),
            connect=max(0, int(self.retries)),
            read=max(0, int(self.retries)),
            status=max(0, int(self.retries)),
            status_forcelist=(429, 500, 502, 503, 504),
            backoff_factor=0.2,
            allowed_methods=("GET",),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry)
        self._session.mount("http://", adapter)
        self._session.mount("https://", adapter)
        # Confirmation polls retry in the executor and must respect its deadline.
        self._poll_session = requests.Session()
        no_retry = HTTPAdapter(max_retries=Retry(total=0, raise_on_status=False))
        self._poll_session.mount("http://", no_retry)
        self._poll_session.mount("https://", no_retry)

    def _url(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"

    def _request(
        self,
        method: str,
        path: str,
        *,
        json_payload: dict | None = None,
        params: dict | None = None,
        timeout: float | None = None,
        poll: bool = False,
    ) -> Any:
        logger.debug("%s %s params=%s", method, path, params)
        session = self._poll_session if poll else self._session
        try:
            response = session.request(
                method,
                self._url(path),
                json=json_payload,
                params=params,
                timeout=self.timeout if timeout is None else min(self.timeout, timeout),
            )
        except self._requests.RequestException as exc:
            raise TransportFailureError(str(exc)) from exc

        if response.status_code >= 400:
            body: object | None = None
            detail: object | None = None
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict):
                detail = body.get("detail")
            if isinstance(detail, str):
                message = f"gateway request failed: {response.status_code} {detail}"
            else:
                message = f"gateway request failed: {response.status_code} {response.text}"
            raise GatewayRequestError(
                message,
                status_code=response.status_code,
                detail=detail,
                body=body,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise TransportFailureError(f"gateway returned invalid JSON for {path}") from exc

    @staticmethod
    def _parse(model, payload: Any, what: str):  # noqa: ANN001, ANN205
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise TransportFailureError(f"unexpected {what} response: {exc}") from exc

    def broadcast(self, envelope: dict) -> TransactionHandle:
        payload = self._request("POST", "/v1/txs", json_payload=envelope)
        result = self._parse(BroadcastResult, payload, "broadcast")
        if result.code != 0:
            message = f"broadcast of txn {result.tx_hash or '<none>'} rejected with code {result.code}"
            if result.raw_log:
                message = f"{message}: {result.raw_log}"
            raise BroadcastRejectedError(
                message,
                code=result.code,
                raw_log=result.raw_log,
            )
        if not result.tx_hash:
            raise TransportFailureError("gateway accepted the broadcast but returned no tx_hash")
        logger.info("broadcast txn %s", result.tx_hash)
        return TransactionHandle(tx_hash=result.tx_hash, submitted_at=time.time())

    def query_transaction(
        self, tx_hash: str, timeout: float | None = None
    ) -> TransactionOutcome | None:
        """One status lookup, bounded by ``timeout`` and never retried here."""
        try:
            payload = self._request("GET", f"/v1/txs/{tx_hash}", timeout=timeout, poll=True)
        except GatewayRequestError as exc:
            if exc.status_code == 404:
                return None
            raise
        result = self._parse(TxResult, payload, "transaction")
        return TransactionOutcome(
            tx_hash=result.tx_hash,
            code=result.code,
            height=result.height,
            raw_log=result.raw_log,
        )

    def list_objects(
        self,
        bucket_name: str,
        listing_filter: ListingFilter,
        cursor: PageCursor,
    ) -> Page:
        params = {
            "prefix": listing_filter.prefix,
            "max_keys": listing_filter.page_size,
            "show_removed": str(listing_filter.include_removed).lower(),
        }
        if cursor.token:
            params["continuation_token"] = cursor.token
        payload = self._request("GET", f"/v1/buckets/{bucket_name}/objects", params=params)
        result = self._parse(ListObjectsResult, payload, "list objects")
        return Page(
            items=tuple(result.objects),
            cursor=PageCursor(
                token=result.next_continuation_token,
                exhausted=not result.is_truncated,
            ),
        )

    def list_buckets(self, owner: str, *, show_removed: bool = False) -> list[BucketInfo]:
        payload = self._request(
            "GET",
            "/v1/buckets",
            params={"owner": owner, "show_removed": str(show_removed).lower()},
        )
        return [self._parse(BucketInfo, raw, "bucket") for raw in payload.get("buckets", [])]

    def head_bucket(self, bucket_name: str) -> BucketInfo:
        return self._parse(BucketInfo, self._request("GET", f"/v1/buckets/{bucket_name}"), "bucket")

    def get_bucket_read_quota(self, bucket_name: str) -> BucketReadQuota:
        payload = self._request("GET", f"/v1/buckets/{bucket_name}/read-quota")
        return self._parse(BucketReadQuota, payload, "read quota")

    def list_storage_providers(self) -> list[StorageProvider]:
        payload = self._request("GET", "/v1/storage-providers")
        return [
            self._parse(StorageProvider, raw, "storage provider")
            for raw in payload.get("storage_providers", [])
        ]

    def list_groups(self, owner: str) -> list[GroupInfo]:
        payload = self._request("GET", "/v1/groups", params={"owner": owner})
        return [self._parse(GroupInfo, raw, "group") for raw in payload.get("groups", [])]

    def list_payment_accounts(self, owner: str) -> list[PaymentAccount]:
        payload = self._request("GET", "/v1/payment-accounts", params={"owner": owner})
        return [
            self._parse(PaymentAccount, raw, "payment account")
            for raw in payload.get("payment_accounts", [])
        ]


__all__ = ["ChainClient"]
