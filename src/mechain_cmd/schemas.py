"""Gateway response schemas."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

VISIBILITY_TYPES = {
    "public-read": "VISIBILITY_TYPE_PUBLIC_READ",
    "private": "VISIBILITY_TYPE_PRIVATE",
    "inherit": "VISIBILITY_TYPE_INHERIT",
}


class GatewayModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class BroadcastResult(GatewayModel):
    tx_hash: str = ""
    code: int = 0
    raw_log: Optional[str] = None


class TxResult(GatewayModel):
    tx_hash: str
    code: int
    height: Optional[int] = None
    raw_log: Optional[str] = None


class ObjectInfo(GatewayModel):
    bucket_name: str = ""
    object_name: str
    payload_size: int = Field(0, ge=0)
    create_at: int = 0
    removed: bool = False

    @property
    def name(self) -> str:
        return self.object_name


class ListObjectsResult(GatewayModel):
    objects: List[ObjectInfo] = Field(default_factory=list)
    is_truncated: bool = False
    next_continuation_token: str = ""


class BucketInfo(GatewayModel):
    bucket_name: str
    bucket_id: Optional[str] = None
    owner: Optional[str] = None
    visibility: str = "VISIBILITY_TYPE_PRIVATE"
    payment_address: Optional[str] = None
    charged_read_quota: int = 0
    primary_sp_id: Optional[int] = None
    create_at: int = 0
    removed: bool = False

    @property
    def name(self) -> str:
        return self.bucket_name


class BucketReadQuota(GatewayModel):
    read_quota_size: int = 0
    sp_free_read_quota_size: int = 0
    read_consumed_size: int = 0
    free_consumed_size: int = 0


class StorageProvider(GatewayModel):
    id: int
    operator_address: str
    endpoint: str = ""
    status: str = ""


class GroupInfo(GatewayModel):
    group_name: str
    id: Optional[str] = None
    owner: Optional[str] = None

    @property
    def name(self) -> str:
        return self.group_name


class PaymentAccount(GatewayModel):
    address: str
    owner: Optional[str] = None
    refundable: bool = True
