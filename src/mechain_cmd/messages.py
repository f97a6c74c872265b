"""Builders for the transaction messages the CLI submits."""

from __future__ import annotations

import json

from mechain_cmd.schemas import VISIBILITY_TYPES

MSG_CREATE_BUCKET = "MsgCreateBucket"
MSG_UPDATE_BUCKET_INFO = "MsgUpdateBucketInfo"
MSG_DELETE_BUCKET = "MsgDeleteBucket"
MSG_MIGRATE_BUCKET = "MsgMigrateBucket"
MSG_MIRROR_BUCKET = "MsgMirrorBucket"
MSG_SET_TAG = "MsgSetTag"
MSG_DELETE_OBJECT = "MsgDeleteObject"
MSG_CREATE_GROUP = "MsgCreateGroup"
MSG_DELETE_GROUP = "MsgDeleteGroup"
MSG_CREATE_PAYMENT_ACCOUNT = "MsgCreatePaymentAccount"
MSG_GRANT_ALLOWANCE = "MsgGrantAllowance"


def normalize_visibility(value: str) -> str:
    lowered = value.strip().lower()
    if lowered not in VISIBILITY_TYPES:
        allowed = ", ".join(sorted(VISIBILITY_TYPES))
        raise ValueError(f"visibility must be one of: {allowed}")
    return VISIBILITY_TYPES[lowered]


def parse_tags(raw: str) -> list[dict[str, str]]:
    """Parse ``[{"key": "k", "value": "v"}, ...]``."""
    if not raw or not raw.strip():
        raise ValueError("invalid tags parameter")
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"tags must be a JSON array: {exc}") from exc
    if not isinstance(parsed, list):
        raise ValueError("tags must be a JSON array of key/value objects")
    tags: list[dict[str, str]] = []
    for entry in parsed:
        if not isinstance(entry, dict) or not isinstance(entry.get("key"), str):
            raise ValueError("each tag must be an object with a string key")
        value = entry.get("value", "")
        if not isinstance(value, str):
            raise ValueError(f"tag value for {entry['key']!r} must be a string")
        tags.append({"key": entry["key"], "value": value})
    return tags


def bucket_grn(bucket_name: str) -> str:
    return f"grn:b::{bucket_name}"


def build_create_bucket_msg(
    *,
    bucket_name: str,
    primary_sp_address: str,
    visibility: str = "private",
    payment_address: str | None = None,
    charged_read_quota: int = 0,
    tags: list[dict[str, str]] | None = None,
) -> dict:
    msg: dict = {
        "type": MSG_CREATE_BUCKET,
        "bucket_name": bucket_name,
        "primary_sp_address": primary_sp_address,
        "visibility": normalize_visibility(visibility),
        "charged_read_quota": int(charged_read_quota),
    }
    if payment_address:
        msg["payment_address"] = payment_address
    if tags:
        msg["tags"] = tags
    return msg


def build_update_bucket_msg(
    *,
    bucket_name: str,
    visibility: str | None = None,
    payment_address: str | None = None,
    charged_read_quota: int | None = None,
) -> dict:
    msg: dict = {"type": MSG_UPDATE_BUCKET_INFO, "bucket_name": bucket_name}
    if visibility:
        msg["visibility"] = normalize_visibility(visibility)
    if payment_address:
        msg["payment_address"] = payment_address
    if charged_read_quota is not None:
        msg["charged_read_quota"] = int(charged_read_quota)
    if len(msg) == 2:
        raise ValueError("nothing to update: set visibility, payment address or charged quota")
    return msg


def build_buy_quota_msg(*, bucket_name: str, charged_read_quota: int) -> dict:
    if charged_read_quota <= 0:
        raise ValueError("target quota not set")
    return build_update_bucket_msg(bucket_name=bucket_name, charged_read_quota=charged_read_quota)


def build_delete_bucket_msg(*, bucket_name: str) -> dict:
    return {"type": MSG_DELETE_BUCKET, "bucket_name": bucket_name}


def build_migrate_bucket_msg(*, bucket_name: str, dst_primary_sp_id: int) -> dict:
    if dst_primary_sp_id < 1:
        raise ValueError("dst primary sp id must be >= 1")
    return {
        "type": MSG_MIGRATE_BUCKET,
        "bucket_name": bucket_name,
        "dst_primary_sp_id": int(dst_primary_sp_id),
    }


def build_mirror_bucket_msg(
    *,
    dest_chain_id: int,
    bucket_id: str | None = None,
    bucket_name: str | None = None,
) -> dict:
    """Mirror a bucket to another chain, addressed by id or by name."""
    if dest_chain_id < 1:
        raise ValueError("dest chain id must be >= 1")
    if not bucket_id and not bucket_name:
        raise ValueError("either bucket id or bucket name is required")
    if bucket_id and not bucket_id.isdigit():
        raise ValueError(f"bucket id must be a non-negative integer: {bucket_id!r}")
    return {
        "type": MSG_MIRROR_BUCKET,
        "id": bucket_id or "0",
        "bucket_name": bucket_name or "",
        "dest_chain_id": int(dest_chain_id),
    }


def build_set_tag_msg(*, resource: str, tags: list[dict[str, str]]) -> dict:
    return {"type": MSG_SET_TAG, "resource": resource, "tags": tags}


def build_delete_object_msg(*, bucket_name: str, object_name: str) -> dict:
    return {"type": MSG_DELETE_OBJECT, "bucket_name": bucket_name, "object_name": object_name}


def build_create_group_msg(
    *,
    group_name: str,
    extra: str = "",
    tags: list[dict[str, str]] | None = None,
) -> dict:
    msg: dict = {"type": MSG_CREATE_GROUP, "group_name": group_name, "extra": extra}
    if tags:
        msg["tags"] = tags
    return msg


def build_delete_group_msg(*, group_name: str) -> dict:
    return {"type": MSG_DELETE_GROUP, "group_name": group_name}


def build_create_payment_account_msg() -> dict:
    return {"type": MSG_CREATE_PAYMENT_ACCOUNT}


def build_grant_allowance_msg(
    *,
    grantee: str,
    allowance: str,
    expiration: int | None = None,
) -> dict:
    if not grantee.strip():
        raise ValueError("grantee must not be empty")
    amount = allowance.strip()
    if not amount.isdigit():
        raise ValueError("convert string to int failed: allowance must be a non-negative integer")
    msg: dict = {"type": MSG_GRANT_ALLOWANCE, "grantee": grantee.strip(), "spend_limit": amount}
    if expiration:
        msg["expiration"] = int(expiration)
    return msg
