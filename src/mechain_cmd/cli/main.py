"""Command-line interface for mechain-cmd."""

from __future__ import annotations

import argparse
import json
import logging
import re
import signal
import sys
import time
from datetime import datetime, timezone
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as pkg_version
from typing import Sequence

from mechain_cmd.cancellation import CancellationToken
from mechain_cmd.cli.config import CLIConfig, ConfigError, load_cli_config
from mechain_cmd.cli.sessions import (
    SessionError,
    clear_pending_record,
    load_pending_record,
    save_pending_record,
    validate_tx_hash,
)
from mechain_cmd.client import ChainClient
from mechain_cmd.errors import (
    ConfirmationTimeoutError,
    EnumerationError,
    ErrorKind,
    GatewayRequestError,
    MechainCmdError,
    OperationCancelledError,
    TransportFailureError,
)
from mechain_cmd.keystore import KeystoreError, LocalAccount, create_account, load_account
from mechain_cmd.locator import locate, parse_bucket, parse_bucket_and_object, parse_group_name
from mechain_cmd.logging_utils import configure_logging
from mechain_cmd.messages import (
    bucket_grn,
    build_buy_quota_msg,
    build_create_bucket_msg,
    build_create_group_msg,
    build_create_payment_account_msg,
    build_delete_bucket_msg,
    build_delete_group_msg,
    build_delete_object_msg,
    build_grant_allowance_msg,
    build_migrate_bucket_msg,
    build_mirror_bucket_msg,
    build_set_tag_msg,
    build_update_bucket_msg,
    parse_tags,
)
from mechain_cmd.operations import (
    delete_objects_by_prefix,
    recursive_delete_prefix,
    submit_and_confirm,
)
from mechain_cmd.paginator import Paginator
from mechain_cmd.txn import TransactionExecutor
from mechain_cmd.types import (
    BulkOperationReport,
    ItemFailure,
    ListingFilter,
    TransactionHandle,
    TransactionOutcome,
)

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_VALIDATION_ERROR = 1
EXIT_NETWORK_ERROR = 2
EXIT_TIMEOUT = 3
EXIT_TX_FAILED = 4
EXIT_PARTIAL_FAILURE = 5
EXIT_CANCELLED = 130

ISO8601_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_EXIT_BY_KIND = {
    ErrorKind.MALFORMED_RESOURCE: (EXIT_VALIDATION_ERROR, "resource error"),
    ErrorKind.TRANSPORT_FAILURE: (EXIT_NETWORK_ERROR, "gateway error"),
    ErrorKind.CONFIRMATION_TIMEOUT: (EXIT_TIMEOUT, "timeout error"),
    ErrorKind.DOMAIN_REJECTION: (EXIT_TX_FAILED, "transaction error"),
    ErrorKind.BROADCAST_REJECTED: (EXIT_TX_FAILED, "transaction error"),
    ErrorKind.CANCELLED: (EXIT_CANCELLED, "cancelled"),
}

_SENSITIVE_FIELDS = (
    "private_key_hex",
    "private_key",
    "signature_hex",
    "password",
    "secret",
    "token",
    "authorization",
    "api_key",
)


def _cli_version() -> str:
    try:
        return pkg_version("mechain-cmd")
    except PackageNotFoundError:
        return "0.0.0+local"


def _add_tx_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--timeout-seconds",
        type=int,
        default=None,
        help="Max seconds to wait for the transaction to be included (default from config)",
    )
    parser.add_argument("--key-file", default=None, help="Key file override (default from config)")
    parser.add_argument("--json", action="store_true")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mechain-cmd",
        description="cmd tool for supporting making request to mechain",
    )
    parser.add_argument("--version", action="version", version=f"mechain-cmd {_cli_version()}")
    parser.add_argument(
        "--config",
        "-c",
        default=None,
        help="Path to CLI config TOML (default: ~/.mechain_cmd/config.toml)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Log debug output to stderr")

    sub = parser.add_subparsers(dest="command", required=True)

    version = sub.add_parser("version", help="print version info")
    version.add_argument("--json", action="store_true")

    account = sub.add_parser("account", help="local signing account operations")
    account_sub = account.add_subparsers(dest="account_command", required=True)
    account_create = account_sub.add_parser("create", help="create a new local signing key")
    account_create.add_argument("--key-file", default=None)
    account_create.add_argument("--address", default=None, help="Account address to record")
    account_create.add_argument("--json", action="store_true")
    account_show = account_sub.add_parser("show", help="show the local signing account")
    account_show.add_argument("--key-file", default=None)
    account_show.add_argument("--json", action="store_true")

    bucket = sub.add_parser(
        "bucket",
        help="support the bucket operation functions, including create/update/delete/list",
    )
    bucket_sub = bucket.add_subparsers(dest="bucket_command", required=True)

    bucket_create = bucket_sub.add_parser("create", help="create a new bucket")
    bucket_create.add_argument("url", metavar="BUCKET-URL")
    bucket_create.add_argument("--primary-sp", default=None, help="primary SP operator address")
    bucket_create.add_argument("--payment-address", default=None)
    bucket_create.add_argument("--charged-quota", type=int, default=0)
    bucket_create.add_argument(
        "--visibility",
        choices=("public-read", "private", "inherit"),
        default="private",
    )
    bucket_create.add_argument(
        "--tags",
        default=None,
        help='JSON array of tags, e.g. [{"key":"key1","value":"value1"}]',
    )
    _add_tx_flags(bucket_create)

    bucket_update = bucket_sub.add_parser("update", help="update bucket meta on chain")
    bucket_update.add_argument("url", metavar="BUCKET-URL")
    bucket_update.add_argument("--payment-address", default=None)
    bucket_update.add_argument("--charged-quota", type=int, default=None)
    bucket_update.add_argument(
        "--visibility",
        choices=("public-read", "private", "inherit"),
        default=None,
    )
    _add_tx_flags(bucket_update)

    bucket_rm = bucket_sub.add_parser("rm", help="delete an existed bucket, the bucket must be empty")
    bucket_rm.add_argument("url", metavar="BUCKET-URL")
    _add_tx_flags(bucket_rm)

    bucket_ls = bucket_sub.add_parser("ls", help="list buckets")
    bucket_ls.add_argument("--owner", default=None, help="Owner to list (default: local account)")
    bucket_ls.add_argument("--key-file", default=None)
    bucket_ls.add_argument("--json", action="store_true")

    bucket_migrate = bucket_sub.add_parser("migrate", help="migrate bucket to dst primary SP")
    bucket_migrate.add_argument("url", metavar="BUCKET-URL")
    bucket_migrate.add_argument("--dst-primary-sp-id", type=int, default=1)
    _add_tx_flags(bucket_migrate)

    bucket_mirror = bucket_sub.add_parser("mirror", help="mirror bucket to BSC")
    bucket_mirror.add_argument("--dest-chain-id", type=int, required=True, help="target chain id")
    bucket_mirror.add_argument("--id", default=None, help="bucket id")
    bucket_mirror.add_argument("--bucket-name", default=None, help="bucket name")
    _add_tx_flags(bucket_mirror)

    bucket_set_tag = bucket_sub.add_parser("set-tag", help="set tags for the given bucket")
    bucket_set_tag.add_argument("url", metavar="BUCKET-URL")
    bucket_set_tag.add_argument("--tags", required=True)
    _add_tx_flags(bucket_set_tag)

    bucket_buy_quota = bucket_sub.add_parser("buy-quota", help="update bucket read quota")
    bucket_buy_quota.add_argument("url", metavar="BUCKET-URL")
    bucket_buy_quota.add_argument("--charged-quota", type=int, required=True)
    _add_tx_flags(bucket_buy_quota)

    bucket_get_quota = bucket_sub.add_parser("get-quota", help="get quota info of the bucket")
    bucket_get_quota.add_argument("url", metavar="BUCKET-URL")
    bucket_get_quota.add_argument("--json", action="store_true")

    obj = sub.add_parser("object", help="support the object operation functions")
    object_sub = obj.add_subparsers(dest="object_command", required=True)
    object_rm = object_sub.add_parser("rm", help="delete existed object")
    object_rm.add_argument("url", metavar="OBJECT-URL")
    object_rm.add_argument(
        "--recursive",
        "-r",
        action="store_true",
        help="delete all objects under the specified prefix, or the whole bucket",
    )
    _add_tx_flags(object_rm)
    object_ls = object_sub.add_parser("ls", help="list objects of a bucket")
    object_ls.add_argument("url", metavar="BUCKET-URL")
    object_ls.add_argument("--include-removed", action="store_true")
    object_ls.add_argument("--json", action="store_true")

    group = sub.add_parser("group", help="support the group operation functions")
    group_sub = group.add_subparsers(dest="group_command", required=True)
    group_create = group_sub.add_parser("create", help="create a new group")
    group_create.add_argument("name", metavar="GROUP-NAME")
    group_create.add_argument("--extra", default="")
    group_create.add_argument("--tags", default=None)
    _add_tx_flags(group_create)
    group_rm = group_sub.add_parser("rm", help="delete an existed group")
    group_rm.add_argument("name", metavar="GROUP-NAME")
    _add_tx_flags(group_rm)
    group_ls = group_sub.add_parser("ls", help="list groups owned by the account")
    group_ls.add_argument("--owner", default=None)
    group_ls.add_argument("--key-file", default=None)
    group_ls.add_argument("--json", action="store_true")

    payment = sub.add_parser("payment-account", help="support the payment account operation functions")
    payment_sub = payment.add_subparsers(dest="payment_command", required=True)
    payment_create = payment_sub.add_parser("create", help="create a payment account")
    _add_tx_flags(payment_create)
    payment_ls = payment_sub.add_parser("ls", help="list payment accounts of the owner")
    payment_ls.add_argument("--owner", default=None)
    payment_ls.add_argument("--key-file", default=None)
    payment_ls.add_argument("--json", action="store_true")

    fee = sub.add_parser("fee", help="support fee grant operation functions")
    fee_sub = fee.add_subparsers(dest="fee_command", required=True)
    fee_grant = fee_sub.add_parser("grant", help="grant allowance")
    fee_grant.add_argument("--grantee", required=True, help="the address of the grantee")
    fee_grant.add_argument("--allowance", required=True, help="the allowance in wei")
    fee_grant.add_argument("--expire", type=int, default=0, help="expire unix time stamp")
    _add_tx_flags(fee_grant)

    tx = sub.add_parser("tx", help="transaction status operations")
    tx_sub = tx.add_subparsers(dest="tx_command", required=True)
    tx_wait = tx_sub.add_parser("wait", help="wait for a submitted transaction to be included")
    tx_wait.add_argument("tx_hash", metavar="TX-HASH")
    tx_wait.add_argument("--timeout-seconds", type=int, default=None)
    tx_wait.add_argument("--json", action="store_true")

    return parser


def _sanitize_error_text(value: str) -> str:
    redacted = value
    for field in _SENSITIVE_FIELDS:
        redacted = re.sub(
            rf"(?i)({field}\s*[=:]\s*)([^,\s]+)",
            r"\1[REDACTED]",
            redacted,
        )
    redacted = re.sub(r"(?i)([?&](?:secret|token|api_key)=)([^&\s]+)", r"\1[REDACTED]", redacted)
    return redacted


def _print_error(stderr, prefix: str, message: str, *, code: int) -> int:
    print(f"{prefix}: {_sanitize_error_text(message)}", file=stderr)
    return code


def _print_cmd_error(stderr, exc: MechainCmdError) -> int:
    code, prefix = _EXIT_BY_KIND[exc.kind]
    return _print_error(stderr, prefix, str(exc), code=code)


def _emit(stdout, payload: dict, *, as_json: bool) -> None:
    if as_json:
        print(json.dumps(payload, sort_keys=True), file=stdout)
        return
    for key, value in payload.items():
        print(f"{key}: {value}", file=stdout)


def _format_unix(ts: int) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime(ISO8601_DATE_FORMAT)


def _build_client(config: CLIConfig) -> ChainClient:
    return ChainClient(base_url=config.gateway_base)


def _build_executor(client: ChainClient, config: CLIConfig) -> TransactionExecutor:
    return TransactionExecutor(client.query_transaction, interval=config.poll_seconds)


def _timeout_seconds(args, config: CLIConfig) -> int:
    requested = getattr(args, "timeout_seconds", None)
    return max(0, int(requested)) if requested is not None else config.tx_timeout_seconds


def _load_signer(args, config: CLIConfig) -> LocalAccount:
    account, _ = load_account(getattr(args, "key_file", None) or config.key_file)
    return account


def _require_bucket(client: ChainClient, bucket_name: str, stderr) -> int:
    try:
        client.head_bucket(bucket_name)
    except GatewayRequestError as exc:
        if exc.status_code == 404:
            return _print_error(
                stderr,
                "bucket error",
                f"bucket {bucket_name} not exist or already deleted",
                code=EXIT_VALIDATION_ERROR,
            )
        return _print_cmd_error(stderr, exc)
    except TransportFailureError as exc:
        return _print_cmd_error(stderr, exc)
    return EXIT_SUCCESS


def _submit(
    *,
    args,
    config: CLIConfig,
    client: ChainClient,
    account: LocalAccount,
    msg: dict,
    label: str,
    stderr,
    cancel: CancellationToken,
) -> tuple[int, TransactionOutcome | None]:
    timeout = _timeout_seconds(args, config)
    try:
        handle, outcome = submit_and_confirm(
            client=client,
            executor=_build_executor(client, config),
            account=account,
            msg=msg,
            chain_id=config.chain_id,
            timeout=timeout,
            cancel=cancel,
        )
    except ConfirmationTimeoutError as exc:
        if exc.tx_hash:
            try:
                save_pending_record(
                    sessions_dir=config.sessions_dir,
                    tx_hash=exc.tx_hash,
                    payload={
                        "tx_hash": exc.tx_hash,
                        "label": label,
                        "msg": msg,
                        "recorded_at": time.time(),
                    },
                )
            except SessionError as session_exc:
                logger.warning("%s", session_exc)
            print(f"check it later with: mechain-cmd tx wait {exc.tx_hash}", file=stderr)
        return _print_cmd_error(stderr, exc), None
    except MechainCmdError as exc:
        return _print_cmd_error(stderr, exc), None

    if not outcome.succeeded:
        detail = f" ({outcome.raw_log})" if outcome.raw_log else ""
        return (
            _print_error(
                stderr,
                "transaction error",
                f"the {label} txn: {handle.tx_hash} has failed with response code: "
                f"{outcome.code}{detail}",
                code=EXIT_TX_FAILED,
            ),
            outcome,
        )
    return EXIT_SUCCESS, outcome


def _run_version(*, as_json: bool, stdout) -> int:
    payload = {"cli": "mechain-cmd", "version": _cli_version()}
    if as_json:
        print(json.dumps(payload, sort_keys=True), file=stdout)
    else:
        print(f"Mechain Cmd Version: {payload['version']}", file=stdout)
    return EXIT_SUCCESS


def _run_account_create(*, args, config: CLIConfig, stdout, stderr) -> int:
    try:
        account, key_path = create_account(args.key_file or config.key_file, address=args.address)
    except KeystoreError as exc:
        return _print_error(stderr, "keystore error", str(exc), code=EXIT_VALIDATION_ERROR)
    payload = {
        "key_file": str(key_path),
        "public_key_hex": account.public_key_hex,
        "address": account.address,
    }
    _emit(stdout, payload, as_json=args.json)
    return EXIT_SUCCESS


def _run_account_show(*, args, config: CLIConfig, stdout, stderr) -> int:
    try:
        account, key_path = load_account(args.key_file or config.key_file)
    except KeystoreError as exc:
        return _print_error(stderr, "keystore error", str(exc), code=EXIT_VALIDATION_ERROR)
    payload = {
        "key_file": str(key_path),
        "public_key_hex": account.public_key_hex,
        "address": account.address,
    }
    _emit(stdout, payload, as_json=args.json)
    return EXIT_SUCCESS


def _run_bucket_create(*, args, config: CLIConfig, stdout, stderr, cancel) -> int:
    try:
        bucket_name = parse_bucket(args.url)
        tags = parse_tags(args.tags) if args.tags else None
        account = _load_signer(args, config)
    except KeystoreError as exc:
        return _print_error(stderr, "keystore error", str(exc), code=EXIT_VALIDATION_ERROR)
    except ValueError as exc:
        return _print_error(stderr, "validation error", str(exc), code=EXIT_VALIDATION_ERROR)

    client = _build_client(config)
    primary_sp = args.primary_sp
    if not primary_sp:
        # Without --primary-sp the first listed provider is used.
        try:
            providers = client.list_storage_providers()
        except TransportFailureError as exc:
            return _print_cmd_error(stderr, exc)
        if not providers:
            return _print_error(
                stderr, "gateway error", "fail to get primary sp address", code=EXIT_NETWORK_ERROR
            )
        primary_sp = providers[0].operator_address

    try:
        msg = build_create_bucket_msg(
            bucket_name=bucket_name,
            primary_sp_address=primary_sp,
            visibility=args.visibility,
            payment_address=args.payment_address,
            charged_read_quota=max(0, args.charged_quota),
            tags=tags,
        )
    except ValueError as exc:
        return _print_error(stderr, "validation error", str(exc), code=EXIT_VALIDATION_ERROR)

    rc, outcome = _submit(
        args=args,
        config=config,
        client=client,
        account=account,
        msg=msg,
        label="CreateBucket",
        stderr=stderr,
        cancel=cancel,
    )
    if rc != EXIT_SUCCESS:
        return rc
    _emit(stdout, {"make_bucket": bucket_name, "transaction hash": outcome.tx_hash}, as_json=args.json)
    return EXIT_SUCCESS


def _print_bucket_meta(*, client: ChainClient, bucket_name: str, payload: dict, as_json: bool, stdout) -> None:
    try:
        info = client.head_bucket(bucket_name)
    except TransportFailureError as exc:
        logger.debug("head bucket %s after update failed: %s", bucket_name, exc)
    else:
        payload.update(
            {
                "visibility": info.visibility,
                "read quota": info.charged_read_quota,
                "payment address": info.payment_address,
            }
        )
    _emit(stdout, payload, as_json=as_json)


def _run_bucket_update(*, args, config: CLIConfig, stdout, stderr, cancel) -> int:
    try:
        bucket_name = parse_bucket(args.url)
        msg = build_update_bucket_msg(
            bucket_name=bucket_name,
            visibility=args.visibility,
            payment_address=args.payment_address,
            charged_read_quota=args.charged_quota if args.charged_quota else None,
        )
        account = _load_signer(args, config)
    except KeystoreError as exc:
        return _print_error(stderr, "keystore error", str(exc), code=EXIT_VALIDATION_ERROR)
    except ValueError as exc:
        return _print_error(stderr, "validation error", str(exc), code=EXIT_VALIDATION_ERROR)

    client = _build_client(config)
    rc = _require_bucket(client, bucket_name, stderr)
    if rc != EXIT_SUCCESS:
        return rc
    rc, outcome = _submit(
        args=args,
        config=config,
        client=client,
        account=account,
        msg=msg,
        label="UpdateBucket",
        stderr=stderr,
        cancel=cancel,
    )
    if rc != EXIT_SUCCESS:
        return rc
    _print_bucket_meta(
        client=client,
        bucket_name=bucket_name,
        payload={"update_bucket": bucket_name, "transaction hash": outcome.tx_hash},
        as_json=args.json,
        stdout=stdout,
    )
    return EXIT_SUCCESS


def _run_bucket_rm(*, args, config: CLIConfig, stdout, stderr, cancel) -> int:
    try:
        bucket_name = parse_bucket(args.url)
        account = _load_signer(args, config)
    except KeystoreError as exc:
        return _print_error(stderr, "keystore error", str(exc), code=EXIT_VALIDATION_ERROR)
    except ValueError as exc:
        return _print_error(stderr, "validation error", str(exc), code=EXIT_VALIDATION_ERROR)

    client = _build_client(config)
    rc, outcome = _submit(
        args=args,
        config=config,
        client=client,
        account=account,
        msg=build_delete_bucket_msg(bucket_name=bucket_name),
        label="DeleteBucket",
        stderr=stderr,
        cancel=cancel,
    )
    if rc != EXIT_SUCCESS:
        return rc
    _emit(stdout, {"delete_bucket": bucket_name, "transaction hash": outcome.tx_hash}, as_json=args.json)
    return EXIT_SUCCESS


def _resolve_owner(args, config: CLIConfig) -> str:
    if args.owner:
        return args.owner
    account, _ = load_account(args.key_file or config.key_file)
    return account.owner


def _run_bucket_ls(*, args, config: CLIConfig, stdout, stderr) -> int:
    try:
        owner = _resolve_owner(args, config)
    except KeystoreError as exc:
        return _print_error(stderr, "keystore error", str(exc), code=EXIT_VALIDATION_ERROR)

    client = _build_client(config)
    try:
        buckets = [b for b in client.list_buckets(owner) if not b.removed]
    except TransportFailureError as exc:
        return _print_cmd_error(stderr, exc)

    if args.json:
        print(json.dumps([b.model_dump() for b in buckets], sort_keys=True), file=stdout)
        return EXIT_SUCCESS
    for info in buckets:
        print(f"{_format_unix(info.create_at)}  {info.bucket_name}", file=stdout)
    return EXIT_SUCCESS


def _run_bucket_migrate(*, args, config: CLIConfig, stdout, stderr, cancel) -> int:
    try:
        bucket_name = parse_bucket(args.url)
        msg = build_migrate_bucket_msg(
            bucket_name=bucket_name, dst_primary_sp_id=args.dst_primary_sp_id
        )
        account = _load_signer(args, config)
    except KeystoreError as exc:
        return _print_error(stderr, "keystore error", str(exc), code=EXIT_VALIDATION_ERROR)
    except ValueError as exc:
        return _print_error(stderr, "validation error", str(exc), code=EXIT_VALIDATION_ERROR)

    client = _build_client(config)
    rc = _require_bucket(client, bucket_name, stderr)
    if rc != EXIT_SUCCESS:
        return rc
    rc, outcome = _submit(
        args=args,
        config=config,
        client=client,
        account=account,
        msg=msg,
        label="MigrateBucket",
        stderr=stderr,
        cancel=cancel,
    )
    if rc != EXIT_SUCCESS:
        return rc
    _print_bucket_meta(
        client=client,
        bucket_name=bucket_name,
        payload={"migrate_bucket": bucket_name, "transaction hash": outcome.tx_hash},
        as_json=args.json,
        stdout=stdout,
    )
    return EXIT_SUCCESS


def _run_bucket_mirror(*, args, config: CLIConfig, stdout, stderr, cancel) -> int:
    try:
        bucket_name = parse_bucket(args.bucket_name) if args.bucket_name else None
        msg = build_mirror_bucket_msg(
            dest_chain_id=args.dest_chain_id, bucket_id=args.id, bucket_name=bucket_name
        )
        account = _load_signer(args, config)
    except KeystoreError as exc:
        return _print_error(stderr, "keystore error", str(exc), code=EXIT_VALIDATION_ERROR)
    except ValueError as exc:
        return _print_error(stderr, "validation error", str(exc), code=EXIT_VALIDATION_ERROR)

    client = _build_client(config)
    rc, outcome = _submit(
        args=args,
        config=config,
        client=client,
        account=account,
        msg=msg,
        label="MirrorBucket",
        stderr=stderr,
        cancel=cancel,
    )
    if rc != EXIT_SUCCESS:
        return rc
    _emit(
        stdout,
        {
            "mirror_bucket": bucket_name or msg["id"],
            "dest_chain_id": msg["dest_chain_id"],
            "transaction hash": outcome.tx_hash,
        },
        as_json=args.json,
    )
    return EXIT_SUCCESS


def _run_bucket_set_tag(*, args, config: CLIConfig, stdout, stderr, cancel) -> int:
    try:
        bucket_name = parse_bucket(args.url)
        msg = build_set_tag_msg(resource=bucket_grn(bucket_name), tags=parse_tags(args.tags))
        account = _load_signer(args, config)
    except KeystoreError as exc:
        return _print_error(stderr, "keystore error", str(exc), code=EXIT_VALIDATION_ERROR)
    except ValueError as exc:
        return _print_error(stderr, "validation error", str(exc), code=EXIT_VALIDATION_ERROR)

    client = _build_client(config)
    rc, outcome = _submit(
        args=args,
        config=config,
        client=client,
        account=account,
        msg=msg,
        label="SetTags",
        stderr=stderr,
        cancel=cancel,
    )
    if rc != EXIT_SUCCESS:
        return rc
    _emit(stdout, {"set_tag": bucket_name, "transaction hash": outcome.tx_hash}, as_json=args.json)
    return EXIT_SUCCESS


def _run_bucket_buy_quota(*, args, config: CLIConfig, stdout, stderr, cancel) -> int:
    try:
        bucket_name = parse_bucket(args.url)
        msg = build_buy_quota_msg(bucket_name=bucket_name, charged_read_quota=args.charged_quota)
        account = _load_signer(args, config)
    except KeystoreError as exc:
        return _print_error(stderr, "keystore error", str(exc), code=EXIT_VALIDATION_ERROR)
    except ValueError as exc:
        return _print_error(stderr, "validation error", str(exc), code=EXIT_VALIDATION_ERROR)

    client = _build_client(config)
    rc = _require_bucket(client, bucket_name, stderr)
    if rc != EXIT_SUCCESS:
        return rc
    rc, outcome = _submit(
        args=args,
        config=config,
        client=client,
        account=account,
        msg=msg,
        label="BuyQuota",
        stderr=stderr,
        cancel=cancel,
    )
    if rc != EXIT_SUCCESS:
        return rc
    _emit(
        stdout,
        {"buy quota for bucket": bucket_name, "transaction hash": outcome.tx_hash},
        as_json=args.json,
    )
    return EXIT_SUCCESS


def _run_bucket_get_quota(*, args, config: CLIConfig, stdout, stderr) -> int:
    try:
        bucket_name = parse_bucket(args.url)
    except ValueError as exc:
        return _print_error(stderr, "validation error", str(exc), code=EXIT_VALIDATION_ERROR)

    client = _build_client(config)
    rc = _require_bucket(client, bucket_name, stderr)
    if rc != EXIT_SUCCESS:
        return rc
    try:
        quota = client.get_bucket_read_quota(bucket_name)
    except TransportFailureError as exc:
        return _print_cmd_error(stderr, exc)

    if args.json:
        print(json.dumps(quota.model_dump(), sort_keys=True), file=stdout)
        return EXIT_SUCCESS
    rows = (
        ("charged quota:", quota.read_quota_size),
        ("remained free quota:", quota.sp_free_read_quota_size),
        ("consumed charged quota:", quota.read_consumed_size),
        ("consumed free quota:", quota.free_consumed_size),
    )
    width = len("consumed charged quota:")
    print(f"{'quota name':<{width}} quota value", file=stdout)
    for name, value in rows:
        print(f"{name:<{width}} {value}", file=stdout)
    return EXIT_SUCCESS


def _print_bulk_report(stdout, report: BulkOperationReport, *, as_json: bool, halted: str | None) -> None:
    if as_json:
        payload = report.to_dict()
        payload["halted"] = halted
        print(json.dumps(payload, sort_keys=True), file=stdout)
        return
    print(
        f"attempted: {report.attempted} succeeded: {report.succeeded} failed: {len(report.failed)}",
        file=stdout,
    )


def _run_object_rm(*, args, config: CLIConfig, stdout, stderr, cancel) -> int:
    try:
        if args.recursive:
            name = locate(args.url)
            bucket_name, prefix = name.container, recursive_delete_prefix(name.member)
            object_name = None
        else:
            bucket_name, object_name = parse_bucket_and_object(args.url)
        account = _load_signer(args, config)
    except KeystoreError as exc:
        return _print_error(stderr, "keystore error", str(exc), code=EXIT_VALIDATION_ERROR)
    except ValueError as exc:
        return _print_error(stderr, "validation error", str(exc), code=EXIT_VALIDATION_ERROR)

    client = _build_client(config)
    if object_name is not None:
        rc, outcome = _submit(
            args=args,
            config=config,
            client=client,
            account=account,
            msg=build_delete_object_msg(bucket_name=bucket_name, object_name=object_name),
            label="DeleteObject",
            stderr=stderr,
            cancel=cancel,
        )
        if rc != EXIT_SUCCESS:
            return rc
        _emit(stdout, {"delete": object_name, "transaction hash": outcome.tx_hash}, as_json=args.json)
        return EXIT_SUCCESS

    def _progress(item_name: str, failure: ItemFailure | None) -> None:
        if args.json:
            return
        if failure is None:
            print(f"delete: {item_name}", file=stdout)
        else:
            print(
                f"failed to delete object {item_name}: {failure.cause.value}: "
                f"{_sanitize_error_text(failure.message)}",
                file=stderr,
            )

    try:
        report = delete_objects_by_prefix(
            client=client,
            executor=_build_executor(client, config),
            account=account,
            bucket_name=bucket_name,
            prefix=prefix,
            chain_id=config.chain_id,
            timeout=_timeout_seconds(args, config),
            page_size=config.page_size,
            cancel=cancel,
            on_item=_progress,
        )
    except EnumerationError as exc:
        if exc.report is not None:
            _print_bulk_report(stdout, exc.report, as_json=args.json, halted=exc.kind.value)
        return _print_cmd_error(stderr, exc)
    except OperationCancelledError as exc:
        if exc.report is not None:
            _print_bulk_report(stdout, exc.report, as_json=args.json, halted=exc.kind.value)
        return _print_cmd_error(stderr, exc)

    _print_bulk_report(stdout, report, as_json=args.json, halted=None)
    if report.failed:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS


def _run_object_ls(*, args, config: CLIConfig, stdout, stderr, cancel) -> int:
    try:
        name = locate(args.url)
    except ValueError as exc:
        return _print_error(stderr, "validation error", str(exc), code=EXIT_VALIDATION_ERROR)

    client = _build_client(config)
    paginator = Paginator(
        lambda listing_filter, cursor: client.list_objects(name.container, listing_filter, cursor)
    )
    listing_filter = ListingFilter(
        prefix=name.member or "",
        page_size=config.page_size,
        include_removed=args.include_removed,
    )
    collected = []
    try:
        for info in paginator.iter_items(listing_filter, cancel=cancel):
            if args.json:
                collected.append(info.model_dump())
                continue
            print(
                f"{_format_unix(info.create_at)}  {info.payload_size:>12}  {info.object_name}",
                file=stdout,
            )
    except MechainCmdError as exc:
        return _print_cmd_error(stderr, exc)
    if args.json:
        print(json.dumps(collected, sort_keys=True), file=stdout)
    return EXIT_SUCCESS


def _run_group_create(*, args, config: CLIConfig, stdout, stderr, cancel) -> int:
    try:
        group_name = parse_group_name(args.name)
        tags = parse_tags(args.tags) if args.tags else None
        msg = build_create_group_msg(group_name=group_name, extra=args.extra, tags=tags)
        account = _load_signer(args, config)
    except KeystoreError as exc:
        return _print_error(stderr, "keystore error", str(exc), code=EXIT_VALIDATION_ERROR)
    except ValueError as exc:
        return _print_error(stderr, "validation error", str(exc), code=EXIT_VALIDATION_ERROR)

    client = _build_client(config)
    rc, outcome = _submit(
        args=args,
        config=config,
        client=client,
        account=account,
        msg=msg,
        label="CreateGroup",
        stderr=stderr,
        cancel=cancel,
    )
    if rc != EXIT_SUCCESS:
        return rc
    _emit(stdout, {"make_group": group_name, "transaction hash": outcome.tx_hash}, as_json=args.json)
    return EXIT_SUCCESS


def _run_group_rm(*, args, config: CLIConfig, stdout, stderr, cancel) -> int:
    try:
        group_name = parse_group_name(args.name)
        account = _load_signer(args, config)
    except KeystoreError as exc:
        return _print_error(stderr, "keystore error", str(exc), code=EXIT_VALIDATION_ERROR)
    except ValueError as exc:
        return _print_error(stderr, "validation error", str(exc), code=EXIT_VALIDATION_ERROR)

    client = _build_client(config)
    rc, outcome = _submit(
        args=args,
        config=config,
        client=client,
        account=account,
        msg=build_delete_group_msg(group_name=group_name),
        label="DeleteGroup",
        stderr=stderr,
        cancel=cancel,
    )
    if rc != EXIT_SUCCESS:
        return rc
    _emit(stdout, {"delete_group": group_name, "transaction hash": outcome.tx_hash}, as_json=args.json)
    return EXIT_SUCCESS


def _run_group_ls(*, args, config: CLIConfig, stdout, stderr) -> int:
    try:
        owner = _resolve_owner(args, config)
    except KeystoreError as exc:
        return _print_error(stderr, "keystore error", str(exc), code=EXIT_VALIDATION_ERROR)
    client = _build_client(config)
    try:
        groups = client.list_groups(owner)
    except TransportFailureError as exc:
        return _print_cmd_error(stderr, exc)
    if args.json:
        print(json.dumps([g.model_dump() for g in groups], sort_keys=True), file=stdout)
        return EXIT_SUCCESS
    for info in groups:
        print(f"{info.id or '-'}  {info.group_name}", file=stdout)
    return EXIT_SUCCESS


def _run_payment_account_create(*, args, config: CLIConfig, stdout, stderr, cancel) -> int:
    try:
        account = _load_signer(args, config)
    except KeystoreError as exc:
        return _print_error(stderr, "keystore error", str(exc), code=EXIT_VALIDATION_ERROR)

    client = _build_client(config)
    rc, outcome = _submit(
        args=args,
        config=config,
        client=client,
        account=account,
        msg=build_create_payment_account_msg(),
        label="CreatePaymentAccount",
        stderr=stderr,
        cancel=cancel,
    )
    if rc != EXIT_SUCCESS:
        return rc
    _emit(
        stdout,
        {"create_payment_account": account.owner, "transaction hash": outcome.tx_hash},
        as_json=args.json,
    )
    return EXIT_SUCCESS


def _run_payment_account_ls(*, args, config: CLIConfig, stdout, stderr) -> int:
    try:
        owner = _resolve_owner(args, config)
    except KeystoreError as exc:
        return _print_error(stderr, "keystore error", str(exc), code=EXIT_VALIDATION_ERROR)
    client = _build_client(config)
    try:
        accounts = client.list_payment_accounts(owner)
    except TransportFailureError as exc:
        return _print_cmd_error(stderr, exc)
    if args.json:
        print(json.dumps([a.model_dump() for a in accounts], sort_keys=True), file=stdout)
        return EXIT_SUCCESS
    for payment_account in accounts:
        print(f"{payment_account.address}  refundable={payment_account.refundable}", file=stdout)
    return EXIT_SUCCESS


def _run_fee_grant(*, args, config: CLIConfig, stdout, stderr, cancel) -> int:
    try:
        msg = build_grant_allowance_msg(
            grantee=args.grantee,
            allowance=args.allowance,
            expiration=args.expire if args.expire > 0 else None,
        )
        account = _load_signer(args, config)
    except KeystoreError as exc:
        return _print_error(stderr, "keystore error", str(exc), code=EXIT_VALIDATION_ERROR)
    except ValueError as exc:
        return _print_error(stderr, "validation error", str(exc), code=EXIT_VALIDATION_ERROR)

    client = _build_client(config)
    rc, outcome = _submit(
        args=args,
        config=config,
        client=client,
        account=account,
        msg=msg,
        label="GrantBasicAllowance",
        stderr=stderr,
        cancel=cancel,
    )
    if rc != EXIT_SUCCESS:
        return rc
    _emit(
        stdout,
        {
            "grant": msg["spend_limit"],
            "grantee": msg["grantee"],
            "transaction hash": outcome.tx_hash,
        },
        as_json=args.json,
    )
    return EXIT_SUCCESS


def _run_tx_wait(*, args, config: CLIConfig, stdout, stderr, cancel) -> int:
    try:
        validate_tx_hash(args.tx_hash)
    except SessionError as exc:
        return _print_error(stderr, "validation error", str(exc), code=EXIT_VALIDATION_ERROR)

    try:
        record = load_pending_record(sessions_dir=config.sessions_dir, tx_hash=args.tx_hash)
    except SessionError as exc:
        logger.warning("%s", exc)
        record = None

    client = _build_client(config)
    executor = _build_executor(client, config)
    submitted_at = record.get("recorded_at", time.time()) if record else time.time()
    handle = TransactionHandle(tx_hash=args.tx_hash, submitted_at=float(submitted_at))
    try:
        outcome = executor.confirm(handle, _timeout_seconds(args, config), cancel=cancel)
    except MechainCmdError as exc:
        return _print_cmd_error(stderr, exc)

    clear_pending_record(sessions_dir=config.sessions_dir, tx_hash=args.tx_hash)
    payload = {
        "tx_hash": outcome.tx_hash,
        "label": record.get("label") if record else None,
        "height": outcome.height,
        "code": outcome.code,
        "succeeded": outcome.succeeded,
    }
    _emit(stdout, payload, as_json=args.json)
    if not outcome.succeeded:
        return _print_error(
            stderr,
            "transaction error",
            f"the txn: {outcome.tx_hash} has failed with response code: {outcome.code}",
            code=EXIT_TX_FAILED,
        )
    return EXIT_SUCCESS


def _dispatch(args, *, config: CLIConfig, stdout, stderr, cancel: CancellationToken) -> int:
    if args.command == "version":
        return _run_version(as_json=args.json, stdout=stdout)

    if args.command == "account":
        if args.account_command == "create":
            return _run_account_create(args=args, config=config, stdout=stdout, stderr=stderr)
        if args.account_command == "show":
            return _run_account_show(args=args, config=config, stdout=stdout, stderr=stderr)

    if args.command == "bucket":
        mutating = {
            "create": _run_bucket_create,
            "update": _run_bucket_update,
            "rm": _run_bucket_rm,
            "migrate": _run_bucket_migrate,
            "mirror": _run_bucket_mirror,
            "set-tag": _run_bucket_set_tag,
            "buy-quota": _run_bucket_buy_quota,
        }
        if args.bucket_command in mutating:
            return mutating[args.bucket_command](
                args=args, config=config, stdout=stdout, stderr=stderr, cancel=cancel
            )
        if args.bucket_command == "ls":
            return _run_bucket_ls(args=args, config=config, stdout=stdout, stderr=stderr)
        if args.bucket_command == "get-quota":
            return _run_bucket_get_quota(args=args, config=config, stdout=stdout, stderr=stderr)

    if args.command == "object":
        if args.object_command == "rm":
            return _run_object_rm(args=args, config=config, stdout=stdout, stderr=stderr, cancel=cancel)
        if args.object_command == "ls":
            return _run_object_ls(args=args, config=config, stdout=stdout, stderr=stderr, cancel=cancel)

    if args.command == "group":
        if args.group_command == "create":
            return _run_group_create(args=args, config=config, stdout=stdout, stderr=stderr, cancel=cancel)
        if args.group_command == "rm":
            return _run_group_rm(args=args, config=config, stdout=stdout, stderr=stderr, cancel=cancel)
        if args.group_command == "ls":
            return _run_group_ls(args=args, config=config, stdout=stdout, stderr=stderr)

    if args.command == "payment-account":
        if args.payment_command == "create":
            return _run_payment_account_create(
                args=args, config=config, stdout=stdout, stderr=stderr, cancel=cancel
            )
        if args.payment_command == "ls":
            return _run_payment_account_ls(args=args, config=config, stdout=stdout, stderr=stderr)

    if args.command == "fee" and args.fee_command == "grant":
        return _run_fee_grant(args=args, config=config, stdout=stdout, stderr=stderr, cancel=cancel)

    if args.command == "tx" and args.tx_command == "wait":
        return _run_tx_wait(args=args, config=config, stdout=stdout, stderr=stderr, cancel=cancel)

    print("unknown command", file=stderr)
    return EXIT_VALIDATION_ERROR


def _install_interrupt_handler(cancel: CancellationToken):  # noqa: ANN202
    def _on_interrupt(signum, frame) -> None:  # noqa: ANN001, ARG001
        cancel.cancel()

    try:
        return signal.signal(signal.SIGINT, _on_interrupt)
    except ValueError:
        # signal handlers can only be installed from the main thread
        return None


def main(argv: Sequence[str] | None = None, *, stdout=sys.stdout, stderr=sys.stderr) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_cli_config(args.config)
    except ConfigError as exc:
        return _print_error(stderr, "config error", str(exc), code=EXIT_VALIDATION_ERROR)

    configure_logging("debug" if args.verbose else config.log_level, stream=stderr)

    cancel = CancellationToken()
    previous_handler = _install_interrupt_handler(cancel)
    try:
        return _dispatch(args, config=config, stdout=stdout, stderr=stderr, cancel=cancel)
    finally:
        if previous_handler is not None:
            signal.signal(signal.SIGINT, previous_handler)


if __name__ == "__main__":
    raise SystemExit(main())
