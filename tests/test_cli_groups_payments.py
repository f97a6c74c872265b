from __future__ import annotations

import io
import json

from mechain_cmd.cli.main import main
from mechain_cmd.schemas import BucketInfo


def _run(config_path, *argv: str) -> tuple[int, str, str]:
    out = io.StringIO()
    err = io.StringIO()
    rc = main(["--config", str(config_path), *argv], stdout=out, stderr=err)
    return rc, out.getvalue(), err.getvalue()


def test_group_create_and_rm(fake_chain, cli_config) -> None:
    rc, out, err = _run(cli_config, "group", "create", "--extra", "team", "editors")
    assert rc == 0, err
    assert "make_group: editors" in out

    rc, out, err = _run(cli_config, "group", "rm", "editors")
    assert rc == 0, err
    assert "delete_group: editors" in out
    assert [b["msg"]["type"] for b in fake_chain.broadcasts] == ["MsgCreateGroup", "MsgDeleteGroup"]


def test_group_name_with_separator_rejected(fake_chain, cli_config) -> None:
    rc, _, err = _run(cli_config, "group", "create", "a/b")
    assert rc == 1
    assert "must not contain" in err
    assert fake_chain.broadcasts == []


def test_group_ls_uses_account_owner(fake_chain, cli_config) -> None:
    rc, out, _ = _run(cli_config, "group", "ls", "--json")
    assert rc == 0
    assert json.loads(out) == [{"group_name": "editors", "id": "7", "owner": "0xowner"}]


def test_payment_account_create_and_ls(fake_chain, cli_config) -> None:
    rc, out, err = _run(cli_config, "payment-account", "create")
    assert rc == 0, err
    assert "create_payment_account: 0xowner" in out

    rc, out, _ = _run(cli_config, "payment-account", "ls", "--owner", "0xother")
    assert rc == 0
    assert out == "0xpay  refundable=True\n"


def test_fee_grant(fake_chain, cli_config) -> None:
    rc, out, err = _run(
        cli_config, "fee", "grant", "--grantee", "0xabc", "--allowance", "1000", "--expire", "1700000000"
    )
    assert rc == 0, err
    msg = fake_chain.broadcasts[0]["msg"]
    assert msg == {
        "type": "MsgGrantAllowance",
        "grantee": "0xabc",
        "spend_limit": "1000",
        "expiration": 1700000000,
    }
    assert "grant: 1000" in out


def test_bucket_migrate(fake_chain, cli_config) -> None:
    fake_chain.buckets["photos"] = BucketInfo(bucket_name="photos")
    rc, out, err = _run(cli_config, "bucket", "migrate", "--dst-primary-sp-id", "3", "mechain://photos")
    assert rc == 0, err
    assert "migrate_bucket: photos" in out
    assert fake_chain.broadcasts[0]["msg"]["dst_primary_sp_id"] == 3
