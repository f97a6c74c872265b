from __future__ import annotations

import io
import json
from pathlib import Path

import pytest

from mechain_cmd.cli.main import main
from mechain_cmd.cli.sessions import SessionError, save_pending_record, validate_tx_hash
from mechain_cmd.types import TransactionOutcome


def _run(config_path, *argv: str) -> tuple[int, str, str]:
    out = io.StringIO()
    err = io.StringIO()
    rc = main(["--config", str(config_path), *argv], stdout=out, stderr=err)
    return rc, out.getvalue(), err.getvalue()


def test_confirmation_timeout_leaves_pending_record(fake_chain, cli_config) -> None:
    fake_chain.pending.add("A1")

    rc, out, err = _run(
        cli_config, "bucket", "rm", "--timeout-seconds", "0", "mechain://photos"
    )

    assert rc == 3
    assert out == ""
    assert "timeout error: the txn A1 has been submitted, please check it later" in err
    assert "mechain-cmd tx wait A1" in err
    record_path = Path(cli_config).parent / "sessions" / "pending" / "A1.json"
    record = json.loads(record_path.read_text(encoding="utf-8"))
    assert record["label"] == "DeleteBucket"
    assert record["msg"]["bucket_name"] == "photos"


def test_tx_wait_clears_pending_record_once_included(fake_chain, cli_config) -> None:
    fake_chain.pending.add("A1")
    _run(cli_config, "bucket", "rm", "--timeout-seconds", "0", "mechain://photos")
    record_path = Path(cli_config).parent / "sessions" / "pending" / "A1.json"
    assert record_path.exists()

    fake_chain.pending.clear()
    fake_chain.included["A1"] = TransactionOutcome(tx_hash="A1", code=0, height=99)

    rc, out, err = _run(cli_config, "tx", "wait", "--json", "A1")

    assert rc == 0, err
    payload = json.loads(out)
    assert payload["height"] == 99
    assert payload["label"] == "DeleteBucket"
    assert payload["succeeded"] is True
    assert not record_path.exists()


def test_tx_wait_still_pending(fake_chain, cli_config) -> None:
    rc, out, err = _run(cli_config, "tx", "wait", "--timeout-seconds", "0", "FFFF")

    assert rc == 3
    assert out == ""
    assert "please check it later" in err


def test_tx_wait_reports_failed_code(fake_chain, cli_config) -> None:
    fake_chain.included["ABC"] = TransactionOutcome(tx_hash="ABC", code=5)

    rc, _, err = _run(cli_config, "tx", "wait", "ABC")

    assert rc == 4
    assert "has failed with response code: 5" in err


def test_tx_wait_rejects_non_hex_hash(fake_chain, cli_config) -> None:
    outside = Path(cli_config).parent / "x.json"
    outside.write_text("{}", encoding="utf-8")

    rc, out, err = _run(cli_config, "tx", "wait", "../../x")

    assert rc == 1
    assert out == ""
    assert "invalid transaction hash" in err
    assert outside.exists()


def test_pending_records_require_hex_hash(tmp_path) -> None:
    with pytest.raises(SessionError):
        save_pending_record(sessions_dir=str(tmp_path), tx_hash="../escape", payload={})

    assert list(tmp_path.iterdir()) == []
    assert validate_tx_hash("0xdeadBEEF") == "0xdeadBEEF"
