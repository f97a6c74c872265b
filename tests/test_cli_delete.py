from __future__ import annotations

import io
import json
import signal

from mechain_cmd.cli.main import main
from mechain_cmd.errors import TransportFailureError


def _run(config_path, *argv: str) -> tuple[int, str, str]:
    out = io.StringIO()
    err = io.StringIO()
    rc = main(["--config", str(config_path), *argv], stdout=out, stderr=err)
    return rc, out.getvalue(), err.getvalue()


def _deleted(fake_chain) -> list[str]:
    return [e["msg"]["object_name"] for e in fake_chain.broadcasts]


def test_recursive_delete_reports_per_object_failure(fake_chain, cli_config) -> None:
    fake_chain.objects = ["photos/a.png", "photos/b.png", "photos/c.png", "docs/readme.md"]
    fake_chain.codes["photos/b.png"] = 5

    rc, out, err = _run(cli_config, "object", "rm", "--recursive", "mechain://album/photos")

    assert rc == 5
    assert _deleted(fake_chain) == ["photos/a.png", "photos/b.png", "photos/c.png"]
    assert "delete: photos/a.png" in out
    assert "delete: photos/c.png" in out
    assert "attempted: 3 succeeded: 2 failed: 1" in out
    assert "failed to delete object photos/b.png: DomainRejection" in err
    assert fake_chain.list_calls == 2


def test_recursive_delete_continues_past_confirmation_timeout(fake_chain, cli_config) -> None:
    fake_chain.objects = ["photos/a.png", "photos/b.png", "photos/c.png"]
    fake_chain.pending.add("A2")

    rc, out, err = _run(
        cli_config,
        "object",
        "rm",
        "-r",
        "--timeout-seconds",
        "0",
        "--json",
        "mechain://album/photos/",
    )

    assert rc == 5
    report = json.loads(out)
    assert report["attempted"] == 3
    assert report["succeeded"] == 2
    assert report["halted"] is None
    assert [(f["item_name"], f["cause"]) for f in report["failed"]] == [
        ("photos/b.png", "ConfirmationTimeout")
    ]


def test_recursive_delete_of_bare_bucket_deletes_everything(fake_chain, cli_config) -> None:
    fake_chain.objects = ["a", "dir/b", "dir/c"]

    rc, out, err = _run(cli_config, "object", "rm", "--recursive", "mechain://album")

    assert rc == 0
    assert err == ""
    assert _deleted(fake_chain) == ["a", "dir/b", "dir/c"]
    assert "attempted: 3 succeeded: 3 failed: 0" in out


def test_recursive_delete_of_empty_prefix_succeeds(fake_chain, cli_config) -> None:
    rc, out, _ = _run(cli_config, "object", "rm", "--recursive", "--json", "mechain://album/none")

    assert rc == 0
    assert json.loads(out) == {"attempted": 0, "succeeded": 0, "failed": [], "halted": None}


def test_listing_failure_halts_with_partial_report(fake_chain, cli_config) -> None:
    fake_chain.objects = ["p/1", "p/2", "p/3"]
    fake_chain.list_errors[2] = TransportFailureError("gateway down")

    rc, out, err = _run(cli_config, "object", "rm", "--recursive", "mechain://album/p")

    assert rc == 2
    assert _deleted(fake_chain) == ["p/1", "p/2"]
    assert "attempted: 2 succeeded: 2 failed: 0" in out
    assert "gateway error: failed to list items" in err


def test_interrupt_cancels_remaining_items(fake_chain, cli_config, monkeypatch) -> None:
    fake_chain.objects = ["p/1", "p/2", "p/3"]
    client_class = fake_chain.client_class()

    class _InterruptingClient(client_class):
        def broadcast(self, envelope: dict):  # noqa: ANN201
            handle = super().broadcast(envelope)
            signal.raise_signal(signal.SIGINT)
            return handle

    monkeypatch.setattr("mechain_cmd.cli.main.ChainClient", _InterruptingClient)
    rc, out, err = _run(cli_config, "object", "rm", "--recursive", "--json", "mechain://album/p")

    assert rc == 130
    assert _deleted(fake_chain) == ["p/1"]
    report = json.loads(out)
    assert report["halted"] == "Cancelled"
    assert report["attempted"] == 2
    assert report["succeeded"] == 0
    assert all(f["cause"] == "Cancelled" for f in report["failed"])
    assert "cancelled" in err


def test_single_object_delete(fake_chain, cli_config) -> None:
    rc, out, err = _run(cli_config, "object", "rm", "mechain://album/dir/a.png")

    assert rc == 0
    assert err == ""
    assert "delete: dir/a.png" in out
    assert "transaction hash: A1" in out
    assert fake_chain.broadcasts[0]["msg"] == {
        "type": "MsgDeleteObject",
        "bucket_name": "album",
        "object_name": "dir/a.png",
    }


def test_single_object_delete_requires_object_name(fake_chain, cli_config) -> None:
    rc, _, err = _run(cli_config, "object", "rm", "mechain://album")

    assert rc == 1
    assert "can not parse bucket name and object name" in err
    assert fake_chain.broadcasts == []


def test_single_object_delete_failed_code(fake_chain, cli_config) -> None:
    fake_chain.codes["a.png"] = 5

    rc, _, err = _run(cli_config, "object", "rm", "mechain://album/a.png")

    assert rc == 4
    assert "the DeleteObject txn: A1 has failed with response code: 5" in err


def test_object_ls_walks_every_page(fake_chain, cli_config) -> None:
    fake_chain.objects = ["p/1", "p/2", "p/3", "q/1"]

    rc, out, _ = _run(cli_config, "object", "ls", "--json", "mechain://album/p/")

    assert rc == 0
    assert [o["object_name"] for o in json.loads(out)] == ["p/1", "p/2", "p/3"]
    assert fake_chain.list_calls == 2
