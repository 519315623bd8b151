import json

import pytest

from stampcard.__main__ import main, parse_args
from stampcard.core.settings import get_settings


@pytest.fixture(autouse=True)
def memory_settings(monkeypatch):
    monkeypatch.setenv("STAMPCARD_LOCAL_STORE_URL", "memory://")
    monkeypatch.setenv("STAMPCARD_OPPORTUNISTIC_SYNC_ENABLED", "false")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_parse_args_requires_command() -> None:
    with pytest.raises(SystemExit):
        parse_args([])

    args = parse_args(["redeem", "r1", "--campaign"])
    assert args.command == "redeem"
    assert args.entity_id == "r1"
    assert args.campaign is True


def test_decode_command_prints_payload(capsys) -> None:
    exit_code = main(["decode", "COMPANY:0000042:Corner Cafe"])

    output = json.loads(capsys.readouterr().out)
    assert exit_code == 0
    assert output == {"type": "company", "data": {"number": "0000042", "name": "Corner Cafe"}}


def test_decode_command_flags_unknown_codes(capsys) -> None:
    assert main(["decode", "not a code"]) == 1
    assert json.loads(capsys.readouterr().out) == {"type": "unknown", "data": None}


def test_scan_command_records_against_fresh_store(capsys) -> None:
    exit_code = main(["scan", "CAMPAIGN:c1:Summer Stamps"])

    output = json.loads(capsys.readouterr().out)
    assert exit_code == 0
    assert output["status"] == "recorded"
    assert output["kind"] == "campaign"
    assert output["newlyEarned"] is False


def test_redeem_command_fails_when_nothing_earned() -> None:
    assert main(["redeem", "r1"]) == 1
