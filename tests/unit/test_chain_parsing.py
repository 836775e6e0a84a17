"""Tests for JSON-RPC / websocket payload parsing in rwa_chain.infrastructure."""

import base64

from src.rwa_chain.infrastructure.log_subscription import parse_notification
from src.rwa_chain.infrastructure.rpc_client import parse_program_accounts, parse_transaction


class TestParseTransaction:
    def test_json_parsed_keys_and_loaded_addresses(self) -> None:
        result = {
            "slot": 321,
            "blockTime": 1_700_000_000,
            "transaction": {
                "message": {
                    "accountKeys": [
                        {"pubkey": "Payer", "signer": True, "writable": True},
                        {"pubkey": "Asset", "signer": False, "writable": True},
                    ]
                }
            },
            "meta": {
                "logMessages": ["Program log: hi"],
                "loadedAddresses": {"writable": ["W1"], "readonly": ["R1", "R2"]},
            },
        }
        tx = parse_transaction("sig1", result)
        assert tx.signature == "sig1"
        assert tx.account_keys == ["Payer", "Asset", "W1", "R1", "R2"]
        assert tx.slot == 321
        assert tx.block_time == 1_700_000_000
        assert tx.logs == ["Program log: hi"]

    def test_plain_string_keys_and_missing_meta(self) -> None:
        result = {"slot": 5, "transaction": {"message": {"accountKeys": ["A", "B"]}}, "meta": None}
        tx = parse_transaction("sig2", result)
        assert tx.account_keys == ["A", "B"]
        assert tx.block_time is None
        assert tx.logs == []


class TestParseProgramAccounts:
    def test_with_context(self) -> None:
        data = base64.b64encode(b"\x01\x02").decode()
        result = {
            "context": {"slot": 99},
            "value": [{"pubkey": "Acc1", "account": {"data": [data, "base64"]}}],
        }
        snapshot = parse_program_accounts(result)
        assert snapshot.slot == 99
        assert [(a.address, a.data) for a in snapshot.accounts] == [("Acc1", b"\x01\x02")]

    def test_bare_list_and_bad_entries(self) -> None:
        result = [
            {"pubkey": "Good", "account": {"data": base64.b64encode(b"x").decode()}},
            {"pubkey": "Bad", "account": {"data": ["@@@", "base64"]}},
            {"account": {"data": ["AA==", "base64"]}},
        ]
        snapshot = parse_program_accounts(result)
        assert snapshot.slot == 0
        assert [a.address for a in snapshot.accounts] == ["Good"]

    def test_none_result(self) -> None:
        assert parse_program_accounts(None).accounts == []


def _notification(err: object = None, subscription: int = 7) -> dict:
    return {
        "jsonrpc": "2.0",
        "method": "logsNotification",
        "params": {
            "subscription": subscription,
            "result": {
                "context": {"slot": 1234},
                "value": {"signature": "sigA", "err": err, "logs": ["Program log: x"]},
            },
        },
    }


class TestParseNotification:
    def test_basic(self) -> None:
        n = parse_notification(_notification(), 7)
        assert n is not None
        assert n.signature == "sigA"
        assert n.slot == 1234
        assert n.logs == ["Program log: x"]
        assert n.failed is False

    def test_failed_transaction(self) -> None:
        n = parse_notification(_notification(err={"InstructionError": [0, "Custom"]}))
        assert n is not None and n.failed

    def test_other_subscription_ignored(self) -> None:
        assert parse_notification(_notification(subscription=8), 7) is None

    def test_subscription_ack_ignored(self) -> None:
        assert parse_notification({"jsonrpc": "2.0", "id": 1, "result": 7}) is None
