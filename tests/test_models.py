"""Tests for call requests and delegation descriptors."""

import json

import pytest

from wsrpc_cli.errors import InputError
from wsrpc_cli.models import CallRequest, ConnectionConfig, DelegationDescriptor


def test_request_without_params():
    req = CallRequest.from_text("ping")
    assert req.method == "ping"
    assert req.params == []
    assert req.params_text == ""


@pytest.mark.parametrize("text", ['{"a":1}', '"hi"', "1", " [1]", "null"])
def test_request_rejects_non_array(text):
    with pytest.raises(InputError, match="JSON array"):
        CallRequest.from_text("echo", text)


def test_request_rejects_malformed_array():
    with pytest.raises(InputError, match="invalid JSON"):
        CallRequest.from_text("echo", "[1,")


def test_request_rejects_empty_method():
    with pytest.raises(InputError):
        CallRequest.from_text("", "[]")


def test_request_keeps_raw_text_and_decoded_values():
    text = '["hi", 2, {"k": [true, null]}, 1.5]'
    req = CallRequest.from_text("echo", text)
    assert req.params_text == text
    assert req.params == ["hi", 2, {"k": [True, None]}, 1.5]


def test_descriptor_uses_agent_field_names():
    conn = ConnectionConfig(address="wss://host/rpc", root_certificate=b"PEM", user="u", password="p")
    req = CallRequest.from_text("getinfo", "[1]")
    wire = DelegationDescriptor.for_call(conn, req).to_wire()
    assert wire == {
        "Address": "wss://host/rpc",
        "RootCert": "PEM",
        "User": "u",
        "Pass": "p",
        "Method": "getinfo",
        "Params": "[1]",
    }


def test_descriptor_defaults_are_empty_strings():
    conn = ConnectionConfig(address="wss://host/rpc")
    wire = DelegationDescriptor.for_call(conn, CallRequest.from_text("ping")).to_wire()
    assert wire == {"Address": "wss://host/rpc", "RootCert": "", "User": "", "Pass": "",
                    "Method": "ping", "Params": ""}


def test_secrets_stay_out_of_repr():
    conn = ConnectionConfig(address="wss://host/rpc", user="alice", password="hunter2")
    assert "hunter2" not in repr(conn)
    desc = DelegationDescriptor.for_call(conn, CallRequest.from_text("ping"))
    assert "hunter2" not in repr(desc)


@pytest.mark.parametrize("text, count", [
    ("[]", 0),
    ("[null]", 1),
    ('["a", "b"]', 2),
    ('[[1, [2, [3]]], {"k": {}}]', 2),
    ('["\\u00e9", "\\ud83d\\ude00", "tab\\there"]', 3),
    ("[-1, 0.5, 1e-7, 123456789012345678901234567890]", 4),
    ("[true, false, \"\", []]", 4),
])
def test_params_array_round_trip(text, count):
    req = CallRequest.from_text("echo", text)
    assert len(req.params) == count
    assert req.params == json.loads(text)
    assert json.loads(json.dumps(req.params)) == req.params
    assert req.params_text == text


@pytest.mark.parametrize("text", ["[NaN]", "[1, Infinity]", '[{"x": -Infinity}]'])
def test_request_rejects_non_finite_constants(text):
    with pytest.raises(InputError, match="not valid JSON"):
        CallRequest.from_text("echo", text)
