import re

import pytest

from signet_sdk.errors import ParamInvalid, ParamMissing
from signet_sdk.keys import KeyPair
from signet_sdk.payload import (
    XID, Channel, RekeyPayload, SignedPayload, build_payload, payload_channels, payload_xids,
)
from signet_sdk.utils import canonical_text, now_iso_ms


def test_build_minimal_payload():
    kp = KeyPair.generate()
    payload = build_payload("g-1", kp, "")
    assert payload["data"] == {"guid": "g-1"}
    assert payload["verify"]["verify_key"] == kp.export_public()
    assert payload["verify"]["prev_sign"] == ""
    assert "xids" not in payload["data"] and "channels" not in payload["data"]


def test_prev_sign_none_becomes_empty():
    payload = build_payload("g-1", KeyPair.generate(), None)
    assert payload["verify"]["prev_sign"] == ""


def test_sign_time_is_iso_millis_utc():
    payload = build_payload("g-1", KeyPair.generate(), "")
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", payload["verify"]["sign_time"])
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", now_iso_ms())


def test_canonical_bytes_are_exact():
    kp = KeyPair.generate()
    payload = build_payload(
        "g-1", kp, "",
        [XID("dn", "example.com", "x1")],
        [Channel("REST", "v1", "abc123")],
        sign_time="2020-01-01T00:00:00.000Z",
    )
    expected = (
        '{"data":{"guid":"g-1",'
        '"xids":[{"nstype":"dn","ns":"example.com","name":"x1"}],'
        '"channels":[{"chtype":"REST","version":"v1","endpoint":"abc123"}]},'
        '"verify":{"verify_key":"' + kp.export_public() + '",'
        '"sign_time":"2020-01-01T00:00:00.000Z","prev_sign":""}}'
    )
    assert canonical_text(payload) == expected


def test_non_ascii_is_emitted_literally():
    assert canonical_text({"name": "ü"}) == '{"name":"ü"}'


def test_unknown_keys_sorted_after_protocol_keys():
    assert canonical_text({"zeta": 1, "alpha": 2, "guid": "g"}) == '{"guid":"g","alpha":2,"zeta":1}'


def test_build_requires_guid_and_key():
    with pytest.raises(ParamMissing):
        build_payload("", KeyPair.generate(), "")
    with pytest.raises(ParamMissing):
        build_payload("g-1", None, "")


def test_xid_and_channel_text_forms():
    xid = XID.parse("dn:example.com:x1")
    assert (xid.nstype, xid.ns, xid.name) == ("dn", "example.com", "x1")
    assert str(xid) == "dn:example.com:x1"
    assert str(XID.parse("dn:example.com:a:b")) == "dn:example.com:a:b"

    ch = Channel.parse("REST#v1#abc123")
    assert ch.to_dict() == {"chtype": "REST", "version": "v1", "endpoint": "abc123"}
    assert str(ch) == "REST#v1#abc123"


def test_xid_and_channel_validation():
    with pytest.raises(ParamMissing):
        XID("dn", "", "x1").validate()
    with pytest.raises(ParamInvalid):
        XID("d:n", "example.com", "x1").validate()
    with pytest.raises(ParamMissing):
        Channel("REST", "v1", "").validate()
    with pytest.raises(ParamInvalid):
        XID.parse("only:two")
    with pytest.raises(ParamInvalid):
        Channel.parse("REST#v1")


def test_signed_and_rekey_payload_dicts():
    signed = SignedPayload(payload={"data": {"guid": "g"}, "verify": {}}, sign="s=")
    assert signed.to_dict() == {"payload": signed.payload, "sign": "s="}
    rekey = RekeyPayload(signed_payload=signed, old_sign="o=")
    assert rekey.to_dict() == {"signed_payload": signed.to_dict(), "old_sign": "o="}
    assert RekeyPayload.from_json(rekey.to_json()) == rekey


def test_malformed_envelopes_raise_param_invalid():
    with pytest.raises(ParamInvalid):
        SignedPayload.from_json("{not json")
    with pytest.raises(ParamInvalid):
        SignedPayload.from_dict({"payload": {}})
    with pytest.raises(ParamInvalid):
        RekeyPayload.from_dict({"old_sign": "o="})


def test_lenient_parse_keeps_stored_values():
    ch = Channel.parse("REST#v1#", strict=False)
    assert ch == Channel("REST", "v1", "")
    assert str(ch) == "REST#v1#"
    assert str(XID.parse("dn:example.com", strict=False)) == "dn:example.com:"
    with pytest.raises(ParamMissing):
        Channel.parse("REST#v1#")


def test_payload_lists_reject_wrong_types():
    kp = KeyPair.generate()
    payload = build_payload("g-1", kp, "")
    payload["data"]["xids"] = ["dn:example.com:x1"]
    with pytest.raises(ParamInvalid):
        payload_xids(payload)
    payload["data"]["xids"] = {"nstype": "dn"}
    with pytest.raises(ParamInvalid):
        payload_xids(payload)
    payload["data"]["channels"] = [{"chtype": "REST", "version": 1, "endpoint": "e"}]
    with pytest.raises(ParamInvalid):
        payload_channels(payload)
