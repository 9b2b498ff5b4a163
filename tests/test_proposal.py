import json

import pytest

from atlasdb.ids import NodeId
from atlasdb.proposal import Proposal, ProposalMessage


def sample(**overrides):
    fields = dict(
        id="prop-123",
        proposer=NodeId("node-A"),
        content="Connect A to B",
        parent=None,
        signature=bytes(range(64)),
        public_key=b"\x01\x02\x03",
    )
    fields.update(overrides)
    return Proposal(**fields)


def test_proto_round_trip():
    proposal = sample(parent="prop-100")
    msg = proposal.to_proto()
    assert msg.proposer_id == "node-A"
    assert msg.parent_id == "prop-100"
    assert Proposal.from_proto(msg) == proposal


def test_missing_parent_maps_to_empty_string():
    msg = sample().to_proto()
    assert msg.parent_id == ""
    assert Proposal.from_proto(msg).parent is None


def test_from_proto_rejects_short_signature():
    msg = ProposalMessage(
        id="p", proposer_id="n", content="c", signature=b"\x00" * 10
    )
    with pytest.raises(ValueError):
        Proposal.from_proto(msg)


def test_constructor_rejects_long_signature():
    with pytest.raises(ValueError):
        sample(signature=bytes(65))


def test_string_proposer_is_wrapped():
    assert sample(proposer="node-B").proposer == NodeId("node-B")


def test_json_round_trip():
    proposal = sample()
    text = proposal.to_json()
    data = json.loads(text)
    assert data["signature"] == bytes(range(64)).hex()
    assert data["public_key"] == [1, 2, 3]
    assert data["proposer"] == "node-A"
    assert Proposal.from_json(text) == proposal


def test_from_json_rejects_missing_fields():
    with pytest.raises(ValueError):
        Proposal.from_json('{"id": "p"}')


def test_from_json_rejects_bad_json():
    with pytest.raises(ValueError):
        Proposal.from_json("not json")


def test_signing_bytes_are_length_prefixed():
    proposal = sample(content="abc")
    assert proposal.signing_bytes() == b"\x03\x00\x00\x00\x00\x00\x00\x00abc"


def test_signing_bytes_prefix_counts_utf8_bytes():
    content = "A → B"
    raw = sample(content=content).signing_bytes()
    encoded = content.encode("utf-8")
    assert raw[8:] == encoded
    assert int.from_bytes(raw[:8], "little") == len(encoded)