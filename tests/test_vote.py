import json

import pytest

from atlasdb.vote import ConsensusResult, Vote


@pytest.mark.parametrize(
    "vote, number", [(Vote.YES, 0), (Vote.NO, 1), (Vote.ABSTAIN, 2)]
)
def test_wire_values(vote, number):
    assert int(vote) == number
    assert Vote(number) is vote


def test_unknown_wire_value_rejected():
    with pytest.raises(ValueError):
        Vote(3)


@pytest.mark.parametrize(
    "vote, text", [(Vote.YES, "Yes"), (Vote.NO, "No"), (Vote.ABSTAIN, "Abstain")]
)
def test_display(vote, text):
    assert str(vote) == text
    assert f"{vote}" == text


@pytest.mark.parametrize("number, text", [(0, "Yes"), (1, "No"), (2, "Abstain")])
def test_name_lookup_round_trip(number, text):
    vote = Vote(number)
    assert str(vote) == text
    assert Vote[str(vote).upper()] is vote


def test_consensus_result_round_trip():
    result = ConsensusResult(approved=True, votes_received=3, proposal_id="p42")
    restored = ConsensusResult.from_dict(json.loads(json.dumps(result.to_dict())))
    assert restored == result
    assert restored.votes_received == 3