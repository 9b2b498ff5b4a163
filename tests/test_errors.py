import pytest

from atlasdb.errors import (
    AtlasError,
    AuthError,
    ConfigError,
    ConsensusError,
    HandlerNotSetError,
    InvalidMessageError,
    NetworkError,
    PeerConnectionError,
    ReceiveError,
    SendError,
    SerializationError,
    StorageError,
)


@pytest.mark.parametrize(
    "exc, expected",
    [
        (NetworkError("down"), "Network error: down"),
        (ConsensusError("split"), "Consensus error: split"),
        (StorageError("full"), "Storage error: full"),
        (AuthError("bad"), "Authentication failed: bad"),
        (ConfigError("missing"), "Invalid config: missing"),
        (AtlasError("misc"), "Other: misc"),
        (SendError("boom"), "Failed to send message: boom"),
        (ReceiveError("lost"), "Failed to receive message: lost"),
        (SerializationError("json"), "Serialization error: json"),
        (PeerConnectionError("refused"), "Connection error: refused"),
    ],
)
def test_messages(exc, expected):
    assert str(exc) == expected


def test_messages_without_detail():
    assert str(HandlerNotSetError()) == "Message handler not configured"
    assert str(InvalidMessageError()) == "Invalid message error"


def test_detail_is_kept():
    exc = SendError("boom")
    assert exc.detail == "boom"


@pytest.mark.parametrize(
    "factory, expected",
    [
        (lambda: SendError("x"), "Failed to send message: x"),
        (lambda: ReceiveError("x"), "Failed to receive message: x"),
        (HandlerNotSetError, "Message handler not configured"),
        (lambda: SerializationError("x"), "Serialization error: x"),
        (lambda: PeerConnectionError("x"), "Connection error: x"),
        (InvalidMessageError, "Invalid message error"),
    ],
)
def test_network_variants_are_network_errors(factory, expected):
    exc = factory()
    assert isinstance(exc, NetworkError)
    assert isinstance(exc, AtlasError)
    assert str(exc) == expected


@pytest.mark.parametrize(
    "factory, expected",
    [
        (lambda: ConsensusError("x"), "Consensus error: x"),
        (lambda: StorageError("x"), "Storage error: x"),
        (lambda: AuthError("x"), "Authentication failed: x"),
        (lambda: ConfigError("x"), "Invalid config: x"),
        (lambda: NetworkError("x"), "Network error: x"),
    ],
)
def test_domain_errors_are_atlas_errors(factory, expected):
    exc = factory()
    assert isinstance(exc, AtlasError)
    assert str(exc) == expected