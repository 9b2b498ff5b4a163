"""Exception hierarchy for the cluster, consensus, storage and network layers."""

from __future__ import annotations


class AtlasError(Exception):
    """Base class of every error raised by the package."""

    template = "Other: {detail}"

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(self.template.format(detail=detail))


class ConsensusError(AtlasError):
    template = "Consensus error: {detail}"


class StorageError(AtlasError):
    template = "Storage error: {detail}"


class AuthError(AtlasError):
    template = "Authentication failed: {detail}"


class ConfigError(AtlasError):
    template = "Invalid config: {detail}"


class NetworkError(AtlasError):
    """Failure while talking to another node."""

    template = "Network error: {detail}"


class SendError(NetworkError):
    template = "Failed to send message: {detail}"


class ReceiveError(NetworkError):
    template = "Failed to receive message: {detail}"


class HandlerNotSetError(NetworkError):
    template = "Message handler not configured"


class SerializationError(NetworkError):
    template = "Serialization error: {detail}"


class PeerConnectionError(NetworkError):
    template = "Connection error: {detail}"


class InvalidMessageError(NetworkError):
    template = "Invalid message error"