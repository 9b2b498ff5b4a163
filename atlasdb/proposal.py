"""Proposals and the messages exchanged between nodes."""

from __future__ import annotations

import json
import struct
from dataclasses import dataclass, field
from typing import Any

from atlasdb.ids import NodeId

SIGNATURE_LENGTH = 64


@dataclass
class Ack:
    received: bool
    message: str


@dataclass
class HeartbeatMessage:
    from_node: str
    timestamp: int


@dataclass
class ProposalMessage:
    id: str
    proposer_id: str
    content: str
    parent_id: str = ""
    signature: bytes = b""
    public_key: bytes = b""


@dataclass
class VoteMessage:
    proposal_id: str
    voter_id: str
    vote: int
    signature: bytes = b""
    public_key: bytes = b""


@dataclass
class Proposal:
    """A signed request from one node to change the shared graph."""

    id: str
    proposer: NodeId
    content: str
    parent: str | None = None
    signature: bytes = field(default=bytes(SIGNATURE_LENGTH))
    public_key: bytes = b""

    def __post_init__(self) -> None:
        if isinstance(self.proposer, str):
            self.proposer = NodeId(self.proposer)
        self.signature = bytes(self.signature)
        self.public_key = bytes(self.public_key)
        if len(self.signature) != SIGNATURE_LENGTH:
            raise ValueError(
                f"invalid signature: must be {SIGNATURE_LENGTH} bytes, "
                f"got {len(self.signature)}"
            )

    @classmethod
    def from_proto(cls, msg: ProposalMessage) -> Proposal:
        return cls(
            id=msg.id,
            proposer=NodeId(msg.proposer_id),
            content=msg.content,
            parent=msg.parent_id or None,
            signature=msg.signature,
            public_key=msg.public_key,
        )

    def to_proto(self) -> ProposalMessage:
        return ProposalMessage(
            id=self.id,
            proposer_id=str(self.proposer),
            content=self.content,
            parent_id=self.parent or "",
            signature=self.signature,
            public_key=self.public_key,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "proposer": str(self.proposer),
            "content": self.content,
            "parent": self.parent,
            "signature": self.signature.hex(),
            "public_key": list(self.public_key),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Proposal:
        return cls(
            id=data["id"],
            proposer=NodeId(data["proposer"]),
            content=data["content"],
            parent=data.get("parent"),
            signature=bytes.fromhex(data["signature"]),
            public_key=bytes(data.get("public_key", [])),
        )

    @classmethod
    def from_json(cls, text: str) -> Proposal:
        try:
            return cls.from_dict(json.loads(text))
        except (KeyError, TypeError, AttributeError) as exc:
            raise ValueError(f"invalid proposal JSON: {exc}") from exc

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False)

    def signing_bytes(self) -> bytes:
        """The bytes a proposal signature covers: length-prefixed content."""
        encoded = self.content.encode("utf-8")
        return struct.pack("<Q", len(encoded)) + encoded