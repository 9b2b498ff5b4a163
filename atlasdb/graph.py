"""Vertices, directed edges and the local graph they form."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class Vertex:
    """A uniquely identified, labelled vertex with string properties."""

    id: str
    label: str
    properties: dict[str, str] = field(default_factory=dict)

    def with_property(self, key: str, value: str) -> Vertex:
        """Set a property and return the vertex, for chaining."""
        self.properties[key] = value
        return self

    def _to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "label": self.label, "properties": dict(self.properties)}

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> Vertex:
        return cls(data["id"], data["label"], dict(data.get("properties", {})))


@dataclass
class Edge:
    """A labelled, directed edge from ``source`` to ``target``."""

    source: str
    target: str
    label: str

    def _to_dict(self) -> dict[str, str]:
        return {"from": self.source, "to": self.target, "label": self.label}

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> Edge:
        return cls(data["from"], data["to"], data["label"])


@dataclass
class Graph:
    """The directed graph held by a node."""

    vertices: dict[str, Vertex] = field(default_factory=dict)
    edges: list[Edge] = field(default_factory=list)

    def add_vertex(self, vertex: Vertex) -> None:
        """Insert a vertex, replacing any with the same id."""
        self.vertices[vertex.id] = vertex

    def add_edge(self, edge: Edge) -> None:
        self.edges.append(edge)

    def neighbors_of(self, vertex_id: str) -> list[Vertex]:
        """Vertices reachable through one outgoing edge."""
        return [
            self.vertices[edge.target]
            for edge in self.edges
            if edge.source == vertex_id and edge.target in self.vertices
        ]

    def print_graph(self) -> None:
        print("🔍 Vertices:")
        for vertex in self.vertices.values():
            print(f"- [{vertex.id}] {vertex.label}")
        print("🔗 Edges:")
        for edge in self.edges:
            print(f"> [{edge.source}] --{edge.label}--> [{edge.target}]")

    def to_dict(self) -> dict[str, Any]:
        return {
            "vertices": {vid: v._to_dict() for vid, v in self.vertices.items()},
            "edges": [e._to_dict() for e in self.edges],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Graph:
        return cls(
            vertices={
                vid: Vertex._from_dict(v) for vid, v in data.get("vertices", {}).items()
            },
            edges=[Edge._from_dict(e) for e in data.get("edges", [])],
        )