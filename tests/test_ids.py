from atlasdb.ids import NodeId


def test_node_id_construction_and_display():
    node_id = NodeId("node-01")
    assert node_id.value == "node-01"
    assert f"{node_id}" == "node-01"
    assert str(node_id) == "node-01"


def test_node_id_from_str():
    node_id = NodeId("peer-A")
    assert node_id.value == "peer-A"


def test_node_id_equality():
    a = NodeId("n")
    b = NodeId("n")
    c = NodeId("x")
    assert a == b
    assert a != c


def test_node_id_hashing():
    mapping = {NodeId("n1"): "active", NodeId("n2"): "idle"}
    assert mapping.get(NodeId("n1")) == "active"
    assert mapping.get(NodeId("n2")) == "idle"

    ids = set(mapping)
    assert NodeId("n1") in ids
    assert len(ids) == 2


def test_node_id_default_is_empty():
    assert NodeId().value == ""
    assert str(NodeId()) == ""