from routeflow.models import Edge, FlowData, Node, Position, Route


STORED_ROUTE = {
    "id": "route_1",
    "name": "Create user",
    "method": "POST",
    "url": "/users",
    "flowData": {
        "nodes": [
            {"id": "n1", "type": "url", "position": {"x": 100, "y": 100},
             "data": {"label": "Url", "path": "/users", "method": "POST"}},
            {"id": "n2", "type": "webhook", "position": {"x": 250.5, "y": 80},
             "data": {"label": "Hook", "target": "https://example.com"}},
        ],
        "edges": [{"id": "e1", "source": "n1", "target": "n2"}],
    },
}


def test_route_from_stored_record():
    route = Route.from_dict(STORED_ROUTE)
    assert route.flow_data.nodes[1].type == "webhook"
    assert route.flow_data.nodes[1].position == Position(250.5, 80)
    assert route.to_dict() == STORED_ROUTE


def test_route_without_flow_data():
    route = Route.from_dict({"id": "r", "name": "R"})
    assert route.flow_data is None
    assert "flowData" not in route.to_dict()
    assert (route.method, route.url) == ("GET", "/")


def test_edge_without_id():
    edge = Edge.from_dict({"source": "a", "target": "b"})
    assert edge.id == "edge_a-b"


def test_with_flow_copies():
    flow = FlowData(nodes=[Node(id="n", type="logic", data={"code": "x"})])
    route = Route(id="r", name="R").with_flow(flow)
    flow.nodes[0].data["code"] = "changed"
    assert route.flow_data.nodes[0].data["code"] == "x"


def test_empty_flow():
    assert FlowData().is_empty
    assert not FlowData(edges=[Edge(id="e", source="a", target="b")]).is_empty
