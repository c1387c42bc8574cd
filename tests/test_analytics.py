from archmap.analytics import OTHER, classify_clusters, cluster_label, detect_hubs
from archmap.model import Component, Edge, SourceLocation


def _component(cid, kind="model", name=None, file=None, **fields):
	return Component(
		id=cid,
		name=name or cid,
		kind=kind,
		language="typescript",
		source=SourceLocation(file=file or f"src/{cid}.ts", line_start=1),
		**fields,
	)


def test_cluster_label_rules():
	route = _component("r", "transport", "GET /api/{id}", http_method="GET", http_path="/{id}/orders")
	assert cluster_label(route) == "Orders"
	assert cluster_label(_component("a", "transport", "x", http_path="/api/users")) == "Api"
	assert cluster_label(_component("m", "model", "SessionPeerConfig")) == "Session"
	assert cluster_label(_component("s", "service", "userService", file="src/services/user.ts")) == "services"
	assert cluster_label(_component("w", "transport", "ws:connection", file="socket.ts")) == OTHER


def test_small_clusters_fold_into_other():
	components = [
		_component("a", name="SessionPeer"),
		_component("b", name="SessionConfig"),
		_component("c", name="SessionState"),
		_component("d", name="UserProfile"),
		_component("e", name="UserSettings"),
	]
	clusters = classify_clusters(components, min_size=3)
	assert clusters == {"a": "Session", "b": "Session", "c": "Session", "d": OTHER, "e": OTHER}


def test_hubs_empty_and_uniform():
	assert detect_hubs([], []) == {}
	ring = [_component(c) for c in "abc"]
	edges = [Edge(from_id="a", to_id="b"), Edge(from_id="b", to_id="c"), Edge(from_id="c", to_id="a")]
	hubs = detect_hubs(ring, edges)
	assert {h.tier for h in hubs.values()} == {"normal"}
	assert all(h.degree == 2 for h in hubs.values())


def test_hub_tiers():
	star = [_component("hub")] + [_component(f"leaf{i}") for i in range(9)]
	edges = [Edge(from_id="hub", to_id=f"leaf{i}") for i in range(9)]
	hubs = detect_hubs(star, edges)
	assert hubs["hub"].tier == "high"
	assert hubs["hub"].degree == 9
	assert hubs["leaf0"].tier == "normal"

	small = [_component(c) for c in "abcde"]
	edges = [Edge(from_id="a", to_id="b"), Edge(from_id="a", to_id="c")]
	hubs = detect_hubs(small, edges)
	assert hubs["a"].tier == "medium"
	assert hubs["b"].tier == "normal"
