import pytest

from archmap.model import Component, Edge, ScanDocument, SourceLocation
from archmap.views import build_view


def _component(cid, kind):
	return Component(
		id=cid,
		name=cid.capitalize(),
		kind=kind,
		language="python",
		source=SourceLocation(file=f"app/{cid}.py", line_start=1),
	)


def _document():
	return ScanDocument(
		project_name="demo",
		components=[
			_component("route", "transport"),
			_component("svc", "service"),
			_component("user", "model"),
			_component("loner", "model"),
		],
		edges=[
			Edge(from_id="svc", to_id="route", label=["handles"]),
			Edge(from_id="route", to_id="user", label=["imports"]),
		],
	)


def test_system_view_keeps_everything():
	view = build_view(_document())
	assert view.mode == "system"
	assert view.project_name == "demo"
	assert {n.component.id for n in view.nodes} == {"route", "svc", "user", "loner"}
	assert len(view.edges) == 2
	flags = {(e.from_id, e.to_id): e.is_flow for e in view.edges}
	assert flags == {("svc", "route"): True, ("route", "user"): False}
	degree = {n.component.id: n.degree for n in view.nodes}
	assert degree == {"route": 2, "svc": 1, "user": 1, "loner": 0}
	# Every cluster is too small and folds into Other
	assert view.clusters == {"Other": 4}


def test_flow_view_drops_structural_edges():
	view = build_view(_document(), mode="flow")
	assert {n.component.id for n in view.nodes} == {"route", "svc"}
	assert [(e.from_id, e.to_id) for e in view.edges] == [("svc", "route")]


def test_kind_filter():
	view = build_view(_document(), kinds=["model"])
	assert {n.component.id for n in view.nodes} == {"user", "loner"}
	assert view.edges == []


def test_unknown_mode():
	with pytest.raises(ValueError):
		build_view(_document(), mode="radial")
