from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from .analytics import OTHER, classify_clusters, detect_hubs
from .model import GraphEdge, GraphNode, GraphView, ScanDocument
from .relationships import merge_edges

VIEW_MODES = ("system", "flow")


def _cluster_counts(clusters: Dict[str, str]) -> Dict[str, int]:
	counts: Dict[str, int] = {}
	for label in clusters.values():
		counts[label] = counts.get(label, 0) + 1
	# Largest first, Other last
	ordered = sorted(counts.items(), key=lambda item: (item[0] == OTHER, -item[1], item[0]))
	return dict(ordered)


def build_view(
	document: ScanDocument,
	mode: str = "system",
	kinds: Optional[Iterable[str]] = None,
	min_cluster_size: int = 3,
) -> GraphView:
	"""Graph of the document annotated with cluster and hub data.

	"system" shows every component and edge; "flow" keeps only edges carrying
	a flow label and the components they touch. Clusters and hubs are computed
	over what is visible.
	"""
	if mode not in VIEW_MODES:
		raise ValueError(f"Unknown view mode: {mode!r} (expected one of {', '.join(VIEW_MODES)})")

	active = set(kinds) if kinds is not None else None
	components = [c for c in document.components if active is None or c.kind in active]
	visible = {c.id for c in components}
	edges = merge_edges(e for e in document.edges if e.from_id in visible and e.to_id in visible)

	if mode == "flow":
		edges = [e for e in edges if e.flow_labels()]
		touched = {e.from_id for e in edges} | {e.to_id for e in edges}
		components = [c for c in components if c.id in touched]

	clusters = classify_clusters(components, min_cluster_size)
	hubs = detect_hubs(components, edges)

	nodes: List[GraphNode] = [
		GraphNode(
			component=c,
			cluster=clusters[c.id],
			hub_tier=hubs[c.id].tier,
			degree=hubs[c.id].degree,
		)
		for c in components
	]
	graph_edges = [
		GraphEdge(
			from_id=e.from_id,
			to_id=e.to_id,
			label=list(e.label),
			payload_type=e.payload_type,
			is_flow=bool(e.flow_labels()),
		)
		for e in edges
	]
	return GraphView(
		mode=mode,
		project_name=document.project_name,
		nodes=nodes,
		edges=graph_edges,
		clusters=_cluster_counts(clusters),
	)
