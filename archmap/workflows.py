from __future__ import annotations

import hashlib
import logging
from collections import deque
from typing import Callable, Dict, List, Tuple

from .model import Component, Edge, StepType, Workflow, WorkflowEdge, WorkflowStep

logger = logging.getLogger(__name__)

# (edge, neighbour id, traversed from_id -> to_id)
Adjacency = Dict[str, List[Tuple[Edge, str, bool]]]

STEP_BY_LABEL: Dict[str, StepType] = {
	"handles": "call",
	"calls": "call",
	"persists": "persist",
	"transforms": "persist",
	"consumes": "persist",
	"dispatches": "dispatch",
}


def workflow_id(entry_id: str) -> str:
	return hashlib.sha256(f"workflow:{entry_id}".encode("utf-8")).hexdigest()[:16]


def workflow_name(entry: Component) -> str:
	if entry.http_method and entry.http_path:
		return f"{entry.http_method} {entry.http_path}"
	return entry.name


def build_adjacency(edges: List[Edge]) -> Adjacency:
	"""Undirected adjacency over flow edges, in edge emission order."""
	adjacency: Adjacency = {}
	for edge in edges:
		if not edge.flow_labels() or edge.from_id == edge.to_id:
			continue
		adjacency.setdefault(edge.from_id, []).append((edge, edge.to_id, True))
		adjacency.setdefault(edge.to_id, []).append((edge, edge.from_id, False))
	return adjacency


def step_type(label: str, forward: bool, terminal: bool) -> StepType:
	"""Step type of a node reached through an edge whose first flow label is *label*."""
	if label == "produces":
		return "response" if forward and terminal else "persist"
	return STEP_BY_LABEL.get(label, "call")


def trace(entry: Component, adjacency: Adjacency) -> Workflow:
	"""Breadth-first trace from one transport over the flow subgraph."""
	discovered: Dict[str, Tuple[str, bool]] = {entry.id: ("", True)}
	queue = deque([entry.id])
	steps: List[WorkflowStep] = []
	edges: List[WorkflowEdge] = []
	seen_edges = set()

	while queue:
		current = queue.popleft()
		neighbours = adjacency.get(current, [])
		if current == entry.id:
			kind: StepType = "entry"
		else:
			label, forward = discovered[current]
			terminal = all(n in discovered for _, n, _ in neighbours)
			kind = step_type(label, forward, terminal)
		steps.append(WorkflowStep(component_id=current, step_type=kind, order=len(steps)))

		for edge, neighbour, forward in neighbours:
			key = (edge.from_id, edge.to_id)
			if key not in seen_edges:
				seen_edges.add(key)
				edges.append(WorkflowEdge(from_id=edge.from_id, to_id=edge.to_id))
			if neighbour in discovered:
				continue
			discovered[neighbour] = (edge.flow_labels()[0], forward)
			queue.append(neighbour)

	return Workflow(
		id=workflow_id(entry.id),
		name=workflow_name(entry),
		entry_point_id=entry.id,
		steps=steps,
		edges=edges,
	)


def synthesize_workflows(
	components: List[Component],
	edges: List[Edge],
	min_steps: int = 2,
	mapper: Callable = map,
) -> List[Workflow]:
	"""One workflow per transport, keeping those with at least *min_steps* steps.

	With ``min_steps=1`` transports without flow edges publish an entry-only
	workflow.
	"""
	adjacency = build_adjacency(edges)
	entries = [c for c in components if c.kind == "transport"]
	traced = list(mapper(lambda entry: trace(entry, adjacency), entries))
	kept = [w for w in traced if len(w.steps) >= min_steps]
	logger.debug("Traced %d workflows, kept %d (min_steps=%d)", len(traced), len(kept), min_steps)
	kept.sort(key=lambda w: (-len(w.steps), w.name, w.entry_point_id))
	return kept
