from __future__ import annotations

import re
import statistics
from typing import Dict, List, Optional

from .model import Component, Edge, HubInfo

OTHER = "Other"
_PLACEHOLDER_PREFIXES = ("{", ":", "<")
_LEADING_WORD_RE = re.compile(r"^([A-Z][a-z]+)")


def _path_label(path: str) -> Optional[str]:
	for segment in path.split("/"):
		if segment and not segment.startswith(_PLACEHOLDER_PREFIXES):
			return segment[:1].upper() + segment[1:]
	return None


def cluster_label(component: Component) -> str:
	"""Semantic cluster of a single component, before small clusters are folded."""
	label = None
	if component.kind == "transport" and component.http_path:
		label = _path_label(component.http_path)
	if label is None and component.kind in ("model", "transform", "service"):
		m = _LEADING_WORD_RE.match(component.name)
		if m:
			label = m.group(1)
	if label is None:
		parts = component.source.file.split("/")
		if len(parts) >= 2 and parts[-2]:
			label = parts[-2]
	return label or OTHER


def classify_clusters(components: List[Component], min_size: int = 3) -> Dict[str, str]:
	"""Cluster label per component id; labels with fewer than *min_size* members fold into Other."""
	labels = {c.id: cluster_label(c) for c in components}
	counts: Dict[str, int] = {}
	for label in labels.values():
		counts[label] = counts.get(label, 0) + 1
	return {cid: (label if counts[label] >= min_size else OTHER) for cid, label in labels.items()}


def degrees(components: List[Component], edges: List[Edge]) -> Dict[str, int]:
	degree = {c.id: 0 for c in components}
	for e in edges:
		if e.from_id in degree:
			degree[e.from_id] += 1
		if e.to_id in degree:
			degree[e.to_id] += 1
	return degree


def detect_hubs(components: List[Component], edges: List[Edge]) -> Dict[str, HubInfo]:
	"""Hub tier per component from how far its degree sits above the mean."""
	degree = degrees(components, edges)
	if not degree:
		return {}
	values = list(degree.values())
	mean = statistics.fmean(values)
	stddev = statistics.pstdev(values, mean)
	hubs: Dict[str, HubInfo] = {}
	for cid, d in degree.items():
		tier = "normal"
		if d > mean + 2 * stddev:
			tier = "high"
		elif d > mean + stddev:
			tier = "medium"
		hubs[cid] = HubInfo(tier=tier, degree=d)
	return hubs
