from __future__ import annotations

import hashlib
import logging
from typing import Dict, Iterable, List, Optional, Tuple

from .model import CandidateComponent, Component, SourceLocation

logger = logging.getLogger(__name__)


def make_id(file: str, line: int, name: str, kind: str) -> str:
	digest = hashlib.sha256(f"{kind}:{name}:{file}:{line}".encode("utf-8")).hexdigest()
	return digest[:16]


def assign(candidate: CandidateComponent) -> Optional[Component]:
	"""Turn a candidate into a component, or None when it cannot be identified."""
	if not candidate.name or candidate.line_start is None:
		logger.debug("Dropping unnamed %s candidate in %s", candidate.kind, candidate.file)
		return None
	return Component(
		id=make_id(candidate.file, candidate.line_start, candidate.name, candidate.kind),
		name=candidate.name,
		kind=candidate.kind,
		language=candidate.language,
		source=SourceLocation(
			file=candidate.file,
			line_start=candidate.line_start,
			line_end=candidate.line_end,
		),
		metadata=dict(candidate.metadata),
		transport_protocol=candidate.transport_protocol,
		http_method=candidate.http_method,
		http_path=candidate.http_path,
		member_fields=candidate.member_fields,
		consumes=candidate.consumes,
		produces=candidate.produces,
	)


def assign_all(candidates: Iterable[CandidateComponent]) -> List[Component]:
	"""Assign ids and collapse duplicates sharing (file, name, kind).

	The earliest declaration wins; metadata keys it lacks are filled in from
	the duplicates in the order they were seen.
	"""
	groups: Dict[Tuple[str, str, str], List[Component]] = {}
	for candidate in candidates:
		component = assign(candidate)
		if component is None:
			continue
		groups.setdefault((component.source.file, component.name, component.kind), []).append(component)

	merged: List[Component] = []
	for members in groups.values():
		survivor = min(members, key=lambda c: c.source.line_start or 0)
		metadata = dict(survivor.metadata)
		for other in members:
			for key, value in other.metadata.items():
				metadata.setdefault(key, value)
		merged.append(survivor.model_copy(update={"metadata": metadata}))

	merged.sort(key=lambda c: (c.source.file, c.source.line_start or 0, c.kind, c.name))
	return merged
