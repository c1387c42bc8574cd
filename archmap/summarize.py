from __future__ import annotations

from typing import Dict, List

from .model import COMPONENT_KINDS, Component, ScanDocument, Summaries, Workflow


def summarize_kind(kind: str, components: List[Component]) -> str:
	parts: List[str] = [f"{len(components)} {kind} component(s)"]
	for c in components[:10]:
		parts.append(f"  {c.name} ({c.source.file}:{c.source.line_start})")
	if len(components) > 10:
		parts.append(f"  ... and {len(components) - 10} more")
	return "\n".join(parts)


def summarize_workflow(w: Workflow, names: Dict[str, str]) -> str:
	chain = " -> ".join(f"{names.get(s.component_id, s.component_id)} [{s.step_type}]" for s in w.steps)
	return f"Workflow {w.name}: {len(w.steps)} steps\n  {chain}"


def summarize_document(doc: ScanDocument) -> Summaries:
	by_kind: Dict[str, List[Component]] = {kind: [] for kind in COMPONENT_KINDS}
	for c in doc.components:
		by_kind.setdefault(c.kind, []).append(c)

	per_kind: Dict[str, str] = {}
	for kind, components in by_kind.items():
		if components:
			per_kind[kind] = summarize_kind(kind, components)

	names = {c.id: c.name for c in doc.components}
	per_workflow: Dict[str, str] = {}
	for w in doc.workflows:
		per_workflow[w.id] = summarize_workflow(w, names)

	counts = ", ".join(f"{len(by_kind[k])} {k}s" for k in COMPONENT_KINDS)
	languages = ", ".join(doc.detected_languages) or "none"
	global_overview = (
		f"Project {doc.project_name} at {doc.root_dir}: "
		f"{doc.scan_stats.files_scanned} files scanned ({languages}), "
		f"{counts}, {len(doc.edges)} edges, {len(doc.workflows)} workflows"
	)

	return Summaries(
		global_overview=global_overview,
		per_kind=per_kind,
		per_workflow=per_workflow,
	)


def render(summaries: Summaries) -> str:
	blocks: List[str] = [summaries.global_overview]
	blocks.extend(summaries.per_kind.values())
	blocks.extend(summaries.per_workflow.values())
	return "\n\n".join(blocks)
