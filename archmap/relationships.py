"""Relationship inference over a fixed component snapshot.

Structural edges come from import statements and bare name references; flow
edges come from co-location, body text mentions, payload types and
invocation text. Inference is per file so files can be processed in
parallel; ``infer_edges`` concatenates the per-file results family by family
in sorted file order and merges them per ordered pair.
"""

from __future__ import annotations

import logging
import posixpath
import re
from functools import lru_cache
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Set

from .imports import extract_imports
from .model import Component, Edge
from .text import find_function_span, lower_camel, snake_case, split_lines, token_set

logger = logging.getLogger(__name__)

# Emission order of the edge families.
FAMILIES = ("imports", "references", "handles", "persists", "transforms", "payload", "invocations")

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][\w$]*$")
_DECLARATION_TAIL_RE = re.compile(r"\b(?:def|function|fn|func|class|interface|struct|type|fun)\s+$")
_DISPATCH_METHODS = r"(?:delay|apply_async|enqueue|dispatch|publish|send_async)"
_DISPATCH_CALLS = r"(?:enqueue|dispatch|publish|send_task|add_job|emit|submit)"
_INDEX_STEMS = ("index", "__init__", "mod")


@lru_cache(maxsize=4096)
def _call_re(alias: str) -> "re.Pattern[str]":
	name = re.escape(alias)
	return re.compile(r"(?<![\w$])" + name + r"(?:\s*\(|\s*\.\s*[\w$]+\s*\()")


@lru_cache(maxsize=4096)
def _dispatch_re(alias: str) -> "re.Pattern[str]":
	name = re.escape(alias)
	return re.compile(
		r"(?<![\w$])" + name + r"\s*\.\s*" + _DISPATCH_METHODS + r"\s*\("
		r"|" + _DISPATCH_CALLS + r"\s*\(\s*[\"'`]" + name + r"[\"'`]"
	)


def file_stems(path: str) -> List[str]:
	"""Stems a file can be imported by: ``user.service.ts`` gives both
	``user.service`` and ``user``; index modules also answer to their directory."""
	base = posixpath.basename(path)
	stem = posixpath.splitext(base)[0]
	stems = [stem]
	if "." in stem:
		stems.append(stem.split(".", 1)[0])
	if stem in _INDEX_STEMS:
		parent = posixpath.basename(posixpath.dirname(path))
		if parent:
			stems.append(parent)
	return stems


def aliases(component: Component) -> List[str]:
	"""Spellings under which code can invoke *component*."""
	names: List[str] = []
	if component.kind == "transport":
		if component.transport_protocol == "mq" and component.name.startswith("mq:"):
			names.append(component.name[3:])
		handler = component.metadata.get("handler")
		if handler:
			names.append(handler)
	else:
		names.extend([component.name, lower_camel(component.name), snake_case(component.name)])
	out: List[str] = []
	for name in names:
		if name and _IDENTIFIER_RE.match(name) and name not in out:
			out.append(name)
	return out


class ComponentIndex:
	"""Read-only lookup tables over one scan's components."""

	def __init__(self, components: Iterable[Component], min_name_length: int = 3):
		self.components: List[Component] = list(components)
		self.position: Dict[str, int] = {}
		self.by_id: Dict[str, Component] = {}
		self.by_name: Dict[str, List[Component]] = {}
		self.by_file: Dict[str, List[Component]] = {}
		self.files_by_stem: Dict[str, List[str]] = {}
		self.models_by_name: Dict[str, List[Component]] = {}
		self.referenceable: Dict[str, List[Component]] = {}
		self.invocable: Dict[str, List[Component]] = {}

		for pos, c in enumerate(self.components):
			self.position[c.id] = pos
			self.by_id[c.id] = c
			self.by_name.setdefault(c.name, []).append(c)
			files = self.by_file.setdefault(c.source.file, [])
			if not files:
				for stem in file_stems(c.source.file):
					self.files_by_stem.setdefault(stem, []).append(c.source.file)
			files.append(c)
			if c.kind == "model":
				self.models_by_name.setdefault(c.name, []).append(c)
			if len(c.name) >= min_name_length and _IDENTIFIER_RE.match(c.name):
				self.referenceable.setdefault(c.name, []).append(c)
			if c.kind == "service" or (c.kind == "transport" and c.transport_protocol == "mq"):
				for alias in aliases(c):
					self.invocable.setdefault(alias, []).append(c)

	def ordered(self, components: Iterable[Component]) -> List[Component]:
		unique = {c.id: c for c in components}
		return sorted(unique.values(), key=lambda c: self.position[c.id])

	def resolve_import(self, target: str, symbols: List[str], importer: str) -> List[Component]:
		found: List[Component] = []
		for stem in [target] + symbols:
			for path in self.files_by_stem.get(stem, []):
				if path != importer:
					found.extend(self.by_file.get(path, []))
		for symbol in symbols:
			found.extend(c for c in self.by_name.get(symbol, []) if c.source.file != importer)
		return self.ordered(found)


def component_body(component: Component, text: str, lines: Optional[List[str]] = None, body_window: int = 50) -> str:
	"""Text a component owns: its declared lines, plus a route's handler block.

	Single-line declarations without a resolvable handler get a fixed window.
	"""
	if lines is None:
		lines = split_lines(text)
	start = component.source.line_start or 1
	end = component.source.line_end
	handler_span = None
	handler = component.metadata.get("handler")
	if component.kind == "transport" and handler:
		handler_span = find_function_span(text, handler, component.language)
	if (end is None or end <= start) and handler_span is None:
		return "\n".join(lines[start - 1 : start - 1 + body_window])
	body = "\n".join(lines[start - 1 : max(start, end or start)])
	if handler_span is not None and not (start <= handler_span[0] <= (end or start)):
		body += "\n" + "\n".join(lines[handler_span[0] - 1 : handler_span[1]])
	return body


def _edge(source: Component, target: Component, label: str, payload_type: Optional[str] = None) -> Optional[Edge]:
	if source.id == target.id:
		return None
	return Edge(from_id=source.id, to_id=target.id, label=[label], payload_type=payload_type)


def _collect(edges: Iterable[Optional[Edge]]) -> List[Edge]:
	return [e for e in edges if e is not None]


def _import_edges(index: ComponentIndex, file: str, language: str, text: str, own: List[Component]) -> List[Edge]:
	resolved: List[Component] = []
	for target, symbols in extract_imports(text, language):
		resolved.extend(index.resolve_import(target, symbols, file))
	resolved = index.ordered(resolved)
	return _collect(_edge(src, dst, "imports") for src in own for dst in resolved)


def _reference_edges(index: ComponentIndex, own: List[Component], tokens: Mapping[str, Set[str]]) -> List[Edge]:
	edges: List[Edge] = []
	for c in own:
		for name in sorted(index.referenceable.keys() & tokens[c.id]):
			for other in index.referenceable[name]:
				if other.source.file != c.source.file:
					edges.append(Edge(from_id=c.id, to_id=other.id, label=["references"]))
	return edges


def _encloses(outer: Component, inner: Component) -> bool:
	start = outer.source.line_start or 0
	end = outer.source.line_end or start
	return start <= (inner.source.line_start or 0) <= end


def _handles_edges(own: List[Component]) -> List[Edge]:
	services = [c for c in own if c.kind == "service"]
	edges: List[Edge] = []
	for transport in (c for c in own if c.kind == "transport"):
		handlers = [s for s in services if _encloses(s, transport)] or services
		edges.extend(_collect(_edge(s, transport, "handles") for s in handlers))
	return edges


def _mention_edges(
	index: ComponentIndex, own: List[Component], tokens: Mapping[str, Set[str]], kind: str, label: str
) -> List[Edge]:
	edges: List[Edge] = []
	for c in own:
		if c.kind != kind:
			continue
		for name in sorted(index.models_by_name.keys() & tokens[c.id]):
			edges.extend(_collect(_edge(c, m, label) for m in index.models_by_name[name]))
	return edges


def _payload_edges(index: ComponentIndex, own: List[Component]) -> List[Edge]:
	edges: List[Edge] = []
	for c in own:
		if c.kind not in ("transport", "service"):
			continue
		for type_name in c.consumes or []:
			edges.extend(_collect(_edge(m, c, "consumes", type_name) for m in index.models_by_name.get(type_name, [])))
		for type_name in c.produces or []:
			edges.extend(_collect(_edge(c, m, "produces", type_name) for m in index.models_by_name.get(type_name, [])))
	return edges


def _invokes(body: str, alias: str) -> bool:
	for m in _call_re(alias).finditer(body):
		if _DECLARATION_TAIL_RE.search(body[max(0, m.start() - 16) : m.start()]):
			continue
		return True
	return False


def _invocation_edges(
	index: ComponentIndex, own: List[Component], bodies: Mapping[str, str], tokens: Mapping[str, Set[str]]
) -> List[Edge]:
	edges: List[Edge] = []
	for c in own:
		if c.kind not in ("service", "transport"):
			continue
		body = bodies[c.id]
		candidates = index.ordered(
			target for alias in index.invocable.keys() & tokens[c.id] for target in index.invocable[alias]
		)
		for target in candidates:
			if target.id == c.id:
				continue
			names = aliases(target)
			if any(_dispatch_re(alias).search(body) for alias in names):
				edges.extend(_collect([_edge(c, target, "dispatches")]))
			elif target.kind == "service" and any(_invokes(body, alias) for alias in names):
				edges.extend(_collect([_edge(c, target, "calls")]))
	return edges


def infer_file_edges(
	index: ComponentIndex,
	file: str,
	text: str,
	body_window: int = 50,
) -> Dict[str, List[Edge]]:
	"""Edges whose source side lives in *file*, grouped by family."""
	out: Dict[str, List[Edge]] = {family: [] for family in FAMILIES}
	own = index.by_file.get(file, [])
	if not own:
		return out
	lines = split_lines(text)
	bodies = {c.id: component_body(c, text, lines, body_window) for c in own}
	tokens = {cid: token_set(body) for cid, body in bodies.items()}

	out["imports"] = _import_edges(index, file, own[0].language, text, own)
	out["references"] = _reference_edges(index, own, tokens)
	out["handles"] = _handles_edges(own)
	out["persists"] = _mention_edges(index, own, tokens, "transport", "persists")
	out["transforms"] = _mention_edges(index, own, tokens, "transform", "transforms")
	out["payload"] = _payload_edges(index, own)
	out["invocations"] = _invocation_edges(index, own, bodies, tokens)
	logger.debug("%s: %d edges", file, sum(len(v) for v in out.values()))
	return out


def merge_edges(edges: Iterable[Edge]) -> List[Edge]:
	"""Collapse edges per ordered pair, keeping first-seen order.

	Labels keep their first occurrence and the payload type comes from the
	first edge that has one. Merging merged output changes nothing.
	"""
	merged: Dict[tuple, Edge] = {}
	for e in edges:
		key = (e.from_id, e.to_id)
		current = merged.get(key)
		if current is None:
			merged[key] = Edge(from_id=e.from_id, to_id=e.to_id, label=list(dict.fromkeys(e.label)), payload_type=e.payload_type)
			continue
		for label in e.label:
			if label not in current.label:
				current.label.append(label)
		if current.payload_type is None and e.payload_type is not None:
			current.payload_type = e.payload_type
	return list(merged.values())


def infer_edges(
	components: List[Component],
	texts: Mapping[str, str],
	body_window: int = 50,
	min_name_length: int = 3,
	mapper: Callable = map,
) -> List[Edge]:
	"""Infer and merge every edge for a scan.

	*mapper* runs the per-file work; pass ``executor.map`` to parallelize.
	"""
	index = ComponentIndex(components, min_name_length=min_name_length)
	files = sorted(index.by_file)
	per_file = list(mapper(lambda f: infer_file_edges(index, f, texts.get(f, ""), body_window), files))
	ordered: List[Edge] = []
	for family in FAMILIES:
		for result in per_file:
			ordered.extend(result[family])
	return merge_edges(ordered)
