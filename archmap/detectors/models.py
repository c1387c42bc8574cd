"""Model detector: type, struct, record and schema declarations."""

from __future__ import annotations

import re
from typing import List, Optional

from ..model import CandidateComponent
from ..text import brace_body, paren_body, split_top_level
from .base import JS_LIKE, PatternRule, SourceText, frozenset_of, rule, run_rules


_MODIFIERS = r"(?:(?:public|private|protected|internal|static|final|sealed|abstract|open|partial)\s+)*"

MODEL_RULES: List[PatternRule] = [
	rule("ts_interface", r"^[ \t]*(?:export\s+)?(?:declare\s+)?interface\s+(\w+)", JS_LIKE),
	rule("ts_type_alias", r"^[ \t]*(?:export\s+)?(?:declare\s+)?type\s+(\w+)\s*(?:<[^=\n]*>)?\s*=", JS_LIKE),
	rule("ts_enum", r"^[ \t]*(?:export\s+)?(?:declare\s+)?(?:const\s+)?enum\s+(\w+)", JS_LIKE),
	rule("rust_struct", r"^[ \t]*(?:pub(?:\([^)]*\))?\s+)?struct\s+(\w+)", frozenset_of("rust")),
	rule("rust_enum", r"^[ \t]*(?:pub(?:\([^)]*\))?\s+)?enum\s+(\w+)", frozenset_of("rust")),
	rule(
		"python_dataclass",
		r"^[ \t]*@(?:dataclasses\.)?dataclass(?:\([^)]*\))?[ \t]*\n(?:[ \t]*@[^\n]*\n)*[ \t]*class\s+(\w+)",
		frozenset_of("python"),
		anchor_group=1,
	),
	rule(
		"python_schema_class",
		r"^[ \t]*class\s+(\w+)\s*\((?:[^)]*,\s*)?(?:\w+\.)*(?:BaseModel|Schema|TypedDict|SQLModel|Model)\b[^)]*\)",
		frozenset_of("python"),
	),
	rule("go_struct", r"^type\s+(\w+)\s+struct\s*\{", frozenset_of("go")),
	rule("proto_message", r"^[ \t]*message\s+(\w+)\s*\{", frozenset_of("protobuf")),
	rule(
		"record",
		r"^[ \t]*" + _MODIFIERS + r"record\s+(?:class\s+|struct\s+)?(\w+)",
		frozenset_of("java", "csharp"),
	),
	rule(
		"kotlin_data_class",
		r"^[ \t]*(?:(?:public|internal|private)\s+)?data\s+class\s+(\w+)",
		frozenset_of("kotlin"),
	),
	rule(
		"annotated_entity",
		r"^[ \t]*@(?:Entity|Table|Document|Data|Embeddable)\b[^\n]*\n(?:[ \t]*@[^\n]*\n)*[ \t]*"
		+ _MODIFIERS
		+ r"(?:data\s+)?class\s+(\w+)",
		frozenset_of("java", "kotlin"),
		anchor_group=1,
	),
	rule(
		"active_record",
		r"^[ \t]*class\s+(\w+)\s*<\s*(?:ApplicationRecord|ActiveRecord::Base)\b",
		frozenset_of("ruby"),
	),
	rule(
		"graphql_type",
		r"^[ \t]*(?:type|input|enum|interface)\s+(?!(?:Query|Mutation|Subscription)\b)(\w+)[^{\n]*\{",
		frozenset_of("graphql"),
	),
]


_TS_MEMBER_RE = re.compile(r"^(?:readonly\s+)?[\"']?([A-Za-z_$][\w$]*)[\"']?\s*\??\s*(?::|=|$)")
_RUST_FIELD_RE = re.compile(r"^(?:pub(?:\([^)]*\))?\s+)?(\w+)\s*(?::|\(|\{|=|$)")
_GO_FIELD_RE = re.compile(r"^(\w+)\b")
_PROTO_FIELD_RE = re.compile(r"(\w+)\s*=\s*\d+")
_GRAPHQL_FIELD_RE = re.compile(r"(?<![\w$])([A-Za-z_]\w*)\s*(?:\([^)]*\))?\s*:")
_GRAPHQL_NOISE_RE = re.compile(r"\"\"\"[\s\S]*?\"\"\"|\"[^\"\n]*\"|#[^\n]*|@\w+(?:\([^)]*\))?")
_PY_FIELD_RE = re.compile(r"^(\w+)\s*:\s*\S")
_PY_COLUMN_RE = re.compile(r"^(\w+)\s*=\s*(?:\w+\.)*(?:\w+Field|Column|mapped_column|Field|relationship)\(")
_JVM_FIELD_RE = re.compile(r"(\w+)\s*(?:=[^;]*)?;\s*$")
_KOTLIN_PROP_RE = re.compile(r"\b(?:val|var)\s+(\w+)")
_CS_PROPERTY_RE = re.compile(r"(\w+)\s*\{\s*(?:get|set|init)\b")
_ANNOTATION_RE = re.compile(r"@\w+(?:\.\w+)*(?:\([^)]*\))?\s*")
_PROTO_SKIP = ("option", "reserved", "message", "enum", "oneof", "extensions", "//")


def _clean_member(part: str) -> str:
	lines = [ln.strip() for ln in part.splitlines()]
	lines = [ln for ln in lines if ln and not ln.startswith(("//", "/*", "*", "#[", "#"))]
	return " ".join(lines)


def _top_level_lines(body: str) -> List[str]:
	out: List[str] = []
	depth = 0
	for line in body.splitlines():
		if depth == 0 and line.strip():
			out.append(line.strip())
		depth += line.count("{") - line.count("}")
		depth = max(depth, 0)
	return out


def _fields_from_braces(language: str, body: str) -> List[str]:
	fields: List[str] = []
	if language in JS_LIKE:
		for part in split_top_level(body):
			member = _clean_member(part)
			m = _TS_MEMBER_RE.match(member)
			if m:
				fields.append(m.group(1))
	elif language == "rust":
		for part in split_top_level(body, ",\n"):
			member = _clean_member(part)
			m = _RUST_FIELD_RE.match(member)
			if m:
				fields.append(m.group(1))
	elif language == "go":
		for part in split_top_level(body, ";\n"):
			member = _clean_member(part)
			m = _GO_FIELD_RE.match(member)
			if m:
				fields.append(m.group(1))
	elif language == "protobuf":
		for part in split_top_level(body, ";\n"):
			member = _clean_member(part)
			if not member or member.startswith(_PROTO_SKIP):
				continue
			m = _PROTO_FIELD_RE.search(member)
			if m:
				fields.append(m.group(1))
	elif language == "graphql":
		# Fields may share a line, so pick out "name(args)?:" pairs.
		member = _GRAPHQL_NOISE_RE.sub(" ", body)
		if ":" in member:
			fields.extend(_GRAPHQL_FIELD_RE.findall(member))
		else:
			fields.extend(re.findall(r"\b[A-Za-z_]\w*\b", member))
	elif language == "kotlin":
		for line in _top_level_lines(body):
			m = _KOTLIN_PROP_RE.search(line)
			if m:
				fields.append(m.group(1))
	elif language in ("java", "csharp"):
		for line in _top_level_lines(body):
			line = _ANNOTATION_RE.sub("", line)
			if line.startswith(("//", "/*", "*")):
				continue
			m = _CS_PROPERTY_RE.search(line)
			if m:
				fields.append(m.group(1))
				continue
			if "(" in line:
				continue
			m = _JVM_FIELD_RE.search(line)
			if m:
				fields.append(m.group(1))
	return fields


def _fields_from_params(params: str) -> List[str]:
	fields: List[str] = []
	for part in split_top_level(params, ","):
		member = _ANNOTATION_RE.sub("", _clean_member(part))
		member = member.split("=", 1)[0].strip()
		if ":" in member:
			head = member.split(":", 1)[0].split()
		else:
			head = member.split()
		if head and re.match(r"^\w+$", head[-1]):
			fields.append(head[-1])
	return fields


def _python_fields(source: SourceText, candidate: CandidateComponent) -> List[str]:
	start = (candidate.line_start or 1) - 1
	end = candidate.line_end or start + 1
	header = start
	while header < end and not source.lines[header].lstrip().startswith("class "):
		header += 1
	fields: List[str] = []
	body_indent: Optional[int] = None
	in_docstring = False
	for line in source.lines[header + 1 : end]:
		stripped = line.strip()
		if not stripped:
			continue
		quotes = stripped.count('"""') + stripped.count("'''")
		if in_docstring:
			if quotes % 2 == 1:
				in_docstring = False
			continue
		if quotes:
			in_docstring = quotes % 2 == 1
			continue
		indent = len(line) - len(line.lstrip())
		if body_indent is None:
			body_indent = indent
		if indent != body_indent:
			continue
		m = _PY_FIELD_RE.match(stripped) or _PY_COLUMN_RE.match(stripped)
		if m:
			fields.append(m.group(1))
	return fields


def _extract_fields(source: SourceText, candidate: CandidateComponent, match: "re.Match[str]", r: PatternRule) -> List[str]:
	language = source.language
	if language == "python":
		return _python_fields(source, candidate)
	if language == "ruby":
		return []
	start = candidate.line_start or 1
	end = candidate.line_end or start
	decl_text = source.slice_lines(start, end)
	decl_end = match.end()
	if match.group(0).endswith("{"):
		decl_end -= 1
	rel = decl_end - source.line_offset(start)
	rel = max(0, min(rel, len(decl_text)))
	if r.name in ("record", "kotlin_data_class") or (
		r.name == "annotated_entity" and language == "kotlin"
	):
		paren_at = decl_text.find("(", rel)
		brace_at = decl_text.find("{", rel)
		if paren_at >= 0 and (brace_at < 0 or paren_at < brace_at):
			span = paren_body(decl_text, paren_at)
			if span:
				return _fields_from_params(decl_text[span[0] : span[1]])
	span = brace_body(decl_text, rel)
	if span is None:
		return []
	return _fields_from_braces(language, decl_text[span[0] : span[1]])


def detect(file_path: str, language: str, text: str) -> List[CandidateComponent]:
	source = SourceText(path=file_path, language=language, text=text)
	candidates: List[CandidateComponent] = []
	for r, match, candidate in run_rules(MODEL_RULES, source, "model"):
		candidate.metadata["detection"] = "declaration"
		fields = _extract_fields(source, candidate, match, r)
		candidate.member_fields = fields or None
		candidates.append(candidate)
	return candidates
