"""Service detector: annotated controllers/providers and directory conventions."""

from __future__ import annotations

import posixpath
from typing import List

from ..model import CandidateComponent
from .base import JS_LIKE, PatternRule, SourceText, frozenset_of, rule, run_rules
from .payload import signature_types


SERVICE_DIRS = frozenset(
	{
		"services",
		"service",
		"controllers",
		"handlers",
		"resolvers",
		"middleware",
		"api",
		"crud",
		"workers",
		"jobs",
	}
)

_MODIFIERS = r"(?:(?:public|private|protected|internal|static|final|sealed|abstract|open|partial|default)\s+)*"

DECORATOR_RULES: List[PatternRule] = [
	rule(
		"class_decorator",
		r"^[ \t]*@(Controller|RestController|Injectable|Service|Resolver)\b\s*(?:\([^)]*\))?[ \t]*\n"
		r"(?:[ \t]*@[^\n]*\n)*[ \t]*(?:export\s+)?" + _MODIFIERS + r"class\s+(\w+)",
		JS_LIKE | frozenset_of("java", "kotlin"),
		name_group=2,
		anchor_group=2,
	),
	rule(
		"python_view_class",
		r"^[ \t]*class\s+(\w+)\s*\([^)\n]*(?:Resource|View|ViewSet|APIView)\)",
		frozenset_of("python"),
	),
	rule(
		"csharp_api_controller",
		r"^[ \t]*\[(ApiController)\][^\n]*\n(?:[ \t]*\[[^\n]*\n)*[ \t]*" + _MODIFIERS + r"class\s+(\w+)",
		frozenset_of("csharp"),
		name_group=2,
		anchor_group=2,
	),
	rule(
		"csharp_controller_base",
		r"^[ \t]*" + _MODIFIERS + r"class\s+(\w+)\s*:\s*(?:Controller|ControllerBase)\b",
		frozenset_of("csharp"),
	),
	rule(
		"rails_controller",
		r"^[ \t]*class\s+(\w+)\s*<\s*(?:ApplicationController|ActionController::(?:Base|API))\b",
		frozenset_of("ruby"),
	),
]

# Directory-convention rules, tried tier by tier; the first tier with a match wins.
DIRECTORY_TIERS: List[List[PatternRule]] = [
	[
		rule(
			"dir_class",
			r"^(?:export\s+)?(?:default\s+)?class\s+(\w+)",
			JS_LIKE | frozenset_of("python", "ruby"),
		),
		rule(
			"dir_class",
			r"^[ \t]*" + _MODIFIERS + r"class\s+(\w+)",
			frozenset_of("java", "kotlin", "csharp"),
		),
	],
	[
		rule(
			"dir_function",
			r"^export\s+(?:default\s+)?(?:async\s+)?function\s+(\w+)",
			JS_LIKE,
			shape="function",
		),
		rule("dir_function", r"^func\s+([A-Z]\w*)\s*\(", frozenset_of("go"), shape="function"),
		rule("dir_function", r"^pub\s+(?:async\s+)?fn\s+(\w+)", frozenset_of("rust"), shape="function"),
	],
	[
		rule(
			"dir_function",
			r"^(?:async\s+)?def\s+(\w+)\s*\(",
			frozenset_of("python"),
			shape="function",
		),
	],
]


def is_service_dir(file_path: str) -> bool:
	directory = posixpath.dirname(file_path.replace("\\", "/"))
	return any(part.lower() in SERVICE_DIRS for part in directory.split("/") if part)


def _attach_signature(source: SourceText, candidate: CandidateComponent, window: int) -> None:
	snippet = source.window(candidate.line_start or 1, window)
	consumes, produces = signature_types(snippet, source.language)
	candidate.consumes = consumes or None
	candidate.produces = produces or None


def detect(file_path: str, language: str, text: str, payload_window: int = 30) -> List[CandidateComponent]:
	source = SourceText(path=file_path, language=language, text=text)
	candidates: List[CandidateComponent] = []

	for r, match, candidate in run_rules(DECORATOR_RULES, source, "service"):
		candidate.metadata["detection"] = "decorator"
		if r.name_group == 2:
			candidate.metadata["decorator"] = match.group(1)
		candidates.append(candidate)

	if candidates or not is_service_dir(file_path):
		return candidates

	for tier in DIRECTORY_TIERS:
		for r, match, candidate in run_rules(tier, source, "service"):
			if language == "python" and (candidate.name or "").startswith("_"):
				continue
			candidate.metadata["detection"] = "directory_convention"
			if r.metadata.get("shape") == "function":
				_attach_signature(source, candidate, payload_window)
			candidates.append(candidate)
		if candidates:
			break
	return candidates
