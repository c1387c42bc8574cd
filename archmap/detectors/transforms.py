"""Transform detector: conversion-named functions and conversion traits."""

from __future__ import annotations

from typing import List

from ..model import CandidateComponent
from .base import JS_LIKE, PatternRule, SourceText, frozenset_of, rule, run_rules


_SNAKE_NAME = r"((?:to|from)_\w+|convert\w*|transform\w*)"
_CAMEL_NAME = r"((?:to|from)[A-Z]\w*|convert\w*|transform\w*)"
_PASCAL_NAME = r"((?:[Tt]o|[Ff]rom)[A-Z]\w*|[Cc]onvert\w*|[Tt]ransform\w*)"

# Overrides that are named like conversions but are not.
IGNORED_NAMES = frozenset({"toString", "ToString", "toJSON", "toJson", "hashCode"})

TRANSFORM_RULES: List[PatternRule] = [
	rule("python_def", r"^[ \t]*(?:async\s+)?def\s+" + _SNAKE_NAME + r"\s*\(", frozenset_of("python")),
	rule(
		"rust_fn",
		r"^[ \t]*(?:pub(?:\([^)]*\))?\s+)?(?:const\s+)?(?:async\s+)?fn\s+" + _SNAKE_NAME + r"\s*[<(]",
		frozenset_of("rust"),
	),
	rule(
		"js_function",
		r"^[ \t]*(?:export\s+)?(?:default\s+)?(?:async\s+)?function\s*\*?\s*" + _CAMEL_NAME + r"\s*[<(]",
		JS_LIKE,
	),
	rule(
		"js_arrow",
		r"^[ \t]*(?:export\s+)?(?:const|let|var)\s+" + _CAMEL_NAME + r"\s*(?::[^=\n]+)?=\s*(?:async\s*)?(?:\(|\w+\s*=>|function\b)",
		JS_LIKE,
	),
	rule("go_func", r"^func\s+(?:\([^)]*\)\s*)?" + _PASCAL_NAME + r"\s*\(", frozenset_of("go")),
	rule(
		"method",
		r"^[ \t]*(?:(?:public|private|protected|internal|static|final|override|suspend|open|async|virtual)\s+)*"
		r"(?:fun\s+(?:<[^>]*>\s*)?(?:[\w<>]+\.)?|(?!return\b|new\b|await\b|throw\b|else\b)[\w<>\[\],.?]+\s+)"
		+ _PASCAL_NAME
		+ r"\s*\(",
		frozenset_of("java", "kotlin", "csharp"),
	),
	rule(
		"conversion_trait",
		r"^[ \t]*impl(?:<[^>\n]*>)?\s+(?P<trait>(?:Try)?From)<(?P<source>[^>{\n]+)>\s+for\s+(?P<target>[\w:]+(?:<[^>{\n]*>)?)",
		frozenset_of("rust"),
		name_group="trait",
	),
]


def detect(file_path: str, language: str, text: str) -> List[CandidateComponent]:
	source = SourceText(path=file_path, language=language, text=text)
	candidates: List[CandidateComponent] = []
	for r, match, candidate in run_rules(TRANSFORM_RULES, source, "transform"):
		if r.name == "conversion_trait":
			trait = match.group("trait")
			candidate.name = f"{trait}<{match.group('source').strip()}> for {match.group('target')}"
			candidate.metadata["trait"] = trait
			candidate.metadata["detection"] = "conversion_trait"
		else:
			if candidate.name in IGNORED_NAMES:
				continue
			candidate.metadata["detection"] = "naming_convention"
		candidates.append(candidate)
	return candidates
