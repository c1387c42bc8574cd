from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterator, List, Optional, Tuple, Union

from ..model import CandidateComponent, ComponentKind
from ..text import block_end, line_of, split_lines


ALL_LANGUAGES: FrozenSet[str] = frozenset(
	{
		"typescript",
		"javascript",
		"rust",
		"python",
		"go",
		"java",
		"kotlin",
		"csharp",
		"ruby",
		"protobuf",
		"graphql",
	}
)
JS_LIKE: FrozenSet[str] = frozenset({"typescript", "javascript"})
JVM_LIKE: FrozenSet[str] = frozenset({"java", "kotlin"})


def frozenset_of(*languages: str) -> FrozenSet[str]:
	return frozenset(languages)


@dataclass(frozen=True)
class PatternRule:
	"""One declarative detection rule: a pattern, where it applies, what it names."""

	name: str
	regex: "re.Pattern[str]"
	languages: FrozenSet[str]
	name_group: Union[int, str] = 1
	metadata: Dict[str, str] = field(default_factory=dict)
	# Group whose start marks the declaration line; 0 means the whole match.
	anchor_group: Union[int, str] = 0

	def applies_to(self, language: str) -> bool:
		return language in self.languages

	def finditer(self, text: str) -> Iterator["re.Match[str]"]:
		return self.regex.finditer(text)


def rule(
	name: str,
	pattern: str,
	languages: FrozenSet[str],
	name_group: Union[int, str] = 1,
	anchor_group: Union[int, str] = 0,
	**metadata: str,
) -> PatternRule:
	return PatternRule(
		name=name,
		regex=re.compile(pattern, re.MULTILINE),
		languages=languages,
		name_group=name_group,
		metadata=dict(metadata),
		anchor_group=anchor_group,
	)


@dataclass
class SourceText:
	"""A file's text with its split lines, shared by every rule run on it."""

	path: str
	language: str
	text: str
	lines: List[str] = field(default_factory=list)
	offsets: List[int] = field(default_factory=list)

	def __post_init__(self) -> None:
		self.lines = split_lines(self.text)
		self.offsets = [0]
		for line in self.lines[:-1]:
			self.offsets.append(self.offsets[-1] + len(line) + 1)

	def line_offset(self, line: int) -> int:
		return self.offsets[max(0, min(line - 1, len(self.offsets) - 1))]

	def slice_lines(self, start: int, end: int) -> str:
		return "\n".join(self.lines[start - 1 : end])

	def span(self, offset: int) -> Tuple[int, int]:
		start = line_of(self.text, offset)
		return start, block_end(self.lines, start, self.language)

	def window(self, start_line: int, size: int) -> str:
		idx = max(0, start_line - 1)
		return "\n".join(self.lines[idx : idx + size])


def make_candidate(
	source: SourceText,
	kind: ComponentKind,
	name: Optional[str],
	offset: int,
	metadata: Optional[Dict[str, str]] = None,
	**fields,
) -> CandidateComponent:
	start, end = source.span(offset)
	return CandidateComponent(
		name=name,
		kind=kind,
		language=source.language,
		file=source.path,
		line_start=start,
		line_end=end,
		metadata=dict(metadata or {}),
		**fields,
	)


def run_rules(
	rules: List[PatternRule],
	source: SourceText,
	kind: ComponentKind,
) -> List[Tuple[PatternRule, "re.Match[str]", CandidateComponent]]:
	"""Apply every rule for the source's language, in order."""
	results = []
	for r in rules:
		if not r.applies_to(source.language):
			continue
		for match in r.finditer(source.text):
			name = match.group(r.name_group)
			anchor = match.start(r.anchor_group) if match.group(r.anchor_group) is not None else match.start()
			meta = {"rule": r.name}
			meta.update(r.metadata)
			results.append((r, match, make_candidate(source, kind, name, anchor, meta)))
	return results
