"""Text helpers shared by the detectors and the relationship inferencer.

Nothing here parses a real grammar: block extents come from brace counting
or indentation, and "tokens" are identifier-shaped runs of characters.
"""

from __future__ import annotations

import re
from typing import List, Optional, Set, Tuple

from .language import BRACE_LANGUAGES


_IDENT_RE = re.compile(r"[A-Za-z_$][\w$]*")
_OPEN_TAIL = ("{", "(", "[", ",", "=>", "=", "->", "+", "&&", "||", "\\")


def split_lines(text: str) -> List[str]:
	"""Split on "\n" only, so line numbers agree with line_of."""
	return text.split("\n")


def line_of(text: str, offset: int) -> int:
	"""1-based line number of a character offset."""
	return text.count("\n", 0, offset) + 1


def token_set(text: str) -> Set[str]:
	return set(_IDENT_RE.findall(text))


def lower_camel(name: str) -> str:
	return name[:1].lower() + name[1:]


def snake_case(name: str) -> str:
	s = re.sub(r"(.)([A-Z][a-z]+)", r"\1_\2", name)
	return re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", s).lower()


def _indent(line: str) -> int:
	return len(line) - len(line.lstrip())


def _code_chars(line: str, quotes: str) -> str:
	"""The line's bracket-relevant characters: string contents and "//" comments dropped."""
	out: List[str] = []
	quote = ""
	escaped = False
	for idx, ch in enumerate(line):
		if quote:
			if escaped:
				escaped = False
			elif ch == "\\":
				escaped = True
			elif ch == quote:
				quote = ""
			continue
		if ch in quotes:
			quote = ch
			continue
		if ch == "/" and line[idx + 1 : idx + 2] == "/":
			break
		out.append(ch)
	return "".join(out)


def _brace_block_end(lines: List[str], start_idx: int, quotes: str = "\"'`") -> int:
	depth = 0
	parens = 0
	opened = False
	for idx in range(start_idx, len(lines)):
		line = _code_chars(lines[idx], quotes)
		for ch in line:
			if ch == "{":
				depth += 1
				opened = True
			elif ch == "}":
				depth -= 1
				if opened and depth <= 0:
					return idx + 1
			elif ch == "(":
				parens += 1
			elif ch == ")":
				parens -= 1
		if opened:
			continue
		stripped = line.strip()
		if not stripped or stripped.startswith(("@", "[", "#[")):
			continue
		if parens > 0 or stripped.endswith(_OPEN_TAIL):
			continue
		nxt = _next_code_line(lines, idx + 1)
		if nxt is not None and lines[nxt].strip().startswith("{"):
			continue
		return idx + 1
	return len(lines)


def _next_code_line(lines: List[str], idx: int) -> Optional[int]:
	for j in range(idx, len(lines)):
		if lines[j].strip():
			return j
	return None


def _indent_block_end(lines: List[str], start_idx: int, language: str) -> int:
	idx = start_idx
	# Decorators sit above the declaration they belong to.
	while idx < len(lines) and lines[idx].strip().startswith("@"):
		idx += 1
	if idx >= len(lines):
		return len(lines)
	header_indent = _indent(lines[idx])
	parens = 0
	while idx < len(lines):
		for ch in lines[idx]:
			if ch in "([{":
				parens += 1
			elif ch in ")]}":
				parens -= 1
		if parens <= 0:
			break
		idx += 1
	end = idx
	for j in range(idx + 1, len(lines)):
		line = lines[j]
		if not line.strip():
			continue
		if _indent(line) > header_indent:
			end = j
			continue
		if language == "ruby" and line.strip() == "end" and _indent(line) == header_indent:
			end = j
		break
	return min(end, len(lines) - 1) + 1


def block_end(lines: List[str], start_line: int, language: str) -> int:
	"""Best-effort last line (1-based) of the block declared at *start_line*."""
	if not lines:
		return start_line
	start_idx = max(0, min(start_line - 1, len(lines) - 1))
	if language in BRACE_LANGUAGES:
		# Rust lifetimes use a lone "'".
		return _brace_block_end(lines, start_idx, "\"" if language == "rust" else "\"'`")
	return _indent_block_end(lines, start_idx, language)


def brace_body(text: str, offset: int) -> Optional[Tuple[int, int]]:
	"""Span of the text between the first "{" at/after *offset* and its match."""
	start = text.find("{", offset)
	if start < 0:
		return None
	depth = 0
	for idx in range(start, len(text)):
		ch = text[idx]
		if ch == "{":
			depth += 1
		elif ch == "}":
			depth -= 1
			if depth == 0:
				return start + 1, idx
	return start + 1, len(text)


def paren_body(text: str, offset: int) -> Optional[Tuple[int, int]]:
	start = text.find("(", offset)
	if start < 0:
		return None
	depth = 0
	for idx in range(start, len(text)):
		ch = text[idx]
		if ch in "(<[":
			depth += 1
		elif ch in ")>]":
			depth -= 1
			if depth == 0:
				return start + 1, idx
	return start + 1, len(text)


def call_args(text: str, open_offset: int) -> str:
	"""Argument text of the call whose "(" sits at *open_offset*."""
	depth = 0
	quote = ""
	for idx in range(open_offset, len(text)):
		ch = text[idx]
		if quote:
			if ch == quote and text[idx - 1] != "\\":
				quote = ""
			continue
		if ch in "\"'`":
			quote = ch
		elif ch in "([{":
			depth += 1
		elif ch in ")]}":
			depth -= 1
			if depth == 0:
				return text[open_offset + 1 : idx]
	return text[open_offset + 1 :]


def split_top_level(body: str, separators: str = ",;\n") -> List[str]:
	"""Split *body* on separators that are not nested in brackets."""
	parts: List[str] = []
	depth = 0
	current: List[str] = []
	for ch in body:
		if ch in "([{<":
			depth += 1
		elif ch in ")]}>":
			depth = max(0, depth - 1)
		if ch in separators and depth == 0:
			parts.append("".join(current))
			current = []
			continue
		current.append(ch)
	parts.append("".join(current))
	return [p.strip() for p in parts if p.strip()]


_FUNCTION_DECLS = (
	r"function\s*\*?\s*{name}\s*\(",
	r"(?:const|let|var)\s+{name}\s*=",
	r"(?:async\s+)?def\s+{name}\s*\(",
	r"func\s+(?:\([^)]*\)\s*)?{name}\s*\(",
	r"fn\s+{name}\s*[<(]",
)


def find_function_span(text: str, name: str, language: str) -> Optional[Tuple[int, int]]:
	"""Line span of a function called *name* declared in *text*, if any."""
	escaped = re.escape(name)
	for template in _FUNCTION_DECLS:
		match = re.search(r"(?m)^[ \t]*(?:export\s+)?(?:pub\s+)?(?:async\s+)?" + template.format(name=escaped), text)
		if match:
			start = line_of(text, match.start())
			return start, block_end(split_lines(text), start, language)
	return None
