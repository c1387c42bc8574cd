"""Payload type extraction for transports and function-style services.

Types come from the handler's signature text: request bodies and annotated
parameters are consumed, response models and return annotations are produced.
"""

from __future__ import annotations

import re
from typing import List, Optional, Tuple

from ..text import paren_body, split_top_level


PRIMITIVES = frozenset(
	{
		"str",
		"int",
		"float",
		"dict",
		"list",
		"none",
		"bool",
		"any",
		"bytes",
		"object",
		"string",
		"number",
		"void",
		"undefined",
		"optional",
		"union",
		"promise",
		"error",
		"exception",
		"self",
		"long",
		"integer",
		"boolean",
		"double",
		"id",
	}
)

# Framework plumbing that shows up in handler signatures but is not payload.
FRAMEWORK_TYPES = frozenset(
	{
		"Request",
		"Response",
		"HttpRequest",
		"HttpResponse",
		"ResponseWriter",
		"BackgroundTasks",
		"Session",
		"AsyncSession",
		"Context",
		"WebSocket",
		"NextFunction",
		"HttpServletRequest",
		"HttpServletResponse",
		"ServerRequest",
		"CancellationToken",
		"IActionResult",
		"Status",
		"StatusCode",
	}
)

_INJECTED_DEFAULT_RE = re.compile(r"\b(?:Depends|Query|Path|Header|Cookie|Security|Form|File)\s*\(")

RESPONSE_MODEL_RE = re.compile(r"response_model\s*=\s*([A-Za-z_][\w.\[\], |]*\w\]?)")
BODY_PARAM_RE = re.compile(r"(\w+)\s*:\s*([A-Za-z_][\w.\[\]| ]*?)\s*=\s*Body\(")
NEST_BODY_RE = re.compile(r"@Body\(\s*(?:['\"][^'\"]*['\"])?\s*\)\s*\w+\s*:\s*([\w.<>\[\]| ]+)")
SPRING_BODY_RE = re.compile(r"@RequestBody\s+(?:@\w+\s+)*([\w.<>\[\], ?]+?)\s+\w+\s*[,)]")
SCHEMA_PARAM_RE = re.compile(r"(\w+)\s*:\s*(schemas\.\w[\w.\[\]| ]*)")

_TYPE_TOKEN_RE = re.compile(r"[A-Za-z_][\w.]*")
_CONTROL_WORDS = frozenset({"if", "for", "while", "switch", "catch", "return", "elif", "with", "await", "new"})
_JVM_RETURN_RE = re.compile(r"([\w.<>\[\], ?]+?)\s+\w+\s*$")


def normalize_types(raw: str) -> List[str]:
	"""Reduce a raw type expression to the payload type names it mentions.

	Generic wrappers (anything followed by "[" or "<") are unwrapped, module
	prefixes are stripped, and primitives are dropped.
	"""
	names = set()
	for match in _TYPE_TOKEN_RE.finditer(raw):
		tail = raw[match.end() : match.end() + 2]
		if tail[:1] == "<" or (tail[:1] == "[" and tail != "[]"):
			continue
		name = match.group(0).rsplit(".", 1)[-1]
		if not name or name.lower() in PRIMITIVES or name in FRAMEWORK_TYPES:
			continue
		if not name[0].isupper():
			continue
		names.add(name)
	return sorted(names)


def _param_type(param: str, language: str) -> Optional[str]:
	param = re.sub(r"@\w+(?:\.\w+)*(?:\([^)]*\))?\s*", "", param).strip()
	if not param or param in ("self", "cls", "this") or param.startswith("*"):
		return None
	head, _, default = param.partition("=")
	if default and _INJECTED_DEFAULT_RE.search(default):
		return None
	head = head.strip()
	if ":" in head:
		return head.split(":", 1)[1].strip()
	tokens = head.replace("*", " ").split()
	if len(tokens) < 2:
		return None
	if language == "go":
		return tokens[-1]
	if language in ("java", "csharp"):
		return " ".join(tokens[:-1])
	return None


def _signature(snippet: str, language: str) -> Optional[Tuple[str, str, int]]:
	"""(params, return annotation, offset past the closing paren) of the first signature."""
	for match in re.finditer(r"\(", snippet):
		before = snippet[: match.start()]
		word = re.search(r"([\w$]+)\s*$", before)
		if word is None or word.group(1) in _CONTROL_WORDS:
			continue
		span = paren_body(snippet, match.start())
		if span is None:
			return None
		params = snippet[span[0] : span[1]]
		after = snippet[span[1] + 1 :]
		rest = after.lstrip()
		ret = ""
		if language == "python":
			if rest.startswith("->"):
				ret = rest[2:].split(":", 1)[0]
			elif not rest.startswith(":"):
				continue
			if not re.search(r"\bdef\s+\w+\s*$", before):
				continue
		elif language == "go":
			ret_match = re.match(r"(\([^)]*\)|[\w.*\[\]]+)?\s*\{", rest)
			if ret_match is None:
				continue
			ret = (ret_match.group(1) or "").strip("()")
		elif language == "rust":
			ret_match = re.match(r"(?:->\s*([^{]+?))?\s*(?:where\b[^{]*)?\{", rest)
			if ret_match is None:
				continue
			ret = ret_match.group(1) or ""
		elif rest.startswith(("{", "=>")):
			if language in ("java", "csharp"):
				line_head = before.rsplit("\n", 1)[-1]
				line_head = line_head[: len(line_head) - len(word.group(0))]
				jvm = _JVM_RETURN_RE.search(line_head + " x")
				if jvm:
					ret = jvm.group(1)
		elif rest.startswith(":"):
			ret_match = re.match(r":\s*([^{;]+?)\s*(?:\{|=>)", rest)
			if ret_match is None:
				continue
			ret = ret_match.group(1)
		elif language in ("java", "csharp", "kotlin") and rest.startswith("throws"):
			pass
		else:
			continue
		return params, ret, span[1] + 1
	return None


def first_signature(snippet: str, language: str) -> Optional[Tuple[str, str]]:
	"""(params, return annotation) of the first function signature in *snippet*."""
	sig = _signature(snippet, language)
	return None if sig is None else sig[:2]


def _up_to_next_decorator(snippet: str) -> str:
	lines = snippet.split("\n")
	seen_code = False
	depth = 0
	for idx, line in enumerate(lines):
		stripped = line.strip()
		if depth == 0 and stripped.startswith(("@", "[")):
			if seen_code:
				return "\n".join(lines[:idx])
		elif stripped:
			seen_code = True
		depth = max(0, depth + line.count("(") - line.count(")"))
	return snippet


def declaration_text(snippet: str, language: str) -> str:
	"""Leading decorators and parameter list of the first declaration in *snippet*.

	The text never runs past the next decorator or attribute line that follows
	code, so a neighbouring handler is not included.
	"""
	own = _up_to_next_decorator(snippet)
	sig = _signature(own, language)
	return own if sig is None else own[: sig[2]]


def signature_types(snippet: str, language: str) -> Tuple[List[str], List[str]]:
	sig = first_signature(snippet, language)
	if sig is None:
		return [], []
	params, ret = sig
	consumes: List[str] = []
	for param in split_top_level(params, ","):
		type_text = _param_type(param, language)
		if type_text:
			consumes.extend(normalize_types(type_text))
	return sorted(set(consumes)), normalize_types(ret)


def extract_payload_types(snippet: str, language: str) -> Tuple[Optional[List[str]], Optional[List[str]]]:
	"""Consumes/produces type names for the handler whose text starts *snippet*."""
	consumes: List[str] = []
	produces: List[str] = []
	decl = declaration_text(snippet, language)

	m = RESPONSE_MODEL_RE.search(decl)
	if m:
		produces.extend(normalize_types(m.group(1)))

	for regex, group in ((BODY_PARAM_RE, 2), (NEST_BODY_RE, 1), (SPRING_BODY_RE, 1)):
		m = regex.search(decl)
		if m:
			consumes.extend(normalize_types(m.group(group)))
			break

	if not consumes:
		for m in SCHEMA_PARAM_RE.finditer(decl):
			consumes.extend(normalize_types(m.group(2)))

	sig_consumes, sig_produces = signature_types(_up_to_next_decorator(snippet), language)
	if not consumes:
		consumes.extend(sig_consumes)
	if not produces:
		produces.extend(sig_produces)

	consumes = sorted(set(consumes))
	produces = sorted(set(produces))
	return consumes or None, produces or None
