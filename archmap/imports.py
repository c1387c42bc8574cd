"""Import statement extraction, one small grammar per language.

Each import is reported as ``(target, symbols)``: *target* is the last path
segment of the imported module (what a file stem would be) and *symbols* are
the names explicitly pulled in from it.
"""

from __future__ import annotations

import posixpath
import re
from typing import Callable, Dict, List, Tuple

from .language import EXTENSION_LANGUAGE

Import = Tuple[str, List[str]]

_ES_FROM_RE = re.compile(r"\bimport\s+(?:type\s+)?(?P<clause>[\w*{}\s,$]+?)\s+from\s+['\"](?P<target>[^'\"]+)['\"]")
_ES_BARE_RE = re.compile(r"\bimport\s+['\"](?P<target>[^'\"]+)['\"]")
_REQUIRE_RE = re.compile(
	r"(?:(?:const|let|var)\s+(?P<clause>\{[^}]*\}|[\w$]+)\s*=\s*)?\brequire\(\s*['\"](?P<target>[^'\"]+)['\"]\s*\)"
)
_RUST_USE_RE = re.compile(r"^[ \t]*(?:pub(?:\([^)]*\))?\s+)?use\s+(?P<path>[\w:]+?)(?:::\{(?P<group>[^}]*)\})?\s*;", re.MULTILINE)
_PY_FROM_RE = re.compile(
	r"^[ \t]*from\s+(?P<module>[\w.]+)\s+import\s+(?:\((?P<group>[^)]*)\)|(?P<names>[^\n#]+))", re.MULTILINE
)
_PY_IMPORT_RE = re.compile(r"^[ \t]*import\s+(?P<modules>[\w.]+(?:\s+as\s+\w+)?(?:\s*,\s*[\w.]+(?:\s+as\s+\w+)?)*)", re.MULTILINE)
_GO_SINGLE_RE = re.compile(r"^import\s+(?:[\w.]+\s+)?\"(?P<target>[^\"]+)\"", re.MULTILINE)
_GO_GROUP_RE = re.compile(r"^import\s*\((?P<body>[^)]*)\)", re.MULTILINE)
_GO_GROUP_ITEM_RE = re.compile(r"\"([^\"]+)\"")
_JVM_IMPORT_RE = re.compile(r"^[ \t]*import\s+(?:static\s+)?(?P<path>[\w.]+?)(?:\.\*)?\s*;?\s*$", re.MULTILINE)
_USING_RE = re.compile(r"^[ \t]*using\s+(?:static\s+)?(?:\w+\s*=\s*)?(?P<path>[\w.]+)\s*;", re.MULTILINE)
_RUBY_REQUIRE_RE = re.compile(r"^[ \t]*require(?:_relative)?\s*\(?\s*['\"](?P<target>[^'\"]+)['\"]", re.MULTILINE)
_PROTO_IMPORT_RE = re.compile(r"^[ \t]*import\s+(?:public\s+|weak\s+)?\"(?P<target>[^\"]+)\"", re.MULTILINE)
_IDENT_RE = re.compile(r"^[A-Za-z_$][\w$]*$")


def module_stem(target: str) -> str:
	"""Last path segment of an import target, without a source extension."""
	last = target.rstrip("/").rsplit("/", 1)[-1]
	stem, ext = posixpath.splitext(last)
	if ext.lower() in EXTENSION_LANGUAGE or ext.lower() == ".proto":
		return stem
	return last


def _names(clause: str) -> List[str]:
	names: List[str] = []
	for part in clause.replace("{", ",").replace("}", ",").split(","):
		part = part.strip()
		if not part or part.startswith("*"):
			continue
		name = part.split()[0]
		if name == "type" and len(part.split()) > 1:
			name = part.split()[1]
		if _IDENT_RE.match(name) and name != "self":
			names.append(name)
	return names


def _es_imports(text: str) -> List[Import]:
	out: List[Import] = []
	for m in _ES_FROM_RE.finditer(text):
		out.append((module_stem(m.group("target")), _names(m.group("clause"))))
	for m in _ES_BARE_RE.finditer(text):
		out.append((module_stem(m.group("target")), []))
	for m in _REQUIRE_RE.finditer(text):
		out.append((module_stem(m.group("target")), _names(m.group("clause") or "")))
	return out


def _rust_imports(text: str) -> List[Import]:
	out: List[Import] = []
	for m in _RUST_USE_RE.finditer(text):
		segments = [s for s in m.group("path").split("::") if s]
		if m.group("group") is not None:
			symbols = _names(m.group("group"))
			module = segments[-1] if segments else ""
		elif segments and segments[-1][:1].isupper():
			symbols = [segments[-1]]
			module = segments[-2] if len(segments) > 1 else ""
		else:
			symbols = []
			module = segments[-1] if segments else ""
		if module in ("crate", "self", "super"):
			module = ""
		out.append((module, symbols))
	return out


def _python_imports(text: str) -> List[Import]:
	out: List[Import] = []
	for m in _PY_FROM_RE.finditer(text):
		names = m.group("group") if m.group("group") is not None else m.group("names")
		module = m.group("module").rsplit(".", 1)[-1]
		out.append((module, _names(names.replace("\n", ","))))
	for m in _PY_IMPORT_RE.finditer(text):
		for part in m.group("modules").split(","):
			dotted = part.split()[0]
			out.append((dotted.rsplit(".", 1)[-1], []))
	return out


def _go_imports(text: str) -> List[Import]:
	out: List[Import] = []
	for m in _GO_SINGLE_RE.finditer(text):
		out.append((module_stem(m.group("target")), []))
	for m in _GO_GROUP_RE.finditer(text):
		for item in _GO_GROUP_ITEM_RE.finditer(m.group("body")):
			out.append((module_stem(item.group(1)), []))
	return out


def _jvm_imports(text: str) -> List[Import]:
	out: List[Import] = []
	for m in _JVM_IMPORT_RE.finditer(text):
		last = m.group("path").rsplit(".", 1)[-1]
		out.append((last, [last] if last[:1].isupper() else []))
	return out


def _csharp_imports(text: str) -> List[Import]:
	return [(m.group("path").rsplit(".", 1)[-1], []) for m in _USING_RE.finditer(text)]


def _ruby_imports(text: str) -> List[Import]:
	return [(module_stem(m.group("target")), []) for m in _RUBY_REQUIRE_RE.finditer(text)]


def _proto_imports(text: str) -> List[Import]:
	return [(module_stem(m.group("target")), []) for m in _PROTO_IMPORT_RE.finditer(text)]


EXTRACTORS: Dict[str, Callable[[str], List[Import]]] = {
	"typescript": _es_imports,
	"javascript": _es_imports,
	"rust": _rust_imports,
	"python": _python_imports,
	"go": _go_imports,
	"java": _jvm_imports,
	"kotlin": _jvm_imports,
	"csharp": _csharp_imports,
	"ruby": _ruby_imports,
	"protobuf": _proto_imports,
}


def extract_imports(text: str, language: str) -> List[Import]:
	extractor = EXTRACTORS.get(language)
	if extractor is None:
		return []
	return [(target, symbols) for target, symbols in extractor(text) if target or symbols]
