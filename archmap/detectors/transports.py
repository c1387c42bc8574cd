"""Transport detector: HTTP routes, RPC services, sockets, queues and GraphQL roots."""

from __future__ import annotations

import re
from typing import List, Optional, Tuple

from ..model import CandidateComponent
from ..text import brace_body, call_args, find_function_span, line_of, split_top_level
from .base import JS_LIKE, JVM_LIKE, PatternRule, SourceText, frozenset_of, make_candidate, rule, run_rules
from .payload import extract_payload_types, normalize_types


CLIENT_RECEIVERS = frozenset(
	{
		"axios",
		"fetch",
		"http",
		"https",
		"requests",
		"client",
		"session",
		"httpx",
		"$http",
		"superagent",
		"request",
	}
)

HTTP_RULES: List[PatternRule] = [
	rule(
		"route_registration",
		r"(?<![\w$@])(?P<receiver>[\w$]+)\s*\.\s*(?P<verb>(?i:get|post|put|patch|delete|all|options|head))"
		r"\s*(?P<open>\()\s*(?P<q>[\"'`])(?P<path>/[^\"'`]*)(?P=q)",
		JS_LIKE | frozenset_of("go"),
		name_group="path",
	),
	rule(
		"go_handle",
		r"(?<![\w$])(?P<receiver>\w+)\.(?P<verb>HandleFunc|Handle)\s*(?P<open>\()\s*\"(?P<path>[^\"]+)\"",
		frozenset_of("go"),
		name_group="path",
	),
	rule(
		"nest_route",
		r"^[ \t]*@(?P<verb>Get|Post|Put|Patch|Delete|All|Options|Head)\s*\(\s*(?:(?P<q>['\"`])(?P<path>[^'\"`]*)(?P=q))?[^)\n]*\)",
		JS_LIKE,
		name_group="verb",
	),
	rule(
		"python_route",
		r"^[ \t]*@(?P<receiver>\w+)\.(?P<verb>get|post|put|patch|delete|options|head|route|api_route)"
		r"\s*\(\s*(?P<q>[\"'])(?P<path>(?:/[^\"']*)?)(?P=q)(?P<args>[^)]*)",
		frozenset_of("python"),
		name_group="verb",
	),
	rule(
		"spring_mapping",
		r"^[ \t]*@(?P<verb>Get|Post|Put|Patch|Delete)Mapping\b(?:\s*\((?P<args>[^)]*)\))?",
		JVM_LIKE,
		name_group="verb",
	),
	rule(
		"request_mapping",
		r"^[ \t]*@RequestMapping\b(?:\s*\((?P<args>[^)]*)\))?",
		JVM_LIKE,
		name_group=0,
	),
	rule(
		"aspnet_attribute",
		r"^[ \t]*\[Http(?P<verb>Get|Post|Put|Patch|Delete)(?:\(\s*\"(?P<path>[^\"]*)\"[^)]*\))?\]",
		frozenset_of("csharp"),
		name_group="verb",
	),
	rule(
		"sinatra_route",
		r"^[ \t]*(?P<verb>get|post|put|patch|delete|options|head)\s*\(?\s*(?P<q>['\"])(?P<path>/[^'\"]*)(?P=q)",
		frozenset_of("ruby"),
		name_group="path",
	),
	rule(
		"ktor_route",
		r"^[ \t]*(?P<verb>get|post|put|patch|delete)\s*\(\s*\"(?P<path>/[^\"]*)\"\s*\)\s*\{",
		frozenset_of("kotlin"),
		name_group="path",
	),
]

# Class-level path prefixes joined onto the method routes declared after them.
PREFIX_RULES: List[PatternRule] = [
	rule("nest_controller", r"^[ \t]*@Controller\b(?:\s*\((?P<args>[^)]*)\))?", JS_LIKE, name_group=0),
	rule("spring_request_mapping", r"^[ \t]*@RequestMapping\b(?:\s*\((?P<args>[^)]*)\))?", JVM_LIKE, name_group=0),
	rule("aspnet_route", r"^[ \t]*\[Route\(\s*(?P<args>\"[^\"]*\")\s*\)\]", frozenset_of("csharp"), name_group=0),
]

SOCKET_RULES: List[PatternRule] = [
	rule(
		"socket_event",
		r"(?<![\w$])(?:ws|io|socket|WebSocket)\s*\.\s*on\s*\(\s*['\"`](?P<event>[^'\"`]+)['\"`]",
		JS_LIKE,
		name_group="event",
	),
	rule(
		"subscribe_message",
		r"^[ \t]*@SubscribeMessage\(\s*['\"`](?P<event>[^'\"`]+)['\"`]",
		JS_LIKE,
		name_group="event",
	),
	rule("websocket_gateway", r"^[ \t]*@WebSocketGateway\b", JS_LIKE, name_group=0),
	rule(
		"python_websocket",
		r"^[ \t]*@\w+\.websocket\(\s*[\"'](?P<event>[^\"']+)[\"']",
		frozenset_of("python"),
		name_group="event",
	),
	rule(
		"socketio_event",
		r"^[ \t]*@(?:sio|socketio)\.(?:on|event)\(\s*[\"'](?P<event>[^\"']+)[\"']",
		frozenset_of("python"),
		name_group="event",
	),
]

QUEUE_RULES: List[PatternRule] = [
	rule(
		"spring_listener",
		r"^[ \t]*@(?P<listener>RabbitListener|KafkaListener|JmsListener)\b\s*(?:\((?P<args>[^)]*)\))?",
		JVM_LIKE,
		name_group="listener",
	),
	rule(
		"nest_event_pattern",
		r"^[ \t]*@(?P<listener>EventPattern|MessagePattern)\s*\((?P<args>[^)]*)\)",
		JS_LIKE,
		name_group="listener",
	),
	rule(
		"celery_task",
		r"^[ \t]*@(?P<listener>(?:\w+\.)?shared_task|\w+\.task)\b(?:\([^)\n]*\))?[ \t]*\n"
		r"(?:[ \t]*@[^\n]*\n)*[ \t]*(?:async\s+)?def\s+(?P<func>\w+)",
		frozenset_of("python"),
		name_group="func",
	),
]

RPC_RULES: List[PatternRule] = [
	rule("grpc_service", r"^[ \t]*service\s+(\w+)\s*\{", frozenset_of("protobuf")),
]

GRAPHQL_RULES: List[PatternRule] = [
	rule(
		"graphql_root",
		r"^[ \t]*(?:extend\s+)?type\s+(Query|Mutation|Subscription)\b[^{\n]*\{",
		frozenset_of("graphql"),
	),
	rule(
		"graphql_resolver",
		r"^[ \t]*@(Query|Mutation|Subscription)\s*\(\s*\(\s*\)\s*=>\s*(?P<ret>[\w\[\]]+)",
		JS_LIKE,
	),
]

_RPC_RE = re.compile(
	r"\brpc\s+(\w+)\s*\(\s*(?:stream\s+)?([\w.]+)\s*\)\s*returns\s*\(\s*(?:stream\s+)?([\w.]+)\s*\)"
)
_GRAPHQL_FIELD_RE = re.compile(r"^[ \t]*(\w+)\s*(?:\((?P<args>[^)]*)\))?\s*:\s*(?P<ret>[\w\[\]!]+)", re.MULTILINE)
_LITERAL_RE = re.compile(r"([\"'`])([^\"'`]*)\1")
_METHODS_RE = re.compile(r"methods\s*=\s*[\[(]\s*[\"'](\w+)[\"']")
_REQUEST_METHOD_RE = re.compile(r"RequestMethod\.(\w+)")
_GO_METHODS_RE = re.compile(r"\.Methods\(\s*\"(\w+)\"")
_GO_PATTERN_RE = re.compile(r"^([A-Z]+)\s+(/\S*)$")
_CLASS_DECL_RE = re.compile(r"\b(?:class|interface|object)\s+(\w+)")
_PY_DECL_RE = re.compile(r"^[ \t]*(?:async\s+)?def\s+(\w+)", re.MULTILINE)
_DECL_RE = re.compile(r"^[ \t]*(?:[\w<>\[\],.?]+[ \t]+)*?([\w$]+)\s*\(", re.MULTILINE)

# How far below a decorator its declaration may start.
_DECORATOR_REACH = 10


def _first_literal(args: Optional[str]) -> Optional[str]:
	m = _LITERAL_RE.search(args or "")
	return m.group(2) if m else None


def _rest_of_line(text: str, offset: int) -> str:
	end = text.find("\n", offset)
	return text[offset:] if end < 0 else text[offset:end]


def _following_class(source: SourceText, offset: int) -> Optional[str]:
	"""Name of the class declared right after the annotation ending at *offset*."""
	line = line_of(source.text, offset)
	for text in [_rest_of_line(source.text, offset)] + source.lines[line:]:
		stripped = text.strip()
		if not stripped or stripped.startswith(("@", "[", "//", "#")) or not re.search(r"\w", stripped):
			continue
		m = _CLASS_DECL_RE.search(stripped)
		return m.group(1) if m else None
	return None


def _declared_after(source: SourceText, offset: int) -> Optional[str]:
	"""Name of the function or method a decorator ending at *offset* applies to."""
	regex = _PY_DECL_RE if source.language == "python" else _DECL_RE
	m = regex.search(source.text, offset)
	if m is None:
		return None
	if line_of(source.text, m.start(1)) - line_of(source.text, offset) > _DECORATOR_REACH:
		return None
	return m.group(1)


def join_path(prefix: str, path: str) -> str:
	parts = [p.strip("/") for p in (prefix, path) if p and p.strip("/")]
	return "/" + "/".join(parts)


def _class_prefixes(source: SourceText) -> List[Tuple[int, str]]:
	prefixes: List[Tuple[int, str]] = []
	for r in PREFIX_RULES:
		if not r.applies_to(source.language):
			continue
		for m in r.finditer(source.text):
			class_name = _following_class(source, m.end())
			if class_name is None:
				continue
			prefix = _first_literal(m.group("args")) or ""
			if "[controller]" in prefix:
				prefix = prefix.replace("[controller]", re.sub(r"Controller$", "", class_name).lower())
			prefixes.append((m.start(), prefix))
	prefixes.sort()
	return prefixes


def _prefixed(prefixes: List[Tuple[int, str]], offset: int, path: str) -> str:
	prefix = None
	for start, value in prefixes:
		if start < offset:
			prefix = value
	if prefix is None:
		return path or "/"
	return join_path(prefix, path)


def _registration_handler(source: SourceText, match: "re.Match[str]") -> Optional[str]:
	args = split_top_level(call_args(source.text, match.start("open")), ",")
	if len(args) < 2:
		return None
	last = args[-1]
	if re.fullmatch(r"[\w$.]+", last) is None:
		return None
	return last.rsplit(".", 1)[-1]


def _route(source: SourceText, r: PatternRule, match: "re.Match[str]", prefixes) -> Optional[Tuple[str, str]]:
	"""(method, path) for a route match, or None when the match is not a route."""
	groups = match.groupdict()
	if r.name == "route_registration":
		if groups["receiver"].lower() in CLIENT_RECEIVERS:
			return None
		return groups["verb"].upper(), groups["path"]
	if r.name == "go_handle":
		method, path = "ANY", groups["path"]
		pattern = _GO_PATTERN_RE.match(path)
		if pattern:
			method, path = pattern.groups()
		elif not path.startswith("/"):
			return None
		explicit = _GO_METHODS_RE.search(_rest_of_line(source.text, match.end()))
		if explicit:
			method = explicit.group(1).upper()
		return method, path
	if r.name == "nest_route":
		return groups["verb"].upper(), _prefixed(prefixes, match.start(), groups["path"] or "")
	if r.name == "python_route":
		verb = groups["verb"].lower()
		if verb in ("route", "api_route"):
			methods = _METHODS_RE.search(groups["args"] or "")
			method = methods.group(1).upper() if methods else "GET"
		else:
			method = verb.upper()
		return method, groups["path"] or "/"
	if r.name == "spring_mapping":
		return groups["verb"].upper(), _prefixed(prefixes, match.start(), _first_literal(groups["args"]) or "")
	if r.name == "request_mapping":
		if _following_class(source, match.end()) is not None:
			return None
		explicit = _REQUEST_METHOD_RE.search(groups["args"] or "")
		method = explicit.group(1).upper() if explicit else "ANY"
		return method, _prefixed(prefixes, match.start(), _first_literal(groups["args"]) or "")
	if r.name == "aspnet_attribute":
		return groups["verb"].upper(), _prefixed(prefixes, match.start(), groups["path"] or "")
	return groups["verb"].upper(), groups["path"]


def _attach_payload(source: SourceText, candidate: CandidateComponent, window: int) -> None:
	start = candidate.line_start or 1
	handler = candidate.metadata.get("handler")
	if handler:
		span = find_function_span(source.text, handler, source.language)
		if span and not (start <= span[0] <= (candidate.line_end or start)):
			start = span[0]
	consumes, produces = extract_payload_types(source.window(start, window), source.language)
	candidate.consumes = consumes
	candidate.produces = produces


def _http_candidates(source: SourceText, payload_window: int) -> List[CandidateComponent]:
	prefixes = _class_prefixes(source)
	out: List[CandidateComponent] = []
	for r, match, candidate in run_rules(HTTP_RULES, source, "transport"):
		route = _route(source, r, match, prefixes)
		if route is None:
			continue
		method, path = route
		if r.name in ("route_registration", "go_handle"):
			handler = _registration_handler(source, match)
			candidate.metadata["receiver"] = match.group("receiver")
		else:
			handler = _declared_after(source, match.end())
		if handler:
			candidate.metadata["handler"] = handler
		candidate.name = f"{method} {path}"
		candidate.transport_protocol = "http"
		candidate.http_method = method
		candidate.http_path = path
		_attach_payload(source, candidate, payload_window)
		out.append(candidate)
	return out


def _socket_candidates(source: SourceText, payload_window: int) -> List[CandidateComponent]:
	out: List[CandidateComponent] = []
	for r, match, candidate in run_rules(SOCKET_RULES, source, "transport"):
		event = match.groupdict().get("event") or "WebSocket"
		candidate.name = f"ws:{event}"
		candidate.transport_protocol = "websocket"
		if r.name != "socket_event":
			handler = _declared_after(source, match.end())
			if handler and r.name != "websocket_gateway":
				candidate.metadata["handler"] = handler
		_attach_payload(source, candidate, payload_window)
		out.append(candidate)
	return out


def _queue_candidates(source: SourceText, payload_window: int) -> List[CandidateComponent]:
	out: List[CandidateComponent] = []
	for r, match, candidate in run_rules(QUEUE_RULES, source, "transport"):
		groups = match.groupdict()
		if r.name == "celery_task":
			handler = groups["func"]
			destination = handler
		else:
			handler = _declared_after(source, match.end())
			destination = _first_literal(groups.get("args")) or handler
		if not destination:
			continue
		if handler:
			candidate.metadata["handler"] = handler
		candidate.metadata["listener"] = groups["listener"]
		candidate.name = f"mq:{destination}"
		candidate.transport_protocol = "mq"
		_attach_payload(source, candidate, payload_window)
		out.append(candidate)
	return out


def _rpc_candidates(source: SourceText) -> List[CandidateComponent]:
	out: List[CandidateComponent] = []
	for _, match, candidate in run_rules(RPC_RULES, source, "transport"):
		span = brace_body(source.text, match.end() - 1)
		body = source.text[span[0] : span[1]] if span else ""
		consumes: List[str] = []
		produces: List[str] = []
		methods: List[str] = []
		for rpc in _RPC_RE.finditer(body):
			methods.append(rpc.group(1))
			consumes.extend(normalize_types(rpc.group(2)))
			produces.extend(normalize_types(rpc.group(3)))
		if methods:
			candidate.metadata["rpcs"] = ",".join(methods)
		candidate.transport_protocol = "grpc"
		candidate.consumes = sorted(set(consumes)) or None
		candidate.produces = sorted(set(produces)) or None
		out.append(candidate)
	return out


def _graphql_candidates(source: SourceText, payload_window: int) -> List[CandidateComponent]:
	out: List[CandidateComponent] = []
	for r, match, candidate in run_rules(GRAPHQL_RULES, source, "transport"):
		root = match.group(1)
		if r.name == "graphql_resolver":
			handler = _declared_after(source, match.end())
			if not handler:
				continue
			candidate.name = f"{root}.{handler}"
			candidate.metadata["handler"] = handler
			candidate.transport_protocol = "graphql"
			_attach_payload(source, candidate, payload_window)
			declared = normalize_types(match.group("ret"))
			if declared:
				candidate.produces = sorted(set(declared) | set(candidate.produces or []))
			out.append(candidate)
			continue
		span = brace_body(source.text, match.end() - 1)
		if span is None:
			continue
		body = source.text[span[0] : span[1]]
		for field in _GRAPHQL_FIELD_RE.finditer(body):
			consumes: List[str] = []
			for arg in (field.group("args") or "").replace("\n", ",").split(","):
				if ":" in arg:
					consumes.extend(normalize_types(arg.split(":", 1)[1]))
			produces = normalize_types(field.group("ret"))
			out.append(
				make_candidate(
					source,
					"transport",
					f"{root}.{field.group(1)}",
					span[0] + field.start(1),
					{"rule": r.name, "root_type": root},
					transport_protocol="graphql",
					consumes=sorted(set(consumes)) or None,
					produces=produces or None,
				)
			)
	return out


def detect(file_path: str, language: str, text: str, payload_window: int = 30) -> List[CandidateComponent]:
	source = SourceText(path=file_path, language=language, text=text)
	candidates: List[CandidateComponent] = []
	candidates.extend(_http_candidates(source, payload_window))
	candidates.extend(_rpc_candidates(source))
	candidates.extend(_socket_candidates(source, payload_window))
	candidates.extend(_queue_candidates(source, payload_window))
	candidates.extend(_graphql_candidates(source, payload_window))
	return candidates
