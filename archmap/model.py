from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


ComponentKind = Literal["model", "service", "transport", "transform"]
TransportProtocol = Literal["http", "grpc", "websocket", "mq", "graphql", "unknown"]
StepType = Literal["entry", "call", "persist", "dispatch", "response"]
HubTier = Literal["normal", "medium", "high"]

COMPONENT_KINDS = ("model", "service", "transport", "transform")
FLOW_LABELS = frozenset(
	{"handles", "persists", "transforms", "consumes", "produces", "calls", "dispatches"}
)


class SourceLocation(BaseModel):
	file: str
	line_start: Optional[int] = None
	line_end: Optional[int] = None


class CandidateComponent(BaseModel):
	# Serialized as "model_fields", which pydantic reserves as an attribute name.
	model_config = ConfigDict(populate_by_name=True)

	name: Optional[str] = None
	kind: ComponentKind
	language: str
	file: str
	line_start: Optional[int] = None
	line_end: Optional[int] = None
	metadata: Dict[str, str] = {}
	transport_protocol: Optional[TransportProtocol] = None
	http_method: Optional[str] = None
	http_path: Optional[str] = None
	member_fields: Optional[List[str]] = Field(default=None, alias="model_fields")
	consumes: Optional[List[str]] = None
	produces: Optional[List[str]] = None


class Component(BaseModel):
	# Serialized as "model_fields", which pydantic reserves as an attribute name.
	model_config = ConfigDict(populate_by_name=True)

	id: str
	name: str
	kind: ComponentKind
	language: str
	source: SourceLocation
	metadata: Dict[str, str] = {}
	transport_protocol: Optional[TransportProtocol] = None
	http_method: Optional[str] = None
	http_path: Optional[str] = None
	member_fields: Optional[List[str]] = Field(default=None, alias="model_fields")
	consumes: Optional[List[str]] = None
	produces: Optional[List[str]] = None


class Edge(BaseModel):
	from_id: str
	to_id: str
	label: List[str] = []
	payload_type: Optional[str] = None

	def flow_labels(self) -> List[str]:
		return [lab for lab in self.label if lab in FLOW_LABELS]


class WorkflowStep(BaseModel):
	component_id: str
	step_type: StepType
	order: int


class WorkflowEdge(BaseModel):
	from_id: str
	to_id: str


class Workflow(BaseModel):
	id: str
	name: str
	entry_point_id: str
	steps: List[WorkflowStep] = []
	edges: List[WorkflowEdge] = []


class ScanStats(BaseModel):
	files_scanned: int = 0
	files_skipped: int = 0
	scan_duration_ms: int = 0


class ScanDocument(BaseModel):
	version: str = "1"
	scanned_at: str = ""
	root_dir: str = ""
	project_name: str = ""
	detected_languages: List[str] = []
	components: List[Component]
	edges: List[Edge]
	workflows: List[Workflow] = Field(default_factory=list)
	scan_stats: ScanStats = Field(default_factory=ScanStats)


class SourceFile(BaseModel):
	path: str
	text: str


class HubInfo(BaseModel):
	tier: HubTier = "normal"
	degree: int = 0


class GraphNode(BaseModel):
	component: Component
	cluster: str
	hub_tier: HubTier
	degree: int


class GraphEdge(BaseModel):
	from_id: str
	to_id: str
	label: List[str] = []
	payload_type: Optional[str] = None
	is_flow: bool = False


class GraphView(BaseModel):
	mode: Literal["system", "flow"]
	project_name: str
	nodes: List[GraphNode]
	edges: List[GraphEdge]
	clusters: Dict[str, int]


class Summaries(BaseModel):
	global_overview: str
	per_kind: Dict[str, str]
	per_workflow: Dict[str, str]
