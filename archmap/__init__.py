"""archmap: static extraction of a codebase's architecture map.

Modules:
- language.py: File extension to language classification.
- detectors/: Model, service, transport and transform detectors.
- identity.py: Stable component ids and duplicate merging.
- imports.py: Per-language import statement extraction.
- relationships.py: Structural and flow edge inference, edge merging.
- workflows.py: Request/data workflows traced from each transport.
- analytics.py: Semantic clusters and hub tiers.
- pipeline.py: Scan orchestration over files or in-memory sources.
- fs_scan.py: Filesystem walking and reading.
- document.py: Scan document JSON writing and loading.
- views.py: Annotated system/flow graph views.
- summarize.py: Deterministic textual summaries of a scan.
- config.py: Scan configuration and config-file loading.
- model.py: Data structures for components, edges and workflows.
"""

__all__ = [
	"language",
	"detectors",
	"identity",
	"imports",
	"relationships",
	"workflows",
	"analytics",
	"pipeline",
	"fs_scan",
	"document",
	"views",
	"summarize",
	"config",
	"model",
]
