"""Scan orchestration: detection, identity, relationships, workflows.

``scan_sources`` is the pure core and works on in-memory ``(path, text)``
pairs; ``scan_directory`` adds the filesystem walk around it.
"""

from __future__ import annotations

import json
import logging
import os
import time
import tomllib
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple, Union

from .config import ScanConfig
from .detectors import detect_file
from .fs_scan import read_text, walk_files
from .identity import assign_all
from .language import classify
from .model import CandidateComponent, ScanDocument, ScanStats, SourceFile
from .relationships import infer_edges
from .workflows import synthesize_workflows

logger = logging.getLogger(__name__)

# Below this many work items the thread pool costs more than it saves.
SEQUENTIAL_BELOW = 10


@contextmanager
def parallel_map(size: int, max_workers: Optional[int]) -> Iterator[Callable]:
	"""Yield a ``map``-compatible callable, threaded when the batch is large enough."""
	if size < SEQUENTIAL_BELOW or max_workers == 1:
		yield map
		return
	with ThreadPoolExecutor(max_workers=max_workers) as executor:
		yield executor.map


def _detect(item: Tuple[SourceFile, str], payload_window: int) -> List[CandidateComponent]:
	source, language = item
	return detect_file(source.path, language, source.text, payload_window)


def scan_sources(
	sources: Iterable[Union[SourceFile, Tuple[str, str]]],
	root_dir: str = ".",
	project_name: Optional[str] = None,
	config: Optional[ScanConfig] = None,
	files_skipped: int = 0,
	started: Optional[float] = None,
) -> ScanDocument:
	config = config or ScanConfig()
	started = time.perf_counter() if started is None else started

	classified: List[Tuple[SourceFile, str]] = []
	for item in sources:
		source = item if isinstance(item, SourceFile) else SourceFile(path=item[0], text=item[1])
		language = classify(source.path)
		if language is None:
			files_skipped += 1
			continue
		classified.append((source, language))
	classified.sort(key=lambda pair: pair[0].path)

	with parallel_map(len(classified), config.max_workers) as mapper:
		detected = list(mapper(lambda item: _detect(item, config.payload_window), classified))
	components = assign_all(c for batch in detected for c in batch)
	logger.debug("Detected %d components in %d files", len(components), len(classified))

	texts: Dict[str, str] = {source.path: source.text for source, _ in classified}
	with parallel_map(len(texts), config.max_workers) as mapper:
		edges = infer_edges(
			components,
			texts,
			body_window=config.body_window,
			min_name_length=config.min_name_length,
			mapper=mapper,
		)

	transports = sum(1 for c in components if c.kind == "transport")
	with parallel_map(transports, config.max_workers) as mapper:
		workflows = synthesize_workflows(components, edges, config.min_workflow_steps, mapper=mapper)

	elapsed_ms = int((time.perf_counter() - started) * 1000)
	return ScanDocument(
		scanned_at=datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
		root_dir=root_dir,
		project_name=project_name or os.path.basename(os.path.abspath(root_dir)),
		detected_languages=sorted({language for _, language in classified}),
		components=components,
		edges=edges,
		workflows=workflows,
		scan_stats=ScanStats(
			files_scanned=len(classified),
			files_skipped=files_skipped,
			scan_duration_ms=elapsed_ms,
		),
	)


def _name_from_toml(path: str, *tables: Tuple[str, ...]) -> Optional[str]:
	try:
		with open(path, "rb") as fh:
			data = tomllib.load(fh)
	except (OSError, tomllib.TOMLDecodeError) as e:
		logger.debug("Could not parse %s: %s", path, e)
		return None
	for keys in tables:
		node = data
		for key in keys:
			node = node.get(key) if isinstance(node, dict) else None
		if isinstance(node, dict) and isinstance(node.get("name"), str):
			return node["name"]
	return None


def guess_project_name(root: str) -> str:
	"""Project name from pyproject.toml, Cargo.toml or package.json, else the directory name."""
	pyproject = os.path.join(root, "pyproject.toml")
	if os.path.isfile(pyproject):
		name = _name_from_toml(pyproject, ("project",), ("tool", "poetry"))
		if name:
			return name
	cargo = os.path.join(root, "Cargo.toml")
	if os.path.isfile(cargo):
		name = _name_from_toml(cargo, ("package",))
		if name:
			return name
	package_json = os.path.join(root, "package.json")
	if os.path.isfile(package_json):
		try:
			with open(package_json, "r", encoding="utf-8") as fh:
				data = json.load(fh)
			if isinstance(data, dict) and isinstance(data.get("name"), str):
				return data["name"]
		except (OSError, ValueError) as e:
			logger.debug("Could not parse %s: %s", package_json, e)
	return os.path.basename(os.path.abspath(root))


def scan_directory(root: str, config: Optional[ScanConfig] = None) -> ScanDocument:
	"""Walk *root*, read every recognised source file and scan them.

	Raises ScanError when *root* is not a listable directory.
	"""
	config = config or ScanConfig()
	started = time.perf_counter()
	root = os.path.abspath(root)
	sources: List[SourceFile] = []
	skipped = 0
	for rel_path in walk_files(root, config.skip_dirs):
		if classify(rel_path) is None:
			skipped += 1
			continue
		text = read_text(os.path.join(root, rel_path))
		if text is None:
			skipped += 1
			continue
		sources.append(SourceFile(path=rel_path, text=text))
	logger.debug("Read %d source files, skipped %d", len(sources), skipped)
	return scan_sources(
		sources,
		root_dir=root,
		project_name=guess_project_name(root),
		config=config,
		files_skipped=skipped,
		started=started,
	)
