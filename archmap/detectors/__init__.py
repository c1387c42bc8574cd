"""Component detectors, one per kind.

Each detector is ``detect(file_path, language, text) -> List[CandidateComponent]``
and only ever emits its own kind. ``detect_file`` runs all four on one file and
resolves the overlap between explicit markers and the directory heuristic.
"""

from __future__ import annotations

import logging
from typing import List

from ..model import CandidateComponent
from . import models, services, transforms, transports

logger = logging.getLogger(__name__)

__all__ = ["detect_file", "resolve_precedence", "models", "services", "transforms", "transports"]


def _is_heuristic(candidate: CandidateComponent) -> bool:
	return candidate.metadata.get("detection") == "directory_convention"


def resolve_precedence(candidates: List[CandidateComponent]) -> List[CandidateComponent]:
	"""Drop directory-convention candidates that an explicit marker already claims.

	Explicit candidates of different kinds on the same construct are all kept.
	"""
	explicit = [c for c in candidates if not _is_heuristic(c)]
	names = {(c.file, c.name) for c in explicit}
	lines = {(c.file, c.line_start) for c in explicit}
	kept: List[CandidateComponent] = []
	for c in candidates:
		if _is_heuristic(c) and ((c.file, c.name) in names or (c.file, c.line_start) in lines):
			logger.debug("Dropping %s %s at %s:%s (explicit match wins)", c.kind, c.name, c.file, c.line_start)
			continue
		kept.append(c)
	return kept


def detect_file(file_path: str, language: str, text: str, payload_window: int = 30) -> List[CandidateComponent]:
	candidates: List[CandidateComponent] = []
	candidates.extend(models.detect(file_path, language, text))
	candidates.extend(services.detect(file_path, language, text, payload_window))
	candidates.extend(transports.detect(file_path, language, text, payload_window))
	candidates.extend(transforms.detect(file_path, language, text))
	return resolve_precedence(candidates)
