"""Scan configuration.

Values are layered, later sources winning: built-in defaults, ``[tool.archmap]``
in the project's ``pyproject.toml``, the ``[archmap]`` table of
``.archmap.toml``, an explicit config file, then non-None overrides (CLI flags
or API request fields).
"""

from __future__ import annotations

import logging
import os
import tomllib
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_SKIP_DIRS = [
	".git",
	"node_modules",
	"dist",
	"build",
	"__pycache__",
	"target",
	".venv",
	"venv",
	"vendor",
]


class ScanConfig(BaseModel):
	max_workers: Optional[int] = Field(default=None, ge=1)
	min_workflow_steps: int = Field(default=2, ge=1)
	body_window: int = Field(default=50, ge=1)
	payload_window: int = Field(default=30, ge=1)
	min_name_length: int = Field(default=3, ge=1)
	min_cluster_size: int = Field(default=3, ge=1)
	skip_dirs: List[str] = Field(default_factory=lambda: list(DEFAULT_SKIP_DIRS))


def _read_toml(path: str) -> Optional[Dict[str, Any]]:
	try:
		with open(path, "rb") as fh:
			return tomllib.load(fh)
	except (OSError, tomllib.TOMLDecodeError) as e:
		logger.warning("Could not parse %s: %s", path, e)
		return None


def _table(data: Optional[Dict[str, Any]], *keys: str) -> Dict[str, Any]:
	for key in keys:
		if not isinstance(data, dict):
			return {}
		data = data.get(key)
	return data if isinstance(data, dict) else {}


def load_config(
	project_dir: Optional[str] = None,
	path: Optional[str] = None,
	overrides: Optional[Dict[str, Any]] = None,
) -> ScanConfig:
	values: Dict[str, Any] = {}
	if project_dir:
		pyproject = os.path.join(project_dir, "pyproject.toml")
		if os.path.isfile(pyproject):
			values.update(_table(_read_toml(pyproject), "tool", "archmap"))
		local = os.path.join(project_dir, ".archmap.toml")
		if os.path.isfile(local):
			values.update(_table(_read_toml(local), "archmap"))
	if path:
		data = _read_toml(path)
		# Accept either an [archmap] table or bare top-level keys.
		values.update(_table(data, "archmap") or (data or {}))
	for key, value in (overrides or {}).items():
		if value is not None:
			values[key] = value
	known = {k: v for k, v in values.items() if k in ScanConfig.model_fields}
	for key in sorted(set(values) - set(known)):
		logger.warning("Ignoring unknown config key %r", key)
	return ScanConfig(**known)
