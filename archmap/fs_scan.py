from __future__ import annotations

import logging
import os
from typing import Iterable, List, Optional

from .config import DEFAULT_SKIP_DIRS

logger = logging.getLogger(__name__)


class ScanError(RuntimeError):
	"""The scan root cannot be walked at all."""


def to_rel_path(root: str, path: str) -> str:
	return os.path.relpath(path, root).replace(os.sep, "/")


def _log_walk_error(err: OSError) -> None:
	logger.debug("Skipping unlistable directory: %s", err)


def walk_files(root: str, skip_dirs: Optional[Iterable[str]] = None) -> List[str]:
	"""Relative, "/"-separated paths of every non-hidden file under *root*, sorted."""
	if not os.path.exists(root):
		raise ScanError(f"Path does not exist: {root}")
	if not os.path.isdir(root):
		raise ScanError(f"Path is not a directory: {root}")
	skip = set(DEFAULT_SKIP_DIRS if skip_dirs is None else skip_dirs)
	try:
		os.listdir(root)
	except OSError as e:
		raise ScanError(f"Cannot list {root}: {e}") from e
	files: List[str] = []
	for dirpath, dirnames, filenames in os.walk(root, onerror=_log_walk_error):
		# Skip hidden and ignored dirs
		dirnames[:] = [d for d in dirnames if d not in skip and not d.startswith(".")]
		for filename in filenames:
			if filename.startswith("."):
				continue
			files.append(to_rel_path(root, os.path.join(dirpath, filename)))
	files.sort()
	return files


def read_text(path: str) -> Optional[str]:
	"""File contents as UTF-8 text, or None when unreadable or not text."""
	try:
		with open(path, "r", encoding="utf-8") as fh:
			return fh.read()
	except (OSError, UnicodeDecodeError) as e:
		logger.debug("Skipping unreadable file %s: %s", path, e)
		return None
