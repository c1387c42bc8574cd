"""Reading and writing scan documents.

Loading is deliberately lenient about everything except the two arrays every
consumer needs: a document without ``components`` and ``edges`` is rejected,
a missing ``workflows`` array is treated as empty.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Union

from pydantic import ValidationError

from .model import ScanDocument

logger = logging.getLogger(__name__)

MISSING_FIELDS_MESSAGE = "Invalid scan document: missing required fields (components, edges)"


class DocumentError(ValueError):
	pass


def dump_document(doc: ScanDocument) -> str:
	return doc.model_dump_json(indent=2, exclude_none=True, by_alias=True)


def write_document(doc: ScanDocument, path: str) -> None:
	with open(path, "w", encoding="utf-8") as fh:
		fh.write(dump_document(doc))
		fh.write("\n")
	logger.debug("Wrote %s", path)


def parse_document(data: Union[str, bytes, Dict[str, Any]]) -> ScanDocument:
	if isinstance(data, (str, bytes)):
		try:
			data = json.loads(data)
		except ValueError as e:
			raise DocumentError(str(e)) from e
	if not isinstance(data, dict):
		raise DocumentError(MISSING_FIELDS_MESSAGE)
	if not isinstance(data.get("components"), list) or not isinstance(data.get("edges"), list):
		raise DocumentError(MISSING_FIELDS_MESSAGE)
	if not isinstance(data.get("workflows"), list):
		data = {**data, "workflows": []}
	try:
		return ScanDocument.model_validate(data)
	except ValidationError as e:
		raise DocumentError(f"Invalid scan document: {e}") from e


def load_document(path: str) -> ScanDocument:
	try:
		with open(path, "r", encoding="utf-8") as fh:
			text = fh.read()
	except OSError as e:
		raise DocumentError(f"Cannot read {path}: {e}") from e
	return parse_document(text)
