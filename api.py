from __future__ import annotations

import os
from typing import Any, Dict, Literal, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field, ValidationError

from archmap.config import ScanConfig, load_config
from archmap.document import DocumentError, load_document
from archmap.fs_scan import ScanError
from archmap.model import GraphView, ScanDocument
from archmap.pipeline import scan_directory
from archmap.views import build_view


app = FastAPI(title="archmap")


class ScanRequest(BaseModel):
	root_path: str
	min_workflow_steps: Optional[int] = Field(default=None, ge=1)


class GraphRequest(BaseModel):
	root_path: Optional[str] = None
	document_path: Optional[str] = None
	mode: Literal["system", "flow"] = "system"
	min_cluster_size: Optional[int] = Field(default=None, ge=1)


def _config(project_dir: Optional[str], overrides: Dict[str, Any]) -> ScanConfig:
	try:
		return load_config(project_dir, overrides=overrides)
	except ValidationError as e:
		raise HTTPException(status_code=400, detail=str(e))


def _scan(root_path: str, min_workflow_steps: Optional[int] = None) -> ScanDocument:
	root = os.path.abspath(root_path)
	if not os.path.isdir(root):
		raise HTTPException(status_code=400, detail=f"Invalid root_path: {root}")
	config = _config(root, {"min_workflow_steps": min_workflow_steps})
	try:
		return scan_directory(root, config)
	except ScanError as e:
		raise HTTPException(status_code=400, detail=str(e))


@app.post("/scan", response_model=ScanDocument, response_model_exclude_none=True)
def scan(req: ScanRequest) -> ScanDocument:
	return _scan(req.root_path, req.min_workflow_steps)


@app.post("/graph", response_model=GraphView, response_model_exclude_none=True)
def graph(req: GraphRequest) -> GraphView:
	if req.document_path:
		try:
			doc = load_document(req.document_path)
		except DocumentError as e:
			raise HTTPException(status_code=400, detail=str(e))
	elif req.root_path:
		doc = _scan(req.root_path)
	else:
		raise HTTPException(status_code=400, detail="Either root_path or document_path is required")
	project_dir = doc.root_dir if doc.root_dir and os.path.isdir(doc.root_dir) else None
	config = _config(project_dir, {"min_cluster_size": req.min_cluster_size})
	return build_view(doc, mode=req.mode, min_cluster_size=config.min_cluster_size)


def create_app() -> FastAPI:
	return app
