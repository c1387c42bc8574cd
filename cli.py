from __future__ import annotations

import argparse
import logging
import os
import sys

import uvicorn
from pydantic import ValidationError

from archmap.config import load_config
from archmap.document import DocumentError, load_document, write_document
from archmap.fs_scan import ScanError
from archmap.pipeline import scan_directory
from archmap.summarize import render, summarize_document
from archmap.views import VIEW_MODES, build_view


def _fail(message: str) -> None:
	print(f"Error: {message}", file=sys.stderr)
	sys.exit(1)


def cmd_scan(args: argparse.Namespace) -> None:
	root = os.path.abspath(args.path)
	try:
		config = load_config(
			root if os.path.isdir(root) else None,
			args.config,
			{"min_workflow_steps": args.min_workflow_steps, "max_workers": args.workers},
		)
		doc = scan_directory(root, config)
	except (ScanError, ValidationError) as e:
		_fail(str(e))
		return
	write_document(doc, args.output)
	stats = doc.scan_stats
	print(
		f"Scanned {stats.files_scanned} files ({stats.files_skipped} skipped) in {stats.scan_duration_ms}ms: "
		f"{len(doc.components)} components, {len(doc.edges)} edges, {len(doc.workflows)} workflows -> {args.output}",
		file=sys.stderr,
	)


def cmd_summary(args: argparse.Namespace) -> None:
	try:
		doc = load_document(args.file)
	except DocumentError as e:
		_fail(str(e))
		return
	print(render(summarize_document(doc)))


def cmd_graph(args: argparse.Namespace) -> None:
	try:
		doc = load_document(args.file)
		project_dir = doc.root_dir if doc.root_dir and os.path.isdir(doc.root_dir) else None
		config = load_config(project_dir, args.config, {"min_cluster_size": args.min_cluster_size})
	except (DocumentError, ValidationError) as e:
		_fail(str(e))
		return
	view = build_view(doc, mode=args.mode, min_cluster_size=config.min_cluster_size)
	print(view.model_dump_json(indent=2, exclude_none=True, by_alias=True))


def cmd_serve(args: argparse.Namespace) -> None:
	uvicorn.run("api:app", host=args.host, port=args.port, reload=args.reload)


def build_parser() -> argparse.ArgumentParser:
	parser = argparse.ArgumentParser(prog="archmap")
	parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
	sub = parser.add_subparsers(dest="cmd", required=True)

	pa = sub.add_parser("scan", help="Scan a codebase and write the architecture map JSON")
	pa.add_argument("path", help="Path to the codebase root")
	pa.add_argument("-o", "--output", default="archmap-output.json", help="Output JSON file")
	pa.add_argument("--min-workflow-steps", type=int, default=None, help="Drop workflows with fewer steps")
	pa.add_argument("--workers", type=int, default=None, help="Worker threads for detection and inference")
	pa.add_argument("--config", default=None, help="Extra TOML config file")
	pa.add_argument("-v", "--verbose", action="store_true", default=argparse.SUPPRESS, help="Enable debug logging")
	pa.set_defaults(func=cmd_scan)

	psum = sub.add_parser("summary", help="Print a textual summary of a scan document")
	psum.add_argument("file", help="Scan document JSON")
	psum.set_defaults(func=cmd_summary)

	pg = sub.add_parser("graph", help="Print the annotated graph view of a scan document")
	pg.add_argument("file", help="Scan document JSON")
	pg.add_argument("--mode", choices=VIEW_MODES, default="system")
	pg.add_argument("--min-cluster-size", type=int, default=None, help="Fold smaller clusters into Other")
	pg.add_argument("--config", default=None, help="Extra TOML config file")
	pg.set_defaults(func=cmd_graph)

	ps = sub.add_parser("serve", help="Run FastAPI server")
	ps.add_argument("--host", default="127.0.0.1")
	ps.add_argument("--port", type=int, default=8000)
	ps.add_argument("--reload", action="store_true")
	ps.set_defaults(func=cmd_serve)
	return parser


def main(argv=None) -> None:
	args = build_parser().parse_args(argv)
	logging.basicConfig(level=logging.WARNING, format="%(message)s")
	if args.verbose:
		logging.getLogger("archmap").setLevel(logging.DEBUG)
	args.func(args)


if __name__ == "__main__":
	main()
