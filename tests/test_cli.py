import json

import pytest

from cli import build_parser, main


def _project(tmp_path):
	src = tmp_path / "proj" / "src"
	(src / "models").mkdir(parents=True)
	(src / "routes").mkdir(parents=True)
	(src / "models" / "user.ts").write_text("export interface User { id; name }\n")
	(src / "routes" / "users.ts").write_text(
		'import { User } from "../models/user";\n\nrouter.get("/users", (req, res) => res.json([] as User[]));\n'
	)
	return tmp_path / "proj"


def test_scan_summary_graph(tmp_path, capsys):
	out = tmp_path / "scan.json"
	main(["scan", str(_project(tmp_path)), "-o", str(out)])
	doc = json.loads(out.read_text())
	assert {c["name"] for c in doc["components"]} == {"User", "GET /users"}
	assert "2 components" in capsys.readouterr().err

	main(["summary", str(out)])
	assert "Workflow GET /users" in capsys.readouterr().out

	main(["graph", str(out), "--mode", "flow"])
	view = json.loads(capsys.readouterr().out)
	assert view["mode"] == "flow"


def test_graph_cluster_size(tmp_path, capsys):
	out = tmp_path / "scan.json"
	main(["scan", str(_project(tmp_path)), "-o", str(out)])
	capsys.readouterr()

	main(["graph", str(out)])
	view = json.loads(capsys.readouterr().out)
	assert view["clusters"] == {"Other": 2}
	user = next(n["component"] for n in view["nodes"] if n["component"]["name"] == "User")
	assert user["model_fields"] == ["id", "name"]

	main(["graph", str(out), "--min-cluster-size", "1"])
	view = json.loads(capsys.readouterr().out)
	assert "Other" not in view["clusters"]
	assert sum(view["clusters"].values()) == 2


def test_graph_rejects_bad_cluster_size(tmp_path, capsys):
	out = tmp_path / "scan.json"
	main(["scan", str(_project(tmp_path)), "-o", str(out)])
	capsys.readouterr()
	with pytest.raises(SystemExit):
		main(["graph", str(out), "--min-cluster-size", "0"])
	assert capsys.readouterr().err.startswith("Error:")


def test_scan_missing_path_exits(tmp_path, capsys):
	with pytest.raises(SystemExit) as exc:
		main(["scan", str(tmp_path / "nope"), "-o", str(tmp_path / "out.json")])
	assert exc.value.code == 1
	assert capsys.readouterr().err.startswith("Error: Path does not exist")


def test_summary_rejects_bad_document(tmp_path, capsys):
	bad = tmp_path / "bad.json"
	bad.write_text('{"components": []}')
	with pytest.raises(SystemExit):
		main(["summary", str(bad)])
	assert "missing required fields" in capsys.readouterr().err


def test_verbose_flag_after_subcommand():
	args = build_parser().parse_args(["scan", ".", "-v"])
	assert args.verbose is True
	args = build_parser().parse_args(["-v", "summary", "x.json"])
	assert args.verbose is True
