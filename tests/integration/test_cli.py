import json
import logging
from pathlib import Path

import pytest
from typer.testing import CliRunner

from figmaflow.infrastructure.cli.commands.batch import _read_keys
from figmaflow.infrastructure.cli.main import app

FILE_RESPONSE = {
    "name": "Landing",
    "document": {
        "id": "0:0",
        "name": "Landing",
        "type": "DOCUMENT",
        "children": [
            {
                "id": "0:1",
                "name": "Page 1",
                "type": "CANVAS",
                "children": [
                    {
                        "id": "1:1",
                        "name": "Button",
                        "type": "COMPONENT",
                        "absoluteBoundingBox": {"x": 0, "y": 0, "width": 120, "height": 40},
                        "fills": [{"type": "SOLID", "color": {"r": 1, "g": 0, "b": 0, "a": 1}}],
                        "children": [
                            {"id": "1:2", "name": "Label", "type": "TEXT", "characters": "Buy"}
                        ],
                    }
                ],
            }
        ],
    },
    "styles": {},
}

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated(tmp_path: Path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("FIGMA_ACCESS_TOKEN", raising=False)
    monkeypatch.delenv("FIGMAFLOW_CONFIG", raising=False)
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def test_parse_writes_document(tmp_path: Path):
    source = tmp_path / "design.json"
    source.write_text(json.dumps(FILE_RESPONSE))
    output = tmp_path / "parsed.json"

    result = runner.invoke(app, ["parse", "run", str(source), "--analyze", "--css", "-o", str(output)])

    assert result.exit_code == 0, result.output
    payload = json.loads(output.read_text())
    assert payload["document"]["name"] == "Landing"
    assert payload["document"]["pages"][0]["name"] == "Page 1"
    assert payload["document"]["metadata"]["total_components"] == 1
    assert payload["analysis"][0]["name"] == "Button"
    assert "{" in payload["css"]


def test_parse_accepts_bare_node_tree(tmp_path: Path):
    source = tmp_path / "tree.json"
    source.write_text(json.dumps(FILE_RESPONSE["document"]))
    output = tmp_path / "parsed.json"

    result = runner.invoke(app, ["parse", "run", str(source), "--output", str(output)])

    assert result.exit_code == 0, result.output
    payload = json.loads(output.read_text())
    assert "analysis" not in payload
    assert "css" not in payload


def test_parse_rejects_invalid_root(tmp_path: Path):
    source = tmp_path / "bad.json"
    source.write_text(json.dumps([1, 2, 3]))

    result = runner.invoke(app, ["parse", "run", str(source)])

    assert result.exit_code == 1


def test_parse_rejects_invalid_json(tmp_path: Path):
    source = tmp_path / "broken.json"
    source.write_text("{not json")

    result = runner.invoke(app, ["parse", "run", str(source)])

    assert result.exit_code == 1


def test_process_without_token_fails():
    result = runner.invoke(app, ["process", "run", "KEY"])
    assert result.exit_code != 0


def test_validate_without_token_fails():
    result = runner.invoke(app, ["validate", "run"])

    assert result.exit_code == 1
    assert "missing" in result.output


def test_read_keys_dedupes_and_skips_comments(tmp_path: Path):
    keys_file = tmp_path / "keys.txt"
    keys_file.write_text("# team files\nAAA\n\nhttps://www.figma.com/file/BBB/Landing\nAAA\n")

    assert _read_keys(["CCC", "AAA"], keys_file) == ["CCC", "AAA", "BBB"]
