import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from cleanmark.cli import app

runner = CliRunner()


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.toml"
    path.write_text(f'[runtime]\noutput_dir = "{(tmp_path / "runs").as_posix()}"\n', encoding="utf-8")
    return path


def test_html_command_prints_markdown(tmp_path: Path, config_file: Path) -> None:
    source = tmp_path / "page.html"
    source.write_text("<h1>Title</h1><p>Body <b>bold</b></p>", encoding="utf-8")
    result = runner.invoke(app, ["html", str(source), "--config", str(config_file)])
    assert result.exit_code == 0, result.output
    assert "# Title\n\nBody **bold**" in result.stdout
    assert (tmp_path / "runs" / "log.jsonl").exists()


def test_html_command_writes_output(tmp_path: Path, config_file: Path) -> None:
    source = tmp_path / "page.html"
    source.write_text("<p>A<br>B</p>", encoding="utf-8")
    target = tmp_path / "page.md"
    result = runner.invoke(
        app,
        ["html", str(source), "--preserve-line-breaks", "-o", str(target), "--config", str(config_file)],
    )
    assert result.exit_code == 0, result.output
    assert target.read_text(encoding="utf-8") == "A\nB\n"


def test_html_command_fails_on_blank_file(tmp_path: Path, config_file: Path) -> None:
    blank = tmp_path / "blank.html"
    blank.write_text("   ", encoding="utf-8")
    result = runner.invoke(app, ["html", str(blank), "--config", str(config_file)])
    assert result.exit_code == 1


def test_records_command(tmp_path: Path, config_file: Path) -> None:
    source = tmp_path / "records.jsonl"
    source.write_text(
        json.dumps({"id": 1, "body": "<p>Hello</p>"}) + "\n" + json.dumps({"id": 2, "body": ""}) + "\n",
        encoding="utf-8",
    )
    target = tmp_path / "out.jsonl"
    result = runner.invoke(
        app,
        ["records", str(source), "-o", str(target), "--continue-on-fail", "--config", str(config_file)],
    )
    assert result.exit_code == 0, result.output
    lines = [json.loads(line) for line in target.read_text(encoding="utf-8").splitlines()]
    assert lines[0] == {"id": 1, "body": "<p>Hello</p>", "markdown": "Hello"}
    assert lines[1] == {"error": "Item 1: HTML content is empty"}


def test_records_command_stops_without_continue(tmp_path: Path, config_file: Path) -> None:
    source = tmp_path / "records.jsonl"
    source.write_text(json.dumps({"body": ""}) + "\n", encoding="utf-8")
    result = runner.invoke(app, ["records", str(source), "--config", str(config_file)])
    assert result.exit_code == 1


def test_show_config(config_file: Path) -> None:
    result = runner.invoke(app, ["show-config", "--config", str(config_file)])
    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["defaults"]["max_length"] == 0
