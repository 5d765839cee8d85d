# tests/test_cli.py

from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from typer.testing import CliRunner

from docship.orchestrator import cli
from docship.publishers import PublishError
from docship.tasks import deploy

from .fakes import RecordingDocPublisher, RecordingSnippetPublisher

runner = CliRunner()


@pytest.fixture()
def fake_publishers(monkeypatch: pytest.MonkeyPatch, workspace: Path):
    doc = RecordingDocPublisher()
    gist = RecordingSnippetPublisher()
    monkeypatch.setattr(deploy, "make_doc_publisher", lambda params: doc)
    monkeypatch.setattr(deploy, "make_gist_publisher", lambda params: gist)
    return doc, gist


def test_list_shows_tasks_and_prerequisites() -> None:
    result = runner.invoke(cli.app, ["list"])

    assert result.exit_code == 0
    assert "- dist -> deploy:doc, deploy:gist" in result.output
    assert "- default -> deploy:gist" in result.output
    assert "- deploy:doc  (Push the generated API documentation to the hosting branch.)" in result.output


def test_run_without_a_name_runs_default(fake_publishers) -> None:
    doc, gist = fake_publishers

    result = runner.invoke(cli.app, ["run"])

    assert result.exit_code == 0, result.output
    assert doc.calls == []
    assert len(gist.calls) == 1
    assert "Done: default (1 run)" in result.output


def test_run_dist_uses_config_file(fake_publishers, workspace: Path) -> None:
    doc, gist = fake_publishers
    config = workspace / "docship.yaml"
    config.write_text(
        yaml.safe_dump({"project": {"state_dir": "state"}, "docs": {"source": "target/apidocs/*.html"}}),
        encoding="utf-8",
    )

    result = runner.invoke(cli.app, ["run", "dist", "--config", str(config), "--jobs", "2"])

    assert result.exit_code == 0, result.output
    assert doc.calls[0].files == ["target/apidocs/index.html"]
    assert len(gist.calls) == 1
    assert (workspace / "state" / "runs" / "dist").is_dir()


def test_cache_flag_skips_second_run(fake_publishers) -> None:
    _, gist = fake_publishers

    runner.invoke(cli.app, ["run", "deploy:gist", "--cache"])
    second = runner.invoke(cli.app, ["run", "deploy:gist", "--cache"])
    forced = runner.invoke(cli.app, ["run", "deploy:gist", "--cache", "--force"])

    assert second.exit_code == 0
    assert "1 cached" in second.output
    assert forced.exit_code == 0
    assert len(gist.calls) == 2


def test_unknown_task_exits_non_zero(fake_publishers) -> None:
    result = runner.invoke(cli.app, ["run", "deploy:everything"])

    assert result.exit_code == 1
    assert "Unknown task: deploy:everything" in result.output


def test_publish_failure_exits_non_zero(monkeypatch: pytest.MonkeyPatch, workspace: Path) -> None:
    failing = RecordingSnippetPublisher(error=PublishError("401 Unauthorized", status=401))
    monkeypatch.setattr(deploy, "make_gist_publisher", lambda params: failing)

    result = runner.invoke(cli.app, ["run", "default"])

    assert result.exit_code == 1
    assert len(failing.calls) == 1


def test_load_config_missing_file_means_defaults(tmp_path: Path) -> None:
    assert cli.load_config(tmp_path / "nope.yaml") == {}


def test_load_config_reads_yaml(tmp_path: Path) -> None:
    path = tmp_path / "base.yaml"
    path.write_text("gist:\n  public: false\n", encoding="utf-8")
    assert cli.load_config(path) == {"gist": {"public": False}}
