import json
from contextlib import contextmanager

from typer.testing import CliRunner

import main
from core.errors import CloneError

runner = CliRunner()


def test_scan_prints_table_and_writes_report(rust_repo, tmp_path):
    output = tmp_path / "report.json"
    result = runner.invoke(main.app, ["scan", str(rust_repo), "--output", str(output)])

    assert result.exit_code == 0, result.output
    assert "item_impls" in result.output
    assert "total" in result.output
    report = json.loads(output.read_text())
    assert report["total"] == {"safe": 4, "unsafe": 3}


def test_scan_with_workers(rust_repo, tmp_path):
    output = tmp_path / "report.json"
    result = runner.invoke(main.app, ["scan", str(rust_repo), "-w", "2", "-o", str(output)])

    assert result.exit_code == 0, result.output
    assert json.loads(output.read_text())["methods"] == {"safe": 1, "unsafe": 0}


def test_scan_missing_folder(tmp_path):
    result = runner.invoke(main.app, ["scan", str(tmp_path / "nope")])
    assert result.exit_code == 1
    assert "Error" in result.output


def test_scan_error_exits_non_zero(rust_repo):
    (rust_repo / "src" / "bad.rs").write_text("impl {{{\n", encoding="utf-8")
    result = runner.invoke(main.app, ["scan", str(rust_repo)])

    assert result.exit_code == 1
    assert "failed to scan file" in result.output


def test_remote_clone_failure(monkeypatch):
    @contextmanager
    def failing_clone(user, repo, settings):
        raise CloneError(f"https://github.com/{user}/{repo}", "fatal: repository not found")
        yield

    monkeypatch.setattr(main, "cloned_repository", failing_clone)
    result = runner.invoke(main.app, ["remote", "nobody", "nothing"])

    assert result.exit_code == 1
    assert "Failed to clone" in result.output


def test_remote_scans_checkout(monkeypatch, rust_repo):
    @contextmanager
    def local_clone(user, repo, settings):
        yield rust_repo

    monkeypatch.setattr(main, "cloned_repository", local_clone)
    result = runner.invoke(main.app, ["remote", "amethyst", "rendy"])

    assert result.exit_code == 0, result.output
    assert "amethyst/rendy" in result.output
