import subprocess
from pathlib import Path

import pytest

from core.config import Settings
from core.errors import CloneError
from utils import git_clone
from utils.git_clone import cloned_repository, repository_url


@pytest.fixture
def settings(tmp_path):
    work = tmp_path / "work"
    work.mkdir()
    return Settings(GIT_HOST="https://example.test", WORK_DIR=work, CLONE_DEPTH=1, CLONE_TIMEOUT=5)


def fake_git(returncode=0, stderr="", calls=None):
    def run(cmd, **kwargs):
        if calls is not None:
            calls.append(cmd)
        if returncode == 0:
            target = Path(cmd[-1])
            target.mkdir(parents=True)
            (target / "lib.rs").write_text("fn a() {}\n")
        return subprocess.CompletedProcess(cmd, returncode, stdout="", stderr=stderr)
    return run


def test_repository_url(settings):
    assert repository_url("rust-lang", "regex", settings) == "https://example.test/rust-lang/regex"


def test_clone_yields_checkout_and_cleans_up(settings, monkeypatch):
    calls = []
    monkeypatch.setattr(git_clone.subprocess, "run", fake_git(calls=calls))

    with cloned_repository("rust-lang", "regex", settings) as checkout:
        assert (checkout / "lib.rs").exists()
        assert checkout.name == "regex"
        assert settings.WORK_DIR in checkout.parents

    assert not checkout.exists()
    assert list(settings.WORK_DIR.iterdir()) == []
    assert calls[0][:2] == ["git", "clone"]
    assert "https://example.test/rust-lang/regex" in calls[0]


def test_cleanup_happens_when_the_body_fails(settings, monkeypatch):
    monkeypatch.setattr(git_clone.subprocess, "run", fake_git())

    with pytest.raises(RuntimeError):
        with cloned_repository("rust-lang", "regex", settings):
            raise RuntimeError("scan blew up")

    assert list(settings.WORK_DIR.iterdir()) == []


def test_git_failure_is_a_clone_error(settings, monkeypatch):
    monkeypatch.setattr(git_clone.subprocess, "run",
                        fake_git(returncode=128, stderr="fatal: repository not found\n"))

    with pytest.raises(CloneError) as info:
        with cloned_repository("nobody", "nothing", settings):
            pass

    assert info.value.url == "https://example.test/nobody/nothing"
    assert info.value.message == "fatal: repository not found"
    assert str(info.value).startswith("Failed to clone https://example.test/nobody/nothing")
    assert list(settings.WORK_DIR.iterdir()) == []


def test_timeout_is_a_clone_error(settings, monkeypatch):
    def slow(cmd, **kwargs):
        raise subprocess.TimeoutExpired(cmd, kwargs.get("timeout"))

    monkeypatch.setattr(git_clone.subprocess, "run", slow)

    with pytest.raises(CloneError) as info:
        with cloned_repository("rust-lang", "regex", settings):
            pass
    assert "timed out" in info.value.message


@pytest.mark.parametrize("user,repo", [
    ("..", "regex"),
    ("rust-lang", "a/b"),
    ("-upload-pack=x", "regex"),
    ("rust lang", "regex"),
])
def test_invalid_names_never_reach_git(settings, monkeypatch, user, repo):
    calls = []
    monkeypatch.setattr(git_clone.subprocess, "run", fake_git(calls=calls))

    with pytest.raises(CloneError):
        with cloned_repository(user, repo, settings):
            pass
    assert calls == []


def test_missing_work_dir_is_created(tmp_path, monkeypatch):
    settings = Settings(GIT_HOST="https://example.test", WORK_DIR=tmp_path / "not" / "yet", CLONE_TIMEOUT=5)
    monkeypatch.setattr(git_clone.subprocess, "run", fake_git())

    with cloned_repository("rust-lang", "regex", settings) as checkout:
        assert (checkout / "lib.rs").exists()

    assert settings.WORK_DIR.is_dir()
    assert list(settings.WORK_DIR.iterdir()) == []


def test_unusable_work_dir_is_a_clone_error(tmp_path, monkeypatch):
    blocker = tmp_path / "blocker"
    blocker.write_text("a file, not a directory")
    settings = Settings(GIT_HOST="https://example.test", WORK_DIR=blocker, CLONE_TIMEOUT=5)
    calls = []
    monkeypatch.setattr(git_clone.subprocess, "run", fake_git(calls=calls))

    with pytest.raises(CloneError) as info:
        with cloned_repository("rust-lang", "regex", settings):
            pass

    assert "cannot create work directory" in info.value.message
    assert calls == []
