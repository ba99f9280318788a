# Path: utils/git_clone.py
from __future__ import annotations

import logging
import re
import shutil
import subprocess
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from core.config import Settings, get_settings
from core.errors import CloneError

logger = logging.getLogger(__name__)

_NAME_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


def _check_name(kind: str, value: str, url: str) -> None:
    if not _NAME_RE.match(value) or value.startswith("-") or value in {".", ".."}:
        raise CloneError(url, f"invalid {kind} name {value!r}")


def repository_url(user: str, repo: str, settings: Optional[Settings] = None) -> str:
    settings = settings or get_settings()
    return f"{settings.GIT_HOST}/{user}/{repo}"


class GitCloner:
    """Minimal git wrapper for shallow clones."""
    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or get_settings()

    def _run(self, *args: str) -> subprocess.CompletedProcess:
        return subprocess.run(
            ["git", *args],
            text=True,
            capture_output=True,
            timeout=self.settings.CLONE_TIMEOUT,
        )

    def clone(self, url: str, target: Path) -> Path:
        try:
            result = self._run("clone", "--quiet", "--depth", str(self.settings.CLONE_DEPTH), "--", url, str(target))
        except FileNotFoundError as e:
            raise CloneError(url, "git executable not found") from e
        except subprocess.TimeoutExpired as e:
            raise CloneError(url, f"timed out after {self.settings.CLONE_TIMEOUT:g}s") from e

        if result.returncode != 0:
            raise CloneError(url, (result.stderr or "").strip() or f"git exited with status {result.returncode}")
        return target


@contextmanager
def cloned_repository(user: str, repo: str, settings: Optional[Settings] = None) -> Iterator[Path]:
    """
    Clone <host>/<user>/<repo> into a fresh temporary directory and yield the checkout.
    The directory is removed on every exit path, including clone and scan failures.
    """
    settings = settings or get_settings()
    url = repository_url(user, repo, settings)
    _check_name("user", user, url)
    _check_name("repo", repo, url)

    try:
        Path(settings.WORK_DIR).mkdir(parents=True, exist_ok=True)
        work_dir = tempfile.mkdtemp(prefix="unsafe-counter-", dir=settings.WORK_DIR)
    except OSError as e:
        raise CloneError(url, f"cannot create work directory under {settings.WORK_DIR}: {e.strerror or e}") from e

    try:
        target = Path(work_dir) / repo
        logger.info("cloning %s into %s", url, target)
        GitCloner(settings).clone(url, target)
        yield target
    finally:
        try:
            shutil.rmtree(work_dir)
        except OSError as e:
            logger.warning("could not remove %s: %s", work_dir, e)
        else:
            logger.debug("removed %s", work_dir)
