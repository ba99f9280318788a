# Path: tests/conftest.py
from pathlib import Path
from typing import Dict

import pytest


def write_tree(root: Path, files: Dict[str, str]) -> Path:
    """Create `files` (relative path -> contents) under root."""
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


SAMPLE_LIB = """\
pub fn add(a: i32, b: i32) -> i32 {
    a + b
}

pub unsafe fn read(p: *const i32) -> i32 {
    *p
}
"""

SAMPLE_IMPL = """\
pub struct Buffer;

unsafe impl Send for Buffer {}

impl Buffer {
    pub fn len(&self) -> usize {
        0
    }
}
"""


@pytest.fixture
def rust_repo(tmp_path):
    """
    A small crate:
      src/lib.rs   functions (1,1), exprs (1,1)
      src/impl.rs  item_impls (1,1), methods (1,0)
    plus files the scan must never see.
    """
    return write_tree(tmp_path / "repo", {
        "src/lib.rs": SAMPLE_LIB,
        "src/impl.rs": SAMPLE_IMPL,
        "README.md": "# not rust\n",
        ".git/hooks/pre-commit.rs": "this is not rust {{{",
        "src/.generated.rs": "neither is this (((",
    })
