from pathlib import Path
from typing import Dict, Optional, Union

import pytest


@pytest.fixture
def make_project(tmp_path):
    """Lay out files under a fresh root. Bytes values are written raw."""
    root = tmp_path.resolve() / "project"
    root.mkdir()

    def _make(
        files: Dict[str, Union[str, bytes]],
        gitignore: Optional[str] = "",
    ) -> Path:
        if gitignore is not None:
            (root / ".gitignore").write_text(gitignore, encoding="utf-8")
        for rel_path, content in files.items():
            path = root / rel_path
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                path.write_bytes(content)
            else:
                path.write_text(content, encoding="utf-8")
        return root

    return _make
