from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Iterable, Optional

import pytest

from monorun.model import Workspace
from monorun.workspace import load_workspace


class WorkspaceBuilder:
    """Writes a throwaway yarn-style workspace under tmp_path."""

    def __init__(self, tmp_path: Path) -> None:
        # Discovery never looks at or above `home`
        self.home = tmp_path
        self.root = tmp_path / "repo"
        self.root.mkdir()

    def write_json(self, relative: str, data) -> Path:
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        return path

    def root_manifest(self, patterns: Iterable[str] = ("packages/*",), **extra) -> Path:
        data = {"name": "root", "private": True, "workspaces": {"packages": list(patterns)}}
        data.update(extra)
        return self.write_json("package.json", data)

    def package(
        self,
        name: Optional[str],
        *,
        directory: Optional[str] = None,
        scripts: Optional[Dict[str, str]] = None,
        dependencies: Iterable[str] = (),
        dev_dependencies: Iterable[str] = (),
    ) -> Path:
        directory = directory or f"packages/{name}"
        data: dict = {}
        if name is not None:
            data["name"] = name
        if scripts:
            data["scripts"] = scripts
        if dependencies:
            data["dependencies"] = {d: "^1.0.0" for d in dependencies}
        if dev_dependencies:
            data["devDependencies"] = {d: "^1.0.0" for d in dev_dependencies}
        self.write_json(f"{directory}/package.json", data)
        return (self.root / directory).resolve()

    def load(self, **kwargs) -> Workspace:
        return load_workspace(self.root, home=self.home, **kwargs)


@pytest.fixture
def ws_builder(tmp_path: Path) -> WorkspaceBuilder:
    return WorkspaceBuilder(tmp_path)
