# workspace.py
# Locates the workspace root, expands its member globs and loads every
# member's package.json into a Workspace.

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .dag import build_graph, topo_levels
from .errors import DependenciesMalformed, ManifestInvalid, ManifestMissing, RootNotFound
from .manifest import is_package_dir, load_json, manifest_path, read_manifest
from .model import Manifest, Package, Workspace
from .ui.console import get_console


@dataclass(frozen=True)
class WorkspaceConfig:
    """Typed view of the root descriptor's `workspaces` field."""
    patterns: Tuple[str, ...]

    @classmethod
    def parse(cls, data: Dict[str, Any], descriptor: Path) -> "WorkspaceConfig":
        workspaces = data.get("workspaces")
        if not isinstance(workspaces, dict):
            raise DependenciesMalformed(
                descriptor,
                f"'workspaces' must be an object with a 'packages' list, "
                f"got {type(workspaces).__name__}",
            )
        if "packages" not in workspaces:
            raise DependenciesMalformed(descriptor, "'workspaces' has no 'packages' field")

        packages = workspaces["packages"]
        if not isinstance(packages, list) or not all(
            isinstance(p, str) and p.strip("!") for p in packages
        ):
            raise DependenciesMalformed(
                descriptor, "'workspaces.packages' must be a list of glob patterns"
            )
        return cls(patterns=tuple(packages))


# ----------------------------------------------------------------------
# Root discovery
# ----------------------------------------------------------------------

def _declares_workspaces(descriptor: Path) -> bool:
    try:
        data = load_json(descriptor)
    except (ManifestMissing, ManifestInvalid) as e:
        get_console().print_debug(f"Ignoring {descriptor} while looking for the root: {e}")
        return False
    return "workspaces" in data


def find_root(start_dir: str | Path, home: str | Path | None = None) -> Path:
    """
    Walk up from `start_dir` and return the outermost package.json that
    declares workspaces.

    The walk stops at `home` (defaults to $HOME, else the filesystem root)
    or when the parent directory stops changing.
    """
    start = Path(start_dir).resolve()
    if home is None:
        home = os.environ.get("HOME") or start.anchor
    boundary = Path(home).resolve()

    found: Optional[Path] = None
    current, parent = start, start.parent
    while current != boundary and parent != current:
        candidate = manifest_path(current)
        if candidate.is_file() and _declares_workspaces(candidate):
            found = candidate
        current, parent = parent, parent.parent

    if found is None:
        raise RootNotFound(start, boundary)
    return found


def _glob_dirs(root_dir: Path, pattern: str) -> List[Path]:
    pattern = pattern.strip().rstrip("/")
    if pattern.startswith("./"):
        pattern = pattern[2:]
    if not pattern or pattern == ".":
        return [root_dir]

    base = root_dir
    if Path(pattern).is_absolute():
        # Path.glob only takes relative patterns: glob from the anchor instead
        anchor = Path(pattern).anchor
        base, pattern = Path(anchor), pattern[len(anchor):]
        if not pattern:
            return [base]
    return [p.resolve() for p in base.glob(pattern) if p.is_dir()]


def expand_members(root_dir: str | Path, patterns: Iterable[str]) -> List[Path]:
    """
    Expand member globs (relative to the root) into absolute package dirs.

    `!pattern` entries remove matches; directories without a package.json
    (docs, fixtures, ...) are dropped.
    """
    root = Path(root_dir).resolve()
    patterns = list(patterns)

    included: set[Path] = set()
    excluded: set[Path] = set()
    for pattern in patterns:
        if pattern.startswith("!"):
            excluded.update(_glob_dirs(root, pattern[1:]))
        else:
            included.update(_glob_dirs(root, pattern))

    return sorted(p for p in included - excluded if is_package_dir(p))


# ----------------------------------------------------------------------
# Loading
# ----------------------------------------------------------------------

def _load_members(package_dirs: Iterable[Path]) -> Dict[str, Tuple[Path, Manifest]]:
    console = get_console()
    members: Dict[str, Tuple[Path, Manifest]] = {}

    for package_dir in package_dirs:
        try:
            manifest = read_manifest(package_dir)
        except (ManifestMissing, ManifestInvalid) as e:
            console.print_debug(f"Skipping {package_dir}: {e}")
            continue

        if not manifest.name:
            console.print_debug(f"Skipping {package_dir}: package.json has no name")
            continue

        if manifest.name in members:
            console.print_debug(
                f"Skipping {package_dir}: duplicate package name '{manifest.name}' "
                f"(already loaded from {members[manifest.name][0]})"
            )
            continue

        members[manifest.name] = (package_dir, manifest)

    return members


def load_workspace(
    start_dir: str | Path | None = None,
    *,
    exclude: Iterable[str] = (),
    home: str | Path | None = None,
) -> Workspace:
    """
    Discover the workspace containing `start_dir` (defaults to the cwd).

    Packages named in `exclude` are removed after discovery, together with
    any edges pointing at them.

    Raises:
      RootNotFound, DependenciesMalformed, CyclicDependency
    """
    console = get_console()
    start = Path(start_dir) if start_dir is not None else Path.cwd()

    root_manifest = find_root(start, home=home)
    root_dir = root_manifest.parent
    try:
        root_data = load_json(root_manifest)
    except ManifestInvalid as e:
        raise DependenciesMalformed(root_manifest, e.reason) from e
    config = WorkspaceConfig.parse(root_data, root_manifest)

    package_dirs = expand_members(root_dir, config.patterns)
    members = _load_members(package_dirs)

    for name in exclude:
        if members.pop(name, None) is not None:
            console.print_debug(f"Excluded package: {name}")

    manifests = {name: manifest for name, (_path, manifest) in sorted(members.items())}
    graph = build_graph(manifests)
    layers = topo_levels(graph)
    for idx, layer in enumerate(layers):
        console.print_debug(f"Layer {idx}: {layer}")

    packages = {
        name: Package(
            name=name,
            path=members[name][0],
            scripts=dict(manifests[name].scripts),
            dependencies=tuple(graph[name]),
        )
        for name in manifests
    }

    return Workspace(
        root_dir=root_dir,
        root_manifest=root_manifest,
        packages=packages,
        layers=layers,
    )
