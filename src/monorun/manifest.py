# manifest.py
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Tuple

from .errors import ManifestInvalid, ManifestMissing
from .model import Manifest

PACKAGE_JSON = "package.json"


def manifest_path(package_dir: str | Path) -> Path:
    return Path(package_dir) / PACKAGE_JSON


def is_package_dir(path: str | Path) -> bool:
    return Path(path).is_dir() and manifest_path(path).is_file()


def load_json(path: Path) -> Dict[str, Any]:
    """
    Read a package.json as a dict.

    Raises:
      ManifestMissing: no file at `path`
      ManifestInvalid: unreadable, not JSON, or not a JSON object
    """
    if not path.is_file():
        raise ManifestMissing(path.parent)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as e:
        raise ManifestInvalid(path, str(e)) from e
    except json.JSONDecodeError as e:
        raise ManifestInvalid(path, f"not valid JSON ({e})") from e

    if not isinstance(data, dict):
        raise ManifestInvalid(path, f"expected a JSON object, got {type(data).__name__}")
    return data


def _names(data: Dict[str, Any], key: str, path: Path) -> Tuple[str, ...]:
    # Only the names matter, versions are ignored.
    value = data.get(key)
    if value is None:
        return ()
    if not isinstance(value, dict):
        raise ManifestInvalid(path, f"'{key}' must be an object")
    return tuple(value.keys())


def read_manifest(package_dir: str | Path) -> Manifest:
    path = manifest_path(package_dir)
    data = load_json(path)

    name = data.get("name")
    if name is not None and not isinstance(name, str):
        raise ManifestInvalid(path, "'name' must be a string")

    scripts = data.get("scripts") or {}
    if not isinstance(scripts, dict):
        raise ManifestInvalid(path, "'scripts' must be an object")
    scripts = {k: v for k, v in scripts.items() if isinstance(v, str)}

    return Manifest(
        name=name or None,
        scripts=scripts,
        dependencies=_names(data, "dependencies", path),
        dev_dependencies=_names(data, "devDependencies", path),
    )
