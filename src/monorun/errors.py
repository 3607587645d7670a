# errors.py
from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List


class MonorunError(Exception):
    """Base class for every error raised by monorun."""


# ----------------------------------------------------------------------
# Discovery (fatal)
# ----------------------------------------------------------------------

@dataclass
class RootNotFound(MonorunError):
    start_dir: Path
    boundary: Path

    def __str__(self) -> str:
        return (
            f'Root "package.json" not found: {self.start_dir} '
            f"(searched up to {self.boundary})"
        )


@dataclass
class DependenciesMalformed(MonorunError):
    descriptor: Path
    message: str

    def __str__(self) -> str:
        return f"{self.descriptor}: {self.message}"


# ----------------------------------------------------------------------
# Per-package (caller decides whether to skip or abort)
# ----------------------------------------------------------------------

@dataclass
class ManifestMissing(MonorunError):
    path: Path

    def __str__(self) -> str:
        return f"No package.json in {self.path}"


@dataclass
class ManifestInvalid(MonorunError):
    path: Path
    reason: str

    def __str__(self) -> str:
        return f"Invalid manifest {self.path}: {self.reason}"


# ----------------------------------------------------------------------
# Graph (fatal)
# ----------------------------------------------------------------------

@dataclass
class CyclicDependency(MonorunError):
    """Raised when layering stalls; `remaining` is the unresolved mapping."""
    remaining: Dict[str, List[str]]

    def __str__(self) -> str:
        return "Circular dependency detected:\n" + json.dumps(self.remaining, indent=2)


# ----------------------------------------------------------------------
# Script execution (contained, reported, never raised across units)
# ----------------------------------------------------------------------

@dataclass
class ScriptFailure(MonorunError):
    """
    Structured per-script failure with enough context for:
      - the final summary
      - debugging without tracebacks
    """
    package: str
    script: str
    output: str = ""
    details: dict = field(default_factory=dict)

    kind = "ScriptFailure"

    def __str__(self) -> str:
        lines = [f"{self.kind}: {self.package} {self.script}"]
        for k, v in self.details.items():
            lines.append(f"{k}={v}")
        return "\n".join(lines)


@dataclass
class ScriptSpawnFailure(ScriptFailure):
    kind = "ScriptSpawnFailure"


@dataclass
class ScriptExitNonZero(ScriptFailure):
    kind = "ScriptExitNonZero"
