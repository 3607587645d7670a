# model.py
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from .errors import ScriptExitNonZero, ScriptFailure, ScriptSpawnFailure

SCRIPTS: Tuple[str, ...] = ("build", "lint", "test")


class Status(str, Enum):
    NOT_STARTED = "not-started"
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"
    SKIP = "skip"


@dataclass(frozen=True)
class Manifest:
    """What a single package.json declares (only the parts we use)."""
    name: Optional[str]
    scripts: Dict[str, str] = field(default_factory=dict)
    dependencies: Tuple[str, ...] = ()
    dev_dependencies: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Package:
    """
    One workspace member.

    `dependencies` only holds names of other workspace packages; external
    dependencies are dropped while the graph is built.
    """
    name: str
    path: Path
    scripts: Dict[str, str] = field(default_factory=dict)
    dependencies: Tuple[str, ...] = ()

    def script(self, name: str) -> Optional[str]:
        return self.scripts.get(name) or None


@dataclass(frozen=True)
class Workspace:
    root_dir: Path
    root_manifest: Path
    packages: Dict[str, Package]
    layers: List[List[str]]

    @property
    def dependency_order(self) -> List[str]:
        return [name for layer in self.layers for name in layer]

    def to_dict(self) -> dict:
        return {
            "rootDir": str(self.root_dir),
            "rootPackageJson": str(self.root_manifest),
            "packages": {
                name: {"path": str(pkg.path), "dependencies": list(pkg.dependencies)}
                for name, pkg in sorted(self.packages.items())
            },
            "rootProjects": self.layers,
            "dependencyOrder": self.dependency_order,
        }


@dataclass(frozen=True)
class RunOptions:
    """
    Fixed options record for one run.

    on_dependency_failure:
      - "skip"     (default) don't build a package whose dependency failed
      - "continue" build it anyway
    """
    build: bool = True
    lint: bool = True
    test: bool = True
    package_manager: str = "yarn"
    test_args: Tuple[str, ...] = ("--run", "--passWithNoTests")
    on_dependency_failure: str = "skip"
    max_workers: Optional[int] = None

    def __post_init__(self) -> None:
        if self.on_dependency_failure not in ("skip", "continue"):
            raise ValueError(
                f"on_dependency_failure must be 'skip' or 'continue', "
                f"got {self.on_dependency_failure!r}"
            )

    @classmethod
    def from_flags(
        cls,
        build: Optional[bool] = None,
        test: Optional[bool] = None,
        lint: Optional[bool] = None,
        **kwargs,
    ) -> "RunOptions":
        # The default is to run all; explicit False flags are respected
        if build is None and test is None and lint is None:
            return cls(build=True, test=True, lint=True, **kwargs)
        return cls(build=bool(build), test=bool(test), lint=bool(lint), **kwargs)

    @property
    def verify_scripts(self) -> List[str]:
        scripts = []
        if self.lint:
            scripts.append("lint")
        if self.test:
            scripts.append("test")
        return scripts

    def script_args(self, script: str) -> List[str]:
        return list(self.test_args) if script == "test" else []


# ----------------------------------------------------------------------
# Run status
# ----------------------------------------------------------------------

def aggregate_status(statuses: Iterable[Status]) -> Optional[Status]:
    """
    running if any script is running, else error if any errored,
    else success if all succeeded, else None (mixed / partial).
    """
    statuses = list(statuses)
    if not statuses:
        return None
    if any(s is Status.RUNNING for s in statuses):
        return Status.RUNNING
    if any(s is Status.ERROR for s in statuses):
        return Status.ERROR
    if all(s is Status.SUCCESS for s in statuses):
        return Status.SUCCESS
    return None


@dataclass
class ScriptRecord:
    status: Status = Status.NOT_STARTED
    output: str = ""
    failure: Optional[ScriptFailure] = None


class RunState:
    """Per (package, script) progress shared by every worker thread."""

    def __init__(self, packages: Iterable[str] = ()):
        self._lock = threading.Lock()
        self._records: Dict[str, Dict[str, ScriptRecord]] = {name: {} for name in packages}

    def update(
        self,
        package: str,
        script: str,
        status: Status,
        output: str = "",
        failure: Optional[ScriptFailure] = None,
    ) -> None:
        with self._lock:
            scripts = self._records.setdefault(package, {})
            scripts[script] = ScriptRecord(status=status, output=output, failure=failure)

    def status(self, package: str, script: str) -> Status:
        with self._lock:
            record = self._records.get(package, {}).get(script)
            return record.status if record else Status.NOT_STARTED

    def snapshot(self) -> Dict[str, Dict[str, ScriptRecord]]:
        with self._lock:
            return {pkg: dict(scripts) for pkg, scripts in self._records.items()}

    def package_status(self, package: str) -> Optional[Status]:
        with self._lock:
            records = list(self._records.get(package, {}).values())
        return aggregate_status(r.status for r in records)

    def failures(self) -> List[ScriptFailure]:
        out: List[ScriptFailure] = []
        for pkg, scripts in sorted(self.snapshot().items()):
            for script, record in scripts.items():
                if record.status is not Status.ERROR:
                    continue
                if record.failure is not None:
                    out.append(record.failure)
                else:
                    out.append(ScriptExitNonZero(package=pkg, script=script, output=record.output))
        return out

    @property
    def has_failures(self) -> bool:
        return bool(self.failures())


@dataclass
class RunResult:
    state: RunState
    options: RunOptions

    @property
    def ok(self) -> bool:
        return not self.state.has_failures

    def failures(self) -> List[ScriptFailure]:
        return self.state.failures()

    def spawn_failures(self) -> List[ScriptSpawnFailure]:
        return [f for f in self.failures() if isinstance(f, ScriptSpawnFailure)]
