# executor.py
from __future__ import annotations

import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from .errors import ScriptSpawnFailure


@dataclass(frozen=True)
class ProcessResult:
    """
    exit_code: 0 on success; None only when the process never started
    output:    stderr followed by stdout (errors surface first)
    failure:   set when the process could not be spawned
    """
    exit_code: Optional[int]
    output: str
    failure: Optional[ScriptSpawnFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None and self.exit_code == 0


def search_path(extra_path_entries: Sequence[str | Path]) -> str:
    """Local bin dirs first, then the ambient PATH when it is set."""
    entries = [str(p) for p in extra_path_entries]
    ambient = os.environ.get("PATH")
    if ambient:
        entries.append(ambient)
    return os.pathsep.join(entries)


def local_bin_dirs(package_dir: str | Path, root_dir: str | Path) -> List[Path]:
    return [
        Path(package_dir) / "node_modules" / ".bin",
        Path(root_dir) / "node_modules" / ".bin",
    ]


def run_process(
    command: str,
    args: Sequence[str],
    cwd: str | Path,
    extra_path_entries: Sequence[str | Path] = (),
    *,
    package: str = "",
    script: str = "",
) -> ProcessResult:
    """
    Run one external command and wait for it.

    Never raises for spawn errors (missing command, permission denied, bad
    cwd): they come back as a ProcessResult carrying a ScriptSpawnFailure
    with the resolved command, arguments and PATH for debugging.
    """
    path = search_path(extra_path_entries)
    env = os.environ.copy()
    env["PATH"] = path
    argv = [command, *args]

    try:
        proc = subprocess.Popen(
            argv,
            cwd=str(cwd),
            env=env,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            errors="replace",
        )
    except OSError as e:
        resolved = shutil.which(command, path=path) or command
        output = f"{script} {resolved} {' '.join(args)}\nPATH = {path}\n{type(e).__name__}: {e}"
        failure = ScriptSpawnFailure(
            package=package,
            script=script,
            output=output,
            details={
                "command": resolved,
                "args": " ".join(argv),
                "cwd": str(cwd),
                "PATH": path,
                "error": f"{type(e).__name__}: {e}",
            },
        )
        return ProcessResult(exit_code=None, output=output, failure=failure)

    # communicate() drains both pipes concurrently so neither can fill up and block
    stdout, stderr = proc.communicate()
    code = proc.returncode if proc.returncode is not None else 0
    return ProcessResult(exit_code=code, output=(stderr or "") + (stdout or ""))
