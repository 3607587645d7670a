# runner.py
from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Callable, List, Optional

from .errors import ScriptExitNonZero
from .executor import ProcessResult, local_bin_dirs, run_process
from .model import RunOptions, RunResult, RunState, Status, Workspace
from .workspace import load_workspace

UpdateFn = Callable[[str, str, Status, str], None]
ProcessRunner = Callable[..., ProcessResult]


class Scheduler:
    """
    Runs package scripts in dependency order.

    Two task groups per run:
      - build pipeline: one layer at a time, every build in a layer in
        parallel; the next layer starts only when the whole layer resolved
      - verification fan-out: lint/test of each package, launched as soon as
        that package's build succeeded; joined once at the very end
    """

    def __init__(
        self,
        workspace: Workspace,
        options: RunOptions,
        *,
        on_update: Optional[UpdateFn] = None,
        process_runner: ProcessRunner = run_process,
    ):
        self.workspace = workspace
        self.options = options
        self.on_update = on_update
        self.process_runner = process_runner
        self.state = RunState(sorted(workspace.packages))

    # ------------------------------------------------------------------
    # Single script
    # ------------------------------------------------------------------

    def _emit(self, package: str, script: str, status: Status, output: str = "", failure=None) -> None:
        self.state.update(package, script, status, output, failure)
        if self.on_update is not None:
            self.on_update(package, script, status, output)

    def run_script(self, package: str, script: str) -> Status:
        pkg = self.workspace.packages[package]
        if not pkg.script(script):
            # Nothing to run: trivially successful, no process spawned
            self._emit(package, script, Status.SUCCESS)
            return Status.SUCCESS

        self._emit(package, script, Status.RUNNING)

        command = self.options.package_manager
        args = ["run", script, *self.options.script_args(script)]
        result = self.process_runner(
            command,
            args,
            pkg.path,
            local_bin_dirs(pkg.path, self.workspace.root_dir),
            package=package,
            script=script,
        )

        if result.ok:
            self._emit(package, script, Status.SUCCESS, result.output)
            return Status.SUCCESS

        failure = result.failure or ScriptExitNonZero(
            package=package,
            script=script,
            output=result.output,
            details={"exit_code": result.exit_code, "command": " ".join([command, *args])},
        )
        self._emit(package, script, Status.ERROR, result.output, failure)
        return Status.ERROR

    # ------------------------------------------------------------------
    # Build pipeline
    # ------------------------------------------------------------------

    def _failed_dependencies(self, package: str) -> List[str]:
        deps = self.workspace.packages[package].dependencies
        return [d for d in deps if self.state.status(d, "build") is not Status.SUCCESS]

    def build(self, package: str) -> Status:
        if self.options.on_dependency_failure == "skip":
            failed = self._failed_dependencies(package)
            if failed:
                self._emit(
                    package,
                    "build",
                    Status.SKIP,
                    f"skipped: dependencies did not build: {', '.join(failed)}",
                )
                return Status.SKIP
        return self.run_script(package, "build")

    def _cascade(self, pool: ThreadPoolExecutor, package: str) -> List[Future]:
        # lint and test of one package run concurrently with each other
        return [pool.submit(self.run_script, package, s) for s in self.options.verify_scripts]

    # ------------------------------------------------------------------
    # Whole run
    # ------------------------------------------------------------------

    def _pool_sizes(self) -> tuple[int, int]:
        """
        (build, verify) pool sizes. Without an explicit cap every build of the
        widest layer and every lint/test of every package can run at once.
        """
        widest = max((len(layer) for layer in self.workspace.layers), default=0)
        fan_out = len(self.workspace.packages) * len(self.options.verify_scripts)
        cap = self.options.max_workers
        if cap is not None:
            return max(1, min(cap, widest)), max(1, min(cap, fan_out))
        return max(1, widest), max(1, fan_out)

    def run(self) -> RunResult:
        build_workers, verify_workers = self._pool_sizes()
        verify_futures: List[Future] = []

        with ThreadPoolExecutor(max_workers=verify_workers) as verify_pool:
            if self.options.build:
                with ThreadPoolExecutor(max_workers=build_workers) as build_pool:
                    for layer in self.workspace.layers:
                        futures = {build_pool.submit(self.build, name): name for name in layer}
                        # Wait for the entire layer; cascade each success right away
                        for fut in as_completed(futures):
                            if fut.result() is Status.SUCCESS:
                                verify_futures.extend(self._cascade(verify_pool, futures[fut]))
            else:
                for name in sorted(self.workspace.packages):
                    verify_futures.extend(self._cascade(verify_pool, name))

            for fut in verify_futures:
                fut.result()

        return RunResult(state=self.state, options=self.options)


def run_workspace(
    options: RunOptions,
    *,
    start_dir: str | Path | None = None,
    exclude: tuple[str, ...] = (),
    home: str | Path | None = None,
    on_update: Optional[UpdateFn] = None,
    process_runner: ProcessRunner = run_process,
) -> RunResult:
    """Discover the workspace around `start_dir` and run it."""
    workspace = load_workspace(start_dir, exclude=exclude, home=home)
    return Scheduler(
        workspace, options, on_update=on_update, process_runner=process_runner
    ).run()
