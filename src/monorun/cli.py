# cli.py
from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from monorun.errors import CyclicDependency, DependenciesMalformed, MonorunError, RootNotFound
from monorun.model import SCRIPTS, RunOptions
from monorun.runner import Scheduler
from monorun.ui.console import Console, get_console, set_console
from monorun.workspace import load_workspace


def _load_or_exit(cwd: str | None, exclude: tuple[str, ...]):
    """
    Discover the workspace, turning fatal discovery/graph errors into a
    structured message and exit code 1.
    """
    console = get_console()
    start = Path(cwd) if cwd else Path.cwd()
    try:
        return load_workspace(start, exclude=exclude)
    except RootNotFound as e:
        console.print_error(
            "Workspace root not found",
            str(e),
            suggestion='Run from inside a project whose root package.json declares "workspaces".',
        )
    except DependenciesMalformed as e:
        console.print_error(
            "Malformed workspaces field",
            str(e),
            suggestion='Expected: "workspaces": {"packages": ["packages/*"]}',
        )
    except CyclicDependency as e:
        console.print_error(
            "Circular dependency",
            "Packages below could not be ordered:",
            details=[json.dumps(e.remaining, indent=2)],
        )
    except MonorunError as e:
        console.print_exception(e)
    sys.exit(1)


exclude_option = click.option(
    "--exclude",
    multiple=True,
    metavar="NAME",
    help="Package name to leave out of the workspace (repeatable)",
)
cwd_option = click.option(
    "--cwd",
    default=None,
    type=click.Path(exists=True, file_okay=False),
    help="Directory to start workspace discovery from (defaults to the current directory)",
)


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and detailed output)",
)
@click.pass_context
def cli(ctx, debug):
    """monorun: dependency-aware build/lint/test for workspace monorepos."""
    console = Console(debug=debug)
    set_console(console)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@cli.command()
@click.option("-b", "--build", is_flag=True, default=False, help="Run build scripts (in dependency order)")
@click.option("-t", "--test", is_flag=True, default=False, help="Run test scripts")
@click.option("-l", "--lint", is_flag=True, default=False, help="Run lint scripts")
@exclude_option
@cwd_option
@click.option("--workers", default=None, type=click.IntRange(min=1), help="Max parallel scripts per pool")
@click.option(
    "--on-dependency-failure",
    type=click.Choice(["skip", "continue"]),
    default="skip",
    show_default=True,
    help="What to do with a package whose dependency failed to build",
)
@click.option("--package-manager", default="yarn", show_default=True, help="Command used as `<cmd> run <script>`")
def run(build, test, lint, exclude, cwd, workers, on_dependency_failure, package_manager):
    """Run build/lint/test across the workspace. With no phase flags, all three run."""
    console = get_console()

    # Flags only have a positive form: unset means "not supplied"
    options = RunOptions.from_flags(
        build=build or None,
        test=test or None,
        lint=lint or None,
        package_manager=package_manager,
        on_dependency_failure=on_dependency_failure,
        max_workers=workers,
    )
    workspace = _load_or_exit(cwd, exclude)

    phases = [p for p in SCRIPTS if getattr(options, p)]
    console.print_run_started(
        root_dir=str(workspace.root_dir),
        package_count=len(workspace.packages),
        layer_count=len(workspace.layers),
        phases=phases,
    )

    try:
        result = Scheduler(workspace, options, on_update=console.print_update).run()
    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)

    console.print_results(result)
    if not result.ok:
        sys.exit(1)


@cli.command()
@exclude_option
@cwd_option
def workspace(exclude, cwd):
    """Print the discovered workspace (packages, layers, order) as JSON."""
    ws = _load_or_exit(cwd, exclude)
    click.echo(json.dumps(ws.to_dict(), indent=2))


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
