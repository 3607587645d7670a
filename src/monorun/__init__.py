from .dag import build_graph, topo_levels
from .model import Package, RunOptions, RunResult, Status, Workspace
from .runner import Scheduler, run_workspace
from .workspace import load_workspace

__all__ = [
    "build_graph",
    "topo_levels",
    "load_workspace",
    "Scheduler",
    "run_workspace",
    "Package",
    "Workspace",
    "RunOptions",
    "RunResult",
    "Status",
]
