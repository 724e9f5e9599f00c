# runner.py
from __future__ import annotations

import runpy
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Tuple, runtime_checkable

from .dag import Dag, find
from .errors import ExternalToolFailure, FlowCycleError, FlowError, FlowLoadError
from .ui.console import Console, get_console


@runtime_checkable
class Step(Protocol):
    """
    One executable unit of work in a build graph.

    Steps are shared: the same object may be a dependency of several
    parents and still runs at most once per `run()`.
    """
    name: str
    pinned: bool

    def dependencies(self) -> List["Step"]:
        ...

    def execute(self) -> None:
        ...


# ----------------------------------------------------------------------
# Scheduling
# ----------------------------------------------------------------------

def _visit(
    step: Step,
    visited: Dict[int, Step],
    active: Dict[int, Step],
    on_pinned,
    on_ready,
) -> None:
    # Keyed by identity: equal-looking steps at different places in the graph
    # are distinct targets. The dict keeps each step alive so ids stay unique.
    key = id(step)
    if key in visited:
        return
    if key in active:
        raise FlowCycleError(node=step.name)
    active[key] = step

    for dep in step.dependencies():
        _visit(dep, visited, active, on_pinned, on_ready)

    del active[key]

    if step.pinned:
        on_pinned(step)
    else:
        on_ready(step)
    visited[key] = step


def plan(target: Step) -> List[Tuple[Step, str]]:
    """
    Execution order for `target` without running anything.

    Returns (step, action) pairs where action is "run" or "pinned".
    """
    order: List[Tuple[Step, str]] = []
    _visit(
        target,
        {},
        {},
        on_pinned=lambda s: order.append((s, "pinned")),
        on_ready=lambda s: order.append((s, "run")),
    )
    return order


def run(target: Step, *, console: Optional[Console] = None) -> List[Tuple[str, str]]:
    """
    Execute `target` after all of its dependencies, depth-first.

    - each reachable step executes at most once
    - pinned steps are not executed, but their dependencies are
    - the first failure aborts the whole run and is re-raised

    Returns:
        (step name, status) in execution order; status is "ok" or "pinned".
    """
    console = console or get_console()
    results: List[Tuple[str, str]] = []

    def on_pinned(step: Step) -> None:
        console.print_step_pinned(step.name)
        results.append((step.name, "pinned"))

    def on_ready(step: Step) -> None:
        console.print_step_start(step.name)
        try:
            step.execute()
        except ExternalToolFailure as e:
            console.print_failure(step.name, str(e), exit_code=e.exit_code, hint=e.hint)
            raise
        except Exception as e:
            console.print_failure(step.name, str(e))
            raise
        console.print_step_done(step.name)
        results.append((step.name, "ok"))

    _visit(target, {}, {}, on_pinned, on_ready)
    return results


# ----------------------------------------------------------------------
# Flow loading (local file/module)
# ----------------------------------------------------------------------

def load_flow(path: str | Path) -> Dag:
    """
    Load a flow from a python file path.

    The file must define either:
      - flow() -> Dag
      - FLOW = Dag(...)
    """
    flow_path = Path(path).expanduser().resolve()
    if not flow_path.exists():
        raise FlowLoadError(str(flow_path), "flow file not found")
    if flow_path.suffix != ".py":
        raise FlowLoadError(str(flow_path), f"flow must be a .py file, got: {flow_path.name}")

    module_name = f"pdflow_flow_{flow_path.stem}"
    try:
        globals_dict = runpy.run_path(str(flow_path), run_name=module_name)
        if "flow" in globals_dict and callable(globals_dict["flow"]):
            dag = globals_dict["flow"]()
        else:
            dag = globals_dict.get("FLOW")
    except FlowError:
        raise
    except Exception as e:
        raise FlowLoadError(str(flow_path), f"{type(e).__name__}: {e}") from e

    if not isinstance(dag, Dag):
        raise FlowLoadError(
            str(flow_path),
            "flow file must define flow() -> Dag or FLOW = Dag(...)",
        )
    return dag


def resolve_target(dag: Dag, target: str) -> Step:
    """
    Find the step named by `target` in a composed graph.

    "<module>.<stage>" reads the stage attribute of the module's payload.
    A bare "<module>" is the payload itself when it is a Step, otherwise its
    last stage ("par" for a flat flow).
    """
    module, _, stage = target.partition(".")
    payload = find(dag, module)
    if payload is None:
        known = [getattr(sub.node, "name", "?") for sub in dag.walk()]
        raise FlowLoadError(target, f"no module named '{module}' in flow. Known modules: {known}")

    if not stage:
        if isinstance(payload, Step):
            return payload
        stage = "par"

    step = getattr(payload, stage, None)
    if not isinstance(step, Step):
        raise FlowLoadError(target, f"module '{module}' has no stage '{stage}'")
    return step
