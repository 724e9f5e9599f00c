# cli.py
from __future__ import annotations

import sys
from pathlib import Path

import click

from pdflow.checkpoints import completed_at, list_checkpoints, prepare_resume, resume_point
from pdflow.config import apply_config, load_config
from pdflow.errors import ExternalToolFailure, FlowError
from pdflow.runner import load_flow, plan, resolve_target, run
from pdflow.tool import ScriptStep
from pdflow.ui.console import Console, get_console, set_console


def find_flow_files() -> list[Path]:
    """
    Find all flow files in the current directory.

    Returns:
        List of Path objects for flow files
    """
    flow_files = []
    current_dir = Path(".")

    default_flow = current_dir / "pdflow_flow.py"
    if default_flow.exists():
        flow_files.append(default_flow)

    for path in current_dir.glob("*_flow.py"):
        if path != default_flow:
            flow_files.append(path)

    return sorted(flow_files)


def discover_flow(flow_arg: str | None) -> Path:
    """
    Discover flow file from argument or default.

    Raises:
        SystemExit: If no flow can be found or several flows exist
    """
    console = get_console()

    if flow_arg:
        flow_path = Path(flow_arg)
        if not flow_path.exists() and flow_path.suffix != ".py":
            flow_path = Path(str(flow_path) + ".py")
        if not flow_path.exists():
            console.print_error(
                "Flow file not found",
                f"Could not find flow file: {flow_arg}",
                suggestion="Create a flow file or specify a different path:\n  pdflow run TARGET --flow my_flow.py",
            )
            sys.exit(1)
        return flow_path

    flow_files = find_flow_files()

    if len(flow_files) == 0:
        console.print_error(
            "No flow file found",
            "Could not find any flow files.",
            details=[
                "Looked for:",
                "  pdflow_flow.py",
                "  *_flow.py",
            ],
            suggestion="Create a flow file:\n  pdflow_flow.py\n\nOr specify a flow explicitly:\n  pdflow run TARGET --flow my_flow.py",
        )
        sys.exit(1)

    if len(flow_files) > 1:
        file_list = "\n".join(f"  {f}" for f in flow_files)
        console.print_error(
            "Multiple flow files found",
            "Found multiple flow files. Please specify which one to use:",
            details=[file_list],
            suggestion="Specify a flow explicitly:\n  pdflow run TARGET --flow pdflow_flow.py",
        )
        sys.exit(1)

    return flow_files[0]


def _prepare(flow: str | None, config: str | None, target: str):
    flow_path = discover_flow(flow)
    dag = load_flow(flow_path)
    if config:
        apply_config(dag, load_config(config))
    return flow_path, resolve_target(dag, target)


def _fail(ctx, exc: Exception, step=None) -> None:
    console = get_console()
    if isinstance(exc, FlowError):
        suggestion = None
        if isinstance(exc, ExternalToolFailure) and step is not None:
            failed = next((s for s, _ in plan(step) if s.name == exc.node), None)
            if isinstance(failed, ScriptStep) and resume_point(failed) is not None:
                suggestion = f"Completed checkpoints were kept. Resume with:\n  pdflow run {ctx.params['target']} --resume"
        console.print_error("Flow failed", str(exc), suggestion=suggestion)
        if ctx.obj.get("debug", False):
            import traceback
            traceback.print_exc()
    else:
        console.print_exception(exc)
    sys.exit(1)


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and tool command lines)",
)
@click.pass_context
def cli(ctx, debug):
    """pdflow: hierarchical physical-design build flows."""
    console = Console(debug=debug)
    set_console(console)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@cli.command("run")
@click.argument("target")
@click.option("--flow", default=None, help="Flow file path (defaults to pdflow_flow.py if present)")
@click.option("--config", default=None, type=click.Path(), help="TOML run configuration (pins, start/stop substeps)")
@click.option("--resume", is_flag=True, default=False, help="Continue an interrupted run: skip finished steps, resume the rest from their checkpoints")
@click.option("--dry-run", is_flag=True, default=False, help="Print the execution plan without running anything")
@click.pass_context
def run_cmd(ctx, target, flow, config, resume, dry_run):
    """Build TARGET ("<module>.<stage>") and everything it depends on."""
    console = get_console()
    step = None

    try:
        flow_path, step = _prepare(flow, config, target)

        if resume:
            prepare_resume(step, console=console)

        steps = plan(step)
        console.print_run_started(flow=flow_path.name, target=target, step_count=len(steps))

        if dry_run:
            console.print_plan((s.name, action) for s, action in steps)
            return

        results = run(step, console=console)
        console.print_results(results)

    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        _fail(ctx, e, step)


@cli.command("plan")
@click.argument("target")
@click.option("--flow", default=None, help="Flow file path (defaults to pdflow_flow.py if present)")
@click.option("--config", default=None, type=click.Path(), help="TOML run configuration (pins, start/stop substeps)")
@click.pass_context
def plan_cmd(ctx, target, flow, config):
    """Show the order in which TARGET and its dependencies would run."""
    console = get_console()
    try:
        _flow_path, step = _prepare(flow, config, target)
        console.print_plan((s.name, action) for s, action in plan(step))
    except Exception as e:
        _fail(ctx, e)


@cli.command("checkpoints")
@click.argument("target")
@click.option("--flow", default=None, help="Flow file path (defaults to pdflow_flow.py if present)")
@click.pass_context
def checkpoints_cmd(ctx, target, flow):
    """List the checkpoints TARGET has on disk and where a resume would start."""
    console = get_console()
    try:
        _flow_path, step = _prepare(flow, None, target)
        if not isinstance(step, ScriptStep):
            console.print_info(f"{step.name} does not write checkpoints")
            return
        console.print_checkpoints(step.name, ((r.substep, str(r.path)) for r in list_checkpoints(step)))
        if completed_at(step) is not None:
            console.print_info(f"\n{step.name} finished every substep in its last run")
            return
        checkpoint = resume_point(step)
        if checkpoint is not None:
            console.print_info(f"\nResume point: '{checkpoint.name}' from {checkpoint.path}")
    except Exception as e:
        _fail(ctx, e)


if __name__ == "__main__":
    cli()
