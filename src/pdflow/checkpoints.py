# checkpoints.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Set

from .model import Checkpoint
from .runner import Step, plan
from .tool import ScriptStep
from .ui.console import Console, get_console

# ---------------------------------------------------------------------
# Checkpoint discovery
# ---------------------------------------------------------------------
# A checkpointed substep X saves the tool state right after X to
# step.checkpoint_path(X). Resuming after X means starting at the substep
# that follows X with that file restored first:
#
#   substeps:   s1  s2*  s3  s4*  s5        (* = checkpointed)
#   on disk:    post_s2, post_s4
#   resume at:  Checkpoint(name="s5", path=post_s4)
#
# A step that got through its last substep also leaves step.complete_path().
# ---------------------------------------------------------------------


@dataclass(frozen=True)
class CheckpointRecord:
    substep: str
    path: Path
    mtime: float


def list_checkpoints(step: ScriptStep) -> List[CheckpointRecord]:
    """Checkpoints of `step` that exist on disk, in substep order."""
    records: List[CheckpointRecord] = []
    for sub in step.substeps:
        if not sub.checkpoint:
            continue
        path = step.checkpoint_path(sub.name)
        if path.exists():
            records.append(CheckpointRecord(substep=sub.name, path=path, mtime=path.stat().st_mtime))
    return records


def resume_point(step: ScriptStep, since: float = 0.0) -> Optional[Checkpoint]:
    """
    Where to pick `step` up again after an interrupted run.

    Uses the most recently written checkpoint, so stale files from an older,
    longer run are ignored, as is anything written before `since`. Returns
    None when no checkpoint qualifies or the newest one follows the final
    substep.
    """
    records = [r for r in list_checkpoints(step) if r.mtime >= since]
    if not records:
        return None

    names = [s.name for s in step.substeps]
    last = max(records, key=lambda r: (r.mtime, names.index(r.substep)))
    idx = names.index(last.substep)
    if idx + 1 >= len(names):
        return None
    return Checkpoint(name=names[idx + 1], path=last.path)


def completed_at(step: ScriptStep) -> Optional[float]:
    """When the last full run of `step` finished, or None if it did not."""
    path = step.complete_path()
    if not path.exists():
        return None
    return path.stat().st_mtime


def _inputs_mtime(step: Step) -> float:
    done = [completed_at(d) for d in step.dependencies() if isinstance(d, ScriptStep)]
    return max((t for t in done if t is not None), default=0.0)


def prepare_resume(target: Step, *, console: Optional[Console] = None) -> None:
    """
    Set up every step reachable from `target` to continue an earlier run.

    In run order, a script step whose dependencies stay as they are is
    skipped when it already finished, and otherwise resumes from its newest
    checkpoint. Once a step runs again, everything downstream of it starts
    from its first substep: state saved on the old inputs is not reused.
    Steps that already have a start checkpoint keep it.
    """
    console = console or get_console()
    rerun: Set[int] = set()

    for step, action in plan(target):
        if action == "pinned":
            continue
        if not isinstance(step, ScriptStep) or step.start_checkpoint is not None:
            rerun.add(id(step))
            continue
        if any(id(dep) in rerun for dep in step.dependencies()):
            console.print_info(f"[{step.name}] inputs are rebuilt, running from the start")
            rerun.add(id(step))
            continue

        since = _inputs_mtime(step)
        finished = completed_at(step)
        if finished is not None and finished >= since:
            console.print_info(f"[{step.name}] finished in an earlier run, skipping")
            step.pinned = True
            continue

        checkpoint = resume_point(step, since=since)
        if checkpoint is None:
            console.print_info(f"[{step.name}] no checkpoint on disk, running from the start")
        else:
            step.start_checkpoint = checkpoint
        rerun.add(id(step))
