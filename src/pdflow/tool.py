# tool.py
from __future__ import annotations

import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .errors import (
    CheckpointNotFound,
    ExternalToolFailure,
    ScriptIOFailure,
    SubstepNotFound,
    UnsupportedCheckpoint,
)
from .model import Checkpoint, Substep
from .ui.console import get_console


TOOL_HINTS = {
    "genus": "Source the Cadence Genus environment or fix PATH.",
    "innovus": "Source the Cadence Innovus environment or fix PATH.",
    "pegasus": "Source the Cadence Pegasus environment or fix PATH.",
    "bash": "Install bash or fix PATH.",
}

CHECKPOINT_DIR = "checkpoints"
COMPLETE_MARKER = ".complete"


@dataclass(eq=False)
class ScriptStep:
    """
    A build step that runs one tool over a generated script.

    The script is assembled from an ordered list of substeps. A starting
    checkpoint skips every substep before the one it names and restores the
    saved tool state first; checkpointed substeps save the tool state right
    after their command.

    Subclasses set the class attributes below and implement `command()`.
    """
    name: str
    work_dir: Path
    substeps: List[Substep] = field(default_factory=list)
    pinned: bool = False
    deps: List[object] = field(default_factory=list)
    start_checkpoint: Optional[Checkpoint] = None
    stop: Optional[str] = None

    script_name = "run.script"
    checkpoint_suffix = ""
    preamble = ()
    trailer = None
    supports_checkpoints = True

    def __post_init__(self) -> None:
        self.work_dir = Path(self.work_dir).absolute()
        self.substeps = list(self.substeps)
        self.deps = list(self.deps)

    # ---- Step protocol ----

    def dependencies(self) -> list:
        return list(self.deps)

    def execute(self) -> None:
        console = get_console()
        substeps = self.selected_substeps()
        if not substeps:
            console.print_info(f"[{self.name}] no substeps selected, nothing to run")
            return

        if self.start_checkpoint is not None:
            console.print_resume(
                self.name,
                self.start_checkpoint.name,
                str(self._resolve(self.start_checkpoint.path)),
            )
        for sub in substeps:
            console.print_substep(sub.name, sub.checkpoint)

        script = self.write_script(self.render_script(substeps))
        self._mark_complete(False)
        cmd = self.command(script)
        console.print_debug(f"[{self.name}] $ {' '.join(cmd)} (cwd={self.work_dir})")

        try:
            proc = subprocess.run(cmd, cwd=str(self.work_dir))
        except FileNotFoundError as e:
            raise ExternalToolFailure(
                node=self.name,
                cmd=cmd,
                exit_code=127,
                hint=TOOL_HINTS.get(cmd[0], f"Install {cmd[0]} or fix PATH."),
            ) from e

        if proc.returncode != 0:
            raise ExternalToolFailure(node=self.name, cmd=cmd, exit_code=proc.returncode)

        # a run cut short by `stop` leaves the step unfinished
        if substeps[-1].name == self.substeps[-1].name:
            self._mark_complete(True)

    # ---- hooks (call before scheduling) ----

    def add_hook(self, name: str, command: str, index: int, checkpoint: bool = False) -> None:
        """Insert a custom substep at `index`."""
        self._require_checkpoints(name, checkpoint)
        if any(s.name == name for s in self.substeps):
            raise ValueError(f"[{self.name}] duplicate substep name: {name!r}")
        self.substeps.insert(index, Substep(name=name, command=command, checkpoint=checkpoint))

    def replace_hook(
        self,
        new_name: str,
        command: str,
        target_name: str,
        checkpoint: bool = False,
    ) -> None:
        """Replace the substep named `target_name` in place."""
        self._require_checkpoints(new_name, checkpoint)
        idx = self._index(target_name, SubstepNotFound)
        if new_name != target_name and any(s.name == new_name for s in self.substeps):
            raise ValueError(f"[{self.name}] duplicate substep name: {new_name!r}")
        self.substeps[idx] = Substep(name=new_name, command=command, checkpoint=checkpoint)

    def start_from(self, name: str, path: str | Path) -> None:
        """Resume at substep `name` from the tool state saved at `path`."""
        self.start_checkpoint = Checkpoint(name=name, path=Path(path))

    def stop_after(self, name: Optional[str]) -> None:
        self.stop = name

    # ---- script materialization ----

    def checkpoint_path(self, substep_name: str) -> Path:
        """Where the state after `substep_name` is saved."""
        return self.work_dir / CHECKPOINT_DIR / f"post_{substep_name}{self.checkpoint_suffix}"

    def script_path(self) -> Path:
        return self.work_dir / self.script_name

    def complete_path(self) -> Path:
        """Marker written once every substep of the step has run."""
        return self.work_dir / CHECKPOINT_DIR / COMPLETE_MARKER

    def _mark_complete(self, done: bool) -> None:
        path = self.complete_path()
        try:
            if done:
                path.touch()
            else:
                path.unlink(missing_ok=True)
        except OSError as e:
            raise ScriptIOFailure(node=self.name, path=path, message=str(e)) from e

    def selected_substeps(self) -> List[Substep]:
        start = 0
        end = len(self.substeps)
        if self.start_checkpoint is not None:
            start = self._index(self.start_checkpoint.name, CheckpointNotFound)
        if self.stop is not None:
            end = self._index(self.stop, SubstepNotFound) + 1
        if start >= end:
            return []
        return self.substeps[start:end]

    def render_script(self, substeps: List[Substep]) -> str:
        if self.start_checkpoint is not None:
            self._require_checkpoints(self.start_checkpoint.name, True)
        for sub in substeps:
            self._require_checkpoints(sub.name, sub.checkpoint)

        lines = list(self.preamble)
        if self.start_checkpoint is not None:
            lines.append(self.read_checkpoint(self._resolve(self.start_checkpoint.path)))
        for sub in substeps:
            lines.append(sub.command)
            if sub.checkpoint:
                lines.append(self.write_checkpoint(self.checkpoint_path(sub.name)))
        if self.trailer:
            lines.append(self.trailer)
        return "\n".join(lines) + "\n"

    def write_script(self, text: str) -> Path:
        path = self.script_path()
        try:
            (self.work_dir / CHECKPOINT_DIR).mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        except OSError as e:
            raise ScriptIOFailure(node=self.name, path=path, message=str(e)) from e
        return path

    # ---- tool specifics ----

    def command(self, script: Path) -> List[str]:
        raise NotImplementedError

    def read_checkpoint(self, path: Path) -> str:
        raise NotImplementedError

    def write_checkpoint(self, path: Path) -> str:
        raise NotImplementedError

    def _require_checkpoints(self, substep: str, checkpoint: bool) -> None:
        if checkpoint and not self.supports_checkpoints:
            raise UnsupportedCheckpoint(node=self.name, substep=substep)

    def _resolve(self, path: Path) -> Path:
        return self.work_dir / path

    def _index(self, name: str, error) -> int:
        for idx, sub in enumerate(self.substeps):
            if sub.name == name:
                return idx
        raise error(node=self.name, substep=name, known=[s.name for s in self.substeps])
