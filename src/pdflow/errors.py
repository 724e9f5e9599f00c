# errors.py
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional


class FlowError(Exception):
    """Base class for every fatal flow error."""


@dataclass
class CompositionFailure(FlowError):
    """A stage generator failed while composing the build graph."""
    module: str
    message: str

    def __str__(self) -> str:
        return f"composition failed for module '{self.module}': {self.message}"


@dataclass
class SubstepNotFound(FlowError):
    node: str
    substep: str
    known: List[str] = field(default_factory=list)

    def __str__(self) -> str:
        return (
            f"[{self.node}] no substep named '{self.substep}'. "
            f"Known substeps: {self.known}"
        )


@dataclass
class CheckpointNotFound(SubstepNotFound):
    """The starting checkpoint names a substep the step does not have."""

    def __str__(self) -> str:
        return (
            f"[{self.node}] checkpoint '{self.substep}' does not match any substep. "
            f"Known substeps: {self.known}"
        )


@dataclass
class ExternalToolFailure(FlowError):
    node: str
    cmd: List[str]
    exit_code: int
    hint: Optional[str] = None

    def __str__(self) -> str:
        msg = f"[{self.node}] tool failed (exit={self.exit_code}): {' '.join(self.cmd)}"
        if self.hint:
            msg += f"\nhint: {self.hint}"
        return msg


@dataclass
class ScriptIOFailure(FlowError):
    node: str
    path: Path
    message: str

    def __str__(self) -> str:
        return f"[{self.node}] could not write {self.path}: {self.message}"


@dataclass
class FlowCycleError(FlowError):
    node: str

    def __str__(self) -> str:
        return f"dependency cycle detected at step '{self.node}'"


@dataclass
class FlowLoadError(FlowError):
    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


@dataclass
class UnsupportedCheckpoint(FlowError):
    """The step's tool has no way to save or restore its state."""
    node: str
    substep: str

    def __str__(self) -> str:
        return f"[{self.node}] substep '{self.substep}' needs a checkpoint, but this tool cannot save or restore state"
