# model.py
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

PIN_STAGES = ("syn", "par")


@dataclass(frozen=True)
class Substep:
    """A single named fragment of a stage's tool script."""
    name: str
    command: str
    checkpoint: bool = False


@dataclass(frozen=True)
class Checkpoint:
    """
    A resume point for a stage.

    `name` is the substep the replay starts at (inclusive).
    `path` is the persisted tool state restored before that substep; relative
    paths resolve against the owning step's work directory.
    """
    name: str
    path: Path


@dataclass
class ModuleInfo:
    """
    One block of the design hierarchy (children live in the Dag).

    `constraints` is passed through untouched to the stage generators.
    `pin` optionally points at the build directory of an earlier run of this
    block; `pin_stage` says how much of that build is reused: "syn" keeps the
    synthesized netlist and reruns place-and-route, "par" keeps both.
    """
    name: str
    sources: List[Path] = field(default_factory=list)
    constraints: Dict[str, Any] = field(default_factory=dict)
    pin: Optional[Path] = None
    pin_stage: str = "par"

    def __post_init__(self) -> None:
        if self.pin_stage not in PIN_STAGES:
            raise ValueError(f"[{self.name}] unknown pin_stage {self.pin_stage!r}, expected one of {PIN_STAGES}")


@dataclass(frozen=True)
class SubmoduleInfo:
    """Abstracted physical model of a built child block."""
    name: str
    ilm: Path
    lef: Path
