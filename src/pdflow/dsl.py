# dsl.py
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from .dag import Dag
from .model import ModuleInfo, Substep


# ---------------------------------------------------------------------
# Substep helper
# ---------------------------------------------------------------------

def substep(name: str, command: str, *, checkpoint: bool = False) -> Substep:
    """Create a script substep."""
    return Substep(name=name, command=command, checkpoint=checkpoint)


# ---------------------------------------------------------------------
# Hierarchy helper
# ---------------------------------------------------------------------

def module(
    name: str,
    *sources: str | Path,
    children: Iterable[Dag[ModuleInfo]] = (),
    constraints: Optional[Dict[str, Any]] = None,
    pin: str | Path | None = None,
    pin_stage: str = "par",
) -> Dag[ModuleInfo]:
    """
    Declare a block of the design hierarchy.

    Example:
        module(
            "adder", "rtl/adder.v",
            children=[module("fulladder", "rtl/fulladder.v")],
        )
    """
    info = ModuleInfo(
        name=name,
        sources=[Path(s) for s in sources],
        constraints=dict(constraints or {}),
        pin=Path(pin) if pin is not None else None,
        pin_stage=pin_stage,
    )
    return Dag(node=info, children=list(children))
