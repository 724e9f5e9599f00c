# flow.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Sequence, Tuple

from .dag import Dag, hierarchical
from .model import ModuleInfo, SubmoduleInfo, Substep
from .stages.par import PlaceRouteStep
from .stages.synthesis import SynthesisStep

# (module, built children, the step being filled) -> substeps for that step
SynGenerator = Callable[[ModuleInfo, List[SubmoduleInfo], SynthesisStep], List[Substep]]
ParGenerator = Callable[[ModuleInfo, List[SubmoduleInfo], PlaceRouteStep], List[Substep]]


@dataclass
class FlatFlow:
    """Synthesis followed by place-and-route for a single module."""
    name: str
    syn: SynthesisStep
    par: PlaceRouteStep


def flat_flow(
    work_dir: str | Path,
    module: ModuleInfo,
    children: Sequence[Tuple[ModuleInfo, FlatFlow]],
    syn_substeps: SynGenerator,
    par_substeps: ParGenerator,
) -> FlatFlow:
    """
    Build the syn -> par steps for one module.

    Synthesis depends on the place-and-route of every child, since it reads
    their abstracted views; place-and-route depends on synthesis.

    A pinned module reuses the run directories of its earlier build: later
    steps and parent blocks read the netlist and abstracted views from there.
    """
    missing = [str(p) for p in module.sources if not Path(p).exists()]
    if missing:
        raise FileNotFoundError(f"missing sources for {module.name}: {missing}")
    if module.pin is not None and not Path(module.pin).is_dir():
        raise FileNotFoundError(f"pinned build of {module.name} not found: {module.pin}")

    root = Path(work_dir) / f"build-{module.name}"
    syn_root = root
    par_root = root
    if module.pin is not None:
        syn_root = Path(module.pin)
        if module.pin_stage == "par":
            par_root = Path(module.pin)
    submodules = [child.par.submodule_info() for _, child in children]

    syn = SynthesisStep(
        name=f"{module.name}.syn",
        work_dir=syn_root / "syn-rundir",
        module=module.name,
        deps=[child.par for _, child in children],
        pinned=module.pin is not None,
    )
    syn.substeps = list(syn_substeps(module, submodules, syn))

    par = PlaceRouteStep(
        name=f"{module.name}.par",
        work_dir=par_root / "par-rundir",
        module=module.name,
        deps=[syn],
        pinned=module.pin is not None and module.pin_stage == "par",
    )
    par.substeps = list(par_substeps(module, submodules, par))

    return FlatFlow(name=module.name, syn=syn, par=par)


def reference_flow(
    work_dir: str | Path,
    hierarchy: Dag[ModuleInfo],
    syn_substeps: SynGenerator,
    par_substeps: ParGenerator,
) -> Dag[FlatFlow]:
    """Compose a flat flow for every module of `hierarchy`, leaves first."""
    return hierarchical(
        hierarchy,
        lambda module, children: flat_flow(work_dir, module, children, syn_substeps, par_substeps),
    )
