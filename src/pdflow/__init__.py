from .dag import Dag, NamedNode, find, hierarchical
from .dsl import module, substep
from .model import Checkpoint, ModuleInfo, SubmoduleInfo, Substep
from .runner import Step, plan, run

__all__ = [
    "Dag", "NamedNode", "find", "hierarchical",
    "module", "substep",
    "Checkpoint", "ModuleInfo", "SubmoduleInfo", "Substep",
    "Step", "plan", "run",
]
