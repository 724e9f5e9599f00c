# stages/par.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List

from ..model import SubmoduleInfo
from ..tool import ScriptStep


@dataclass(eq=False)
class PlaceRouteStep(ScriptStep):
    """Place-and-route of one module with Cadence Innovus (stylus mode)."""
    module: str = ""

    script_name = "par.tcl"
    trailer = "exit"

    def __post_init__(self) -> None:
        super().__post_init__()
        if not self.module:
            self.module = self.name

    def command(self, script: Path) -> List[str]:
        return ["innovus", "-file", str(script), "-stylus"]

    def read_checkpoint(self, path: Path) -> str:
        return f"read_db {path}"

    def write_checkpoint(self, path: Path) -> str:
        return f"write_db {path}"

    # ---- abstracted views for parent blocks ----

    def ilm_path(self) -> Path:
        return self.work_dir / f"{self.module}ILMDir"

    def lef_path(self) -> Path:
        return self.work_dir / f"{self.module}ILM.lef"

    def submodule_info(self) -> SubmoduleInfo:
        return SubmoduleInfo(name=self.module, ilm=self.ilm_path(), lef=self.lef_path())
