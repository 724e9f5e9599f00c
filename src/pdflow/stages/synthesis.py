# stages/synthesis.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List

from ..tool import ScriptStep


@dataclass(eq=False)
class SynthesisStep(ScriptStep):
    """Logic synthesis of one module with Cadence Genus."""
    module: str = ""

    script_name = "syn.tcl"
    preamble = ("set_db super_thread_debug_directory super_thread_debug",)
    trailer = "quit"

    def __post_init__(self) -> None:
        super().__post_init__()
        if not self.module:
            self.module = self.name

    def command(self, script: Path) -> List[str]:
        return ["genus", "-f", str(script), "-no_gui", "-batch"]

    def read_checkpoint(self, path: Path) -> str:
        return f"read_db {path}"

    def write_checkpoint(self, path: Path) -> str:
        return f"write_db -to_file {path}"

    # ---- outputs consumed by later stages ----

    def netlist(self) -> Path:
        return self.work_dir / f"{self.module}.mapped.v"

    def mapped_sdc(self) -> Path:
        return self.work_dir / f"{self.module}.mapped.sdc"
