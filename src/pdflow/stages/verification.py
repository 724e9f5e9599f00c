# stages/verification.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from ..tool import ScriptStep

CHECKS = ("drc", "lvs")


@dataclass(eq=False)
class VerificationStep(ScriptStep):
    """
    Physical verification (DRC or LVS) of a finished layout with Pegasus.

    The layout is expected at `<work_dir>/<module>.gds`; LVS also reads the
    source netlist from `<work_dir>/<module>.spice`. Pegasus runs are one-shot
    and cannot save or restore state, so checkpointed substeps are rejected.
    """
    module: str = ""
    check: str = "drc"
    rules: Optional[Path] = None
    cpus: int = 12

    trailer = "quit"
    supports_checkpoints = False

    def __post_init__(self) -> None:
        super().__post_init__()
        if not self.module:
            self.module = self.name
        if self.check not in CHECKS:
            raise ValueError(f"[{self.name}] unknown check {self.check!r}, expected one of {CHECKS}")
        for sub in self.substeps:
            self._require_checkpoints(sub.name, sub.checkpoint)

    @property
    def script_name(self) -> str:
        return f"{self.check}.ctl"

    def command(self, script: Path) -> List[str]:
        cmd = [
            "pegasus",
            f"-{self.check}",
            "-dp",
            str(self.cpus),
            "-license_dp_continue",
            "-gds",
            f"./{self.module}.gds",
            "-top_cell",
            self.module,
        ]
        if self.check == "lvs":
            cmd += ["-source_cdl", f"./{self.module}.spice", "-source_top_cell", self.module, "-automatch"]
        cmd += ["-control", str(script)]
        if self.rules is not None:
            cmd.append(str(self.rules))
        return cmd
