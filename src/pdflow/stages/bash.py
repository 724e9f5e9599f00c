# stages/bash.py
from __future__ import annotations

import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import List

from ..tool import CHECKPOINT_DIR, ScriptStep


@dataclass(eq=False)
class BashStep(ScriptStep):
    """
    A plain shell script step.

    The "tool state" of a shell script is its work directory, so a checkpoint
    is a tarball of the work directory (minus the checkpoints themselves) and
    restoring one unpacks it in place.
    """
    script_name = "run.sh"
    checkpoint_suffix = ".tar"
    preamble = ("#!/usr/bin/env bash", "set -e")

    def command(self, script: Path) -> List[str]:
        return ["bash", str(script)]

    def read_checkpoint(self, path: Path) -> str:
        return f"tar -xf {shlex.quote(str(path))} -C {shlex.quote(str(self.work_dir))}"

    def write_checkpoint(self, path: Path) -> str:
        return (
            f"tar -cf {shlex.quote(str(path))} -C {shlex.quote(str(self.work_dir))} "
            f"--exclude=./{CHECKPOINT_DIR} --exclude=./{self.script_name} ."
        )
