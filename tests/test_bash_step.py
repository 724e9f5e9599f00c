"""
End-to-end checkpoint/resume with a real shell.

Run: python -m pytest tests/test_bash_step.py -v
"""
from __future__ import annotations

import shutil

import pytest

from pdflow.checkpoints import resume_point
from pdflow.errors import ExternalToolFailure
from pdflow.model import Substep
from pdflow.runner import run
from pdflow.stages.bash import BashStep

pytestmark = pytest.mark.skipif(
    shutil.which("bash") is None or shutil.which("tar") is None,
    reason="needs bash and tar",
)


def make_step(tmp_path, last="exit 3"):
    return BashStep(
        name="counter",
        work_dir=tmp_path / "work",
        substeps=[
            Substep("s1", "echo one > state.txt; echo ran >> s1_runs.txt", checkpoint=True),
            Substep("s2", "echo two >> state.txt", checkpoint=True),
            Substep("s3", last),
        ],
    )


def test_bash_step_runs_script(tmp_path):
    step = make_step(tmp_path, last="echo three >> state.txt")
    run(step)

    assert (step.work_dir / "state.txt").read_text() == "one\ntwo\nthree\n"
    assert step.checkpoint_path("s1").exists()
    assert step.checkpoint_path("s2").exists()


def test_failed_run_keeps_checkpoints_and_resumes(tmp_path):
    step = make_step(tmp_path)

    with pytest.raises(ExternalToolFailure) as exc:
        run(step)
    assert exc.value.exit_code == 3
    assert step.checkpoint_path("s2").exists()

    # later invocation: fix the broken substep and pick up after s2
    checkpoint = resume_point(step)
    assert checkpoint.name == "s3"
    assert checkpoint.path == step.checkpoint_path("s2")

    (step.work_dir / "state.txt").write_text("clobbered\n")
    step.replace_hook("s3", "echo three >> state.txt", "s3")
    step.start_checkpoint = checkpoint
    run(step)

    assert (step.work_dir / "state.txt").read_text() == "one\ntwo\nthree\n"
    # s1 was not replayed
    assert (step.work_dir / "s1_runs.txt").read_text() == "ran\n"
