from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from pdflow.errors import (
    CheckpointNotFound,
    ExternalToolFailure,
    ScriptIOFailure,
    SubstepNotFound,
    UnsupportedCheckpoint,
)
from pdflow.model import Substep
from pdflow.stages.par import PlaceRouteStep
from pdflow.stages.synthesis import SynthesisStep
from pdflow.stages.verification import VerificationStep


class FakeTool:
    """Stands in for subprocess.run and keeps the scripts it was given."""

    def __init__(self, returncode: int = 0):
        self.returncode = returncode
        self.calls = []
        self.scripts = []

    def __call__(self, cmd, cwd=None):
        self.calls.append((list(cmd), cwd))
        script = next(Path(a) for a in cmd if a.endswith((".tcl", ".ctl", ".sh")))
        self.scripts.append(script.read_text())
        return subprocess.CompletedProcess(cmd, self.returncode)


@pytest.fixture
def tool(monkeypatch):
    fake = FakeTool()
    monkeypatch.setattr("pdflow.tool.subprocess.run", fake)
    return fake


def four_substeps():
    return [
        Substep("s1", "cmd_s1"),
        Substep("s2", "cmd_s2", checkpoint=True),
        Substep("s3", "cmd_s3"),
        Substep("s4", "cmd_s4", checkpoint=True),
    ]


def syn_step(tmp_path, **kwargs) -> SynthesisStep:
    return SynthesisStep(name="top.syn", work_dir=tmp_path / "syn", module="top", substeps=four_substeps(), **kwargs)


def test_full_script_has_every_substep(tmp_path, tool):
    step = syn_step(tmp_path)
    step.execute()

    lines = tool.scripts[0].splitlines()
    assert lines == [
        "set_db super_thread_debug_directory super_thread_debug",
        "cmd_s1",
        "cmd_s2",
        f"write_db -to_file {step.work_dir / 'checkpoints' / 'post_s2'}",
        "cmd_s3",
        "cmd_s4",
        f"write_db -to_file {step.work_dir / 'checkpoints' / 'post_s4'}",
        "quit",
    ]


def test_checkpoint_slices_script(tmp_path, tool):
    step = syn_step(tmp_path)
    step.start_from("s2", "checkpoints/post_s1")
    step.execute()

    script = tool.scripts[0]
    lines = script.splitlines()
    assert "cmd_s1" not in script
    restore = lines.index(f"read_db {step.work_dir / 'checkpoints' / 'post_s1'}")
    assert restore < lines.index("cmd_s2") < lines.index("cmd_s3") < lines.index("cmd_s4")


def test_checkpoint_is_written_after_its_substep(tmp_path, tool):
    step = syn_step(tmp_path)
    step.execute()

    lines = tool.scripts[0].splitlines()
    write = lines.index(f"write_db -to_file {step.checkpoint_path('s2')}")
    assert lines[write - 1] == "cmd_s2"
    assert lines[write + 1] == "cmd_s3"


def test_absolute_checkpoint_path_is_kept(tmp_path, tool):
    saved = tmp_path / "elsewhere" / "db"
    step = syn_step(tmp_path)
    step.start_from("s3", saved)
    step.execute()

    assert f"read_db {saved}" in tool.scripts[0].splitlines()


def test_unknown_checkpoint_fails_before_running(tmp_path, tool):
    step = syn_step(tmp_path)
    step.start_from("nope", "checkpoints/post_s1")

    with pytest.raises(CheckpointNotFound) as exc:
        step.execute()

    assert exc.value.substep == "nope"
    assert exc.value.known == ["s1", "s2", "s3", "s4"]
    assert tool.calls == []


def test_stop_after_truncates_the_tail(tmp_path, tool):
    step = syn_step(tmp_path)
    step.stop_after("s2")
    step.execute()

    script = tool.scripts[0]
    assert "cmd_s2" in script
    assert "cmd_s3" not in script
    assert "cmd_s4" not in script


def test_start_after_stop_runs_nothing(tmp_path, tool):
    step = syn_step(tmp_path)
    step.start_from("s4", "checkpoints/post_s3")
    step.stop_after("s2")
    step.execute()

    assert tool.calls == []


def test_tool_invoked_once_in_work_dir(tmp_path, tool):
    step = syn_step(tmp_path)
    step.execute()

    assert len(tool.calls) == 1
    cmd, cwd = tool.calls[0]
    assert cmd == ["genus", "-f", str(step.work_dir / "syn.tcl"), "-no_gui", "-batch"]
    assert cwd == str(step.work_dir)
    assert (step.work_dir / "checkpoints").is_dir()


def test_nonzero_exit_is_fatal(tmp_path, monkeypatch):
    monkeypatch.setattr("pdflow.tool.subprocess.run", FakeTool(returncode=2))
    step = syn_step(tmp_path)

    with pytest.raises(ExternalToolFailure) as exc:
        step.execute()

    assert exc.value.node == "top.syn"
    assert exc.value.exit_code == 2


def test_missing_tool_binary(tmp_path, monkeypatch):
    def not_installed(cmd, cwd=None):
        raise FileNotFoundError(cmd[0])

    monkeypatch.setattr("pdflow.tool.subprocess.run", not_installed)
    step = syn_step(tmp_path)

    with pytest.raises(ExternalToolFailure) as exc:
        step.execute()

    assert exc.value.exit_code == 127
    assert "Genus" in exc.value.hint


def test_unwritable_work_dir(tmp_path, tool):
    blocker = tmp_path / "syn"
    blocker.write_text("not a directory")
    step = syn_step(tmp_path)

    with pytest.raises(ScriptIOFailure) as exc:
        step.execute()

    assert exc.value.node == "top.syn"
    assert tool.calls == []


def test_add_hook_inserts_at_index(tmp_path):
    step = syn_step(tmp_path)
    step.add_hook("custom", "puts hi", 1, checkpoint=True)

    assert [s.name for s in step.substeps] == ["s1", "custom", "s2", "s3", "s4"]
    assert step.substeps[1] == Substep("custom", "puts hi", True)


def test_add_hook_rejects_duplicate_names(tmp_path):
    step = syn_step(tmp_path)

    with pytest.raises(ValueError):
        step.add_hook("s3", "again", 0)


def test_replace_hook_swaps_in_place(tmp_path):
    step = syn_step(tmp_path)
    step.replace_hook("syn_opt", "syn_opt", "s3", checkpoint=True)

    assert [s.name for s in step.substeps] == ["s1", "s2", "syn_opt", "s4"]
    assert step.substeps[2].checkpoint is True


def test_replace_hook_missing_target(tmp_path):
    step = syn_step(tmp_path)

    with pytest.raises(SubstepNotFound):
        step.replace_hook("x", "x", "missing")


def test_par_step_script_and_views(tmp_path, tool):
    step = PlaceRouteStep(
        name="top.par",
        work_dir=tmp_path / "par",
        module="top",
        substeps=[Substep("place", "place_opt_design", checkpoint=True)],
    )
    step.execute()

    cmd, _ = tool.calls[0]
    assert cmd == ["innovus", "-file", str(step.work_dir / "par.tcl"), "-stylus"]
    assert tool.scripts[0].splitlines() == [
        "place_opt_design",
        f"write_db {step.work_dir / 'checkpoints' / 'post_place'}",
        "exit",
    ]
    info = step.submodule_info()
    assert info.name == "top"
    assert info.ilm == step.work_dir / "topILMDir"
    assert info.lef == step.work_dir / "topILM.lef"


def test_lvs_step_command(tmp_path, tool):
    rules = tmp_path / "sky130.lvs.pvl"
    step = VerificationStep(
        name="top.lvs",
        work_dir=tmp_path / "lvs",
        module="top",
        check="lvs",
        rules=rules,
        substeps=[Substep("lvs", "lvs_run")],
    )
    step.execute()

    cmd, _ = tool.calls[0]
    assert cmd[:2] == ["pegasus", "-lvs"]
    assert "-source_cdl" in cmd
    assert cmd[cmd.index("-control") + 1] == str(step.work_dir / "lvs.ctl")
    assert cmd[-1] == str(rules)


def test_verification_rejects_unknown_check(tmp_path):
    with pytest.raises(ValueError):
        VerificationStep(name="x", work_dir=tmp_path, check="erc")


def test_steps_compare_by_identity(tmp_path):
    assert syn_step(tmp_path) != syn_step(tmp_path)


def test_verification_rejects_checkpointed_substeps(tmp_path, tool):
    with pytest.raises(UnsupportedCheckpoint):
        VerificationStep(name="top.drc", work_dir=tmp_path, substeps=[Substep("drc", "drc_run", checkpoint=True)])

    step = VerificationStep(name="top.drc", work_dir=tmp_path, substeps=[Substep("drc", "drc_run")])
    with pytest.raises(UnsupportedCheckpoint):
        step.add_hook("extra", "more_checks", 1, checkpoint=True)

    step.start_from("drc", "checkpoints/post_setup")
    with pytest.raises(UnsupportedCheckpoint) as exc:
        step.execute()
    assert exc.value.node == "top.drc"
    assert tool.calls == []


def test_successful_run_marks_step_complete(tmp_path, tool):
    step = syn_step(tmp_path)
    step.execute()

    assert step.complete_path().exists()


def test_run_cut_short_by_stop_is_not_complete(tmp_path, tool):
    step = syn_step(tmp_path)
    step.complete_path().parent.mkdir(parents=True)
    step.complete_path().touch()
    step.stop_after("s2")
    step.execute()

    assert not step.complete_path().exists()


def test_failed_run_clears_completion(tmp_path, monkeypatch):
    step = syn_step(tmp_path)
    monkeypatch.setattr("pdflow.tool.subprocess.run", FakeTool())
    step.execute()

    monkeypatch.setattr("pdflow.tool.subprocess.run", FakeTool(returncode=1))
    with pytest.raises(ExternalToolFailure):
        step.execute()

    assert not step.complete_path().exists()
