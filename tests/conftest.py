from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

import pytest

from pdflow.errors import ExternalToolFailure
from pdflow.ui.console import Console, set_console


@dataclass(eq=False)
class FakeStep:
    """In-memory step that records when it executes."""
    name: str
    log: List[str]
    deps: List["FakeStep"] = field(default_factory=list)
    pinned: bool = False
    fail: bool = False

    def dependencies(self):
        return list(self.deps)

    def execute(self):
        self.log.append(self.name)
        if self.fail:
            raise ExternalToolFailure(node=self.name, cmd=["fake"], exit_code=1)


@pytest.fixture(autouse=True)
def quiet_console():
    set_console(Console(debug=False))
    yield


@pytest.fixture
def diamond():
    """A depends on B and C; B and C share D."""
    log: List[str] = []
    d = FakeStep("D", log)
    b = FakeStep("B", log, deps=[d])
    c = FakeStep("C", log, deps=[d])
    a = FakeStep("A", log, deps=[b, c])
    return {"A": a, "B": b, "C": c, "D": d, "log": log}
