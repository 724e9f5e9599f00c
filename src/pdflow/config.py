# config.py
from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from .dag import Dag
from .errors import FlowLoadError
from .runner import resolve_target
from .tool import ScriptStep

# ---------------------------------------------------------------------
# Run configuration (TOML), one table per step:
#
#   ["adder.syn"]
#   pin = true
#
#   ["adder.par"]
#   start = "route_design"
#   checkpoint = "checkpoints/post_place_opt_design"
#   stop = "write_design"
# ---------------------------------------------------------------------

_KEYS = {"pin": bool, "start": str, "checkpoint": str, "stop": str}


@dataclass
class NodeConfig:
    pin: bool = False
    start: Optional[str] = None
    checkpoint: Optional[Path] = None
    stop: Optional[str] = None


def parse_config(data: dict, source: str = "<config>") -> Dict[str, NodeConfig]:
    out: Dict[str, NodeConfig] = {}
    for target, table in data.items():
        if not isinstance(table, dict):
            raise FlowLoadError(source, f"[{target}] must be a table")
        for key, value in table.items():
            expected = _KEYS.get(key)
            if expected is None:
                raise FlowLoadError(source, f"[{target}] unknown key '{key}'. Known keys: {sorted(_KEYS)}")
            if not isinstance(value, expected):
                raise FlowLoadError(source, f"[{target}] '{key}' must be a {expected.__name__}")
        if "checkpoint" in table and "start" not in table:
            raise FlowLoadError(source, f"[{target}] 'checkpoint' needs a 'start' substep")

        checkpoint = table.get("checkpoint")
        out[target] = NodeConfig(
            pin=table.get("pin", False),
            start=table.get("start"),
            checkpoint=Path(checkpoint) if checkpoint is not None else None,
            stop=table.get("stop"),
        )
    return out


def load_config(path: str | Path) -> Dict[str, NodeConfig]:
    cfg_path = Path(path).expanduser()
    try:
        with cfg_path.open("rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError as e:
        raise FlowLoadError(str(cfg_path), "config file not found") from e
    except tomllib.TOMLDecodeError as e:
        raise FlowLoadError(str(cfg_path), f"invalid TOML: {e}") from e
    return parse_config(data, source=str(cfg_path))


def apply_config(dag: Dag, config: Dict[str, NodeConfig]) -> None:
    """
    Pin, resume and stop the configured steps of a composed graph.

    A `start` without `checkpoint` restores the state saved after the
    substep just before `start`, which must therefore be checkpointed.
    """
    for target, node_cfg in config.items():
        step = resolve_target(dag, target)

        if node_cfg.pin:
            step.pinned = True

        if node_cfg.stop is not None:
            if not isinstance(step, ScriptStep):
                raise FlowLoadError(target, "'stop' only applies to script steps")
            step.stop_after(node_cfg.stop)

        if node_cfg.start is None:
            continue
        if not isinstance(step, ScriptStep):
            raise FlowLoadError(target, "'start' only applies to script steps")

        path = node_cfg.checkpoint
        if path is None:
            names = [s.name for s in step.substeps]
            if node_cfg.start not in names:
                raise FlowLoadError(target, f"no substep named '{node_cfg.start}'. Known substeps: {names}")
            idx = names.index(node_cfg.start)
            if idx == 0:
                # starting at the first substep is a plain run
                continue
            previous = step.substeps[idx - 1]
            if not previous.checkpoint:
                saved = [s.name for s in step.substeps[:idx] if s.checkpoint]
                if saved:
                    nearest = names[names.index(saved[-1]) + 1]
                    hint = f"the nearest checkpoint is after '{saved[-1]}', start at '{nearest}'"
                else:
                    hint = "no earlier substep saves one"
                raise FlowLoadError(
                    target,
                    f"cannot start at '{node_cfg.start}': '{previous.name}' saves no checkpoint; "
                    f"{hint} or set 'checkpoint' explicitly",
                )
            path = step.checkpoint_path(previous.name)
        step.start_from(node_cfg.start, path)
