# pdflow_flow.py
# Hierarchical example: an n-bit adder built from pre-hardened full adders,
# which are in turn built from half adders.
from __future__ import annotations

from pathlib import Path

from pdflow.dsl import module, substep
from pdflow.flow import reference_flow

RTL = Path(__file__).parent / "rtl"
BUILD = Path(__file__).parent / "build"


def syn_substeps(mod, submodules, step):
    read_ilms = "\n".join(f"read_ilm -basename {s.ilm}/{s.name} -module_name {s.name}" for s in submodules)
    return [
        substep("set_default_options", "set_db hdl_error_on_blackbox true\nset_db max_cpus_per_server 12"),
        substep("read_design_files", "\n".join(f"read_hdl -sv {src}" for src in mod.sources) + ("\n" + read_ilms if read_ilms else "")),
        substep("elaborate", f"elaborate {mod.name}"),
        substep("init_design", f"init_design -top {mod.name}", checkpoint=True),
        substep("syn_generic", "syn_generic", checkpoint=True),
        substep("syn_map", "syn_map", checkpoint=True),
        substep("write_design", f"write_hdl > {step.netlist()}\nwrite_sdc -view ss_100C_1v60.setup_view > {step.mapped_sdc()}"),
    ]


def par_substeps(mod, submodules, step):
    syn = step.deps[0]
    width = mod.constraints.get("width", 100.0)
    height = mod.constraints.get("height", 100.0)
    return [
        substep("read_design_files", f"read_netlist {syn.netlist()}"),
        substep("init_design", "init_design"),
        substep("floorplan_design", f"create_floorplan -core_margins_by die -die_size_by_io_height max -site CoreSite -die_size {{{width} {height} 0 0 0 0}}", checkpoint=True),
        substep("place_opt_design", "place_opt_design", checkpoint=True),
        substep("route_design", "route_design", checkpoint=True),
        substep("opt_design", "opt_design -post_route -setup -hold", checkpoint=True),
        substep("write_ilm", f"time_design -post_route\nwrite_ilm -to_dir {step.ilm_path()} -type_flex_ilm ilm\nwrite_lef_abstract -5.8 {step.lef_path()}"),
    ]


def flow():
    hierarchy = module(
        "nbitadder", RTL / "nbitadder.v",
        constraints={"width": 1000.0, "height": 1000.0},
        children=[
            module(
                "fulladder", RTL / "fulladder.v",
                constraints={"width": 100.0, "height": 100.0},
                children=[module("halfadder", RTL / "halfadder.v", constraints={"width": 30.0, "height": 30.0})],
            ),
        ],
    )
    dag = reference_flow(BUILD, hierarchy, syn_substeps, par_substeps)

    # Swap generic+map synthesis for a single optimizing pass on the top block.
    dag.find("nbitadder").syn.replace_hook("syn_opt", "syn_opt", "syn_map", checkpoint=True)
    return dag
