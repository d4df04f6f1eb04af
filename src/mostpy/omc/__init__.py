"""mostpy.omc — OpenModelica compiler session and scripting helpers.

Public API:
    moescape / mounescape — Modelica string literal codec
    MoSTError             — raised on any OMC failure, carries OMC's error string
    OMCSession            — request/response handle with drain_diagnostics()
    create_session        — OMCSessionZMQ construction with bounded retry
    avoid_freeze          — startup freeze check and reconnect
    load_model            — load → exists → checkModel → instantiateModel
    simulate              — simulate() with failure/warning classification
    regression_test       — diffSimulationResults against reference data
"""
from mostpy.omc.codec import moescape, moquote, mounescape
from mostpy.omc.errors import MoSTError
from mostpy.omc.lifecycle import (
    avoid_freeze,
    close_session,
    create_session,
    omc_session,
    session_from_config,
    setup_session,
    with_omc,
)
from mostpy.omc.models import class_information, filename, install_and_load, is_loaded, load_model
from mostpy.omc.responses import ClassInformation, DiffResult, SimulationOptions, SimulationResult
from mostpy.omc.session import OMCSession
from mostpy.omc.simulation import (
    SIMULATION_SETTING_KEYS,
    RegressionReport,
    format_settings,
    get_simulation_settings,
    get_variable_filter,
    get_version,
    parse_version,
    regression_test,
    simulate,
)

__all__ = [
    "moescape",
    "moquote",
    "mounescape",
    "MoSTError",
    "OMCSession",
    "create_session",
    "avoid_freeze",
    "setup_session",
    "session_from_config",
    "close_session",
    "omc_session",
    "with_omc",
    "class_information",
    "filename",
    "is_loaded",
    "load_model",
    "install_and_load",
    "ClassInformation",
    "SimulationOptions",
    "SimulationResult",
    "DiffResult",
    "SIMULATION_SETTING_KEYS",
    "RegressionReport",
    "format_settings",
    "get_simulation_settings",
    "get_variable_filter",
    "get_version",
    "parse_version",
    "regression_test",
    "simulate",
]
