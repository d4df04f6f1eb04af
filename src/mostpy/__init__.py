"""mostpy — Modelica scripting tools: load, check, simulate and regression-test
Modelica models through an OpenModelica compiler session."""

__version__ = "0.1.0"

from mostpy.omc.codec import moescape, mounescape
from mostpy.omc.errors import MoSTError
from mostpy.omc.lifecycle import close_session, omc_session, setup_session, with_omc
from mostpy.omc.models import install_and_load, load_model
from mostpy.omc.session import OMCSession
from mostpy.omc.simulation import (
    RegressionReport,
    get_simulation_settings,
    get_variable_filter,
    get_version,
    regression_test,
    simulate,
)
from mostpy.testing import run_model_test

__all__ = [
    "moescape",
    "mounescape",
    "MoSTError",
    "OMCSession",
    "setup_session",
    "close_session",
    "omc_session",
    "with_omc",
    "load_model",
    "install_and_load",
    "get_simulation_settings",
    "get_variable_filter",
    "get_version",
    "simulate",
    "regression_test",
    "RegressionReport",
    "run_model_test",
]
