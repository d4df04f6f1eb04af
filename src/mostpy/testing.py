"""End-to-end model test: load, simulate, compare with reference data.

Usage (inside a pytest test)::

    def test_example(omc):
        run_model_test(omc, "Example", refdir="../regRefData")
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

from mostpy.omc.errors import MoSTError
from mostpy.omc.models import load_model
from mostpy.omc.session import OMCSession
from mostpy.omc.simulation import (
    RegressionReport,
    get_simulation_settings,
    regression_test,
    result_file_name,
    simulate,
)
from mostpy.utils.config import ModelTestConfig
from mostpy.utils.logging import get_logger

logger = get_logger(__name__)


def run_model_test(
    session: OMCSession,
    name: str,
    override: Mapping[str, Any] | None = None,
    refdir: str | Path = "../regRefData",
    check: bool = True,
    instantiate: bool = True,
) -> RegressionReport | None:
    """Load and simulate ``name``, then compare against reference data if present.

    Returns:
        The regression report, or None if ``<refdir>/<name>_res.csv`` does not
        exist (a warning is logged in that case).

    Raises:
        MoSTError: if loading or simulation fails, or the regression
            comparison found missing or differing variables.
    """
    log = logger.bind(model=name)
    load_model(session, name, check=check, instantiate=instantiate)
    simulate(session, name, get_simulation_settings(session, name, override=override))

    if not (Path(refdir) / result_file_name(name)).is_file():
        log.warning("No reference data for regression test", refdir=str(refdir))
        return None
    report = regression_test(session, name, refdir)
    if not report.passed:
        raise MoSTError(report.summary())
    log.info("Regression test passed")
    return report


def run_model_test_from_config(
    session: OMCSession, name: str, config: ModelTestConfig
) -> RegressionReport | None:
    """``run_model_test`` with refdir, flags and overrides taken from ``config``."""
    return run_model_test(
        session,
        name,
        override=config.override,
        refdir=config.refdir,
        check=config.check,
        instantiate=config.instantiate,
    )
