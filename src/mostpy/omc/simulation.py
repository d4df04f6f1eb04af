"""Simulation settings, simulation runs and regression comparison via OMC.

Pipeline for one model (which must already be loaded, see
``mostpy.omc.models.load_model``):

    get_simulation_settings()  → settings dict (experiment annotation + overrides)
    simulate()                 → <name>_res.csv in the OMC working directory
    regression_test()          → diffSimulationResults against <refdir>/<name>_res.csv
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from mostpy.omc.codec import moquote
from mostpy.omc.errors import MoSTError
from mostpy.omc.responses import DiffResult, SimulationOptions, SimulationResult
from mostpy.omc.session import OMCSession
from mostpy.utils.logging import get_logger

logger = get_logger(__name__)

SIMULATION_SETTING_KEYS: tuple[str, ...] = (
    "startTime",
    "stopTime",
    "tolerance",
    "numberOfIntervals",
    "outputFormat",
    "variableFilter",
)

# vendor-specific annotation holding test-only experiment settings
MOST_ANNOTATION = "__MoST_experiment"
DEFAULT_VARIABLE_FILTER = ".*"
DEFAULT_OUTPUT_FORMAT = "csv"

SIMULATION_FAILED_MARKER = "Simulation execution failed"
SIMULATION_WARNING_MARKER = "| warning |"

# "OMCompiler v1.17.0-dev.94+g4da66238ab" or "OpenModelica 1.14.2"
_VERSION_PATTERN = re.compile(r"^(?:OMCompiler v|OpenModelica )(\d+)\.(\d+)\.(\d+)")


# ── Version ───────────────────────────────────────────────────────────────────

def parse_version(text: str) -> tuple[int, int, int]:
    """Extract (major, minor, patch) from an OMC version string.

    Raises:
        MoSTError: if ``text`` matches neither known format.
    """
    match = _VERSION_PATTERN.match(text)
    if match is None:
        raise MoSTError(f"Got unexpected version string: {text}")
    major, minor, patch = (int(g) for g in match.groups())
    return major, minor, patch


def get_version(session: OMCSession) -> tuple[int, int, int]:
    """Return the version of the connected OMC as (major, minor, patch)."""
    text = str(session.send("getVersion()"))
    es = session.drain_diagnostics()
    try:
        return parse_version(text)
    except MoSTError as exc:
        raise MoSTError(exc.msg, es) from exc


# ── Settings ──────────────────────────────────────────────────────────────────

def _query(session: OMCSession, expression: str) -> Any:
    """Send a read-only query; whatever it left in the error buffer is logged."""
    reply = session.send(expression)
    es = session.drain_diagnostics()
    if es:
        logger.warning("OMC diagnostics after query", expression=expression, diagnostics=es)
    return reply


def get_variable_filter(session: OMCSession, name: str) -> str:
    """Read ``variableFilter`` from the ``__MoST_experiment`` annotation of ``name``.

    Returns ``".*"`` if the model does not define one.

    Raises:
        MoSTError: if the model ``name`` does not exist.
    """
    modifiers = session.send(f"getAnnotationNamedModifiers({name}, {moquote(MOST_ANNOTATION)})")
    es = session.drain_diagnostics()
    if modifiers is None:
        raise MoSTError(f"Model {name} not found", es)
    if es:
        logger.warning("OMC diagnostics after annotation lookup", model=name, diagnostics=es)
    if "variableFilter" in modifiers:
        return str(_query(
            session,
            f"getAnnotationModifierValue({name}, {moquote(MOST_ANNOTATION)}, \"variableFilter\")",
        ))
    return DEFAULT_VARIABLE_FILTER


def get_simulation_settings(
    session: OMCSession,
    name: str,
    override: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Collect the settings for simulating ``name``.

    Base values come from the model's experiment annotation
    (``getSimulationOptions``) and the ``__MoST_experiment`` variable filter.
    Entries in ``override`` replace settings with the same key. ``override``
    may also contain ``"interval"`` (step size), which is not a setting itself
    but is used to recompute ``numberOfIntervals``. The interval count is also
    recomputed from the model's interval if only a time bound is overridden.

    Returns:
        Dict with exactly the keys in ``SIMULATION_SETTING_KEYS``.
    """
    override = dict(override or {})
    options = SimulationOptions.from_omc(_query(session, f"getSimulationOptions({name})"))
    settings: dict[str, Any] = {
        "startTime": options.start_time,
        "stopTime": options.stop_time,
        "tolerance": options.tolerance,
        "numberOfIntervals": options.number_of_intervals,
        "outputFormat": DEFAULT_OUTPUT_FORMAT,
        "variableFilter": get_variable_filter(session, name),
    }
    for key, value in override.items():
        if key in settings:
            settings[key] = value
        elif key != "interval":
            logger.warning("Ignoring unknown simulation setting", model=name, setting=key)

    has_interval = "interval" in override
    only_time = (
        ("startTime" in override or "stopTime" in override)
        and "interval" not in override
        and "numberOfIntervals" not in override
    )
    if has_interval or only_time:
        timespan = settings["stopTime"] - settings["startTime"]
        interval = override.get("interval", options.interval)
        if not interval > 0:
            raise MoSTError(f"Simulation interval of {name} must be positive, got {interval!r}")
        settings["numberOfIntervals"] = math.floor(timespan / interval)
    return settings


def format_settings(settings: Mapping[str, Any]) -> str:
    """Render settings as OMC keyword arguments: strings quoted, numbers bare."""

    def prepare(value: Any) -> str:
        if isinstance(value, str):
            return moquote(value)
        if isinstance(value, bool):
            return "true" if value else "false"
        return repr(value)

    return ", ".join(f"{key}={prepare(value)}" for key, value in settings.items())


# ── Simulation ────────────────────────────────────────────────────────────────

def simulate(
    session: OMCSession,
    name: str,
    settings: Mapping[str, Any] | None = None,
) -> SimulationResult:
    """Simulate ``name`` and fail loudly on any sign of trouble.

    The result file is written to the OMC working directory. The run is
    considered failed if

    * the messages start with ``Simulation execution failed`` (e.g. an
      arithmetic error during simulation),
    * the messages contain ``| warning |`` (missing initial values and other
      problems that would otherwise pass silently),
    * ``getErrorString()`` is non-empty afterwards.

    Args:
        settings: Keyword arguments for OMC's ``simulate()``; obtained with
            ``get_simulation_settings`` if omitted.

    Raises:
        MoSTError: on any of the failure conditions above.
    """
    if settings is None:
        settings = get_simulation_settings(session, name)
    args = format_settings(settings)
    raw = session.send(f"simulate({name}, {args})" if args else f"simulate({name})")
    result = SimulationResult.from_omc(raw)
    if result.messages.startswith(SIMULATION_FAILED_MARKER):
        raise MoSTError(f"Simulation of {name} failed", result.messages)
    if SIMULATION_WARNING_MARKER in result.messages:
        raise MoSTError(f"Simulation of {name} produced warning", result.messages)
    es = session.drain_diagnostics()
    if es:
        raise MoSTError(f"Simulation of {name} failed", es)
    logger.info("Simulation finished", model=name, result_file=result.result_file)
    return result


# ── Regression ────────────────────────────────────────────────────────────────

@dataclass
class RegressionReport:
    """Outcome of comparing a simulation result with reference data."""

    name: str
    missing_in_reference: set[str] = field(default_factory=set)
    failed_variables: tuple[str, ...] = ()
    # False if diffSimulationResults itself reported failure
    compared: bool = True
    diagnostics: str = ""

    @property
    def passed(self) -> bool:
        return (
            self.compared
            and not self.diagnostics
            and not self.missing_in_reference
            and not self.failed_variables
        )

    def summary(self) -> str:
        lines = [f"Regression test of {self.name} failed"]
        if self.missing_in_reference:
            lines.append(
                "Variables missing in reference data: " + ", ".join(sorted(self.missing_in_reference))
            )
        if self.failed_variables:
            lines.append("Variables differing from reference: " + ", ".join(self.failed_variables))
        elif not self.compared:
            lines.append("Comparison with reference data failed")
        if self.diagnostics:
            lines.append(self.diagnostics.rstrip("\n"))
        return "\n".join(lines)


def result_file_name(name: str) -> str:
    return f"{name}_res.csv"


def _result_vars(session: OMCSession, path: str) -> set[str]:
    names = session.send(f"readSimulationResultVars({moquote(path)})")
    es = session.drain_diagnostics()
    if es:
        raise MoSTError(f"Could not read variables of result file {path}", es)
    return {str(n) for n in names or ()}


def regression_test(session: OMCSession, name: str, refdir: str | Path) -> RegressionReport:
    """Compare ``<name>_res.csv`` with ``<refdir>/<name>_res.csv``.

    Variables present in the new result but absent from the reference are
    reported but do not stop the comparison, which is restricted to the
    variables both files share. OMC writes the diff to ``<name>_diff.log``.

    Raises:
        MoSTError: if either result file cannot be read.
    """
    actual = result_file_name(name)
    reference = str(Path(refdir).resolve() / actual)
    actual_vars = _result_vars(session, actual)
    ref_vars = _result_vars(session, reference)

    report = RegressionReport(name=name, missing_in_reference=actual_vars - ref_vars)
    if report.missing_in_reference:
        logger.warning(
            "Variables missing in reference data",
            model=name,
            variables=sorted(report.missing_in_reference),
        )

    shared = ", ".join(moquote(v) for v in sorted(actual_vars & ref_vars))
    cmd = (
        f"diffSimulationResults({moquote(actual)}, {moquote(reference)}, "
        f"{moquote(f'{name}_diff.log')}, vars={{ {shared} }})"
    )
    diff = DiffResult.from_omc(session.send(cmd))
    report.diagnostics = session.drain_diagnostics()
    report.compared = diff.success
    report.failed_variables = diff.failed_variables
    if not diff.success or report.diagnostics:
        logger.warning(
            "Simulation result differs from reference",
            model=name,
            variables=list(diff.failed_variables),
            diagnostics=report.diagnostics,
        )
    return report
