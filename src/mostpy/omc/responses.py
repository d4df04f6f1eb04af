"""Typed views of OMC replies.

OMPython parses replies into whatever Python shape matches the Modelica
value: tuples for records returned positionally, dicts for named records,
plain strings and booleans otherwise. Each dataclass here decodes the reply of
one command, so call sites never index into raw tuples.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from mostpy.omc.errors import MoSTError

INTERACTIVE_FILE_NAME = "<interactive>"


def _as_sequence(raw: Any, command: str) -> tuple[Any, ...]:
    if raw is None:
        return ()
    if isinstance(raw, (list, tuple)):
        return tuple(raw)
    raise MoSTError(f"Unexpected reply to {command}: {raw!r}")


@dataclass(frozen=True)
class ClassInformation:
    """Reply of ``getClassInformation(name)``."""

    restriction: str
    comment: str
    partial: bool
    final: bool
    encapsulated: bool
    file_name: str
    file_read_only: bool

    @property
    def is_interactive(self) -> bool:
        """True if the class was defined by sending its source to OMC directly."""
        return self.file_name == INTERACTIVE_FILE_NAME

    @classmethod
    def from_omc(cls, raw: Any) -> "ClassInformation":
        values = _as_sequence(raw, "getClassInformation")
        # OMC answers unknown classes with an empty or zero-filled record
        padded = values + ("", "", False, False, False, "", False)[len(values):]
        return cls(
            restriction=str(padded[0]),
            comment=str(padded[1]),
            partial=bool(padded[2]),
            final=bool(padded[3]),
            encapsulated=bool(padded[4]),
            file_name=str(padded[5]),
            file_read_only=bool(padded[6]),
        )


@dataclass(frozen=True)
class SimulationOptions:
    """Reply of ``getSimulationOptions(name)``."""

    start_time: float
    stop_time: float
    tolerance: float
    number_of_intervals: int
    interval: float

    @classmethod
    def from_omc(cls, raw: Any) -> "SimulationOptions":
        values = _as_sequence(raw, "getSimulationOptions")
        if len(values) < 5:
            raise MoSTError(f"Unexpected reply to getSimulationOptions: {raw!r}")
        return cls(
            start_time=float(values[0]),
            stop_time=float(values[1]),
            tolerance=float(values[2]),
            number_of_intervals=int(values[3]),
            interval=float(values[4]),
        )


@dataclass(frozen=True)
class SimulationResult:
    """Reply of ``simulate(name, ...)`` (the SimulationResult record)."""

    result_file: str
    messages: str
    simulation_options: str

    @classmethod
    def from_omc(cls, raw: Any) -> "SimulationResult":
        if not isinstance(raw, dict):
            raise MoSTError(f"Unexpected reply to simulate: {raw!r}")
        return cls(
            result_file=str(raw.get("resultFile", "")),
            messages=str(raw.get("messages", "")),
            simulation_options=str(raw.get("simulationOptions", "")),
        )


@dataclass(frozen=True)
class DiffResult:
    """Reply of ``diffSimulationResults(actual, expected, diffPrefix, vars=...)``."""

    success: bool
    failed_variables: tuple[str, ...]

    @classmethod
    def from_omc(cls, raw: Any) -> "DiffResult":
        values = _as_sequence(raw, "diffSimulationResults")
        if len(values) != 2:
            raise MoSTError(f"Unexpected reply to diffSimulationResults: {raw!r}")
        success, failed = values
        if isinstance(failed, str):
            failed = (failed,) if failed else ()
        return cls(success=bool(success), failed_variables=tuple(str(v) for v in failed or ()))
