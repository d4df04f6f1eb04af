"""Tests for run_model_test (load → simulate → regression)."""
from __future__ import annotations

from pathlib import Path

import pytest

from mostpy.omc.errors import MoSTError
from mostpy.testing import run_model_test, run_model_test_from_config
from mostpy.utils.config import ModelTestConfig

_SUCCESS = {
    "resultFile": "/out/Example_res.csv",
    "simulationOptions": "",
    "messages": "LOG_SUCCESS | info | The simulation finished successfully.\n",
}


def _replies(diff=(True, ()), ref_vars=("time", "x")) -> dict:
    def read_vars(expression: str):
        return list(ref_vars) if "ref" in expression.split(",")[0] else ["time", "x"]

    return {
        "getClassInformation": ("model", "", False, False, False, "/res/Example.mo", False),
        "loadModel": True,
        "getClassRestriction": "model",
        "checkModel": "Check of Example completed successfully.",
        "instantiateModel": "class Example end Example;",
        "getSimulationOptions": (0.0, 1.0, 1e-6, 500, 0.002),
        "getAnnotationNamedModifiers": (),
        "simulate": _SUCCESS,
        "readSimulationResultVars": read_vars,
        "diffSimulationResults": diff,
    }


@pytest.fixture
def refdir(tmp_path: Path) -> Path:
    d = tmp_path / "ref"
    d.mkdir()
    return d


class TestRunModelTest:
    def test_without_reference_data(self, scripted, refdir: Path):
        session = scripted(_replies())
        assert run_model_test(session, "Example", refdir=refdir) is None
        assert "diffSimulationResults" not in session.functions_sent()
        assert "simulate" in session.functions_sent()

    def test_with_matching_reference(self, scripted, refdir: Path):
        (refdir / "Example_res.csv").write_text('"time","x"\n0,1\n')
        session = scripted(_replies())
        report = run_model_test(session, "Example", refdir=refdir)
        assert report is not None and report.passed

    def test_with_differing_reference(self, scripted, refdir: Path):
        (refdir / "Example_res.csv").write_text('"time","x"\n0,2\n')
        session = scripted(_replies(diff=(False, ("x",))))
        with pytest.raises(MoSTError, match="Regression test of Example failed"):
            run_model_test(session, "Example", refdir=refdir)

    def test_missing_reference_variable_fails_after_comparison(self, scripted, refdir: Path):
        (refdir / "Example_res.csv").write_text('"time"\n0\n')
        session = scripted(_replies(ref_vars=("time",)))
        with pytest.raises(MoSTError, match="missing in reference data: x"):
            run_model_test(session, "Example", refdir=refdir)
        assert "diffSimulationResults" in session.functions_sent()

    def test_override_reaches_simulate(self, scripted, refdir: Path):
        session = scripted(_replies())
        run_model_test(session, "Example", override={"stopTime": 2.0, "interval": 0.5}, refdir=refdir)
        sim = next(e for e in session.sent if e.startswith("simulate("))
        assert "stopTime=2.0" in sim
        assert "numberOfIntervals=4" in sim

    def test_check_flags_forwarded(self, scripted, refdir: Path):
        session = scripted(_replies())
        run_model_test(session, "Example", refdir=refdir, check=False)
        assert "checkModel" not in session.functions_sent()

    def test_load_failure_stops_before_simulation(self, scripted, refdir: Path):
        replies = _replies()
        replies["loadModel"] = False
        session = scripted(replies)
        with pytest.raises(MoSTError, match="Could not load Example"):
            run_model_test(session, "Example", refdir=refdir)
        assert "simulate" not in session.functions_sent()

    def test_from_config(self, scripted, refdir: Path):
        session = scripted(_replies())
        cfg = ModelTestConfig(refdir=str(refdir), instantiate=False, override={"stopTime": 3})
        assert run_model_test_from_config(session, "Example", cfg) is None
        assert "instantiateModel" not in session.functions_sent()
        assert any("stopTime=3" in e for e in session.sent)
