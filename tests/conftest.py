"""Shared fixtures and pytest configuration for all mostpy tests.

Unit tests never start OpenModelica: OMC is replaced by ``ScriptedSession``
(an OMCSession stand-in answering from a table) or by mocked OMPython objects.
Integration tests need a real OMC and run only with ``--run-integration``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import pytest

PROJECT_ROOT = Path(__file__).parent.parent
CONFIGS_DIR = PROJECT_ROOT / "configs"
RESOURCES_DIR = Path(__file__).parent / "integration" / "resources"


class ScriptedSession:
    """OMCSession stand-in that answers commands from lookup tables.

    Args:
        replies: function name → reply. A callable reply receives the full
            expression.
        diagnostics: function name → error string reported by the next
            ``drain_diagnostics()`` after that function was sent. A list is
            consumed one entry per call.
    """

    def __init__(
        self,
        replies: dict[str, Any] | None = None,
        diagnostics: dict[str, str | list[str]] | None = None,
    ) -> None:
        self.replies = dict(replies or {})
        self.diagnostics = {
            k: list(v) if isinstance(v, list) else v for k, v in (diagnostics or {}).items()
        }
        self.sent: list[str] = []
        self.closed = False
        self.label = "scripted"
        self._pending = ""

    @staticmethod
    def function_name(expression: str) -> str:
        return expression.split("(", 1)[0]

    def send(self, expression: str) -> Any:
        self.sent.append(expression)
        fn = self.function_name(expression)
        diag = self.diagnostics.get(fn, "")
        if isinstance(diag, list):
            diag = diag.pop(0) if diag else ""
        self._pending += diag
        reply = self.replies.get(fn)
        return reply(expression) if callable(reply) else reply

    def drain_diagnostics(self) -> str:
        es, self._pending = self._pending, ""
        return es

    def close(self) -> None:
        self.closed = True

    def functions_sent(self) -> list[str]:
        return [self.function_name(e) for e in self.sent]


@pytest.fixture
def scripted() -> Callable[..., ScriptedSession]:
    """Factory fixture: ``scripted(replies, diagnostics)`` → ScriptedSession."""
    return ScriptedSession


# ---------------------------------------------------------------------------
# Path fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def project_root() -> Path:
    return PROJECT_ROOT


@pytest.fixture
def configs_dir() -> Path:
    return CONFIGS_DIR


@pytest.fixture
def resources_dir() -> Path:
    return RESOURCES_DIR


# ---------------------------------------------------------------------------
# Pytest mark registration and integration-test gating
# ---------------------------------------------------------------------------

def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers", "integration: requires --run-integration and an OpenModelica installation"
    )


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    if not config.getoption("--run-integration", default=False):
        skip_integration = pytest.mark.skip(reason="need --run-integration flag")
        for item in items:
            if "integration" in item.keywords:
                item.add_marker(skip_integration)


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="run integration tests (requires omc on PATH or OPENMODELICAHOME)",
    )
