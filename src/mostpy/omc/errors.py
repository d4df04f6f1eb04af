"""MoSTError — the single error kind raised by mostpy OMC operations."""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mostpy.omc.session import OMCSession


class MoSTError(Exception):
    """Raised when an OMC operation fails.

    Carries a human-readable message and the OMC error string (the drained
    diagnostic buffer at the failure site, possibly empty).

    Args:
        msg: What failed, e.g. ``"Could not load Example"``.
        omc: Diagnostic text reported by OMC.
    """

    def __init__(self, msg: str, omc: str = "") -> None:
        super().__init__(msg, omc)
        self.msg = msg
        self.omc = omc

    def __str__(self) -> str:
        return f"{self.msg}\n---\nOMC error string:\n{self.omc}"

    @classmethod
    def from_session(cls, session: "OMCSession", msg: str) -> "MoSTError":
        """Create an error carrying the current diagnostics of ``session``."""
        return cls(msg, session.drain_diagnostics())
