"""OMCSession — one live ZMQ connection to an OpenModelica compiler.

Wraps ``OMPython.OMCSessionZMQ`` and adds what the scripting helpers need on
top of ``sendExpression``:

* ``drain_diagnostics()``: OMC collects errors and warnings in a per-session
  buffer that is only cleared by reading it with ``getErrorString()``. Call it
  after every command whose diagnostics matter, otherwise old messages leak
  into the next check.
* ``send_nowait()`` / ``poll()`` / ``receive_raw()``: direct socket access for
  the startup freeze check and for ``quit()``, whose reply is never awaited.
* ``abandon()``: shutdown of a frozen connection, which can no longer send.

Written against the OMPython 3.x ``OMCSessionZMQ`` (socket at ``_omc``,
process at ``_omc_process``).

Usage:
    with OMCSession(OMCSessionZMQ()) as omc:
        omc.send("loadModel(Modelica)")
        errors = omc.drain_diagnostics()
"""
from __future__ import annotations

from typing import Any

import zmq

from mostpy.omc.codec import mounescape
from mostpy.utils.logging import get_logger

logger = get_logger(__name__)

# OpenModelica 1.16.0 emits this for some models although nothing is wrong.
IGNORED_DIAGNOSTIC = 'Warning: function Unit.unitString failed for "MASTER()".\n'


class OMCSession:
    """Request/response handle around an ``OMCSessionZMQ`` instance.

    Args:
        omc: The OMPython session object. Its ZMQ REQ socket is expected at
            ``omc._omc`` (OMPython's attribute name).
    """

    def __init__(self, omc: Any) -> None:
        self._omc = omc
        self._closed = False

    # ── Request / response ──────────────────────────────────────────────────

    def send(self, expression: str) -> Any:
        """Send an OMC expression and return the reply parsed by OMPython."""
        logger.debug("omc request", expression=expression)
        return self._omc.sendExpression(expression)

    def send_raw(self, expression: str) -> str:
        """Send an OMC expression and return the unparsed reply text."""
        logger.debug("omc raw request", expression=expression)
        result = self._omc.sendExpression(expression, parsed=False)
        return str(result) if result is not None else ""

    def drain_diagnostics(self) -> str:
        """Read and clear OMC's error buffer.

        Returns:
            The unescaped content of the error string literal, or ``""`` if
            there is nothing (or only the known spurious 1.16.0 warning) to
            report.
        """
        parsed = mounescape(self.send_raw("getErrorString()")).strip().strip('"')
        return "" if parsed == IGNORED_DIAGNOSTIC else parsed

    # ── Raw socket access ───────────────────────────────────────────────────

    @property
    def socket(self) -> Any:
        return self._omc._omc

    @property
    def label(self) -> str:
        """Identifies the connection in log messages."""
        try:
            return f"fd={self.socket.FD}"
        except (AttributeError, zmq.ZMQError):
            return f"session@{id(self._omc):#x}"

    def send_nowait(self, expression: str) -> None:
        """Write ``expression`` to the socket without reading the reply."""
        logger.debug("omc request (no reply)", expression=expression)
        self.socket.send_string(expression)

    def receive_raw(self) -> str:
        """Block until the next reply arrives on the socket."""
        return self.socket.recv_string()

    def poll(self, timeout_s: float) -> bool:
        """Wait up to ``timeout_s`` for a reply; True if one can be received."""
        return bool(self.socket.poll(int(timeout_s * 1000), zmq.POLLIN))

    # ── Shutdown ────────────────────────────────────────────────────────────

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Send ``quit()`` without waiting for OMC to acknowledge it.

        Waiting for the reply is known to hang occasionally, so the process is
        not checked for termination.
        """
        if self._closed:
            return
        self._closed = True
        self.send_nowait("quit()")

    def abandon(self) -> None:
        """Shut down a session whose request was never answered.

        A ZMQ REQ socket that still waits for a reply rejects every further
        send, so ``quit()`` cannot be delivered. The socket is closed without
        lingering and the OMC process started by OMPython is killed instead.
        """
        if self._closed:
            return
        self._closed = True
        self.socket.close(linger=0)
        process = getattr(self._omc, "_omc_process", None)
        if process is not None:
            process.kill()

    def __enter__(self) -> "OMCSession":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
