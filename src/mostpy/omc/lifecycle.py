"""Creating, preparing and closing OMC sessions.

Two OMC/ZMQ quirks are handled here:

* ``OMCSessionZMQ()`` occasionally fails with a ``zmq.ZMQError`` right after
  the compiler process starts. ``create_session`` retries those (and only
  those) a bounded number of times.
* The first request on a fresh connection sometimes never gets an answer.
  ``avoid_freeze`` sends ``getVersion()`` and races the reply against
  a short timer; a connection that loses the race is discarded and replaced.

Usage:
    with omc_session("test/out", "test/res") as omc:
        load_model(omc, "Example")
"""
from __future__ import annotations

import os
import queue
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterator, TypeVar

import zmq
from OMPython import OMCSessionZMQ

from mostpy.omc.codec import moquote
from mostpy.omc.errors import MoSTError
from mostpy.omc.session import OMCSession
from mostpy.omc.simulation import get_version
from mostpy.utils.config import SessionConfig
from mostpy.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_CREATE_RETRIES = 10
DEFAULT_FREEZE_TIMEOUT_S = 0.1
DEFAULT_MAX_RECONNECTS = 10

# OMC >= 1.16.0 has a dedicated unit checking flag
_UNIT_CHECKING_SINCE = (1, 16, 0)

_RECEIVED = "received"
_TIMED_OUT = "timedout"
# how long the receiver waits per poll before rechecking the race
_POLL_SLICE_S = 0.01


# ── Creation ──────────────────────────────────────────────────────────────────

def create_session(
    retries: int = DEFAULT_CREATE_RETRIES,
    retry_delay_s: float = 0.0,
    omhome: str | None = None,
) -> OMCSession:
    """Start an OMC process and connect to it.

    Args:
        retries: Maximum number of constructor attempts.
        retry_delay_s: Pause between attempts.
        omhome: OpenModelica installation directory passed to OMPython.

    Raises:
        MoSTError: if every attempt failed with ``zmq.ZMQError``.
        Exception: any other constructor error, on the first attempt.
    """
    for attempt in range(1, retries + 1):
        try:
            raw = OMCSessionZMQ(omhome=omhome) if omhome else OMCSessionZMQ()
        except zmq.ZMQError as exc:
            logger.warning(
                f"OMCSession() constructor errored, attempting retry no {attempt}/{retries}",
                error=str(exc),
            )
            if retry_delay_s > 0 and attempt < retries:
                time.sleep(retry_delay_s)
            continue
        return OMCSession(raw)
    raise MoSTError(f"OMCSession could not be created after {retries} retries")


# ── Freeze avoidance ──────────────────────────────────────────────────────────

def _answers_in_time(session: OMCSession, timeout_s: float) -> bool:
    """Return True if ``getVersion()`` is answered within ``timeout_s``.

    A receiver thread and a timer race into one queue and the first arrival
    decides. The receiver polls the socket in short slices and stops once the
    race is decided, so it has returned before the socket is used again.
    A reply that arrives after the timer fired is discarded.
    """
    handoff: queue.Queue[tuple[Any, str]] = queue.Queue()
    decided = threading.Event()

    def receive() -> None:
        while not decided.is_set():
            if session.poll(_POLL_SLICE_S):
                handoff.put((session.receive_raw(), _RECEIVED))
                return

    label = session.label
    session.send_nowait("getVersion()")
    receiver = threading.Thread(target=receive, name=f"omc-freeze-check-{label}", daemon=True)
    timer = threading.Timer(timeout_s, handoff.put, args=((None, _TIMED_OUT),))
    timer.daemon = True
    receiver.start()
    timer.start()
    _, status = handoff.get()
    decided.set()
    timer.cancel()
    receiver.join()
    return status == _RECEIVED


def _discard(session: OMCSession) -> None:
    logger.warning(
        "Discarding frozen connection to OMC and starting new OMC instance.",
        connection=session.label,
    )
    try:
        session.abandon()
    except Exception as exc:  # noqa: BLE001 - the frozen connection is unusable anyway
        logger.warning("Closing old OMC instance failed", error=repr(exc))


def avoid_freeze(
    session: OMCSession,
    timeout_s: float = DEFAULT_FREEZE_TIMEOUT_S,
    max_reconnects: int = DEFAULT_MAX_RECONNECTS,
    create_retries: int = DEFAULT_CREATE_RETRIES,
    retry_delay_s: float = 0.0,
    omhome: str | None = None,
) -> OMCSession:
    """Replace ``session`` until a connection answers the startup check.

    Returns:
        The first session that answered, which is ``session`` itself if it
        was not frozen.

    Raises:
        MoSTError: if ``max_reconnects`` fresh sessions all froze.
        Exception: any error of the check itself, after the session under
            test was shut down.
    """
    reconnects = 0
    while True:
        try:
            responsive = _answers_in_time(session, timeout_s)
        except BaseException:
            session.abandon()
            raise
        if responsive:
            return session
        _discard(session)
        if reconnects >= max_reconnects:
            raise MoSTError(f"OMC session froze on startup after {reconnects} reconnects")
        reconnects += 1
        session = create_session(retries=create_retries, retry_delay_s=retry_delay_s, omhome=omhome)


# ── Setup / teardown ──────────────────────────────────────────────────────────

def _setup_command(session: OMCSession, expression: str) -> Any:
    """Send a setup command; a False reply or any diagnostics is fatal."""
    reply = session.send(expression)
    es = session.drain_diagnostics()
    if reply is False or es:
        raise MoSTError(f"OMC setup command {expression} failed", es)
    return reply


def setup_session(
    outdir: str | Path,
    modeldir: str | Path,
    quiet: bool = False,
    checkunits: bool = True,
    config: SessionConfig | None = None,
) -> OMCSession:
    """Create an OMC session ready for model tests.

    Steps:
        1. create ``outdir`` if needed
        2. create the session (with retries) and check it for a startup freeze
        3. change the OMC working directory to ``outdir``
        4. append ``modeldir`` to the MODELICAPATH
        5. enable unit checking unless ``checkunits`` is False

    Args:
        outdir: Directory for simulation output.
        modeldir: Directory containing the models under test.
        quiet: If False, the MODELICAPATH and command line options are logged.
        checkunits: Enable OMC unit consistency checks.
        config: Retry and timeout settings; defaults to ``SessionConfig()``.
    """
    cfg = config or SessionConfig()
    outdir = Path(outdir).resolve()
    outdir.mkdir(parents=True, exist_ok=True)

    session = create_session(cfg.create_retries, cfg.retry_delay_s, cfg.omhome)
    session = avoid_freeze(
        session,
        timeout_s=cfg.freeze_timeout_s,
        max_reconnects=cfg.max_reconnects,
        create_retries=cfg.create_retries,
        retry_delay_s=cfg.retry_delay_s,
        omhome=cfg.omhome,
    )
    try:
        _setup_command(session, f"cd({moquote(str(outdir))})")
        mopath = _setup_command(session, "getModelicaPath()")
        mopath = f"{mopath}{os.pathsep}{Path(modeldir).resolve()}"
        if not quiet:
            logger.info("Setting MODELICAPATH", modelicapath=mopath)
        _setup_command(session, f"setModelicaPath({moquote(mopath)})")
        if checkunits:
            if get_version(session) >= _UNIT_CHECKING_SINCE:
                flag = "--unitChecking"
            else:
                flag = "--preOptModules+=unitChecking"
            _setup_command(session, f"setCommandLineOptions({moquote(flag)})")
        if not quiet:
            opts = _setup_command(session, "getCommandLineOptions()")
            logger.info("Using command line options", options=opts)
    except BaseException:
        close_session(session, quiet=True)
        raise
    return session


def session_from_config(config: SessionConfig) -> OMCSession:
    """``setup_session`` with every argument taken from ``config``."""
    return setup_session(config.outdir, config.modeldir, config.quiet, config.checkunits, config)


def close_session(session: OMCSession, quiet: bool = False) -> None:
    """Shut down the OMC instance behind ``session``.

    Only sends ``quit()``; the reply is not awaited and termination is not
    verified.
    """
    if not quiet:
        logger.info("Closing OMC session", connection=session.label)
    session.close()
    if not quiet:
        logger.info("Done")


@contextmanager
def omc_session(
    outdir: str | Path | None = None,
    modeldir: str | Path | None = None,
    quiet: bool | None = None,
    checkunits: bool | None = None,
    config: SessionConfig | None = None,
) -> Iterator[OMCSession]:
    """Context manager around ``setup_session`` / ``close_session``.

    Arguments left as None fall back to ``config`` (or SessionConfig defaults).
    """
    cfg = config or SessionConfig()
    session = setup_session(
        outdir if outdir is not None else cfg.outdir,
        modeldir if modeldir is not None else cfg.modeldir,
        quiet=cfg.quiet if quiet is None else quiet,
        checkunits=cfg.checkunits if checkunits is None else checkunits,
        config=cfg,
    )
    try:
        yield session
    finally:
        close_session(session, quiet=cfg.quiet if quiet is None else quiet)


def with_omc(
    func: Callable[[OMCSession], T],
    outdir: str | Path | None = None,
    modeldir: str | Path | None = None,
    quiet: bool | None = None,
    checkunits: bool | None = None,
    config: SessionConfig | None = None,
) -> T:
    """Call ``func`` with a fresh session and close it afterwards.

    Example::

        with_omc(lambda omc: load_model(omc, "Example"), "test/out", "test/res")
    """
    with omc_session(outdir, modeldir, quiet, checkunits, config) as session:
        return func(session)
