"""Loading Modelica models and libraries into an OMC session.

``load_model`` runs several OMC scripting functions so that as many model
errors as possible surface as ``MoSTError`` before a simulation is attempted:

1. ``loadModel(name)`` loads the model if it exists. This only fails if the
   *top-level* package does not exist: ``loadModel(Modelica.FooBar)``
   succeeds because ``Modelica`` can be loaded.
2. ``getClassRestriction(name)`` tells whether the full name actually exists.
3. ``checkModel(name)`` finds missing or mistyped variables and the like.
4. ``instantiateModel(name)`` finds some additional structural errors (since
   OpenModelica 1.16 unit consistency is checked here).
"""
from __future__ import annotations

import warnings

from mostpy.omc.codec import moquote
from mostpy.omc.errors import MoSTError
from mostpy.omc.responses import ClassInformation
from mostpy.omc.session import OMCSession
from mostpy.omc.simulation import get_version
from mostpy.utils.logging import get_logger

logger = get_logger(__name__)

# installPackage() appeared in OpenModelica 1.16.0
_INSTALL_PACKAGE_SINCE = (1, 16, 0)


def class_information(session: OMCSession, name: str) -> ClassInformation:
    """Return the ``getClassInformation`` record of ``name``.

    Lookup errors for a class that is not loaded yet are cleared from the
    error buffer, so they do not count against a following ``loadModel``.
    """
    info = session.send(f"getClassInformation({name})")
    session.drain_diagnostics()
    return ClassInformation.from_omc(info)


def filename(session: OMCSession, name: str) -> str:
    """Return the file that defines ``name``.

    ``"<interactive>"`` if the class was defined by sending its source to OMC
    directly, ``""`` if the class is unknown.
    """
    return class_information(session, name).file_name


def is_loaded(session: OMCSession, name: str) -> bool:
    """True if the class ``name`` is loaded and can be queried.

    ``getClassRestriction`` answers ``""`` for unknown classes and
    ``"model"``, ``"package"``, ``"connector"``, ... otherwise.
    """
    restriction = session.send(f"getClassRestriction({name})")
    session.drain_diagnostics()
    return bool(restriction)


def load_model(
    session: OMCSession,
    name: str,
    ismodel: bool = True,
    check: bool = True,
    instantiate: bool = True,
) -> None:
    """Load the model with fully qualified name ``name`` from the MODELICAPATH.

    This refers to the model *name*, not a file, e.g.
    ``load_model(omc, "Modelica.Electrical.Analog.Examples.ChuaCircuit")``.

    Args:
        ismodel: Deprecated. ``False`` behaves like ``check=False``.
        check: Run ``checkModel`` after loading.
        instantiate: Run ``instantiateModel`` after a successful check.

    Raises:
        MoSTError: if any stage fails; ``omc`` holds OMC's diagnostics.
    """
    info = class_information(session, name)
    if not info.is_interactive:
        success = session.send(f"loadModel({name})")
        es = session.drain_diagnostics()
        if success is None:
            raise MoSTError(f"Unexpected error: loadModel({name}) returned nothing", es)
        if not success or es:
            raise MoSTError(f"Could not load {name}", es)
    if not is_loaded(session, name):
        raise MoSTError(f"Model {name} not found in MODELICAPATH")
    if not ismodel:
        warnings.warn(
            "The keyword parameter ismodel is deprecated since the existence of a "
            "class is now checked with is_loaded(). Replace ismodel=False with "
            "check=False, which has the same effect.",
            DeprecationWarning,
            stacklevel=2,
        )
        return
    if not check:
        return
    result = str(session.send(f"checkModel({name})"))
    es = session.drain_diagnostics()
    if not result.startswith(f"Check of {name} completed successfully"):
        raise MoSTError(f"Model check of {name} failed", "\n".join([result, es]))
    if not instantiate:
        return
    session.send(f"instantiateModel({name})")
    es = session.drain_diagnostics()
    if es:
        raise MoSTError(f"Model {name} could not be instantiated", es)
    logger.debug("Model loaded", model=name)


def install_and_load(session: OMCSession, lib: str, version: str = "latest") -> None:
    """Load library ``lib`` in ``version``, installing it first if necessary.

    OMC < 1.16 cannot install packages; there a specific version falls back to
    whatever default version is installed.

    Raises:
        MoSTError: if the library can neither be loaded nor installed.
    """
    omc_version = get_version(session)
    if omc_version < _INSTALL_PACKAGE_SINCE and version != "latest":
        logger.warning(
            f"Cannot install specific version {version} of library {lib} on OpenModelica < 1.16.0. "
            "Attempting to load default version if it is installed.",
            library=lib,
        )
        version = "latest"
    if version == "latest":
        load_version, install_version = "default", ""
    else:
        load_version, install_version = version, version

    session.send(f"loadModel({lib}, {{{moquote(load_version)}}})")
    es = session.drain_diagnostics()
    if not es:
        return
    # happens on OpenModelica 1.16 if the MSL is not installed by default
    if omc_version < _INSTALL_PACKAGE_SINCE:
        raise MoSTError(
            f"Cannot load library {lib} with version {version} on OpenModelica < 1.16.0", es
        )
    session.send(f"installPackage({lib}, {moquote(install_version)})")
    es = session.drain_diagnostics()
    if "Package installed successfully" not in es:
        raise MoSTError(f"Failed to install library {lib} with version {version}", es)
    logger.info("Installed library", library=lib, version=version)
    session.send(f"loadModel({lib}, {{{moquote(load_version)}}})")
    es = session.drain_diagnostics()
    if es:
        raise MoSTError(
            f"Failed to load library {lib} with version {version} after successful installation", es
        )
