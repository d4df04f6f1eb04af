"""ConfigLoader — typed YAML configuration for OMC sessions and model tests.

A config file has two optional blocks::

    session:
      outdir: out
      modeldir: res
      checkunits: true
      freeze_timeout_s: 0.1
    testing:
      refdir: ../regRefData
      override:
        stopTime: 20

Relative paths given to the loader resolve against its ``base_dir`` (the
current working directory unless set).
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator


class ConfigError(Exception):
    """Raised for missing files, invalid YAML, or validation failures."""


class SessionConfig(BaseModel):
    """How to create, check and prepare an OMC session."""

    outdir: str = "out"
    modeldir: str = "."
    quiet: bool = False
    checkunits: bool = True
    omhome: str | None = None
    create_retries: int = 10
    retry_delay_s: float = 0.0
    freeze_timeout_s: float = 0.1
    max_reconnects: int = 10

    @field_validator("create_retries", "max_reconnects")
    @classmethod
    def counts_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("retry counts must be at least 1")
        return v

    @field_validator("freeze_timeout_s")
    @classmethod
    def timeout_must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("freeze timeout must be positive")
        return v

    @field_validator("retry_delay_s")
    @classmethod
    def delay_must_not_be_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("retry delay must not be negative")
        return v


class ModelTestConfig(BaseModel):
    """Defaults for load → simulate → regression runs."""

    refdir: str = "../regRefData"
    check: bool = True
    instantiate: bool = True
    override: dict[str, Union[int, float, str]] = Field(default_factory=dict)


class MoSTConfig(BaseModel):
    """Full mostpy configuration file."""

    session: SessionConfig = Field(default_factory=SessionConfig)
    testing: ModelTestConfig = Field(default_factory=ModelTestConfig)


class ConfigLoader:
    """Loads and validates mostpy YAML configuration files.

    Usage::

        cfg = ConfigLoader().load_most_config("configs/most.yaml")
        with omc_session(config=cfg.session) as omc:
            ...
    """

    def __init__(self, base_dir: str | Path | None = None) -> None:
        self._base_dir = Path(base_dir) if base_dir is not None else None

    def load(self, path: str | Path) -> dict[str, Any]:
        """Load a YAML file and return it as a plain dict.

        An empty file yields an empty dict (all defaults).

        Raises:
            ConfigError: if the file does not exist, is not valid YAML, or its
                top level is not a mapping.
        """
        resolved = self._resolve(path)
        if not resolved.exists():
            raise ConfigError(f"Config file not found: {resolved}")
        try:
            with resolved.open("r", encoding="utf-8") as fh:
                data = yaml.safe_load(fh)
        except yaml.YAMLError as exc:
            raise ConfigError(f"YAML parse error in {resolved}: {exc}") from exc
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(
                f"Expected a YAML mapping at top level in {resolved}, got {type(data).__name__}"
            )
        return data

    def load_most_config(self, path: str | Path) -> MoSTConfig:
        """Load and validate a config file into MoSTConfig.

        Relative ``outdir``/``modeldir``/``refdir`` entries are resolved against
        the directory of the config file.

        Raises:
            ConfigError: on file/parse/validation failure.
        """
        data = self.load(path)
        try:
            cfg = MoSTConfig.model_validate(data)
        except ValidationError as exc:
            raise ConfigError(f"Validation failed for {path}:\n{exc}") from exc
        root = self._resolve(path).parent
        cfg.session.outdir = str(self._anchor(root, cfg.session.outdir))
        cfg.session.modeldir = str(self._anchor(root, cfg.session.modeldir))
        cfg.testing.refdir = str(self._anchor(root, cfg.testing.refdir))
        return cfg

    def _resolve(self, path: str | Path) -> Path:
        p = Path(path)
        if p.is_absolute():
            return p
        return (self._base_dir or Path.cwd()) / p

    @staticmethod
    def _anchor(root: Path, entry: str) -> Path:
        p = Path(entry)
        return p if p.is_absolute() else root / p
