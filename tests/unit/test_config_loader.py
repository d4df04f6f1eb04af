"""Unit tests for ConfigLoader and the mostpy config models."""

from __future__ import annotations

from pathlib import Path

import pytest

from mostpy.utils.config import ConfigError, ConfigLoader, MoSTConfig, SessionConfig


@pytest.fixture
def loader(tmp_path: Path) -> ConfigLoader:
    return ConfigLoader(base_dir=tmp_path)


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


class TestDefaults:
    def test_session_defaults(self) -> None:
        cfg = SessionConfig()
        assert cfg.create_retries == 10
        assert cfg.freeze_timeout_s == pytest.approx(0.1)
        assert cfg.max_reconnects == 10
        assert cfg.checkunits is True

    def test_testing_defaults(self) -> None:
        cfg = MoSTConfig()
        assert cfg.testing.refdir == "../regRefData"
        assert cfg.testing.override == {}


class TestLoad:
    def test_shipped_config_loads(self, configs_dir: Path) -> None:
        cfg = ConfigLoader().load_most_config(configs_dir / "most.yaml")
        assert cfg.session.create_retries == 10
        assert Path(cfg.session.outdir).is_absolute()

    def test_relative_path_uses_base_dir(self, loader: ConfigLoader, tmp_path: Path) -> None:
        _write(tmp_path / "conf" / "most.yaml", "session:\n  quiet: true\n")
        assert loader.load("conf/most.yaml") == {"session": {"quiet": True}}

    def test_empty_file_gives_defaults(self, loader: ConfigLoader, tmp_path: Path) -> None:
        _write(tmp_path / "empty.yaml", "")
        cfg = loader.load_most_config("empty.yaml")
        assert cfg.session.max_reconnects == 10

    def test_overrides_and_paths(self, loader: ConfigLoader, tmp_path: Path) -> None:
        _write(
            tmp_path / "cfg" / "most.yaml",
            "session:\n  outdir: out\n  modeldir: /abs/models\n"
            "testing:\n  refdir: ../ref\n  override:\n    stopTime: 20\n    variableFilter: x\n",
        )
        cfg = loader.load_most_config("cfg/most.yaml")
        assert cfg.session.outdir == str(tmp_path / "cfg" / "out")
        assert cfg.session.modeldir == "/abs/models"
        assert cfg.testing.refdir == str(tmp_path / "cfg" / ".." / "ref")
        assert cfg.testing.override == {"stopTime": 20, "variableFilter": "x"}


class TestErrors:
    def test_missing_file(self, loader: ConfigLoader) -> None:
        with pytest.raises(ConfigError, match="not found"):
            loader.load("nope.yaml")

    def test_invalid_yaml(self, loader: ConfigLoader, tmp_path: Path) -> None:
        _write(tmp_path / "bad.yaml", "session: [unclosed\n")
        with pytest.raises(ConfigError, match="YAML parse error"):
            loader.load("bad.yaml")

    def test_top_level_must_be_mapping(self, loader: ConfigLoader, tmp_path: Path) -> None:
        _write(tmp_path / "list.yaml", "- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            loader.load("list.yaml")

    @pytest.mark.parametrize(
        "body",
        [
            "session:\n  freeze_timeout_s: 0\n",
            "session:\n  create_retries: 0\n",
            "session:\n  max_reconnects: -1\n",
            "session:\n  retry_delay_s: -0.5\n",
        ],
    )
    def test_validation_errors(self, loader: ConfigLoader, tmp_path: Path, body: str) -> None:
        _write(tmp_path / "invalid.yaml", body)
        with pytest.raises(ConfigError, match="Validation failed"):
            loader.load_most_config("invalid.yaml")
