"""Tests for threadcheck config loader."""

from __future__ import annotations

import warnings
from pathlib import Path

import pytest
import yaml

from threadcheck.config import ConfigError, ThreadcheckConfig, load_config
from threadcheck.models import ValidationThresholds, ValidatorOptions


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_yaml(path: Path, data: dict) -> None:
    path.write_text(yaml.dump(data), encoding="utf-8")


@pytest.fixture(autouse=True)
def _no_env_override(monkeypatch):
    monkeypatch.delenv("THREADCHECK_EMBEDDING_MODEL", raising=False)


def _load(tmp_path: Path, global_data: dict | None = None) -> ThreadcheckConfig:
    global_cfg = tmp_path / "global" / "config.yaml"
    if global_data is not None:
        global_cfg.parent.mkdir()
        _write_yaml(global_cfg, global_data)
    return load_config(project_dir=tmp_path, global_config_path=global_cfg)


# ---------------------------------------------------------------------------
# Defaults - no config files present
# ---------------------------------------------------------------------------


def test_load_config_defaults_no_files(tmp_path: Path) -> None:
    """No config files → all hardcoded defaults."""
    cfg = _load(tmp_path)

    assert cfg.embedding.model == "openai/text-embedding-3-small"
    assert cfg.embedding.num_retries == 3
    assert cfg.embedding.dimensions == 256
    assert cfg.validation_thresholds() == ValidationThresholds()
    assert cfg.validator_options() == ValidatorOptions()


# ---------------------------------------------------------------------------
# Layering
# ---------------------------------------------------------------------------


def test_global_overrides_defaults(tmp_path: Path) -> None:
    cfg = _load(tmp_path, {"embedding": {"model": "cohere/embed-english-v3.0"}})
    assert cfg.embedding.model == "cohere/embed-english-v3.0"
    assert cfg.embedding.num_retries == 3


def test_project_overrides_global(tmp_path: Path) -> None:
    _write_yaml(tmp_path / "threadcheck.yaml", {"thresholds": {"pass_threshold": 0.9}})
    cfg = _load(
        tmp_path,
        {"thresholds": {"pass_threshold": 0.5, "grounded_threshold": 0.85}},
    )
    thresholds = cfg.validation_thresholds()
    assert thresholds.pass_threshold == 0.9
    assert thresholds.grounded_threshold == 0.85


def test_env_overrides_files(tmp_path: Path, monkeypatch) -> None:
    _write_yaml(tmp_path / "threadcheck.yaml", {"embedding": {"model": "openai/a"}})
    monkeypatch.setenv("THREADCHECK_EMBEDDING_MODEL", "ollama/nomic-embed-text")
    assert _load(tmp_path).embedding.model == "ollama/nomic-embed-text"


def test_options_section(tmp_path: Path) -> None:
    _write_yaml(
        tmp_path / "threadcheck.yaml",
        {"options": {"top_k": 3, "use_lexical": False, "check_participants": False}},
    )
    options = _load(tmp_path).validator_options()
    assert options.top_k == 3
    assert options.use_lexical is False
    assert options.check_participants is False
    assert options.check_negation is True


def test_empty_files_give_defaults(tmp_path: Path) -> None:
    (tmp_path / "threadcheck.yaml").write_text("", encoding="utf-8")
    assert _load(tmp_path).embedding.model == "openai/text-embedding-3-small"


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def test_unknown_top_level_key_warns(tmp_path: Path) -> None:
    _write_yaml(tmp_path / "threadcheck.yaml", {"retrieval": {"top_k": 3}})
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        _load(tmp_path)
    assert any("retrieval" in str(w.message) for w in caught)


def test_unknown_section_key_rejected(tmp_path: Path) -> None:
    _write_yaml(tmp_path / "threadcheck.yaml", {"thresholds": {"grounding": 0.9}})
    with pytest.raises(ConfigError, match="grounding"):
        _load(tmp_path)


def test_api_key_in_global_config_rejected(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="forbidden key 'embedding.api_key'"):
        _load(tmp_path, {"embedding": {"api_key": "sk-secret"}})


def test_out_of_range_threshold_rejected(tmp_path: Path) -> None:
    _write_yaml(tmp_path / "threadcheck.yaml", {"thresholds": {"pass_threshold": 2.0}})
    with pytest.raises(ConfigError, match="pass_threshold"):
        _load(tmp_path)


def test_marginal_above_grounded_rejected(tmp_path: Path) -> None:
    _write_yaml(
        tmp_path / "threadcheck.yaml",
        {"thresholds": {"marginal_threshold": 0.9, "grounded_threshold": 0.8}},
    )
    with pytest.raises(ConfigError, match="marginal_threshold"):
        _load(tmp_path)


def test_non_numeric_value_rejected(tmp_path: Path) -> None:
    _write_yaml(tmp_path / "threadcheck.yaml", {"embedding": {"num_retries": "many"}})
    with pytest.raises(ConfigError):
        _load(tmp_path)


def test_invalid_yaml_rejected(tmp_path: Path) -> None:
    (tmp_path / "threadcheck.yaml").write_text("thresholds: [unclosed", encoding="utf-8")
    with pytest.raises(ConfigError, match="not valid YAML"):
        _load(tmp_path)


def test_config_error_is_value_error() -> None:
    assert issubclass(ConfigError, ValueError)
