"""threadcheck configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site - not in this module)
  2. Environment variables  (THREADCHECK_EMBEDDING_MODEL)
  3. Per-project threadcheck.yaml  (in the working directory or --config-dir)
  4. Global ~/.threadcheck/config.yaml  (defaults only - no API keys)
  5. Hardcoded defaults

Global config must never contain API keys; use environment variables instead.
All YAML reads use yaml.safe_load() - never yaml.load().
"""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from threadcheck.models import ValidationThresholds, ValidatorOptions
from threadcheck.rag.embedder import DEFAULT_EMBEDDING_MODEL

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".threadcheck"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "threadcheck.yaml"

# Fields that suggest an API key - forbidden in global config.
# Does NOT match legitimate keys like num_retries or top_k.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"
    r"|_token$"
    r"|^token$"
    r"|_secret$"
    r"|^secret$"
    r"|passw(?:ord|d)"
    r"|credential",
    re.IGNORECASE,
)

# Known top-level sections - unknown keys produce a warning
_KNOWN_SECTIONS: frozenset[str] = frozenset(["embedding", "thresholds", "options"])


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid or forbidden value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class EmbeddingCfg:
    """Embedding model configuration (threadcheck.yaml: embedding:).

    Attributes:
        model: LiteLLM embedding model string.
        num_retries: Retries on transient provider errors.
        dimensions: Vector size for the offline hash embedder.
    """

    model: str = DEFAULT_EMBEDDING_MODEL
    num_retries: int = 3
    dimensions: int = 256


@dataclass
class ThreadcheckConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    embedding: EmbeddingCfg = field(default_factory=EmbeddingCfg)
    thresholds: dict[str, float] = field(default_factory=dict)
    options: dict[str, Any] = field(default_factory=dict)

    def validation_thresholds(self) -> ValidationThresholds:
        """Build ValidationThresholds from the ``thresholds:`` overrides."""
        return ValidationThresholds(**self.thresholds)

    def validator_options(self) -> ValidatorOptions:
        """Build ValidatorOptions from the ``options:`` overrides."""
        return ValidatorOptions(**self.options)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_api_keys(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any API-key-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _API_KEY_RE.search(str(k)):
                    raise ConfigError(
                        f"Global config '{source}' contains a forbidden key '{full}'.\n"
                        f"  API keys must be set via environment variables, not config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export {str(k).upper().replace('-', '_')}=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' - ignored.",
                UserWarning,
                stacklevel=4,
            )


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config file '{path}' is not valid YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config file '{path}' must contain a mapping at the top level.")
    return data


def _section(data: dict[str, Any], name: str, allowed: set[str]) -> dict[str, Any]:
    """Return section *name* of *data*, rejecting keys outside *allowed*."""
    raw = data.get(name) or {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Config section '{name}' must be a mapping.")
    unknown = sorted(set(raw) - allowed)
    if unknown:
        raise ConfigError(
            f"Unknown key(s) in '{name}': {', '.join(unknown)}.\n"
            f"  Allowed: {', '.join(sorted(allowed))}"
        )
    return raw


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _cfg_from_dict(data: dict[str, Any]) -> ThreadcheckConfig:
    """Build a *ThreadcheckConfig* from a merged raw YAML dict."""
    cfg = ThreadcheckConfig()

    e = _section(data, "embedding", {f.name for f in fields(EmbeddingCfg)})
    t = _section(data, "thresholds", {f.name for f in fields(ValidationThresholds)})
    try:
        cfg.embedding = EmbeddingCfg(
            model=str(e.get("model", cfg.embedding.model)),
            num_retries=int(e.get("num_retries", cfg.embedding.num_retries)),
            dimensions=int(e.get("dimensions", cfg.embedding.dimensions)),
        )
        cfg.thresholds = {k: float(v) for k, v in t.items()}
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid config value: {exc}") from exc
    cfg.options = dict(
        _section(data, "options", {f.name for f in fields(ValidatorOptions)})
    )

    if cfg.embedding.num_retries < 0:
        raise ConfigError("embedding.num_retries must be >= 0")
    if cfg.embedding.dimensions < 1:
        raise ConfigError("embedding.dimensions must be >= 1")

    # Range checks live on the model classes
    try:
        cfg.validation_thresholds()
        cfg.validator_options()
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid config value: {exc}") from exc

    return cfg


def _apply_env_overrides(cfg: ThreadcheckConfig) -> ThreadcheckConfig:
    """Apply THREADCHECK_* environment variable overrides."""
    if model := os.environ.get("THREADCHECK_EMBEDDING_MODEL"):
        cfg.embedding.model = model
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> ThreadcheckConfig:
    """Load and return a merged *ThreadcheckConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *threadcheck.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Returns:
        Fully merged *ThreadcheckConfig* with env var overrides applied.

    Raises:
        ConfigError: If a file is not valid YAML, the global config contains
            API-key-like fields, or a value is unknown or out of range.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    # Layer 1: global config
    if global_path.exists():
        raw_global = _read_yaml(global_path)
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    # Layer 2: per-project config
    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = _read_yaml(project_cfg_path)
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _cfg_from_dict(merged)

    # Layer 3: env var overrides
    return _apply_env_overrides(cfg)
