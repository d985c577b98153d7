"""repowiki configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site — not in this module)
  2. Environment variables  (PARALLEL_COUNT, REPOWIKI_GENERATION_MODEL, REPOWIKI_LOG_LEVEL)
  3. Per-project repowiki.yaml
  4. Global ~/.repowiki/config.yaml  (defaults only — no credentials)
  5. Hardcoded defaults

Global config must never contain credentials or API keys; repository
credentials live on the repository record, API keys in environment variables.
All YAML reads use yaml.safe_load() — never yaml.load().
"""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".repowiki"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "repowiki.yaml"

# Fields that suggest a credential: forbidden in global config.
# Matches: api_key, apikey, api-key, api_secret, _token (suffix), standalone token,
# standalone secret, _secret (suffix), password, passwd, credential(s).
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

# Known top-level sections; unknown keys produce a warning
_KNOWN_SECTIONS: frozenset[str] = frozenset(["pipeline", "storage", "generation", "logging"])


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid or forbidden value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class PipelineCfg:
    """Worker pool and recovery settings (repowiki.yaml: pipeline:)."""

    parallel_count: int = 1
    queue_capacity: int = 100
    startup_delay: float = 1.0


@dataclass
class StorageCfg:
    """Where records, clones and generated documents live (repowiki.yaml: storage:)."""

    db: str = ".repowiki.db"
    workspace: str = ".repowiki/repositories"
    output: str = ".repowiki/docs"


@dataclass
class GenerationCfg:
    """LLM generation configuration (repowiki.yaml: generation:)."""

    model: str = "openai/gpt-4o"
    max_files: int = 200


@dataclass
class LoggingCfg:
    """Log output (repowiki.yaml: logging:)."""

    level: str = "INFO"
    json: bool = False


@dataclass
class RepowikiConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    pipeline: PipelineCfg = field(default_factory=PipelineCfg)
    storage: StorageCfg = field(default_factory=StorageCfg)
    generation: GenerationCfg = field(default_factory=GenerationCfg)
    logging: LoggingCfg = field(default_factory=LoggingCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_api_keys(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any credential-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _API_KEY_RE.search(str(k)):
                    raise ConfigError(
                        f"Global config '{source}' contains a forbidden key '{full}'.\n"
                        f"  Credentials must be set via environment variables, not config files.\n"
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
                f"Unknown config key '{key}' in '{source}' — ignored.",
                UserWarning,
                stacklevel=4,
            )


def parse_parallel_count(raw: Any, default: int = 1) -> int:
    """Return *raw* as a worker count, or *default* when absent or invalid.

    Invalid means not an integer, or below 1. Invalid values emit a warning.
    """
    if raw is None or raw == "":
        return default
    try:
        if isinstance(raw, bool):
            raise ValueError
        value = int(str(raw).strip())
    except ValueError:
        value = 0
    if value < 1:
        warnings.warn(
            f"Invalid parallel_count {raw!r} — using {default}.",
            UserWarning,
            stacklevel=2,
        )
        return default
    return value


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


def _cfg_from_dict(data: dict[str, Any]) -> RepowikiConfig:
    """Build a *RepowikiConfig* from a merged raw YAML dict."""
    cfg = RepowikiConfig()

    if "pipeline" in data:
        p = data["pipeline"] or {}
        cfg.pipeline = PipelineCfg(
            parallel_count=parse_parallel_count(p.get("parallel_count")),
            queue_capacity=max(1, int(p.get("queue_capacity", cfg.pipeline.queue_capacity))),
            startup_delay=max(0.0, float(p.get("startup_delay", cfg.pipeline.startup_delay))),
        )

    if "storage" in data:
        s = data["storage"] or {}
        cfg.storage = StorageCfg(
            db=str(s.get("db", cfg.storage.db)),
            workspace=str(s.get("workspace", cfg.storage.workspace)),
            output=str(s.get("output", cfg.storage.output)),
        )

    if "generation" in data:
        g = data["generation"] or {}
        cfg.generation = GenerationCfg(
            model=str(g.get("model", cfg.generation.model)),
            max_files=int(g.get("max_files", cfg.generation.max_files)),
        )

    if "logging" in data:
        lg = data["logging"] or {}
        cfg.logging = LoggingCfg(
            level=str(lg.get("level", cfg.logging.level)),
            json=bool(lg.get("json", cfg.logging.json)),
        )

    return cfg


def _apply_env_overrides(cfg: RepowikiConfig) -> RepowikiConfig:
    """Apply environment variable overrides (layer 2)."""
    if (count := os.environ.get("PARALLEL_COUNT")) is not None:
        cfg.pipeline.parallel_count = parse_parallel_count(count)
    if model := os.environ.get("REPOWIKI_GENERATION_MODEL"):
        cfg.generation.model = model
    if level := os.environ.get("REPOWIKI_LOG_LEVEL"):
        cfg.logging.level = level
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> RepowikiConfig:
    """Load and return a merged *RepowikiConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *repowiki.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Returns:
        Fully merged *RepowikiConfig* with env var overrides applied.

    Raises:
        ConfigError: If global config contains credential-like fields.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    # Layer 1: global config
    if global_path.exists():
        raw_global = yaml.safe_load(global_path.read_text(encoding="utf-8")) or {}
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    # Layer 2: per-project config
    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = yaml.safe_load(project_cfg_path.read_text(encoding="utf-8")) or {}
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _cfg_from_dict(merged)

    # Layer 3: env var overrides
    return _apply_env_overrides(cfg)
