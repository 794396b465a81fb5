"""chunkhook configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site — not in this module)
  2. Environment variables  (CHUNKHOOK_WEBHOOK_URL, CHUNKHOOK_PROXY_BASE,
     CHUNKHOOK_DB, CHUNKHOOK_LOG_LEVEL; WEBHOOK / PROXY_BASE as fallbacks)
  3. Per-project chunkhook.yaml  (current working directory)
  4. Global ~/.chunkhook/config.yaml  (defaults only — no credentials)
  5. Hardcoded defaults

The webhook URL embeds the webhook token, so it is a credential: it may come
from the environment or a per-project file, never from the global config.
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

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".chunkhook"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "chunkhook.yaml"

# Keys that look like credentials are forbidden in the global config.
_CREDENTIAL_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"  # api_key, api-key, api_secret, apikey
    r"|_token$"                  # webhook_token, access_token (suffix)
    r"|^token$"                  # exactly "token"
    r"|_secret$"                 # client_secret (suffix)
    r"|^secret$"                 # exactly "secret"
    r"|passw(?:ord|d)"           # password, passwd
    r"|credential"               # credential, credentials
    r"|^webhook_url$",           # webhook URLs carry their token in the path
    re.IGNORECASE,
)

_KNOWN_SECTIONS: frozenset[str] = frozenset(
    ["store", "transport", "retry", "ingest", "logging"]
)

_LOG_LEVELS: frozenset[str] = frozenset(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid or forbidden value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class StoreCfg:
    """Metadata store location (chunkhook.yaml: store:)."""

    db_path: str = "app-data/store.db"


@dataclass
class TransportCfg:
    """Remote endpoint settings (chunkhook.yaml: transport:).

    Attributes:
        webhook_url: Upload endpoint. Discord-style webhooks need ``?wait=true``
            so the reply carries the attachment URL.
        proxy_base: Optional download proxy; chunks are fetched from
            ``{proxy_base}/?{locator}``.
        timeout: Per-request timeout in seconds.
        field_name: Multipart form field carrying the chunk bytes.
    """

    webhook_url: str = ""
    proxy_base: str | None = None
    timeout: float = 60.0
    field_name: str = "file"


@dataclass
class RetryCfg:
    """Backoff for transient transport failures (chunkhook.yaml: retry:)."""

    max_attempts: int = 5
    base_delay: float = 1.0
    multiplier: float = 2.0
    max_delay: float = 60.0
    jitter: float = 0.1


@dataclass
class IngestCfg:
    """Chunking and upload concurrency (chunkhook.yaml: ingest:)."""

    chunk_size: int = 2_000_000
    workers: int = 4


@dataclass
class LoggingCfg:
    """Log verbosity (chunkhook.yaml: logging:)."""

    level: str = "WARNING"


@dataclass
class ChunkhookConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    store: StoreCfg = field(default_factory=StoreCfg)
    transport: TransportCfg = field(default_factory=TransportCfg)
    retry: RetryCfg = field(default_factory=RetryCfg)
    ingest: IngestCfg = field(default_factory=IngestCfg)
    logging: LoggingCfg = field(default_factory=LoggingCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_credentials(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any credential-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _CREDENTIAL_RE.search(str(k)):
                    raise ConfigError(
                        f"Global config '{source}' contains a forbidden key '{full}'.\n"
                        f"  Credentials must be set via environment variables or the\n"
                        f"  per-project {_PROJECT_CONFIG_NAME}, not the global config.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export CHUNKHOOK_{str(k).upper().replace('-', '_')}=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def validate_url(name: str, url: str | None) -> None:
    if url and not url.startswith(("http://", "https://")):
        raise ConfigError(f"{name} must be an http(s):// URL, got '{url}'")


def _validate(cfg: ChunkhookConfig) -> None:
    validate_url("transport.webhook_url", cfg.transport.webhook_url)
    validate_url("transport.proxy_base", cfg.transport.proxy_base)
    if cfg.ingest.chunk_size < 1:
        raise ConfigError("ingest.chunk_size must be >= 1")
    if cfg.ingest.workers < 1:
        raise ConfigError("ingest.workers must be >= 1")
    if cfg.retry.max_attempts < 1:
        raise ConfigError("retry.max_attempts must be >= 1")
    if cfg.retry.base_delay < 0 or cfg.retry.max_delay < 0:
        raise ConfigError("retry.base_delay and retry.max_delay must be >= 0")
    if cfg.retry.multiplier < 1:
        raise ConfigError("retry.multiplier must be >= 1")
    if cfg.retry.jitter < 0:
        raise ConfigError("retry.jitter must be >= 0")
    if cfg.transport.timeout <= 0:
        raise ConfigError("transport.timeout must be > 0")
    if cfg.logging.level not in _LOG_LEVELS:
        raise ConfigError(
            f"logging.level must be one of {', '.join(sorted(_LOG_LEVELS))}, "
            f"got '{cfg.logging.level}'"
        )


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' — ignored.",
                UserWarning,
                stacklevel=4,
            )


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


def _cfg_from_dict(data: dict[str, Any]) -> ChunkhookConfig:
    """Build a *ChunkhookConfig* from a merged raw YAML dict."""
    cfg = ChunkhookConfig()

    try:
        if "store" in data:
            s = data["store"]
            cfg.store = StoreCfg(db_path=str(s.get("db_path", cfg.store.db_path)))

        if "transport" in data:
            t = data["transport"]
            cfg.transport = TransportCfg(
                webhook_url=str(t.get("webhook_url") or cfg.transport.webhook_url),
                proxy_base=t.get("proxy_base") or cfg.transport.proxy_base,
                timeout=float(t.get("timeout", cfg.transport.timeout)),
                field_name=str(t.get("field_name", cfg.transport.field_name)),
            )

        if "retry" in data:
            r = data["retry"]
            cfg.retry = RetryCfg(
                max_attempts=int(r.get("max_attempts", cfg.retry.max_attempts)),
                base_delay=float(r.get("base_delay", cfg.retry.base_delay)),
                multiplier=float(r.get("multiplier", cfg.retry.multiplier)),
                max_delay=float(r.get("max_delay", cfg.retry.max_delay)),
                jitter=float(r.get("jitter", cfg.retry.jitter)),
            )

        if "ingest" in data:
            i = data["ingest"]
            cfg.ingest = IngestCfg(
                chunk_size=int(i.get("chunk_size", cfg.ingest.chunk_size)),
                workers=int(i.get("workers", cfg.ingest.workers)),
            )

        if "logging" in data:
            lg = data["logging"]
            cfg.logging = LoggingCfg(level=str(lg.get("level", cfg.logging.level)).upper())
    except (AttributeError, TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid config value: {exc}") from exc

    return cfg


def _apply_env_overrides(cfg: ChunkhookConfig) -> ChunkhookConfig:
    """Apply CHUNKHOOK_* environment variable overrides (layer 2)."""
    if url := os.environ.get("CHUNKHOOK_WEBHOOK_URL") or os.environ.get("WEBHOOK"):
        cfg.transport.webhook_url = url
    if proxy := os.environ.get("CHUNKHOOK_PROXY_BASE") or os.environ.get("PROXY_BASE"):
        cfg.transport.proxy_base = proxy
    if db := os.environ.get("CHUNKHOOK_DB"):
        cfg.store.db_path = db
    if level := os.environ.get("CHUNKHOOK_LOG_LEVEL"):
        cfg.logging.level = level.upper()
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> ChunkhookConfig:
    """Load and return a merged *ChunkhookConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *chunkhook.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Returns:
        Fully merged *ChunkhookConfig* with env var overrides applied.

    Raises:
        ConfigError: If the global config contains credential-like fields, or
            any value is out of range.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    # Layer 1: global config
    if global_path.exists():
        raw_global = yaml.safe_load(global_path.read_text(encoding="utf-8")) or {}
        _check_no_credentials(raw_global, global_path)
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
    cfg = _apply_env_overrides(cfg)

    _validate(cfg)
    return cfg


def ensure_global_config(
    global_config_path: Path | None = None,
) -> Path:
    """Create ``~/.chunkhook/config.yaml`` with defaults if it does not exist.

    Creates parent directory with mode 0o700 and the config file with
    mode 0o600 (owner-readable only).

    Args:
        global_config_path: Override path (for testing).

    Returns:
        Path to the global config file.
    """
    target = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    target.parent.mkdir(mode=0o700, parents=True, exist_ok=True)

    if not target.exists():
        content = (
            "# chunkhook global configuration (defaults only).\n"
            "# NEVER store the webhook URL here; it contains the webhook token:\n"
            "#   export CHUNKHOOK_WEBHOOK_URL=https://discord.com/api/webhooks/<id>/<token>?wait=true\n"
            "\n"
            "ingest:\n"
            "  chunk_size: 2000000\n"
            "  workers: 4\n"
            "\n"
            "retry:\n"
            "  max_attempts: 5\n"
            "  base_delay: 1.0\n"
            "  max_delay: 60.0\n"
        )
        target.write_text(content, encoding="utf-8")
        target.chmod(0o600)

    return target
