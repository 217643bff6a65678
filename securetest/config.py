"""
SecureTest - Configuration Management
Centralized configuration for the API server, scanner and storage.
"""

import os
import json
from pathlib import Path
from dataclasses import dataclass, field
from typing import List, Optional


# Base paths
PROJECT_ROOT = Path(__file__).parent.parent.resolve()
DATA_DIR = PROJECT_ROOT / "data"
LOGS_DIR = PROJECT_ROOT / "logs"

# Persistence files
CONFIG_FILE = DATA_DIR / "config.json"
DEFAULT_DB_PATH = DATA_DIR / "securetest.db"

SCANNER_USER_AGENT = "SecureTest Platform Scanner/1.0"

DEFAULT_PORTS: List[int] = [21, 22, 23, 25, 53, 80, 110, 143, 443, 3306, 5432, 8080]


@dataclass
class APIConfig:
    """Backend API configuration."""
    host: str = "127.0.0.1"
    port: int = 5000
    cors_origins: List[str] = field(default_factory=lambda: ["*"])


@dataclass
class ScannerConfig:
    """Outbound probing configuration."""
    user_agent: str = SCANNER_USER_AGENT
    # Applies to every probe request; port probing has its own, shorter timeout
    probe_timeout: float = 10.0
    port_timeout: float = 1.0
    follow_redirects: bool = True
    verify_tls: bool = False
    default_ports: List[int] = field(default_factory=lambda: list(DEFAULT_PORTS))


@dataclass
class StorageConfig:
    """SQLite storage configuration."""
    db_path: Path = DEFAULT_DB_PATH


@dataclass
class AppConfig:
    """Overall application configuration."""
    api: APIConfig = field(default_factory=APIConfig)
    scanner: ScannerConfig = field(default_factory=ScannerConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)


def ensure_dirs():
    """Create all required directories."""
    for d in [DATA_DIR, LOGS_DIR]:
        d.mkdir(parents=True, exist_ok=True)


# ── User Config Persistence ───────────────────────────────────────

def load_user_config(path: Optional[Path] = None) -> dict:
    """Load user config overrides (api port, probe timeout, etc)."""
    config_file = path or CONFIG_FILE
    if not config_file.exists():
        return {}
    try:
        with open(config_file, 'r') as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        print(f"[Config] Ignoring unreadable {config_file}: {e}")
        return {}
    if not isinstance(data, dict):
        print(f"[Config] Ignoring {config_file}: expected a JSON object")
        return {}
    return data


def save_user_config(config: dict, path: Optional[Path] = None):
    """Save user config overrides, merged over the existing file."""
    config_file = path or CONFIG_FILE
    config_file.parent.mkdir(parents=True, exist_ok=True)
    existing = load_user_config(config_file)
    existing.update(config)
    with open(config_file, 'w') as f:
        json.dump(existing, f, indent=2)


def _coerce(value, cast, source: str):
    """Cast an override value, or return None (with a note) if it is unusable."""
    try:
        return cast(value)
    except (TypeError, ValueError):
        print(f"[Config] Ignoring {source}={value!r}: expected {cast.__name__}")
        return None


def _apply_overrides(cfg: AppConfig, overrides: dict):
    if 'api_port' in overrides:
        port = _coerce(overrides['api_port'], int, "api_port")
        if port is not None:
            cfg.api.port = port
    if 'probe_timeout' in overrides:
        timeout = _coerce(overrides['probe_timeout'], float, "probe_timeout")
        if timeout is not None:
            cfg.scanner.probe_timeout = timeout
    if overrides.get('user_agent'):
        cfg.scanner.user_agent = str(overrides['user_agent'])
    if overrides.get('db_path'):
        db_path = _coerce(overrides['db_path'], Path, "db_path")
        if db_path is not None:
            cfg.storage.db_path = db_path.expanduser()


def get_config(config_file: Optional[Path] = None) -> AppConfig:
    """Get the current configuration.

    Defaults are merged with the persisted JSON overrides, then with
    ``SECURETEST_*`` environment variables (highest precedence). Values that
    do not parse are skipped and the lower layer's value is kept.
    """
    cfg = AppConfig()
    _apply_overrides(cfg, load_user_config(config_file))

    env = os.environ
    if env.get("SECURETEST_API_HOST", "").strip():
        cfg.api.host = env["SECURETEST_API_HOST"].strip()
    if env.get("SECURETEST_API_PORT", "").strip():
        port = _coerce(env["SECURETEST_API_PORT"].strip(), int, "SECURETEST_API_PORT")
        if port is not None:
            cfg.api.port = port
    if env.get("SECURETEST_DB_PATH", "").strip():
        cfg.storage.db_path = Path(env["SECURETEST_DB_PATH"].strip()).expanduser()
    if env.get("SECURETEST_PROBE_TIMEOUT", "").strip():
        timeout = _coerce(env["SECURETEST_PROBE_TIMEOUT"].strip(), float, "SECURETEST_PROBE_TIMEOUT")
        if timeout is not None:
            cfg.scanner.probe_timeout = timeout

    return cfg
