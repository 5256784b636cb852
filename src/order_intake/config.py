import os
from dataclasses import dataclass
from typing import Dict, Optional

from dotenv import dotenv_values

from .logging import get_logger
from .paths import default_order_log_path, default_pattern_path, expand_abs, find_project_root

log = get_logger("config")

PATTERN_BACKENDS = ("json", "sqlite")


def _find_upwards(start_dir: str, filename: str) -> Optional[str]:
    """Return first matching file found when walking up from start_dir.

    This makes running tools from subdirectories (e.g., `src/`) still find
    repository-level config files like `.env`.
    """
    d = os.path.abspath(start_dir or ".")
    while True:
        candidate = os.path.join(d, filename)
        if os.path.isfile(candidate):
            return candidate
        parent = os.path.dirname(d)
        if parent == d:
            return None
        d = parent


def _read_dotenv(dotenv_dir: str) -> Dict[str, str]:
    """Read the nearest .env without mutating the process environment."""
    path = _find_upwards(dotenv_dir, ".env")
    if not path:
        log.debug(f"No .env found starting from: {os.path.abspath(dotenv_dir)}")
        return {}
    try:
        values = dotenv_values(path)
    except (OSError, UnicodeDecodeError) as e:
        log.warning(f"Failed reading .env: {e}")
        return {}
    env = {k: v.strip() for k, v in values.items() if v is not None}
    log.debug(f"Loaded {len(env)} key(s) from .env at {path}")
    return env


def _lookup(key: str, env: Dict[str, str]) -> Optional[str]:
    v = os.environ.get(key)
    if v and v.strip():
        return v.strip()
    v = env.get(key)
    return v if v else None


@dataclass
class IntakeConfig:
    repo_root: str
    pattern_backend: str
    pattern_path: str
    catalog_path: Optional[str]
    sink_url: Optional[str]
    sink_token: Optional[str]
    sink_timeout: int
    order_log_path: str


def build_intake_config(args=None, *, script_dir: Optional[str] = None) -> IntakeConfig:
    """Resolve settings from CLI args, then env, then the nearest .env."""
    script_dir = script_dir or os.getcwd()
    env = _read_dotenv(script_dir)
    repo_root = find_project_root(script_dir)

    backend = (getattr(args, "pattern_backend", None) or _lookup("ORDER_INTAKE_PATTERN_BACKEND", env) or "json").lower()
    if backend not in PATTERN_BACKENDS:
        log.warning(f"Unknown pattern backend {backend!r}; falling back to json")
        backend = "json"

    pattern_path = getattr(args, "patterns", None) or _lookup("ORDER_INTAKE_PATTERN_PATH", env)
    pattern_path = expand_abs(pattern_path) if pattern_path else default_pattern_path(repo_root, backend)

    catalog_path = getattr(args, "catalog", None) or _lookup("ORDER_INTAKE_CATALOG", env)
    catalog_path = expand_abs(catalog_path) if catalog_path else None

    raw_timeout = _lookup("ORDER_SINK_TIMEOUT", env)
    try:
        timeout = int(raw_timeout) if raw_timeout else 30
    except ValueError:
        log.warning(f"ORDER_SINK_TIMEOUT={raw_timeout!r} is not an integer; using 30s")
        timeout = 30

    config = IntakeConfig(
        repo_root=repo_root,
        pattern_backend=backend,
        pattern_path=pattern_path,
        catalog_path=catalog_path,
        sink_url=getattr(args, "sink_url", None) or _lookup("ORDER_SINK_URL", env),
        sink_token=_lookup("ORDER_SINK_TOKEN", env),
        sink_timeout=timeout,
        order_log_path=default_order_log_path(repo_root),
    )
    log.debug(f"Pattern store      : {config.pattern_backend} @ {config.pattern_path}")
    log.debug(f"Catalog            : {config.catalog_path or '(none)'}")
    log.debug(f"Order sink         : {config.sink_url or config.order_log_path}")
    return config
