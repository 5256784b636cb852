import os

from .logging import get_logger

log = get_logger("paths")


def expand_abs(path: str) -> str:
    """Expand env vars and ~ then return absolute path."""
    return os.path.abspath(os.path.expanduser(os.path.expandvars(path or "")))


def find_project_root(start_dir: str | None = None) -> str:
    """Find the repository root by walking upward from start_dir.

    Looks for common markers: .git/, pyproject.toml, README.md.
    Falls back to absolute(start_dir) if nothing found.
    """
    start = os.path.abspath(start_dir or os.getcwd() or ".")
    d = start
    while True:
        if os.path.isdir(os.path.join(d, ".git")):
            return d
        for marker in ("pyproject.toml", "README.md"):
            if os.path.isfile(os.path.join(d, marker)):
                return d
        parent = os.path.dirname(d)
        if parent == d:
            log.debug(f"No project marker above {start}; using it as root")
            return start
        d = parent


def var_dir(root_dir: str) -> str:
    """Return the absolute var directory under the project root."""
    return os.path.join(os.path.abspath(root_dir), "var")


def default_pattern_path(root_dir: str, backend: str = "json") -> str:
    """Location of the learned-pattern store under var/patterns."""
    filename = "patterns.sqlite3" if backend == "sqlite" else "patterns.json"
    return os.path.join(var_dir(root_dir), "patterns", filename)


def default_order_log_path(root_dir: str) -> str:
    """Location of the local JSONL order log used when no HTTP sink is set."""
    return os.path.join(var_dir(root_dir), "orders", "orders.jsonl")
