import os
from pathlib import Path


def _load_env_file(path: Path) -> None:
    if not path.exists():
        return
    try:
        for line in path.read_text(encoding="utf-8").splitlines():
            stripped = line.strip()
            if not stripped or stripped.startswith("#") or "=" not in stripped:
                continue
            key, value = stripped.split("=", 1)
            key = key.strip()
            if not key or key in os.environ:
                continue
            cleaned = value.strip().strip('"').strip("'")
            os.environ[key] = cleaned
    except OSError:
        return


def _load_env() -> None:
    current = Path(__file__).resolve()
    for candidate in (current.parents[2] / ".env", Path.cwd() / ".env"):
        _load_env_file(candidate)


_load_env()


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _default_database_url() -> str:
    explicit_path = os.getenv("GGTRACKER_DB_PATH", "").strip()
    if explicit_path:
        return f"sqlite:///{Path(explicit_path).as_posix()}"

    project_root = Path(__file__).resolve().parents[2]
    dev_db = (project_root / "ggtracker.db").resolve()
    return f"sqlite:///{dev_db.as_posix()}"


DATABASE_URL = os.getenv("DATABASE_URL", _default_database_url())
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "10"))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "20"))
DB_POOL_RECYCLE = int(os.getenv("DB_POOL_RECYCLE", "3600"))
DB_ECHO = _env_flag("DB_ECHO")

LOG_LEVEL = os.getenv("GGTRACKER_LOG_LEVEL", "INFO").strip().upper() or "INFO"

# Genre affinity tuning. Owned games contribute multiplier * playtime,
# decided suggestions a flat amount per genre.
LIKED_PLAYTIME_MULTIPLIER = _env_float("REC_LIKED_PLAYTIME_MULTIPLIER", 2.0)
DISLIKED_PLAYTIME_MULTIPLIER = _env_float("REC_DISLIKED_PLAYTIME_MULTIPLIER", 0.75)
ADDED_SUGGESTION_WEIGHT = _env_float("REC_ADDED_SUGGESTION_WEIGHT", 2.0)
DISMISSED_SUGGESTION_WEIGHT = _env_float("REC_DISMISSED_SUGGESTION_WEIGHT", -1.0)
