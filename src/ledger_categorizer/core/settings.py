import os
from collections.abc import Callable
from typing import TypeVar

from dotenv import find_dotenv, load_dotenv

from ledger_categorizer.logger import get_logger

logger = get_logger(__name__)


CONFIG_FILENAME = "config.yaml"

_CONFIG_FILE_PATH: str | None = None
_CONFIG_FILE_VALUES: dict[str, str] = {}

_CONFIG_KEYS = (
    "LOG_LEVEL",
    "LOG_DIR",
    "DATA_DIR",
    "DEFAULT_CONFIDENCE_THRESHOLD",
    "LEVENSHTEIN_MIN_SCORE",
    "CATEGORIZE_WORKERS",
)


def _resolve_dotenv_path() -> str | None:
    config_dir = os.getenv("CONFIG_DIR")
    if config_dir:
        candidate = os.path.join(config_dir, ".env")
        if os.path.exists(candidate):
            return candidate
    resolved = find_dotenv(usecwd=True)
    return resolved or None


def _resolve_config_path() -> str:
    config_dir = os.getenv("CONFIG_DIR")
    if config_dir:
        return os.path.join(config_dir, CONFIG_FILENAME)
    cwd = os.getcwd()
    candidate = os.path.join(cwd, "config", CONFIG_FILENAME)
    if os.path.exists(candidate):
        return candidate
    return os.path.join(cwd, CONFIG_FILENAME)


def _strip_inline_comment(raw_value: str) -> str:
    in_single = False
    in_double = False
    for index, char in enumerate(raw_value):
        if char == '"' and not in_single:
            in_double = not in_double
        elif char == "'" and not in_double:
            in_single = not in_single
        elif char == "#" and not in_single and not in_double:
            return raw_value[:index].rstrip()
    return raw_value


def _unquote_value(raw_value: str) -> str:
    if len(raw_value) >= 2 and raw_value[0] == raw_value[-1] and raw_value[0] in {'"', "'"}:
        return raw_value[1:-1]
    return raw_value


def read_config_file(path: str | None) -> dict[str, str]:
    """Read flat ``KEY: value`` lines; nested YAML is not supported."""
    if not path or not os.path.exists(path):
        return {}

    values: dict[str, str] = {}
    with open(path, encoding="utf-8") as handle:
        for line in handle:
            stripped = line.strip()
            if not stripped or stripped.startswith("#") or ":" not in stripped:
                continue
            key, raw_value = stripped.split(":", 1)
            key = key.strip()
            if not key:
                continue
            value = _unquote_value(_strip_inline_comment(raw_value).strip())
            if value:
                values[key] = value
    return values


def load_environment() -> None:
    global _CONFIG_FILE_PATH
    global _CONFIG_FILE_VALUES

    dotenv_path = _resolve_dotenv_path()
    if dotenv_path:
        load_dotenv(dotenv_path=dotenv_path, override=False)

    _CONFIG_FILE_PATH = _resolve_config_path()
    _CONFIG_FILE_VALUES = read_config_file(_CONFIG_FILE_PATH)

    for key in _CONFIG_KEYS:
        if key not in os.environ and key in _CONFIG_FILE_VALUES:
            os.environ[key] = _CONFIG_FILE_VALUES[key]


def get_config_path() -> str | None:
    return _CONFIG_FILE_PATH


def ensure_dirs(*paths: str | None) -> None:
    for path in paths:
        if path and path not in {".", "./"}:
            os.makedirs(path, exist_ok=True)


Number = TypeVar("Number", int, float)


def _env_number(
    name: str,
    default: Number,
    parse: Callable[[str], Number],
    min_value: Number | None = None,
    max_value: Number | None = None,
) -> Number:
    """Parse a numeric variable; anything unparsable or out of range falls back to ``default``."""
    raw = os.getenv(name)
    if not raw or not raw.strip():
        return default
    try:
        value = parse(raw.strip())
    except ValueError:
        logger.warning("[ENV] Invalid %s='%s', using default %s.", name, raw, default)
        return default
    if value != value or (min_value is not None and value < min_value) or (
        max_value is not None and value > max_value
    ):
        logger.warning(
            "[ENV] %s='%s' outside [%s, %s], using default %s.",
            name,
            raw,
            "-inf" if min_value is None else min_value,
            "inf" if max_value is None else max_value,
            default,
        )
        return default
    return value


def get_env_int(name: str, default: int, min_value: int | None = None) -> int:
    return _env_number(name, default, int, min_value)


def get_env_float(
    name: str,
    default: float = 0.0,
    min_value: float | None = None,
    max_value: float | None = None,
) -> float:
    return _env_number(name, default, float, min_value, max_value)


def log_environment() -> None:
    logger.info("[ENV] Config file: %s", get_config_path() or "<none>")
    for key in (*_CONFIG_KEYS, "CONFIG_DIR"):
        raw_value = os.getenv(key)
        logger.info("[ENV] %s=%s", key, "<unset>" if raw_value is None else raw_value)


DEFAULT_WORKERS = 4
CATEGORIES_FILENAME = "categories.json"
SETTINGS_FILENAME = "settings.json"


load_environment()

DATA_DIR = os.getenv("DATA_DIR", ".")
LOG_DIR = os.getenv("LOG_DIR")
CONFIG_DIR = os.getenv("CONFIG_DIR")

ensure_dirs(DATA_DIR, LOG_DIR, CONFIG_DIR)

DEFAULT_CONFIDENCE_THRESHOLD = get_env_float(
    "DEFAULT_CONFIDENCE_THRESHOLD",
    0.5,
    min_value=0.0,
    max_value=1.0,
)
LEVENSHTEIN_MIN_SCORE = get_env_float(
    "LEVENSHTEIN_MIN_SCORE",
    0.5,
    min_value=0.0,
    max_value=1.0,
)
CATEGORIZE_WORKERS = get_env_int("CATEGORIZE_WORKERS", DEFAULT_WORKERS, min_value=1)
