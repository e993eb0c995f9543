from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

logger = logging.getLogger(__name__)

# Current project file format version written by the exporter.
PROJECT_VERSION = 2

# Versions the loader accepts; older ones are migrated forward.
SUPPORTED_VERSIONS = (1, 2)

MAX_SCRIPT_DEPTH = 500_000
MAX_SCRIPT_OPERATIONS = 10_000_000

# Identifiers a user script may never mention.
DISABLED_SYMBOLS = frozenset(
    {
        "eval",
        "load",
        "save",
        "read",
        "write",
        "append",
        "delete",
        "copy",
        "http",
        "request",
        "fetch",
        "socket",
        "tcp",
        "udp",
        "system",
        "exec",
        "spawn",
        "command",
    }
)

DEFAULT_SIMILARITY_RESULTS = 5
DEFAULT_RELATED_WORDS_COUNT = 5
MAX_SIMILAR_TOKENS_RESULTS = 20

ENV_PREFIX = "GLOSSBENCH_"


@dataclass(frozen=True)
class Settings:
    """Runtime limits, resolved once from defaults and the environment."""

    max_script_depth: int = MAX_SCRIPT_DEPTH
    max_script_operations: int = MAX_SCRIPT_OPERATIONS
    similar_results: int = DEFAULT_SIMILARITY_RESULTS
    similar_tokens_limit: int = MAX_SIMILAR_TOKENS_RESULTS
    related_words_count: int = DEFAULT_RELATED_WORDS_COUNT


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(ENV_PREFIX + name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        logger.warning(
            "Ignoring non-integer setting",
            extra={"setting": ENV_PREFIX + name, "value": raw},
        )
        return default
    if value <= 0:
        logger.warning(
            "Ignoring non-positive setting",
            extra={"setting": ENV_PREFIX + name, "value": value},
        )
        return default
    return value


def load_settings(*, dotenv: bool = True) -> Settings:
    """Return :class:`Settings`, honouring ``GLOSSBENCH_*`` overrides.

    A ``.env`` file found from the working directory upwards is loaded first;
    values already present in the environment win over the file.
    """

    if dotenv:
        env_file = find_dotenv(".env", usecwd=True)
        if env_file:
            load_dotenv(env_file, override=False)

    return Settings(
        max_script_depth=_env_int("MAX_SCRIPT_DEPTH", MAX_SCRIPT_DEPTH),
        max_script_operations=_env_int("MAX_SCRIPT_OPERATIONS", MAX_SCRIPT_OPERATIONS),
        similar_results=_env_int("SIMILAR_RESULTS", DEFAULT_SIMILARITY_RESULTS),
        similar_tokens_limit=_env_int("SIMILAR_TOKENS_LIMIT", MAX_SIMILAR_TOKENS_RESULTS),
        related_words_count=DEFAULT_RELATED_WORDS_COUNT,
    )


def get_config_paths() -> dict[str, Path]:
    """Return canonical on-disk locations for projects and exports."""

    data_home = os.getenv("XDG_DATA_HOME")
    base = Path(data_home) if data_home else Path.home() / ".local" / "share"
    root = base / "glossbench"

    return {
        "root": root,
        "projects": root / "projects",
        "exports": root / "exports",
    }
