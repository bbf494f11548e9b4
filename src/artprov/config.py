"""Configuration management for artprov."""

import os
import tomllib
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, model_validator

from .ledger import DEFAULT_INDEX_KEY, DEFAULT_RECORD_PREFIX, RECORD_ID_PATTERN

DEFAULT_CHAIN_ID = 31337
DEFAULT_DURATION_DAYS = 30


def _find_repo_root(start_dir: Path) -> Path:
    """Find repository root by walking upward looking for .git or pyproject.toml."""
    current_dir = start_dir

    while True:
        if (current_dir / ".git").exists() or (current_dir / "pyproject.toml").exists():
            return current_dir

        parent_dir = current_dir.parent

        # Stop if we reach filesystem root
        if parent_dir == current_dir:
            return start_dir

        current_dir = parent_dir


def _load_repo_config_data(repo_root: Path) -> Optional[dict]:
    """Load repo config data from .artprov/config.toml if it exists."""
    config_file = repo_root / ".artprov" / "config.toml"

    if not config_file.exists():
        return None

    try:
        with open(config_file, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError):
        # If config file is malformed, ignore it
        return None


def _get_repo_config_value(data: Optional[dict], keys: list[str]) -> Optional[Any]:
    """Safely get a nested scalar repo config value."""
    if not data:
        return None
    current: Any = data
    for key in keys:
        if not isinstance(current, dict) or key not in current:
            return None
        current = current[key]
    if isinstance(current, (str, int, float, bool)):
        return current
    return None


def _pick(cli_value: Any, repo_value: Any, env_name: str, default: Any) -> Any:
    """Resolve one setting: CLI, then repo config, then environment, then default."""
    if cli_value is not None:
        return cli_value
    if repo_value is not None:
        return repo_value
    env_value = os.environ.get(env_name)
    if env_value:
        return env_value
    return default


class ArtProvConfig(BaseModel):
    """Configuration for the local store, ledger keys and disclosure session."""

    store_path: Path = Field(default=Path(".artprov/store.json"))
    key_path: Path = Field(default=Path(".artprov/signing_key.pem"))
    index_key: str = Field(default=DEFAULT_INDEX_KEY, min_length=1)
    record_prefix: str = Field(default=DEFAULT_RECORD_PREFIX, min_length=1)
    chain_id: int = Field(default=DEFAULT_CHAIN_ID)
    duration_days: int = Field(default=DEFAULT_DURATION_DAYS, ge=1)

    model_config = {"frozen": False}

    @model_validator(mode="after")
    def _check_key_namespace(self) -> "ArtProvConfig":
        if self.index_key.startswith(self.record_prefix):
            suffix = self.index_key[len(self.record_prefix):]
            if RECORD_ID_PATTERN.fullmatch(suffix):
                raise ValueError(
                    f"index_key {self.index_key!r} can collide with a record key under prefix {self.record_prefix!r}"
                )
        return self

    @classmethod
    def from_env(
        cls,
        cli_store_path: Optional[str] = None,
        cli_key_path: Optional[str] = None,
    ) -> "ArtProvConfig":
        """Load configuration.

        Precedence for every setting:

        1. CLI option (store and key paths only)
        2. repo-local .artprov/config.toml (walk upward from CWD)
        3. ARTPROV_* environment variables
        4. Defaults

        Relative paths from the repo config are resolved against the repo root.
        """
        repo_root = _find_repo_root(Path.cwd())
        repo_config = _load_repo_config_data(repo_root)

        repo_store = _get_repo_config_value(repo_config, ["store", "path"])
        repo_key = _get_repo_config_value(repo_config, ["signer", "key_path"])

        return cls(
            store_path=Path(
                _pick(
                    cli_store_path,
                    str(repo_root / repo_store) if repo_store else None,
                    "ARTPROV_STORE_PATH",
                    ".artprov/store.json",
                )
            ),
            key_path=Path(
                _pick(
                    cli_key_path,
                    str(repo_root / repo_key) if repo_key else None,
                    "ARTPROV_KEY_PATH",
                    ".artprov/signing_key.pem",
                )
            ),
            index_key=_pick(
                None,
                _get_repo_config_value(repo_config, ["ledger", "index_key"]),
                "ARTPROV_INDEX_KEY",
                DEFAULT_INDEX_KEY,
            ),
            record_prefix=_pick(
                None,
                _get_repo_config_value(repo_config, ["ledger", "record_prefix"]),
                "ARTPROV_RECORD_PREFIX",
                DEFAULT_RECORD_PREFIX,
            ),
            chain_id=int(
                _pick(
                    None,
                    _get_repo_config_value(repo_config, ["disclosure", "chain_id"]),
                    "ARTPROV_CHAIN_ID",
                    DEFAULT_CHAIN_ID,
                )
            ),
            duration_days=int(
                _pick(
                    None,
                    _get_repo_config_value(repo_config, ["disclosure", "duration_days"]),
                    "ARTPROV_DURATION_DAYS",
                    DEFAULT_DURATION_DAYS,
                )
            ),
        )

    def to_toml_str(self) -> str:
        """Generate a .artprov/config.toml template."""
        return f"""# artprov configuration

[store]
path = "{self.store_path.as_posix()}"

[signer]
key_path = "{self.key_path.as_posix()}"

[ledger]
index_key = "{self.index_key}"
record_prefix = "{self.record_prefix}"

[disclosure]
chain_id = {self.chain_id}
duration_days = {self.duration_days}
"""
