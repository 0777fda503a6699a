# =============================================================================
# Configuration Management
# =============================================================================
# Handles loading, saving, and validating Kestrel configuration.
#
# XDG Base Directory Compliance (https://specifications.freedesktop.org/basedir-spec/):
#   - Config:  $XDG_CONFIG_HOME/kestrel/  (default: ~/.config/kestrel/)
#   - Data:    $XDG_DATA_HOME/kestrel/    (default: ~/.local/share/kestrel/)
#   - Cache:   $XDG_CACHE_HOME/kestrel/   (default: ~/.cache/kestrel/)
#   - State:   $XDG_STATE_HOME/kestrel/   (default: ~/.local/state/kestrel/)
#
# Files:
#   - config.toml: Accounts, sync timing and list presentation
#   - layout.json: Pane proportions (in state directory)
#   - kestrel.log: Rotating application log (in state directory)
# =============================================================================

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import tomli_w

from kestrel.core import Account


# =============================================================================
# XDG Directory Management
# =============================================================================

# Directory name under each XDG base
APP_NAME = "kestrel"


def _xdg_dir(env_var: str, *fallback: str) -> Path:
    value = os.environ.get(env_var)
    base = Path(value) if value else Path.home().joinpath(*fallback)
    return base / APP_NAME


def get_xdg_config_home() -> Path:
    """Returns $XDG_CONFIG_HOME/kestrel, defaulting to ~/.config/kestrel/."""
    return _xdg_dir("XDG_CONFIG_HOME", ".config")


def get_xdg_data_home() -> Path:
    """Returns $XDG_DATA_HOME/kestrel, defaulting to ~/.local/share/kestrel/."""
    return _xdg_dir("XDG_DATA_HOME", ".local", "share")


def get_xdg_cache_home() -> Path:
    """Returns $XDG_CACHE_HOME/kestrel, defaulting to ~/.cache/kestrel/."""
    return _xdg_dir("XDG_CACHE_HOME", ".cache")


def get_xdg_state_home() -> Path:
    """
    Returns $XDG_STATE_HOME/kestrel, defaulting to ~/.local/state/kestrel/.

    State is like cache but shouldn't be shared across machines (pane
    layout, logs).
    """
    return _xdg_dir("XDG_STATE_HOME", ".local", "state")


def ensure_directories() -> dict[str, Path]:
    """
    Create the config, data, cache and state directories.

    Returns:
        The directories keyed by kind ("config", "data", ...).
    """
    dirs = {
        "config": get_xdg_config_home(),
        "data": get_xdg_data_home(),
        "cache": get_xdg_cache_home(),
        "state": get_xdg_state_home(),
    }

    for dir_path in dirs.values():
        dir_path.mkdir(parents=True, exist_ok=True)

    return dirs


# =============================================================================
# Configuration Data Structures
# =============================================================================

@dataclass
class SyncConfig:
    """
    Configuration for the sync coordinator.

    Attributes:
        tick_count: Number of discrete progress steps a sync takes to reach
                    100%.
        tick_interval_ms: Delay between progress steps, in milliseconds.
        new_mail_per_sync: Upper bound of new messages the synthetic source
                           delivers per inbox fetch (0 = none).
    """
    tick_count: int = 10
    tick_interval_ms: int = 100
    new_mail_per_sync: int = 0

    @property
    def tick_interval(self) -> float:
        """Tick interval in seconds."""
        return self.tick_interval_ms / 1000


@dataclass
class UIConfig:
    """
    Configuration for the list presentation.

    Attributes:
        default_folder: Folder selected on startup.
        sort_by: Initial sort field ("date", "subject", "sender", "size",
                 "importance").
        sort_order: "asc" or "desc".
        view_mode: "list", "conversation" or "compact".
        date_format: strftime format used in forwarded message headers.
    """
    default_folder: str = "inbox"
    sort_by: str = "date"
    sort_order: str = "desc"
    view_mode: str = "list"
    date_format: str = "%Y-%m-%d %H:%M"


@dataclass
class SourceConfig:
    """
    Configuration for the synthetic data source.

    Attributes:
        seed: Random seed. None produces different data each run.
    """
    seed: int | None = None


@dataclass
class Config:
    """
    Main configuration container for Kestrel.

    Attributes:
        default_account: Id of the account to select on startup.
        accounts: Configured accounts keyed by id. When empty the data
                  source provides the accounts.
        sync: Sync coordinator configuration.
        ui: List presentation configuration.
        source: Synthetic data source configuration.

    Usage:
        >>> config = Config.load()
        >>> config.sync.tick_count
        10
    """
    default_account: str = ""
    accounts: dict[str, Account] = field(default_factory=dict)

    sync: SyncConfig = field(default_factory=SyncConfig)
    ui: UIConfig = field(default_factory=UIConfig)
    source: SourceConfig = field(default_factory=SourceConfig)

    # -------------------------------------------------------------------------
    # File Paths
    # -------------------------------------------------------------------------

    @staticmethod
    def config_file_path() -> Path:
        """Location of config.toml inside the XDG config directory."""
        return get_xdg_config_home() / "config.toml"

    @staticmethod
    def layout_path() -> Path:
        """Returns the path to the pane layout blob store."""
        return get_xdg_state_home() / "layout.json"

    @staticmethod
    def log_path() -> Path:
        """Returns the path to the rotating log file."""
        return get_xdg_state_home() / "kestrel.log"

    # -------------------------------------------------------------------------
    # Loading and Saving
    # -------------------------------------------------------------------------

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """
        Read config.toml.

        A missing file yields the defaults. The XDG directories are created
        as a side effect so the log and layout files have somewhere to go.

        Args:
            path: Config file to read. Defaults to the XDG location.

        Raises:
            ConfigError: On malformed TOML or an out-of-range value.
        """
        ensure_directories()

        config_path = path or cls.config_file_path()

        if not config_path.exists():
            return cls()

        try:
            with open(config_path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid config file: {e}") from e

        return cls._from_dict(data)

    def save(self, path: Path | None = None) -> None:
        """Write the configuration back as TOML."""
        ensure_directories()

        config_path = path or self.config_file_path()
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "wb") as f:
            tomli_w.dump(self._to_dict(), f)

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> "Config":
        """
        Build a Config from parsed TOML, validating the choice fields.

        Raises:
            ConfigError: If a sync setting is not an integer in range or a choice
                field is unknown.
        """
        config = cls()

        general = data.get("general", {})
        config.default_account = general.get("default_account", "")

        sync = _section(data, "sync")
        config.sync = SyncConfig(
            tick_count=_int_setting(sync, "sync.tick_count", 10, minimum=1),
            tick_interval_ms=_int_setting(sync, "sync.tick_interval_ms", 100),
            new_mail_per_sync=_int_setting(sync, "sync.new_mail_per_sync", 0),
        )

        ui = data.get("ui", {})
        config.ui = UIConfig(
            default_folder=ui.get("default_folder", "inbox"),
            sort_by=ui.get("sort_by", "date"),
            sort_order=ui.get("sort_order", "desc"),
            view_mode=ui.get("view_mode", "list"),
            date_format=ui.get("date_format", "%Y-%m-%d %H:%M"),
        )
        if config.ui.sort_by not in SORT_FIELDS:
            raise ConfigError(f"Unknown ui.sort_by: {config.ui.sort_by!r}")
        if config.ui.sort_order not in ("asc", "desc"):
            raise ConfigError(f"Unknown ui.sort_order: {config.ui.sort_order!r}")
        if config.ui.view_mode not in VIEW_MODES:
            raise ConfigError(f"Unknown ui.view_mode: {config.ui.view_mode!r}")

        source = data.get("source", {})
        config.source = SourceConfig(seed=source.get("seed"))

        # Accounts - each key under [accounts] is an account id
        for account_id, acct_data in data.get("accounts", {}).items():
            config.accounts[account_id] = Account(
                id=account_id,
                email=acct_data.get("email", ""),
                name=acct_data.get("name", ""),
                provider=acct_data.get("provider", "custom"),
                active=acct_data.get("active", True),
                default=acct_data.get("default", False),
                smtp_host=acct_data.get("smtp_host", ""),
                smtp_port=acct_data.get("smtp_port", 587),
                smtp_security=acct_data.get("smtp_security", "starttls"),
                signature=acct_data.get("signature", ""),
                color=acct_data.get("color", ""),
            )

        return config

    def _to_dict(self) -> dict[str, Any]:
        """Inverse of _from_dict, minus the keys TOML cannot hold."""
        data: dict[str, Any] = {}

        data["general"] = {
            "default_account": self.default_account,
        }

        data["sync"] = {
            "tick_count": self.sync.tick_count,
            "tick_interval_ms": self.sync.tick_interval_ms,
            "new_mail_per_sync": self.sync.new_mail_per_sync,
        }

        data["ui"] = {
            "default_folder": self.ui.default_folder,
            "sort_by": self.ui.sort_by,
            "sort_order": self.ui.sort_order,
            "view_mode": self.ui.view_mode,
            "date_format": self.ui.date_format,
        }

        # TOML has no null; an unset seed is simply omitted
        data["source"] = {}
        if self.source.seed is not None:
            data["source"]["seed"] = self.source.seed

        data["accounts"] = {}
        for account_id, account in self.accounts.items():
            data["accounts"][account_id] = {
                "email": account.email,
                "name": account.name,
                "provider": account.provider,
                "active": account.active,
                "default": account.default,
                "smtp_host": account.smtp_host,
                "smtp_port": account.smtp_port,
                "smtp_security": account.smtp_security,
                "signature": account.signature,
                "color": account.color,
            }

        return data


SORT_FIELDS = ("date", "subject", "sender", "size", "importance")
VIEW_MODES = ("list", "conversation", "compact")


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ConfigError(f"[{name}] must be a table")
    return section


def _int_setting(section: dict[str, Any], key: str, default: int, minimum: int = 0) -> int:
    """Read an integer setting; `key` is the dotted name used in errors."""
    value = section.get(key.rsplit(".", 1)[1], default)
    # bool is an int subclass but `tick_count = true` is a mistake
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{key} must be an integer, got {value!r}")
    if value < minimum:
        raise ConfigError(f"{key} must be at least {minimum}")
    return value


# =============================================================================
# Exceptions
# =============================================================================

class ConfigError(Exception):
    """The config file exists but cannot be used."""
    pass


# =============================================================================
# Utility Functions
# =============================================================================

def print_paths() -> None:
    """Print every directory and file location (the --paths flag)."""
    print(f"Config:  {get_xdg_config_home()}")
    print(f"Data:    {get_xdg_data_home()}")
    print(f"Cache:   {get_xdg_cache_home()}")
    print(f"State:   {get_xdg_state_home()}")
    print()
    print(f"Config file:  {Config.config_file_path()}")
    print(f"Layout:       {Config.layout_path()}")
    print(f"Log file:     {Config.log_path()}")
