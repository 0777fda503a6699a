"""
Tests for configuration loading and XDG paths.
"""

from __future__ import annotations

import pytest

from kestrel.config import (
    Config,
    ConfigError,
    ensure_directories,
    get_xdg_config_home,
    get_xdg_state_home,
)
from kestrel.core import Account


class TestPaths:
    def test_paths_follow_xdg_variables(self, xdg_home):
        assert get_xdg_config_home() == xdg_home / "xdg_config_home" / "kestrel"
        assert Config.layout_path() == get_xdg_state_home() / "layout.json"
        assert Config.log_path().name == "kestrel.log"

    def test_ensure_directories(self, xdg_home):
        dirs = ensure_directories()
        assert set(dirs) == {"config", "data", "cache", "state"}
        assert all(path.is_dir() for path in dirs.values())


class TestLoad:
    def test_missing_file_gives_defaults(self, xdg_home):
        config = Config.load()
        assert config.sync.tick_count == 10
        assert config.sync.tick_interval == 0.1
        assert config.ui.default_folder == "inbox"
        assert config.accounts == {}

    def test_reads_sections(self, xdg_home):
        path = Config.config_file_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            '[general]\ndefault_account = "work"\n'
            "[sync]\ntick_count = 4\ntick_interval_ms = 5\n"
            '[ui]\nsort_by = "sender"\nsort_order = "asc"\n'
            "[source]\nseed = 7\n"
            '[accounts.work]\nemail = "me@work.org"\nsmtp_host = "smtp.work.org"\n'
        )
        config = Config.load()

        assert config.default_account == "work"
        assert config.sync.tick_count == 4
        assert config.sync.tick_interval == 0.005
        assert config.ui.sort_by == "sender"
        assert config.source.seed == 7
        assert config.accounts["work"].smtp_host == "smtp.work.org"
        assert config.accounts["work"].smtp_port == 587

    def test_save_then_load(self, xdg_home):
        config = Config(default_account="a1")
        config.accounts["a1"] = Account(id="a1", email="a@b.com", name="A")
        config.ui.view_mode = "compact"
        config.save()

        loaded = Config.load()
        assert loaded.default_account == "a1"
        assert loaded.accounts["a1"].email == "a@b.com"
        assert loaded.ui.view_mode == "compact"
        assert loaded.source.seed is None

    def test_invalid_toml(self, xdg_home):
        path = Config.config_file_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("[sync\n")
        with pytest.raises(ConfigError):
            Config.load()

    @pytest.mark.parametrize("body", [
        "[sync]\ntick_count = 0\n",
        "[sync]\ntick_count = \"10\"\n",
        "[sync]\ntick_count = true\n",
        "[sync]\ntick_interval_ms = 1.5\n",
        "[sync]\nnew_mail_per_sync = -1\n",
        "sync = 3\n",
        '[ui]\nview_mode = "tiles"\n',
        '[ui]\nsort_by = "colour"\n',
        '[ui]\nsort_order = "up"\n',
    ])
    def test_invalid_values(self, temp_dir, xdg_home, body):
        path = temp_dir / "custom.toml"
        path.write_text(body)
        with pytest.raises(ConfigError):
            Config.load(path)
