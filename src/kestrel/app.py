# =============================================================================
# Kestrel Main Application
# =============================================================================
# Wires the components together and provides the command-line entry point.
#
# The application consists of:
#   - MailStore: every account, message, folder, label, draft and status
#   - SyncCoordinator: per-account sync machines
#   - DraftManager: compose / reply / forward / send
#   - LayoutStore: pane proportions restored on start, saved on exit
#
# The app manages:
#   - Configuration loading (falls back to defaults on errors)
#   - Logging setup
#   - Startup load and optional initial sync
# =============================================================================

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from kestrel import __app_name__, __version__
from kestrel.compose import DraftManager
from kestrel.config import Config, ConfigError, ensure_directories, print_paths
from kestrel.core import Folder
from kestrel.log import payload, setup_logging
from kestrel.smtp import LoopbackTransport, SMTPTransport, Transport
from kestrel.source import SyntheticSource
from kestrel.storage import LayoutStore, MailStore, SortSpec
from kestrel.storage.layout import LAYOUT_KEY
from kestrel.sync import SyncCoordinator


logger = logging.getLogger(__name__)


class KestrelApp:
    """
    The assembled mail client.

    Attributes:
        config: The loaded application configuration.
        store: State container.
        coordinator: Sync machines over the store.
        drafts: Draft lifecycle manager.
        layout: Persisted pane layout.
    """

    def __init__(
        self,
        config: Config | None = None,
        *,
        seed: int | None = None,
        layout_path: Path | None = None,
    ) -> None:
        """
        Initialize the application.

        Args:
            config: Optional pre-loaded configuration. If not provided,
                    configuration will be loaded from the default location.
            seed: Overrides the configured synthetic data seed.
            layout_path: Overrides the layout file location.
        """
        self.config_error: str | None = None

        if config is None:
            try:
                config = Config.load()
            except ConfigError as e:
                config = Config()
                self.config_error = str(e)
        self.config = config

        source = SyntheticSource(
            seed=seed if seed is not None else config.source.seed,
            new_mail_per_fetch=config.sync.new_mail_per_sync,
        )
        self.store = MailStore(source, default_folder=config.ui.default_folder)
        self.store.sort = SortSpec.parse(config.ui.sort_by, config.ui.sort_order)
        self.store.view_mode = config.ui.view_mode

        self.coordinator = SyncCoordinator(
            self.store,
            tick_count=config.sync.tick_count,
            tick_interval=config.sync.tick_interval,
        )
        self.drafts = DraftManager(
            self.store,
            self._make_transport(),
            date_format=config.ui.date_format,
        )
        self.layout = LayoutStore(layout_path or Config.layout_path())

    def _make_transport(self) -> Transport:
        if any(a.smtp_host for a in self.config.accounts.values()):
            return SMTPTransport()
        return LoopbackTransport()

    async def start(self, *, sync: bool = True) -> None:
        """Load accounts and the default folder, then sync unless told not to."""
        if self.config_error:
            logger.error(f"Config error: {self.config_error}")

        await self.store.initialize(self.config.default_account or None)

        # Configured accounts override the settings the source reports
        for account_id, configured in self.config.accounts.items():
            if account_id in self.store.accounts:
                self.store.update_account(
                    account_id,
                    name=configured.name,
                    smtp_host=configured.smtp_host,
                    smtp_port=configured.smtp_port,
                    smtp_security=configured.smtp_security,
                    signature=configured.signature,
                    color=configured.color,
                )

        if sync:
            await self.coordinator.sync_all_accounts()

    def stop(self) -> None:
        self.coordinator.stop_sync()

    def summary(self) -> str:
        """Folder counts per account, one block per account."""
        lines = []
        for account in self.store.accounts.values():
            marker = "*" if account.id == self.store.current_account_id else " "
            lines.append(
                f"{marker} {account}  ({account.unread_count} unread / {account.total_count})"
            )
            for folder in self.store.folder_tree(account.id):
                lines.extend(_folder_lines(folder, depth=1))
        if self.store.error:
            lines.append(f"Error: {self.store.error}")
        return "\n".join(lines)


def _folder_lines(folder: Folder, depth: int) -> list[str]:
    lines = [f"{'    ' * depth}{folder.name:<12} {folder.unread_count:>4} / {folder.count:<4}"]
    for child in folder.children:
        lines.extend(_folder_lines(child, depth + 1))
    return lines


# =============================================================================
# CLI Entry Point
# =============================================================================

def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments namespace.
    """
    parser = argparse.ArgumentParser(
        prog=__app_name__,
        description="Kestrel: multi-account mail client state engine",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "--paths",
        action="store_true",
        help="Print configuration paths and exit",
    )

    parser.add_argument(
        "--config",
        type=Path,
        help="Path to config file (default: XDG config location)",
    )

    parser.add_argument(
        "--seed",
        type=int,
        help="Seed for the synthetic mailboxes",
    )

    parser.add_argument(
        "--no-sync",
        action="store_true",
        help="Skip the initial sync of all accounts",
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode (verbose logging)",
    )

    return parser.parse_args(argv)


async def run(app: KestrelApp, *, sync: bool = True) -> None:
    try:
        await app.start(sync=sync)
    finally:
        app.stop()

    layout = app.layout.get_layout()
    logger.debug("Layout restored", extra=payload(**layout))
    # Written back so a fresh install gets a layout file to edit
    app.layout.set(LAYOUT_KEY, layout)


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for Kestrel.

    This function:
        1. Parses command-line arguments
        2. Handles special commands (--paths, --version)
        3. Loads configuration and sets up logging
        4. Loads and syncs every account, then prints folder counts

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    args = parse_args(argv)

    if args.paths:
        print_paths()
        return 0

    ensure_directories()
    setup_logging(debug=args.debug, log_file=Config.log_path())

    config = None
    if args.config:
        try:
            config = Config.load(args.config)
        except ConfigError as e:
            print(f"Config error: {e}", file=sys.stderr)
            return 1

    app = KestrelApp(config=config, seed=args.seed)
    if app.config_error:
        print(f"Config error: {app.config_error} (using defaults)", file=sys.stderr)

    asyncio.run(run(app, sync=not args.no_sync))

    print(app.summary())
    return 1 if app.store.error else 0


if __name__ == "__main__":
    sys.exit(main())
