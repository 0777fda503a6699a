# =============================================================================
# Sync Coordinator
# =============================================================================
# Runs one sync machine per account:
#
#     IDLE ──sync_account──▶ SYNCING ──reload ok──▶ IDLE
#                              │  └───failure────▶ ERROR
#                              └──stop_sync──────▶ IDLE (no reload)
#
# A run advances its progress over a fixed number of ticks (0 -> 100, never
# decreasing), then reloads the account's folder through the store and
# records the result on the account's SyncStatus.
#
# Each run is an asyncio task with its own cancellation flag. stop_sync()
# raises every flag and forces the statuses to IDLE at once; the tasks see
# the flag after their next await and exit without touching the store.
#
# Starting a sync for an account that is already syncing does not start a
# second machine: the caller awaits the run in flight and gets its result.
# =============================================================================

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime

from kestrel.core import SyncState, SyncStatus
from kestrel.log import payload
from kestrel.storage.store import MailStore


logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """
    Result of one sync run.

    Attributes:
        account_id: The account that was synced.
        success: True if the run reached 100% and reloaded without errors.
        new_messages: Messages ingested by the reload.
        updated_messages: Messages changed by the reload.
        deleted_messages: Messages removed by the reload.
        cancelled: True if stop_sync() ended the run.
        error: Error message if the run failed.
        duration_seconds: Time taken for the run.
    """
    account_id: str
    success: bool = True
    new_messages: int = 0
    updated_messages: int = 0
    deleted_messages: int = 0
    cancelled: bool = False
    error: str | None = None
    duration_seconds: float = 0.0


class _Run:
    """Bookkeeping for one in-flight sync task."""

    def __init__(self, account_id: str, folder_id: str) -> None:
        self.account_id = account_id
        self.folder_id = folder_id
        self.cancelled = False
        self.task: asyncio.Task | None = None


class SyncCoordinator:
    """
    Drives the per-account sync machines of a MailStore.

    Usage:
        >>> coordinator = SyncCoordinator(store, tick_count=10, tick_interval=0.1)
        >>> results = await coordinator.sync_all_accounts()
        >>> store.is_syncing
        False

    Attributes:
        store: Store whose accounts are synced and whose statuses are written.
        tick_count: Number of progress steps per run.
        tick_interval: Delay between progress steps, in seconds.
    """

    def __init__(
        self,
        store: MailStore,
        *,
        tick_count: int = 10,
        tick_interval: float = 0.1,
    ) -> None:
        if tick_count < 1:
            raise ValueError("tick_count must be at least 1")
        self.store = store
        self.tick_count = tick_count
        self.tick_interval = tick_interval
        self._runs: dict[str, _Run] = {}   # account_id -> run in flight

    def is_syncing(self, account_id: str | None = None) -> bool:
        """True if the account (or, without an id, any account) is syncing."""
        if account_id is None:
            return bool(self._runs)
        return account_id in self._runs

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    async def sync_account(self, account_id: str) -> SyncResult | None:
        """
        Sync an account's current folder.

        Returns:
            The run's result, or None if the account is unknown.
        """
        return await self._start(account_id, None)

    async def sync_folder(self, account_id: str, folder_id: str) -> SyncResult | None:
        """Sync one folder of an account with the same machine."""
        return await self._start(account_id, folder_id)

    async def sync_all_accounts(self) -> list[SyncResult]:
        """
        Sync every active account concurrently and wait for all of them.

        Records the global last-sync time once every run has finished.
        """
        accounts = self.store.active_accounts
        logger.info("Syncing all accounts", extra=payload(count=len(accounts)))

        results = await asyncio.gather(*(self.sync_account(a.id) for a in accounts))
        self.store.set_last_sync_time(datetime.now())

        results = [r for r in results if r is not None]
        logger.info(
            "All accounts synced",
            extra=payload(count=len(results), failed=sum(1 for r in results if not r.success)),
        )
        return results

    def stop_sync(self) -> None:
        """
        Stop every sync in progress.

        Statuses return to IDLE immediately; the tasks exit on their own
        without running the reload.
        """
        if not self._runs:
            return

        logger.info("Sync cancellation requested", extra=payload(count=len(self._runs)))
        for run in self._runs.values():
            run.cancelled = True
            status = self.store.sync_status.get(run.account_id)
            if status is not None:
                self.store.set_sync_status(replace(status, state=SyncState.IDLE))
        self._runs.clear()

    # -------------------------------------------------------------------------
    # Machine
    # -------------------------------------------------------------------------

    async def _start(self, account_id: str, folder_id: str | None) -> SyncResult | None:
        if account_id not in self.store.accounts:
            logger.warning(f"sync: unknown account {account_id}")
            return None

        existing = self._runs.get(account_id)
        if existing is not None and existing.task is not None:
            logger.debug(f"Sync already running for {account_id}, joining it")
            return await existing.task

        run = _Run(account_id, folder_id or self.store.current_folder_id)
        previous = self.store.sync_status.get(account_id) or SyncStatus(account_id=account_id)

        # SYNCING is visible before the task gets to run
        self.store.set_sync_status(replace(
            previous,
            state=SyncState.SYNCING,
            progress=0,
            folder=run.folder_id,
            error=None,
        ))
        run.task = asyncio.create_task(self._run(run), name=f"sync-{account_id}")
        self._runs[account_id] = run
        return await run.task

    def _update(self, run: _Run, **changes) -> None:
        status = self.store.sync_status.get(run.account_id)
        if status is not None:
            self.store.set_sync_status(replace(status, **changes))

    async def _run(self, run: _Run) -> SyncResult:
        start_time = datetime.now()
        result = SyncResult(account_id=run.account_id)
        logger.info(
            "Sync started",
            extra=payload(account_id=run.account_id, folder=run.folder_id),
        )

        try:
            for tick in range(1, self.tick_count + 1):
                await asyncio.sleep(self.tick_interval)
                if run.cancelled:
                    break
                self._update(run, progress=tick * 100 // self.tick_count)

            if not run.cancelled:
                messages = await self.store.source.fetch_messages(run.account_id, run.folder_id)
                if not run.cancelled:
                    result.new_messages = self.store.ingest(run.account_id, messages)
                    self._update(
                        run,
                        state=SyncState.IDLE,
                        progress=100,
                        last_sync=datetime.now(),
                        new_messages=result.new_messages,
                        updated_messages=result.updated_messages,
                        deleted_messages=result.deleted_messages,
                    )

            if run.cancelled:
                result.success = False
                result.cancelled = True
                logger.info("Sync cancelled", extra=payload(account_id=run.account_id))
            else:
                logger.info(
                    "Sync complete",
                    extra=payload(account_id=run.account_id, new=result.new_messages),
                )

        except Exception as e:
            result.success = False
            result.error = str(e)
            logger.error(
                f"Sync failed: {e}",
                exc_info=True,
                extra=payload(account_id=run.account_id),
            )
            if not run.cancelled:
                self._update(run, state=SyncState.ERROR, error=str(e))
                self.store.set_error(str(e))

        finally:
            if self._runs.get(run.account_id) is run:
                del self._runs[run.account_id]

        result.duration_seconds = (datetime.now() - start_time).total_seconds()
        return result
