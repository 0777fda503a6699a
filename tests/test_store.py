"""
Tests for the MailStore: loading, flags, moves, folders, labels and view state.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from conftest import FakeSource, make_message
from kestrel.core import Account, MessageFlags, Thread
from kestrel.storage import MailStore, SortField, SortOrder, SortSpec
from kestrel.storage.pipeline import in_folder


UNREAD_IDS = [f"m{i:02d}" for i in range(12)]


def assert_counts_match_arena(store: MailStore) -> None:
    for account_id, table in store.folders.items():
        messages = store.messages_for(account_id)
        for folder in table.values():
            members = [m for m in messages if in_folder(m, folder.id)]
            assert folder.count == len(members), folder
            assert folder.unread_count == sum(1 for m in members if not m.is_read), folder


# =============================================================================
# Loading
# =============================================================================


class TestLoading:
    @pytest.mark.asyncio
    async def test_initialize_selects_default_account_and_loads_inbox(self, store):
        assert store.current_account_id == "acct-1"
        assert len(store.visible_messages()) == 30
        inbox = store.get_folder("acct-1", "inbox")
        assert (inbox.count, inbox.unread_count) == (30, 12)
        assert store.current_account.unread_count == 12
        assert not store.is_loading
        assert store.error is None

    @pytest.mark.asyncio
    async def test_reload_keeps_local_state(self, store):
        store.toggle_star(["m05"])
        await store.load_messages()
        assert store.get_message("m05").is_starred
        assert len(store.messages_for("acct-1")) == 30

    @pytest.mark.asyncio
    async def test_source_failure_is_captured(self, store, source):
        source.fail = True
        await store.load_messages()
        assert store.error == "source unavailable"
        assert not store.is_loading
        assert len(store.visible_messages()) == 30

    @pytest.mark.asyncio
    async def test_error_clears_on_next_load(self, store, source):
        source.fail = True
        await store.load_messages()
        source.fail = False
        await store.load_messages()
        assert store.error is None

    @pytest.mark.asyncio
    async def test_load_without_account_is_noop(self):
        source = FakeSource([], [])
        store = MailStore(source)
        await store.initialize()
        await store.load_messages()
        assert store.current_account_id is None
        assert source.fetches == []
        assert store.error is None

    @pytest.mark.asyncio
    async def test_ingest_aligns_deleted_flag_with_trash(self, store):
        in_trash = make_message("t1", folder="trash")
        in_trash.flags = MessageFlags.SEEN
        stray = make_message("t2")
        stray.flags |= MessageFlags.DELETED

        store.ingest("acct-1", [in_trash, stray])

        assert store.get_message("t1").is_deleted
        assert not store.get_message("t2").is_deleted
        assert not in_folder(store.get_message("t1"), "all")
        assert in_folder(store.get_message("t2"), "all")
        assert_counts_match_arena(store)

    @pytest.mark.asyncio
    async def test_load_all_accounts(self, store):
        await store.load_messages_for_all_accounts()
        assert store.get_message("w00") is not None
        assert store.accounts["acct-2"].unread_count == 1
        # acct-1 still shows only its own messages
        assert all(m.account_id == "acct-1" for m in store.visible_messages())


# =============================================================================
# Flags
# =============================================================================


class TestFlags:
    @pytest.mark.asyncio
    async def test_mark_read_updates_counts_and_is_idempotent(self, store):
        ids = UNREAD_IDS[:5]
        assert store.mark_read(ids) == 5
        assert store.get_folder("acct-1", "inbox").unread_count == 7
        assert all(store.get_message(i).is_read for i in ids)

        assert store.mark_read(ids) == 0
        assert store.get_folder("acct-1", "inbox").unread_count == 7
        assert_counts_match_arena(store)

    @pytest.mark.asyncio
    async def test_mark_unread(self, store):
        assert store.mark_unread(["m20", "m21"]) == 2
        assert store.current_account.unread_count == 14

    @pytest.mark.asyncio
    async def test_toggle_twice_restores_flags(self, store):
        before = {i: store.get_message(i).flags for i in ("m00", "m20")}
        for toggle in (store.toggle_read, store.toggle_star, store.toggle_flag, store.toggle_important):
            toggle(["m00", "m20"])
            toggle(["m00", "m20"])
        assert {i: store.get_message(i).flags for i in before} == before

    @pytest.mark.asyncio
    async def test_unknown_ids_are_skipped(self, store):
        assert store.toggle_star(["nope", "m00"]) == 1
        assert store.get_message("m00").is_starred

    @pytest.mark.asyncio
    async def test_toggle_applies_across_accounts(self, store):
        await store.load_messages_for_all_accounts()
        assert store.toggle_important(["m00", "w00"]) == 2
        assert store.get_message("w00").is_important


# =============================================================================
# Moves and deletion
# =============================================================================


class TestMoves:
    @pytest.mark.asyncio
    async def test_delete_moves_to_trash_and_sets_deleted(self, store):
        store.delete_messages(["m20"])
        message = store.get_message("m20")
        assert message.folder == "trash"
        assert message.is_deleted
        assert store.get_folder("acct-1", "inbox").count == 29
        assert store.get_folder("acct-1", "trash").count == 1
        assert store.current_account.total_count == 29
        assert_counts_match_arena(store)

    @pytest.mark.asyncio
    async def test_moving_out_of_trash_clears_deleted(self, store):
        store.delete_messages(["m20"])
        store.move_to_folder(["m20"], "inbox")
        assert not store.get_message("m20").is_deleted
        assert store.get_folder("acct-1", "inbox").count == 30

    @pytest.mark.asyncio
    async def test_cannot_move_into_views_or_unknown_folders(self, store):
        assert store.move_to_folder(["m00"], "starred") == 0
        assert store.move_to_folder(["m00"], "nowhere") == 0
        assert store.get_message("m00").folder == "inbox"

    @pytest.mark.asyncio
    async def test_archive_and_spam(self, store):
        store.archive(["m00"])
        store.mark_spam(["m01"])
        assert store.get_message("m00").folder == "archive"
        assert store.get_message("m01").folder == "spam"
        assert store.get_folder("acct-1", "archive").unread_count == 1

    @pytest.mark.asyncio
    async def test_permanent_delete_removes_for_good(self, store):
        assert store.permanently_delete(["m00", "nope"]) == 1
        assert store.get_message("m00") is None
        assert len(store.visible_messages()) == 29

        await store.load_messages()
        assert store.get_message("m00") is None
        assert store.get_folder("acct-1", "inbox").count == 29


# =============================================================================
# Accounts
# =============================================================================


class TestAccounts:
    @pytest.mark.asyncio
    async def test_remove_current_account_falls_back(self, store):
        store.remove_account("acct-1")
        assert store.current_account_id == "acct-2"
        assert store.get_message("m00") is None
        assert "acct-1" not in store.folders
        assert "acct-1" not in store.sync_status

    @pytest.mark.asyncio
    async def test_remove_last_account(self, store):
        store.remove_account("acct-1")
        store.remove_account("acct-2")
        assert store.current_account_id is None
        assert store.visible_messages() == []

    @pytest.mark.asyncio
    async def test_switch_account_loads_and_clears_selection(self, store):
        store.selection.select_message("m20")
        await store.switch_account("acct-2")
        assert store.current_account_id == "acct-2"
        assert store.selection.selected_ids == set()
        assert [m.id for m in store.visible_messages()] == ["w00", "w01"]

    @pytest.mark.asyncio
    async def test_update_account_ignores_derived_fields(self, store):
        store.update_account("acct-1", name="Renamed", unread_count=99)
        assert store.accounts["acct-1"].name == "Renamed"
        assert store.accounts["acct-1"].unread_count == 12

    @pytest.mark.asyncio
    async def test_toggle_account_active(self, store):
        assert store.toggle_account_active("acct-2") is False
        assert [a.id for a in store.active_accounts] == ["acct-1"]

    @pytest.mark.asyncio
    async def test_add_account_keeps_current_unless_default(self, store):
        await store.add_account(Account(id="acct-3", email="new@example.net"))
        assert "acct-3" in store.accounts
        assert store.current_account_id == "acct-1"
        assert store.get_folder("acct-3", "inbox") is not None


# =============================================================================
# Folders
# =============================================================================


class TestFolders:
    @pytest.mark.asyncio
    async def test_select_folder_reloads_every_active_account(self, store, source):
        store.selection.select_message("m20")
        await store.select_folder("sent")
        assert store.current_folder_id == "sent"
        assert store.selection.selected_ids == set()
        assert ("acct-2", "sent") in source.fetches
        assert [m.id for m in store.visible_messages()] == ["s00"]

    @pytest.mark.asyncio
    async def test_select_unknown_folder_is_noop(self, store):
        await store.select_folder("nowhere")
        assert store.current_folder_id == "inbox"

    @pytest.mark.asyncio
    async def test_system_folders_are_protected(self, store):
        assert not store.rename_folder("inbox", "Incoming")
        assert not store.delete_folder("trash")
        assert store.get_folder("acct-1", "inbox").name == "Inbox"

    @pytest.mark.asyncio
    async def test_custom_folder_lifecycle(self, store):
        projects = store.create_folder("acct-1", "Projects")
        archive_2024 = store.create_folder("acct-1", "2024", parent_id=projects.id)
        store.move_to_folder(["m20"], projects.id)
        store.move_to_folder(["m21"], archive_2024.id)
        assert store.get_folder("acct-1", projects.id).count == 1

        assert store.rename_folder(projects.id, "Clients")
        assert store.get_folder("acct-1", projects.id).name == "Clients"

        tree = store.folder_tree("acct-1")
        clients = next(f for f in tree if f.id == projects.id)
        assert [c.id for c in clients.children] == [archive_2024.id]

        assert store.delete_folder(projects.id)
        assert store.get_folder("acct-1", projects.id) is None
        assert store.get_folder("acct-1", archive_2024.id) is None
        for message_id in ("m20", "m21"):
            message = store.get_message(message_id)
            assert message.folder == "trash"
            assert message.is_deleted
        assert_counts_match_arena(store)

    @pytest.mark.asyncio
    async def test_deleting_current_folder_returns_to_inbox(self, store):
        folder = store.create_folder("acct-1", "Receipts")
        await store.select_folder(folder.id)
        store.delete_folder(folder.id)
        assert store.current_folder_id == "inbox"

    @pytest.mark.asyncio
    async def test_create_folder_rejects_bad_input(self, store):
        assert store.create_folder("acct-1", "   ") is None
        assert store.create_folder("acct-1", "Child", parent_id="missing") is None
        assert store.create_folder("nobody", "Projects") is None

    @pytest.mark.asyncio
    async def test_toggle_folder_expanded(self, store):
        assert store.toggle_folder_expanded("inbox") is True
        assert store.toggle_folder_expanded("inbox") is False


# =============================================================================
# Labels
# =============================================================================


class TestLabels:
    @pytest.mark.asyncio
    async def test_labels_stay_within_their_account(self, store):
        await store.load_messages_for_all_accounts()
        label = store.create_label("acct-1", "Work", "#e74c3c")
        assert store.add_label(["m00", "w00", "nope"], label.id) == 1
        assert store.get_message("m00").labels == [label.id]
        assert store.get_message("w00").labels == []

    @pytest.mark.asyncio
    async def test_delete_label_strips_references(self, store):
        label = store.create_label("acct-1", "Work", "#e74c3c")
        store.add_label(["m00", "m01"], label.id)
        store.set_filter(labels={label.id})
        assert len(store.visible_messages()) == 2

        assert store.delete_label(label.id)
        assert store.get_message("m00").labels == []
        assert store.filter.labels == frozenset()
        assert len(store.visible_messages()) == 30

    @pytest.mark.asyncio
    async def test_update_and_remove_label(self, store):
        label = store.create_label("acct-1", "Work")
        store.update_label(label.id, color="#2ecc71")
        assert store.labels[label.id].color == "#2ecc71"
        store.add_label(["m00"], label.id)
        assert store.remove_label(["m00"], label.id) == 1
        assert store.remove_label(["m00"], label.id) == 0


# =============================================================================
# Search / filter / sort / view
# =============================================================================


class TestViewState:
    @pytest.mark.asyncio
    async def test_filter_and_clear(self, store):
        store.set_filter(is_read=False)
        assert len(store.visible_messages()) == 12
        store.set_search_term("nothing matches this")
        assert store.visible_messages() == []
        store.clear_filters()
        assert len(store.visible_messages()) == 30

    @pytest.mark.asyncio
    async def test_filter_follows_mutations(self, store):
        store.set_filter(is_read=False)
        store.mark_read(["m00"])
        assert "m00" not in [m.id for m in store.visible_messages()]

    @pytest.mark.asyncio
    async def test_set_sort(self, store):
        store.set_sort(SortSpec(SortField.DATE, SortOrder.ASC))
        assert store.visible_messages()[0].id == "m29"

    @pytest.mark.asyncio
    async def test_view_mode(self, store):
        assert store.set_view_mode("conversation")
        assert not store.set_view_mode("grid")
        assert store.view_mode == "conversation"

    @pytest.mark.asyncio
    async def test_threads_group_by_thread_id(self, store):
        store.ingest("acct-1", [
            make_message("r2", thread_id="t1", hours_ago=99),
            make_message("r1", thread_id="t1", hours_ago=100),
        ])
        assert len(store.threads()) == 31
        thread = store.thread("t1")
        assert thread.message_ids == ["r1", "r2"]
        assert store.thread("missing") is None

    def test_thread_orders_undated_messages_first(self):
        dated = make_message("late")
        dated.date = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
        earlier = make_message("early")
        earlier.date = datetime(2024, 1, 14, 9, 0, tzinfo=timezone.utc)
        undated = make_message("undated")
        undated.date = None

        thread = Thread.from_messages("t", [dated, undated, earlier])
        assert thread.message_ids == ["undated", "early", "late"]


# =============================================================================
# Lifecycle
# =============================================================================


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_subscribers_are_notified(self, store):
        calls = []
        unsubscribe = store.subscribe(calls.append)
        store.toggle_star(["m00"])
        assert calls and calls[-1] is store

        unsubscribe()
        count = len(calls)
        store.toggle_star(["m00"])
        assert len(calls) == count

    @pytest.mark.asyncio
    async def test_reset(self, store):
        store.reset()
        assert store.accounts == {}
        assert store.current_account_id is None
        assert store.visible_messages() == []
        assert store.get_message("m00") is None
