"""
Tests for the filter/sort pipeline.
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from conftest import BASE_DATE, make_message
from kestrel.core import Attachment, Contact, MessageFlags
from kestrel.storage.pipeline import (
    MessageFilter,
    SortField,
    SortOrder,
    SortSpec,
    apply_pipeline,
    in_folder,
)


@pytest.fixture
def messages():
    return [
        make_message("a", subject="Quarterly budget", hours_ago=1, starred=True),
        make_message("b", subject="lunch", hours_ago=3, read=False, size=50),
        make_message("c", folder="trash", starred=True, hours_ago=2),
        make_message("d", folder="sent", important=True, hours_ago=4, size=9000),
        make_message(
            "e",
            subject="Invoice",
            hours_ago=5,
            sender=Contact("billing@vendor.com", "Budget Office"),
            attachments=[Attachment("inv.pdf", "application/pdf", 100)],
        ),
    ]


# =============================================================================
# Folder selection
# =============================================================================


class TestFolderSelection:
    def test_plain_folder_selects_by_tag(self, messages):
        ids = [m.id for m in apply_pipeline(messages, "inbox")]
        assert ids == ["a", "b", "e"]

    def test_starred_view_excludes_deleted(self, messages):
        ids = [m.id for m in apply_pipeline(messages, "starred")]
        assert ids == ["a"]

    def test_all_view_is_every_non_deleted_message(self, messages):
        ids = {m.id for m in apply_pipeline(messages, "all")}
        assert ids == {"a", "b", "d", "e"}

    def test_important_view_spans_folders(self, messages):
        assert [m.id for m in apply_pipeline(messages, "important")] == ["d"]

    def test_in_folder_for_trash(self, messages):
        assert in_folder(messages[2], "trash")
        assert not in_folder(messages[2], "all")


# =============================================================================
# Search
# =============================================================================


class TestSearch:
    def test_search_is_case_insensitive_over_subject(self, messages):
        ids = [m.id for m in apply_pipeline(messages, "inbox", search="BUDGET")]
        assert ids == ["a", "e"]  # e matches on sender name

    def test_search_matches_sender_address(self, messages):
        ids = [m.id for m in apply_pipeline(messages, "inbox", search="vendor.com")]
        assert ids == ["e"]

    def test_blank_search_is_no_search(self, messages):
        assert len(apply_pipeline(messages, "inbox", search="   ")) == 3


# =============================================================================
# Structured filter
# =============================================================================


class TestFilter:
    def test_predicates_are_anded(self, messages):
        f = MessageFilter(is_read=True, has_attachments=True)
        assert [m.id for m in apply_pipeline(messages, "inbox", message_filter=f)] == ["e"]

    def test_unread_filter(self, messages):
        f = MessageFilter(is_read=False)
        assert [m.id for m in apply_pipeline(messages, "inbox", message_filter=f)] == ["b"]

    def test_size_range(self, messages):
        f = MessageFilter(size_min=100, size_max=5000)
        assert [m.id for m in apply_pipeline(messages, "inbox", message_filter=f)] == ["a", "e"]

    def test_date_range_is_inclusive(self, messages):
        f = MessageFilter(
            date_from=BASE_DATE - timedelta(hours=3),
            date_to=BASE_DATE - timedelta(hours=1),
        )
        assert [m.id for m in apply_pipeline(messages, "inbox", message_filter=f)] == ["a", "b"]

    def test_message_without_date_fails_date_filter(self, messages):
        messages[0].date = None
        f = MessageFilter(date_from=BASE_DATE - timedelta(days=1))
        assert "a" not in [m.id for m in apply_pipeline(messages, "inbox", message_filter=f)]

    def test_labels_match_any(self, messages):
        messages[0].labels = ["work"]
        messages[1].labels = ["home", "urgent"]
        f = MessageFilter(labels=frozenset({"urgent", "work"}))
        assert [m.id for m in apply_pipeline(messages, "inbox", message_filter=f)] == ["a", "b"]

    def test_merge_switches_predicates_on_and_off(self):
        f = MessageFilter().merge(is_starred=True, labels=["x"])
        assert f.is_starred is True
        assert f.labels == frozenset({"x"})
        assert not f.is_empty

        f = f.merge(is_starred=None, labels=None)
        assert f.is_empty

    def test_merge_rejects_unknown_field(self):
        with pytest.raises(TypeError):
            MessageFilter().merge(colour="red")


# =============================================================================
# Sorting
# =============================================================================


class TestSort:
    def test_default_is_newest_first(self, messages):
        ids = [m.id for m in apply_pipeline(messages, "inbox")]
        assert ids == ["a", "b", "e"]

    def test_sort_by_size_ascending(self, messages):
        sort = SortSpec(SortField.SIZE, SortOrder.ASC)
        # a and e tie on size and keep their input order
        assert [m.id for m in apply_pipeline(messages, "all", sort=sort)] == ["b", "a", "e", "d"]

    def test_sort_is_stable_for_equal_keys(self):
        same = [make_message(f"x{i}", subject="Same", hours_ago=i) for i in range(5)]
        for order in (SortOrder.ASC, SortOrder.DESC):
            result = apply_pipeline(same, "inbox", sort=SortSpec(SortField.SUBJECT, order))
            assert [m.id for m in result] == [f"x{i}" for i in range(5)]

    def test_importance_descending_puts_important_first(self):
        items = [
            make_message("plain", hours_ago=1),
            make_message("vip", important=True, hours_ago=2),
        ]
        sort = SortSpec(SortField.IMPORTANCE, SortOrder.DESC)
        assert [m.id for m in apply_pipeline(items, "inbox", sort=sort)] == ["vip", "plain"]

    def test_parse_from_config_strings(self):
        assert SortSpec.parse("sender", "asc") == SortSpec(SortField.SENDER, SortOrder.ASC)
        with pytest.raises(ValueError):
            SortSpec.parse("colour")


# =============================================================================
# Purity
# =============================================================================


class TestPurity:
    def test_pipeline_is_idempotent(self, messages):
        f = MessageFilter(is_read=True)
        sort = SortSpec(SortField.SUBJECT, SortOrder.ASC)
        once = apply_pipeline(messages, "inbox", "e", f, sort)
        twice = apply_pipeline(once, "inbox", "e", f, sort)
        assert [m.id for m in twice] == [m.id for m in once]

    def test_input_is_not_mutated(self, messages):
        before = [(m.id, m.flags) for m in messages]
        apply_pipeline(messages, "inbox", "budget", MessageFilter(is_read=True))
        assert [(m.id, m.flags) for m in messages] == before
        assert messages[1].flags == MessageFlags.NONE
