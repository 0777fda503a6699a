"""
Tests for LayoutStore persistence.
"""

from __future__ import annotations

import json

import pytest

from kestrel.storage import LayoutStore
from kestrel.storage.layout import DEFAULT_LAYOUT, LAYOUT_KEY


@pytest.fixture
def layout_path(temp_dir):
    return temp_dir / "state" / "layout.json"


class TestLayoutStore:
    def test_defaults_without_file(self, layout_path):
        layout = LayoutStore(layout_path).get_layout()
        assert layout == DEFAULT_LAYOUT
        assert not layout_path.exists()

    def test_returned_layout_is_a_copy(self, layout_path):
        LayoutStore(layout_path).get_layout()["sizes"].append(99)
        assert DEFAULT_LAYOUT["sizes"] == [20, 35, 45]

    def test_sizes_survive_restart(self, layout_path):
        LayoutStore(layout_path).set_sizes([25, 30, 45])
        assert LayoutStore(layout_path).get_layout()["sizes"] == [25, 30, 45]

    def test_collapse_flags(self, layout_path):
        store = LayoutStore(layout_path)
        store.set_collapsed("reading_pane", True)
        layout = LayoutStore(layout_path).get_layout()
        assert layout["reading_pane_collapsed"] is True
        assert layout["folders_collapsed"] is False

    def test_unknown_pane(self, layout_path):
        with pytest.raises(ValueError):
            LayoutStore(layout_path).set_collapsed("sidebar", True)

    @pytest.mark.parametrize("sizes", [[50, 50], [0, 50, 50], [30, 30, 30], "20,35,45"])
    def test_invalid_sizes_rejected(self, layout_path, sizes):
        with pytest.raises(ValueError):
            LayoutStore(layout_path).set_sizes(sizes)

    def test_corrupt_file_falls_back_to_defaults(self, layout_path):
        layout_path.parent.mkdir(parents=True)
        layout_path.write_text("{not json")
        assert LayoutStore(layout_path).get_layout() == DEFAULT_LAYOUT

    def test_invalid_stored_values_are_replaced(self, layout_path):
        layout_path.parent.mkdir(parents=True)
        layout_path.write_text(json.dumps({
            LAYOUT_KEY: {"sizes": [90, 90, 90], "folders_collapsed": True},
        }))
        layout = LayoutStore(layout_path).get_layout()
        assert layout["sizes"] == [20, 35, 45]
        assert layout["folders_collapsed"] is True

    def test_other_keys_are_kept(self, layout_path):
        store = LayoutStore(layout_path)
        store.set("theme", "dark")
        store.set_sizes([20, 40, 40])
        assert LayoutStore(layout_path).get("theme") == "dark"
