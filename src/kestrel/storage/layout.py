# =============================================================================
# Layout Store
# =============================================================================
# Persists pane proportions and collapse flags between runs.
#
# A flat key -> JSON value mapping in one file (by default
# $XDG_STATE_HOME/kestrel/layout.json). The file is read once when the
# store is created and rewritten on every change. A missing or unreadable
# file is not an error: the defaults are used instead.
# =============================================================================

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any


logger = logging.getLogger(__name__)

# Key of the three-pane layout (folders | message list | reading pane)
LAYOUT_KEY = "email-layout"

DEFAULT_LAYOUT: dict[str, Any] = {
    "sizes": [20, 35, 45],
    "folders_collapsed": False,
    "reading_pane_collapsed": False,
}


class LayoutStore:
    """
    Key/value persistence for UI layout.

    Usage:
        >>> layout = LayoutStore(Config.layout_path())
        >>> layout.get_layout()["sizes"]
        [20, 35, 45]
        >>> layout.set_sizes([25, 30, 45])
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._data: dict[str, Any] = {}
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable layout file {self.path}: {e}")
            return
        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed layout file {self.path}")
            return
        self._data = data

    def _save(self) -> None:
        """Write the whole mapping atomically (temp file + rename)."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".layout-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._data, f, indent=2, sort_keys=True)
            os.replace(tmp_name, self.path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Store a JSON-serializable value and persist immediately."""
        self._data[key] = value
        self._save()

    # -------------------------------------------------------------------------
    # Pane layout
    # -------------------------------------------------------------------------

    def get_layout(self) -> dict[str, Any]:
        """
        Return the pane layout, falling back to defaults for anything
        missing or invalid.
        """
        stored = self.get(LAYOUT_KEY)
        layout = dict(DEFAULT_LAYOUT, sizes=list(DEFAULT_LAYOUT["sizes"]))
        if not isinstance(stored, dict):
            return layout

        sizes = stored.get("sizes")
        if _valid_sizes(sizes):
            layout["sizes"] = list(sizes)
        for flag in ("folders_collapsed", "reading_pane_collapsed"):
            if isinstance(stored.get(flag), bool):
                layout[flag] = stored[flag]
        return layout

    def set_sizes(self, sizes: list[float]) -> None:
        """
        Store pane proportions (percentages summing to ~100).

        Raises:
            ValueError: If the proportions are not three positive numbers
                        summing to 100.
        """
        if not _valid_sizes(sizes):
            raise ValueError(f"Invalid pane sizes: {sizes!r}")
        layout = self.get_layout()
        layout["sizes"] = list(sizes)
        self.set(LAYOUT_KEY, layout)

    def set_collapsed(self, pane: str, collapsed: bool) -> None:
        """Collapse or expand "folders" or "reading_pane"."""
        flag = f"{pane}_collapsed"
        if flag not in DEFAULT_LAYOUT:
            raise ValueError(f"Unknown pane: {pane!r}")
        layout = self.get_layout()
        layout[flag] = collapsed
        self.set(LAYOUT_KEY, layout)


def _valid_sizes(sizes: Any) -> bool:
    if not isinstance(sizes, (list, tuple)) or len(sizes) != len(DEFAULT_LAYOUT["sizes"]):
        return False
    if not all(isinstance(s, (int, float)) and not isinstance(s, bool) and s > 0 for s in sizes):
        return False
    return abs(sum(sizes) - 100) < 0.5
