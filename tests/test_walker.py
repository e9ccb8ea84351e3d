"""Tests for target directory discovery."""

import os
import threading
from pathlib import Path
from unittest.mock import patch

import pytest

from nmclean.filters import PathFilter
from nmclean.walker import _list_directory, find_target_directories


def _unreadable(*blocked: Path):
    """Make _list_directory fail for the given directories."""

    def _fake(path):
        if Path(path) in blocked:
            raise PermissionError(13, "Permission denied", str(path))
        return _list_directory(path)

    return patch("nmclean.walker._list_directory", side_effect=_fake)


class TestFindTargetDirectories:
    def test_finds_single_target(self, tmp_path):
        node_modules = tmp_path / "app" / "node_modules"
        node_modules.mkdir(parents=True)
        (node_modules / "package.json").write_text("{}")

        results = list(find_target_directories(tmp_path))
        assert results == [node_modules]

    def test_finds_targets_in_name_order(self, tmp_path):
        """Siblings are visited in sorted order, depth first."""
        for project in ["zeta", "alpha", "mid/inner", "beta"]:
            (tmp_path / project / "node_modules").mkdir(parents=True)

        results = list(find_target_directories(tmp_path))
        assert results == [
            tmp_path / "alpha" / "node_modules",
            tmp_path / "beta" / "node_modules",
            tmp_path / "mid" / "inner" / "node_modules",
            tmp_path / "zeta" / "node_modules",
        ]

    def test_prunes_nested_targets(self, tmp_path):
        """Only the outer node_modules is reported."""
        outer = tmp_path / "app" / "node_modules"
        (outer / ".cache" / "node_modules").mkdir(parents=True)
        (outer / "react" / "node_modules").mkdir(parents=True)

        results = list(find_target_directories(tmp_path))
        assert results == [outer]

    def test_does_not_list_inside_targets(self, tmp_path):
        """A found target is never opened."""
        outer = tmp_path / "app" / "node_modules"
        (outer / "pkg").mkdir(parents=True)

        listed = []

        def _spy(path):
            listed.append(Path(path))
            return _list_directory(path)

        with patch("nmclean.walker._list_directory", side_effect=_spy):
            list(find_target_directories(tmp_path))

        assert outer not in listed
        assert outer / "pkg" not in listed

    def test_no_results_are_nested(self, tmp_path):
        for rel in [
            "a/node_modules/b/node_modules",
            "a/sub/node_modules",
            "c/d/e/node_modules/x/y/node_modules",
            "f/node_modules",
        ]:
            (tmp_path / rel).mkdir(parents=True)

        results = list(find_target_directories(tmp_path))
        assert len(results) == len(set(results)) == 4
        for a in results:
            for b in results:
                if a != b:
                    assert not b.is_relative_to(a)

    def test_skips_git_directory(self, tmp_path):
        (tmp_path / "repo" / ".git" / "node_modules").mkdir(parents=True)

        assert list(find_target_directories(tmp_path)) == []

    def test_skips_hidden_directories(self, tmp_path):
        (tmp_path / ".hidden" / "node_modules").mkdir(parents=True)

        assert list(find_target_directories(tmp_path)) == []

        found = list(find_target_directories(tmp_path, PathFilter(skip_hidden=False)))
        assert found == [tmp_path / ".hidden" / "node_modules"]

    def test_ignores_files_named_like_targets(self, tmp_path):
        (tmp_path / "app").mkdir()
        (tmp_path / "app" / "node_modules").write_text("not a directory")

        assert list(find_target_directories(tmp_path)) == []

    def test_does_not_follow_symlinks(self, tmp_path):
        elsewhere = tmp_path / "elsewhere"
        (elsewhere / "node_modules").mkdir(parents=True)
        root = tmp_path / "root"
        root.mkdir()
        os.symlink(elsewhere, root / "link")

        assert list(find_target_directories(root)) == []

    def test_symlink_named_node_modules_not_reported(self, tmp_path):
        real = tmp_path / "store"
        real.mkdir()
        app = tmp_path / "app"
        app.mkdir()
        os.symlink(real, app / "node_modules")

        assert list(find_target_directories(tmp_path)) == []

    def test_terminates_on_symlink_cycle(self, tmp_path):
        loop = tmp_path / "a" / "b"
        loop.mkdir(parents=True)
        os.symlink(tmp_path / "a", loop / "back")
        (tmp_path / "a" / "node_modules").mkdir()

        results = list(find_target_directories(tmp_path))
        assert results == [tmp_path / "a" / "node_modules"]

    def test_continues_after_unreadable_directory(self, tmp_path):
        """An unreadable directory does not stop its siblings being scanned."""
        locked = tmp_path / "locked"
        (locked / "node_modules").mkdir(parents=True)
        good = tmp_path / "open" / "node_modules"
        good.mkdir(parents=True)

        errors = []
        with _unreadable(locked):
            results = list(
                find_target_directories(tmp_path, on_error=lambda p, e: errors.append(p))
            )

        assert results == [good]
        assert errors == [locked]

    def test_unreadable_root_yields_nothing(self, tmp_path):
        errors = []
        with _unreadable(tmp_path):
            results = list(
                find_target_directories(tmp_path, on_error=lambda p, e: errors.append(p))
            )

        assert results == []
        assert errors == [tmp_path]

    def test_respects_max_depth(self, tmp_path):
        deep = tmp_path / "a" / "b" / "c"
        (deep / "node_modules").mkdir(parents=True)

        # node_modules is at level 4 below the root
        assert list(find_target_directories(tmp_path, max_depth=3)) == []
        assert list(find_target_directories(tmp_path, max_depth=4)) == [deep / "node_modules"]
        assert list(find_target_directories(tmp_path, max_depth=0)) == []

    def test_handles_very_deep_trees(self, tmp_path):
        """Depth beyond the interpreter recursion limit is fine."""
        deep = str(tmp_path)
        for _ in range(1100):
            deep = os.path.join(deep, "d")
            os.mkdir(deep)
        os.mkdir(os.path.join(deep, "node_modules"))

        try:
            results = list(find_target_directories(tmp_path))
            assert len(results) == 1
            assert results[0].name == "node_modules"
        finally:
            # Remove bottom-up so tmp_path cleanup does not have to recurse
            os.rmdir(os.path.join(deep, "node_modules"))
            while deep != str(tmp_path):
                os.rmdir(deep)
                deep = os.path.dirname(deep)

    def test_is_lazy(self, tmp_path):
        for project in ["a", "b"]:
            (tmp_path / project / "node_modules").mkdir(parents=True)

        walker = find_target_directories(tmp_path)
        assert next(walker) == tmp_path / "a" / "node_modules"

    def test_stops_when_cancelled(self, tmp_path):
        for project in ["a", "b", "c"]:
            (tmp_path / project / "node_modules").mkdir(parents=True)

        cancel = threading.Event()
        results = []
        for path in find_target_directories(tmp_path, cancel_event=cancel):
            results.append(path)
            cancel.set()

        assert results == [tmp_path / "a" / "node_modules"]

    def test_cancelled_before_start(self, tmp_path):
        (tmp_path / "a" / "node_modules").mkdir(parents=True)
        cancel = threading.Event()
        cancel.set()

        assert list(find_target_directories(tmp_path, cancel_event=cancel)) == []

    def test_same_result_twice(self, tmp_path):
        for rel in ["x/node_modules", "y/z/node_modules", "a/node_modules"]:
            (tmp_path / rel).mkdir(parents=True)

        assert list(find_target_directories(tmp_path)) == list(
            find_target_directories(tmp_path)
        )
