import difflib
import json
import os
from collections import namedtuple
from pathlib import Path

MODES = ("new", "all", "none")

Comparison = namedtuple("Comparison", ["passed", "diff"])


def report(title, expected, actual):
    lines = difflib.unified_diff(
        expected.splitlines(),
        actual.splitlines(),
        fromfile="golden",
        tofile="received",
        lineterm="",
    )
    return f"Snapshot name: `{title}`\n\n" + "\n".join(lines)


class GoldenStore:
    """Golden records, one JSON file per artifact id keyed by case title.

    mode "new" records missing goldens and compares existing ones, "all"
    overwrites every golden it is handed, "none" fails on missing ones.
    """

    def __init__(self, directory, mode="new", root=None):
        if mode not in MODES:
            raise ValueError(f"unknown golden mode {mode!r}, expected one of {MODES}")
        self.directory = Path(directory)
        self.mode = mode
        self.root = Path(root) if root is not None else None
        self._records = {}
        self._dirty = set()

    def path_for(self, artifact_id):
        """Keep the artifact's subdirectories so same-named files do not share a golden."""
        path = Path(artifact_id)
        if path.is_absolute():
            try:
                path = path.relative_to(self.root) if self.root is not None else Path(path.name)
            except ValueError:
                path = Path(path.name)
        parts = [p for p in path.parts if p not in ("", ".", "..")]
        if not parts:
            raise ValueError(f"artifact id {artifact_id!r} names no file")
        return self.directory.joinpath(*parts[:-1], f"{parts[-1]}.json")

    def records(self, artifact_id):
        if artifact_id not in self._records:
            path = self.path_for(artifact_id)
            if path.exists():
                with open(path, encoding="utf-8") as f:
                    self._records[artifact_id] = json.load(f)
            else:
                self._records[artifact_id] = {}
        return self._records[artifact_id]

    def compare(self, actual, artifact_id, case_title):
        records = self.records(artifact_id)
        try:
            if self.mode == "all" or (self.mode == "new" and case_title not in records):
                if records.get(case_title) != actual:
                    records[case_title] = actual
                    self._dirty.add(artifact_id)
                return Comparison(True, None)

            if case_title not in records:
                return Comparison(False, f"Snapshot name: `{case_title}`\n\nNo golden recorded.")

            expected = records[case_title]
            if expected == actual:
                return Comparison(True, None)
            return Comparison(False, report(case_title, expected, actual))
        finally:
            self.save(artifact_id)

    def save(self, artifact_id):
        if artifact_id not in self._dirty:
            return
        path = self.path_for(artifact_id)
        os.makedirs(path.parent, exist_ok=True)
        tmp = path.with_name(path.name + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(self._records[artifact_id], f, indent=2, sort_keys=True, ensure_ascii=False)
            f.write("\n")
        os.replace(tmp, path)
        self._dirty.discard(artifact_id)
