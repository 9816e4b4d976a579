"""
The project file tree: folders are mappings, files are text, and both are
reached by slash-delimited paths starting at `root`.
"""
from __future__ import annotations
import os
import re
from typing import Optional, Dict, Any, List

from aw.aw_serialize import deserialize

SCRIPT_EXTENSION = ".aw"
DEFAULT_ENTRY_POINT = "root/logic/main/main.aw"


def _to_tree(content: Any) -> Any:
    """Mappings become folders; every other value is file content."""
    if isinstance(content, dict):
        return {str(k): _to_tree(v) for k, v in content.items()}
    return "" if content is None else str(content)


class VirtualFileTree:
    """The project's folders and files, addressed by slash-delimited paths
    such as `root/res/layout/main.xml`."""

    def __init__(self, files: Optional[Dict[str, Any]] = None, entry_point: str = DEFAULT_ENTRY_POINT):
        self.files: Dict[str, Any] = _to_tree(files or {})
        self.entry_point = entry_point

    @classmethod
    def from_project_data(cls, data: Any) -> 'VirtualFileTree':
        """
        Accepts `[{"main_screen": ..., "root": {...}}]`, `{"root": {...}}`,
        or a plain mapping of top-level entries.
        """
        root_data = data
        entry_point = DEFAULT_ENTRY_POINT
        if isinstance(data, list) and data:
            config = data[0]
            if isinstance(config, dict) and config.get("main_screen"):
                entry_point = str(config["main_screen"])
            root_data = {"root": config["root"]} if isinstance(config, dict) and "root" in config else config
        if not isinstance(root_data, dict):
            raise ValueError("project data must be a mapping of folders and files")
        if "root" in root_data:
            root_data = {"root": root_data["root"]}
        else:
            root_data = {k: v for k, v in root_data.items() if k != "main_screen"}
        return cls(root_data, entry_point)

    @classmethod
    def from_file(cls, path: str) -> 'VirtualFileTree':
        """Loads a `.json`, `.yaml` or `.yml` project description."""
        ext = os.path.splitext(path)[1].lower()
        fmt = "json" if ext == ".json" else "yaml"
        with open(path, "rb") as f:
            data = deserialize(f.read(), fmt=fmt)
        return cls.from_project_data(data)

    @classmethod
    def from_directory(cls, path: str, entry_point: str = DEFAULT_ENTRY_POINT) -> 'VirtualFileTree':
        """Mirrors a directory on disk; the directory itself becomes `root`."""
        def walk(d: str) -> Dict[str, Any]:
            out: Dict[str, Any] = {}
            for name in sorted(os.listdir(d)):
                full = os.path.join(d, name)
                if os.path.isdir(full):
                    out[name] = walk(full)
                elif os.path.isfile(full):
                    with open(full, "r", encoding="utf-8") as f:
                        out[name] = f.read()
            return out
        return cls({"root": walk(path)}, entry_point)

    @staticmethod
    def split(path: str) -> List[str]:
        return [p for p in re.split(r"[/\\]+", path) if p]

    def find(self, path: str) -> Any:
        """Returns a folder mapping, file content, or None."""
        parts = self.split(path)
        if not parts:
            return None
        current: Any = self.files
        for part in parts:
            if not isinstance(current, dict) or part not in current:
                return None
            current = current[part]
        return current

    def load(self, path: str) -> Optional[str]:
        """File content for path, retrying with the script extension; None for
        folders, empty files and misses."""
        for candidate in (path, path + SCRIPT_EXTENSION):
            found = self.find(candidate)
            if isinstance(found, str) and found:
                return found
        return None

    def write(self, path: str, content: str):
        parts = self.split(path)
        if not parts:
            raise ValueError("empty path")
        current = self.files
        for part in parts[:-1]:
            nxt = current.setdefault(part, {})
            if not isinstance(nxt, dict):
                raise ValueError(f"{part!r} is a file, not a folder")
            current = nxt
        current[parts[-1]] = content

    def __contains__(self, path: str) -> bool:
        return self.find(path) is not None

    def __repr__(self) -> str:
        return f"VirtualFileTree(entry_point={self.entry_point!r}, top={sorted(self.files)})"
