"""YAML-driven keyword classes used by the answer heuristics."""
from __future__ import annotations

import logging
import os
import re
import time
from pathlib import Path
from typing import Dict, List, Optional

from config.settings import settings

logger = logging.getLogger(__name__)

DEFAULT_PATH = str(Path(__file__).resolve().parent / "answer_patterns.yaml")


def _load_yaml(path: str) -> dict:
    import yaml

    with open(path, "r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


class PatternEngine:
    """Compile and evaluate named keyword classes from YAML.

    The file is organised as ``groups -> class name -> [regex, ...]``. Class
    order inside a group is preserved so callers can rely on it for
    precedence (e.g. sentiment).
    """

    def __init__(self, path: Optional[str] = None):
        self.path = path or settings.PATTERNS_PATH or DEFAULT_PATH
        self._mtime = 0.0
        self._config: dict = {}
        self._compiled: Dict[str, Dict[str, List[re.Pattern[str]]]] = {}
        self.reload_if_changed(force=True)

    # ------------------------------------------------------------------
    # Loading & compilation
    # ------------------------------------------------------------------
    def reload_if_changed(self, force: bool = False) -> None:
        """Reload YAML configuration when the file timestamp changes."""

        try:
            stat = os.stat(self.path)
            if not force and stat.st_mtime <= self._mtime:
                return
            cfg = _load_yaml(self.path)
            self._mtime = stat.st_mtime
        except FileNotFoundError:
            logger.warning("Pattern file missing path=%s; heuristics run without keyword classes", self.path)
            cfg = {"version": 1, "groups": {}, "normalizers": ["strip_whitespace", "collapse_spaces"]}
            self._mtime = time.time()

        self._config = cfg
        self._compiled = {
            group: {
                name: [re.compile(pattern) for pattern in (patterns or [])]
                for name, patterns in (classes or {}).items()
            }
            for group, classes in cfg.get("groups", {}).items()
        }

    # ------------------------------------------------------------------
    # Normalization helpers
    # ------------------------------------------------------------------
    def normalize(self, text: str) -> str:
        ops = self._config.get("normalizers", [])
        sample = text or ""
        if "strip_whitespace" in ops:
            sample = sample.strip()
        if "collapse_spaces" in ops:
            sample = re.sub(r"\s+", " ", sample)
        if "to_lower" in ops:
            sample = sample.lower()
        return sample

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------
    def class_names(self, group: str) -> List[str]:
        self.reload_if_changed()
        return list(self._compiled.get(group, {}).keys())

    def matches(self, group: str, name: str, text: str) -> bool:
        """Return True when any pattern of ``group.name`` matches ``text``."""

        self.reload_if_changed()
        sample = self.normalize(text)
        return any(pattern.search(sample) for pattern in self._compiled.get(group, {}).get(name, []))

    def matched_classes(self, group: str, text: str) -> List[str]:
        """Return every class name of ``group`` with at least one hit, in file order."""

        self.reload_if_changed()
        sample = self.normalize(text)
        found: List[str] = []
        for name, patterns in self._compiled.get(group, {}).items():
            if any(pattern.search(sample) for pattern in patterns):
                found.append(name)
        return found

    def first_class(self, group: str, text: str) -> Optional[str]:
        """Return the first matching class of ``group`` in file order."""

        found = self.matched_classes(group, text)
        return found[0] if found else None

    def captures(self, group: str, name: str, text: str) -> List[str]:
        """Return the first capture group (or whole match) of every hit."""

        self.reload_if_changed()
        sample = self.normalize(text)
        values: List[str] = []
        for pattern in self._compiled.get(group, {}).get(name, []):
            for match in pattern.finditer(sample):
                value = match.group(1) if match.groups() else match.group(0)
                if value:
                    values.append(value.strip())
        return values


_engine: Optional[PatternEngine] = None


def pattern_engine() -> PatternEngine:
    global _engine
    if _engine is None:
        _engine = PatternEngine()
    return _engine


__all__ = ["PatternEngine", "pattern_engine"]
