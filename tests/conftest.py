"""Shared fixtures for the kp_copy test suite."""

from __future__ import annotations

import os
import sys
from typing import List

import pytest

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

# Sinks run `python -m kp_copy.extract` in a child process.
_pythonpath = os.environ.get("PYTHONPATH", "")
if PROJECT_ROOT not in _pythonpath.split(os.pathsep):
    os.environ["PYTHONPATH"] = os.pathsep.join(p for p in (PROJECT_ROOT, _pythonpath) if p)

from kp_copy.core.sinks import ExtractionSink  # noqa: E402


class ScriptSink(ExtractionSink):
    """Sink running an inline Python script; the destination root is argv[1]."""

    def __init__(self, script: str):
        self.script = script

    def command(self, destination_root: str) -> List[str]:
        return [sys.executable, "-c", self.script, destination_root]

    def describe(self):
        return {"target": "script"}


@pytest.fixture
def script_sink():
    return ScriptSink


@pytest.fixture
def sample_tree(tmp_path):
    """Directory `a` holding `f.txt` ("hi") and an empty `sub/`."""
    root = tmp_path / "src" / "a"
    (root / "sub").mkdir(parents=True)
    (root / "f.txt").write_text("hi", encoding="utf-8")
    return root
