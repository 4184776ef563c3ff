"""Shared test fixtures for solsift: small Solidity projects in tmp_path."""

from pathlib import Path
from textwrap import dedent
from typing import Callable, Optional

import pytest

from solsift import analyze, load_config
from solsift.models import Report
from solsift.scanning import SolidityParser, SourceFile, SourceLoader

SPDX = "// SPDX-License-Identifier: MIT\npragma solidity 0.8.20;\n"


def pytest_addoption(parser):
    """Add --run-slow option for slow tests."""
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="run slow tests",
    )


def pytest_configure(config):
    """Configure slow marker."""
    config.addinivalue_line("markers", "slow: mark test as slow to run")


def pytest_collection_modifyitems(config, items):
    """Skip slow tests unless --run-slow is given."""
    if config.getoption("--run-slow"):
        return
    skip_slow = pytest.mark.skip(reason="need --run-slow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Keep SOLSIFT_* variables from the developer's shell out of tests."""
    import os

    for key in list(os.environ):
        if key.startswith("SOLSIFT_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def write_project(tmp_path) -> Callable[[dict[str, str]], Path]:
    """Write ``{relative path: source}`` into tmp_path and return the root."""

    def _write(files: dict[str, str]) -> Path:
        for rel, content in files.items():
            path = tmp_path / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(dedent(content), encoding="utf-8")
        return tmp_path

    return _write


@pytest.fixture
def run_project(write_project) -> Callable[..., Report]:
    """Write a project and analyze it with the built-in detectors."""

    def _run(files: dict[str, str], **overrides) -> Report:
        root = write_project(files)
        overrides.setdefault("workers", 1)
        config = load_config(root=root, **overrides)
        return analyze(config)

    return _run


@pytest.fixture
def run_source(run_project) -> Callable[..., Report]:
    """Analyze a single ``src/Test.sol`` file.

    The SPDX line and a pinned pragma are prepended unless ``header=False``.
    """

    def _run(source: str, header: bool = True, **overrides) -> Report:
        body = dedent(source)
        return run_project({"src/Test.sol": (SPDX + body) if header else body}, **overrides)

    return _run


@pytest.fixture
def load_source(tmp_path) -> Callable[[str, Optional[str]], SourceFile]:
    """Load one file through the real loader."""

    def _load(source: str, name: Optional[str] = None) -> SourceFile:
        path = tmp_path / (name or "Test.sol")
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(dedent(source), encoding="utf-8")
        return SourceLoader(tmp_path).load(path)

    return _load


@pytest.fixture(scope="session")
def parser() -> SolidityParser:
    return SolidityParser()
