"""Shared test fixtures for hostguard tests."""

import os
import textwrap

import pytest

from hostguard.config import AnalysisConfig
from hostguard.driver import Analyzer


def pytest_addoption(parser):
    """Add --run-slow for the large batch tests."""
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
def isolated_config(tmp_path, monkeypatch):
    """Keep user and project config files and HOSTGUARD_* variables out of every test."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)
    for key in list(os.environ):
        if key.startswith("HOSTGUARD_"):
            monkeypatch.delenv(key)


def cs(text: str) -> str:
    """Dedent a C# snippet written inline in a test."""
    return textwrap.dedent(text).lstrip("\n")


@pytest.fixture
def analyzer():
    """Analyzer with every rule enabled, running sequentially."""
    return Analyzer(AnalysisConfig(max_workers=1))


@pytest.fixture
def write_cs(tmp_path):
    """Write a dedented C# snippet under the test's temp directory and return its path."""

    def _write(name: str, text: str) -> str:
        path = tmp_path / "src" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(cs(text))
        return str(path)

    return _write


@pytest.fixture
def blocking_package():
    """Async package whose async method blocks on a task."""
    return cs(
        """
        using Microsoft.VisualStudio.Shell;
        using System.Threading.Tasks;

        namespace Demo
        {
            public sealed class MyPackage : AsyncPackage
            {
                private async Task LoadAsync(Task task)
                {
                    task.Wait();
                }
            }
        }
        """
    )


@pytest.fixture
def clean_source():
    """A file no rule reports on."""
    return cs(
        """
        using System;

        namespace Demo
        {
            public class Calculator
            {
                public int Add(int a, int b)
                {
                    return a + b;
                }
            }
        }
        """
    )
