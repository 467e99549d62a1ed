"""
Pytest configuration and shared fixtures for all exscope tests.

Building the Earley parser is the only expensive step of an analysis, so the
parser and the driver wrapping it are created once per session.
"""

import sys
import pytest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
from exscope.analysis.context_query import ContextQueryService
from exscope.analysis.driver import AnalysisDriver
from exscope.frontend.parser import get_default_parser


# =============================================================================
# Session-scoped fixtures (shared across all tests)
# =============================================================================

@pytest.fixture(scope="session")
def session_parser():
    """
    Session-scoped parser shared across ALL tests.

    The parser keeps no per-parse state, so sharing it is safe.
    """
    return get_default_parser()


@pytest.fixture(scope="session")
def session_driver(session_parser):
    """Session-scoped driver with the default recovery budget."""
    return AnalysisDriver(parser=session_parser)


# =============================================================================
# Class-scoped fixtures (shared within a test class)
# =============================================================================

@pytest.fixture(scope="class")
def parser(session_parser):
    return session_parser


@pytest.fixture(scope="class")
def driver(session_driver):
    return session_driver


@pytest.fixture
def query_service(session_driver):
    """Query service without a documentation index."""
    return ContextQueryService(driver=session_driver)


@pytest.fixture
def elixir_file(tmp_path):
    """Write an Elixir source to a temporary .ex file and return its path."""
    def _write(source: str, name: str = "sample.ex") -> Path:
        path = tmp_path / name
        path.write_text(source, encoding="utf-8")
        return path
    return _write
