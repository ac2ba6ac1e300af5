"""
Toolbelt Test Configuration
---------------------------
Shared fixtures and configuration for all tests.
"""

import sys
from pathlib import Path
import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from infra.config import ToolkitConfig
from tools.tool import FunctionTool
from tools.toolkit import Toolkit


@pytest.fixture(scope="session")
def project_root():
    """Return the project root path."""
    return PROJECT_ROOT


@pytest.fixture(scope="function")
def toolkit():
    """Sequential toolkit with default settings."""
    kit = Toolkit()
    yield kit
    kit.close()


@pytest.fixture(scope="function")
def parallel_toolkit():
    kit = Toolkit(ToolkitConfig(parallel=True))
    yield kit
    kit.close()


@pytest.fixture(scope="function")
def echo_tool():
    """Returns its 'text' argument."""
    return FunctionTool(
        name="echo",
        description="Echo the given text",
        handler=lambda args: args["text"],
        parameters={
            "type": "object",
            "properties": {"text": {"type": "string"}},
            "required": ["text"],
        },
    )


@pytest.fixture(scope="function")
def failing_tool():
    """Always raises with a fixed message."""
    def _fail(args):
        raise RuntimeError("boom")

    return FunctionTool(name="explode", description="Always fails", handler=_fail)


@pytest.fixture(scope="function")
def search_tools():
    """search and lookup, both returning their query."""
    parameters = {
        "type": "object",
        "properties": {"query": {"type": "string"}},
        "required": ["query"],
    }
    search = FunctionTool(
        name="search",
        description="Search documents",
        handler=lambda args: f"search:{args['query']}",
        parameters=parameters,
    )
    lookup = FunctionTool(
        name="lookup",
        description="Look up a record",
        handler=lambda args: f"lookup:{args['query']}",
        parameters=parameters,
    )
    return search, lookup
