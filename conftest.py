"""Root conftest.py for the digilock-rci repository.

Puts the package sources on ``sys.path`` so the tests run from a plain
checkout, and marks tests by the kind of stream they drive: tests that
open real localhost sockets are marked ``network``, tests driven by an
in-process transport (scripted transport or emulator) are marked
``in_process``.
"""

from __future__ import annotations

import ast
import inspect
import sys
import textwrap
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from _pytest.config import Config
    from _pytest.nodes import Item


PROJECT_ROOT = Path(__file__).parent
for pkg_dir in PROJECT_ROOT.glob("digilock-*/src"):
    if str(pkg_dir) not in sys.path:
        sys.path.insert(0, str(pkg_dir))


def pytest_configure(config: Config) -> None:
    """Register custom markers.

    Args:
        config: pytest configuration object.
    """
    config.addinivalue_line(
        "markers",
        "network: Test opens localhost TCP sockets (auto-detected or manually marked)",
    )
    config.addinivalue_line(
        "markers",
        "in_process: Test drives an in-process transport",
    )
    config.addinivalue_line(
        "markers",
        "integration: Integration test requiring a real DigiLock",
    )


class SocketUsageDetector(ast.NodeVisitor):
    """AST visitor that detects tests touching real sockets."""

    SOCKET_NAMES = frozenset({
        "EmulatorServer",
        "SocketTransport",
        "open_socket_transport",
        "socket",
        # fixtures that start a server or listener
        "server",
        "listener",
        "config_file",
    })

    def __init__(self) -> None:
        self.uses_socket = False

    def visit_Name(self, node: ast.Name) -> None:
        if node.id in self.SOCKET_NAMES:
            self.uses_socket = True
        self.generic_visit(node)

    def visit_FunctionDef(self, node: ast.FunctionDef) -> None:
        for arg in node.args.args:
            if arg.arg in self.SOCKET_NAMES:
                self.uses_socket = True
        self.generic_visit(node)


def _uses_socket(item: Item) -> bool:
    """Check whether a test opens real sockets.

    Args:
        item: pytest test item.

    Returns:
        True if the test or one of its fixtures uses a socket.
    """
    if item.get_closest_marker("network"):
        return True

    fixtures = set(getattr(item, "fixturenames", ()))
    if fixtures & SocketUsageDetector.SOCKET_NAMES:
        return True

    obj = getattr(item, "obj", None)
    if obj is None:
        return False
    try:
        tree = ast.parse(textwrap.dedent(inspect.getsource(obj)))
    except (OSError, TypeError, SyntaxError):
        return False
    detector = SocketUsageDetector()
    detector.visit(tree)
    return detector.uses_socket


def pytest_collection_modifyitems(config: Config, items: list[Item]) -> None:
    """Mark each test as ``network`` or ``in_process``.

    Args:
        config: pytest configuration object.
        items: List of collected test items.
    """
    for item in items:
        if _uses_socket(item):
            item.add_marker(pytest.mark.network)
        else:
            item.add_marker(pytest.mark.in_process)


def pytest_report_header(config: Config) -> list[str]:
    """Add coverage mode info to pytest header.

    Args:
        config: pytest configuration object.

    Returns:
        List of header lines.
    """
    lines = ["digilock-rci test suite"]

    if getattr(config.option, "cov_source", None):
        lines.append("Coverage: enabled")

    return lines
