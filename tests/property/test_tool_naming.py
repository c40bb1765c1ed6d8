"""Property-based tests for MCP tool name prefixing."""

import re

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from toolmesh_core.mcp.naming import is_mcp_tool, prefix_tool_name, sanitize_name

SANITIZED = re.compile(r"^([a-z0-9]+(_[a-z0-9]+)*)?$")


@pytest.mark.property
class TestSanitizeName:
    """Property tests for sanitize_name."""

    @given(st.text(max_size=60))
    @settings(max_examples=100)
    def test_output_alphabet(self, name):
        """Output is lowercase alphanumerics separated by single underscores."""
        assert SANITIZED.match(sanitize_name(name))

    @given(st.text(max_size=60))
    @settings(max_examples=100)
    def test_idempotent(self, name):
        """Sanitizing twice equals sanitizing once."""
        once = sanitize_name(name)

        assert sanitize_name(once) == once

    @given(st.from_regex(r"^[a-z0-9]+(_[a-z0-9]+)*$", fullmatch=True))
    @settings(max_examples=50)
    def test_clean_names_unchanged(self, name):
        assert sanitize_name(name) == name


@pytest.mark.property
class TestPrefixToolName:
    """Property tests for prefix_tool_name."""

    @given(st.text(max_size=30), st.text(max_size=30))
    @settings(max_examples=100)
    def test_deterministic_and_prefixed(self, server, tool):
        """Same inputs give the same routable name."""
        name = prefix_tool_name(server, tool)

        assert name == prefix_tool_name(server, tool)
        assert is_mcp_tool(name)
        assert name == f"mcp__{sanitize_name(server)}__{sanitize_name(tool)}"
