"""Tests for logging color output."""
from __future__ import annotations

import os
from unittest.mock import patch


class TestColorSupport:
    """Color support detection."""

    def test_no_color_env_disables_colors(self):
        """VOISO_NO_COLOR=1 disables colors."""
        from voiso.core.logging import supports_color

        with patch.dict(os.environ, {"VOISO_NO_COLOR": "1"}):
            assert supports_color() is False

    def test_no_color_standard_env(self):
        """NO_COLOR env var disables colors (standard)."""
        from voiso.core.logging import supports_color

        env = {k: v for k, v in os.environ.items() if k != "VOISO_NO_COLOR"}
        env["NO_COLOR"] = "1"
        with patch.dict(os.environ, env, clear=True):
            assert supports_color() is False


class TestColorCodes:
    """ANSI codes applied only when enabled."""

    def test_colorize_with_colors_enabled(self, monkeypatch):
        from voiso.core.logging import Colors, colorize, colors

        monkeypatch.setattr(colors, "USE_COLORS", True)
        result = colorize("test", Colors.RED)
        assert result == f"{Colors.RED}test{Colors.RESET}"

    def test_colorize_with_colors_disabled(self, monkeypatch):
        from voiso.core.logging import Colors, colorize, colors

        monkeypatch.setattr(colors, "USE_COLORS", False)
        assert colorize("test", Colors.RED) == "test"


class TestTagColors:
    def test_known_tags(self):
        from voiso.core.logging import Colors, get_tag_color

        assert get_tag_color("SUCCESS") == Colors.BRIGHT_GREEN
        assert get_tag_color("fail") == Colors.BRIGHT_RED
        assert get_tag_color("WARN") == Colors.BRIGHT_YELLOW

    def test_unknown_tag(self):
        from voiso.core.logging import Colors, get_tag_color

        assert get_tag_color("WHATEVER") == Colors.WHITE


class TestFieldColors:
    def test_upstream_status_colors(self):
        from voiso.core.logging import Colors, ColoredConsoleFormatter

        assert ColoredConsoleFormatter._field_color("status", 502) == Colors.RED
        assert ColoredConsoleFormatter._field_color("status", 429) == Colors.YELLOW
        assert ColoredConsoleFormatter._field_color("status", 200) == Colors.GREEN

    def test_remaining_quota(self):
        from voiso.core.logging import Colors, ColoredConsoleFormatter

        assert ColoredConsoleFormatter._field_color("remaining", 0) == Colors.RED
        assert ColoredConsoleFormatter._field_color("remaining", 5) == Colors.CYAN
