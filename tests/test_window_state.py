"""Tests for window state and derived when variables."""

from __future__ import annotations

import pytest

from extensionhost.extensions.window_state import (
    CommonExtensionWindowState,
    create_when_variables,
    substituted_window_state,
)


class TestCreateWhenVariables:
    """Test deriving when variables from focus state."""

    def test_empty_state(self) -> None:
        variables = create_when_variables(CommonExtensionWindowState())
        assert variables.terminalFocus is False
        assert variables.isHyperlink is False
        assert variables.hyperlinkURL is None
        assert variables.true is True
        assert variables.false is False

    def test_terminal_focus(self) -> None:
        variables = create_when_variables(CommonExtensionWindowState(active_terminal=object()))
        assert variables.terminalFocus is True

    def test_hyperlink_parts(self) -> None:
        state = CommonExtensionWindowState(
            active_hyperlink_url="https://Example.com:8080/files/report.tar.gz?x=1"
        )
        variables = create_when_variables(state)

        assert variables.isHyperlink is True
        assert variables.hyperlinkURL == "https://Example.com:8080/files/report.tar.gz?x=1"
        assert variables.hyperlinkProtocol == "https:"
        assert variables.hyperlinkDomain == "example.com"
        assert variables.hyperlinkFileExtension == "gz"

    def test_hyperlink_without_extension(self) -> None:
        variables = create_when_variables(
            CommonExtensionWindowState(active_hyperlink_url="http://example.com/docs/")
        )
        assert variables.hyperlinkProtocol == "http:"
        assert variables.hyperlinkFileExtension == ""

    def test_unparsable_url(self) -> None:
        variables = create_when_variables(
            CommonExtensionWindowState(active_hyperlink_url="notes/readme.md")
        )
        assert variables.isHyperlink is True
        assert variables.hyperlinkProtocol == ""
        assert variables.hyperlinkDomain == ""
        assert variables.hyperlinkFileExtension == "md"


class TestSubstitutedWindowState:
    """Test temporary replacement of the live state."""

    def test_restores_after_block(self) -> None:
        live = CommonExtensionWindowState(active_terminal="t1")
        temporary = CommonExtensionWindowState(active_hyperlink_url="https://x")

        with substituted_window_state(live, temporary) as state:
            assert state is live
            assert live.active_terminal is None
            assert live.active_hyperlink_url == "https://x"

        assert live.active_terminal == "t1"
        assert live.active_hyperlink_url is None

    def test_restores_on_exception(self) -> None:
        live = CommonExtensionWindowState(active_window="w1")

        with pytest.raises(RuntimeError):
            with substituted_window_state(live, CommonExtensionWindowState()):
                raise RuntimeError("boom")

        assert live.active_window == "w1"

    def test_copy_is_independent(self) -> None:
        live = CommonExtensionWindowState(active_terminal="t1")
        snapshot = live.copy()
        live.active_terminal = "t2"
        assert snapshot.active_terminal == "t1"
