"""Tests for footer bar rendering."""

from __future__ import annotations

from rich.text import Text

from node_dashboard.tui.views.footer_bar import render_footer_bar


class TestRenderFooterBar:
    """Tests for footer bar rendering."""

    def test_no_requests_no_error(self) -> None:
        """Render footer with nothing pending and no error."""
        footer = render_footer_bar(pending_requests=0)

        assert isinstance(footer, Text)
        text_str = footer.plain
        assert "No requests pending" in text_str
        assert "F10 to quit" in text_str

    def test_single_request_pending(self) -> None:
        """Render footer with one outstanding request."""
        footer = render_footer_bar(pending_requests=1)

        text_str = footer.plain
        assert "1 request pending" in text_str
        assert "requests" not in text_str  # Should be singular

    def test_multiple_requests_pending(self) -> None:
        """Render footer with several outstanding requests."""
        footer = render_footer_bar(pending_requests=5)

        assert "5 requests pending" in footer.plain

    def test_with_error_message(self) -> None:
        """Render footer with the last RPC error."""
        footer = render_footer_bar(
            pending_requests=2,
            error_message="CurrentHeadHeader: HTTP 500",
        )

        text_str = footer.plain
        assert "2 requests pending" in text_str
        assert "CurrentHeadHeader: HTTP 500" in text_str
        assert "F10 to quit" in text_str

    def test_with_long_error_message(self) -> None:
        """Render footer with long error that needs truncation."""
        long_error = (
            "CurrentHeadHeader: request to http://127.0.0.1:18732/chains/main/blocks/head/header "
            "failed: connection refused"
        )
        footer = render_footer_bar(
            pending_requests=1,
            error_message=long_error,
            terminal_width=80,
        )

        text_str = footer.plain
        # Error should be truncated
        assert "..." in text_str
        assert len(text_str) <= 80
        assert "F10 to quit" in text_str

    def test_error_omitted_on_narrow_terminal(self) -> None:
        """Error message omitted if not enough space."""
        footer = render_footer_bar(
            pending_requests=10,
            error_message="This error won't fit",
            terminal_width=35,
        )

        text_str = footer.plain
        assert "10 requests pending" in text_str
        assert "won't fit" not in text_str
        assert "F10 to quit" in text_str

    def test_has_styled_components(self) -> None:
        """Verify that footer contains styled spans."""
        footer = render_footer_bar(pending_requests=1, error_message="Error")

        assert len(footer.spans) > 0
