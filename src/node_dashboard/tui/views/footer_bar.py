"""Footer bar renderer for status indicators.

This module provides the render_footer_bar function that displays
RPC health, the most recent RPC or draw error, and a quit hint.
"""

from __future__ import annotations

from rich.text import Text

from ..tui_utils import truncate_text


def render_footer_bar(
    pending_requests: int,
    error_message: str | None = None,
    terminal_width: int = 80,
) -> Text:
    """Build Rich Text displaying footer status bar.

    Args:
        pending_requests: Number of RPC calls still waiting for an answer
        error_message: Most recent error to display, if any
        terminal_width: Terminal width for truncation calculations

    Returns:
        Rich Text component ready for rendering
    """
    parts = []

    if pending_requests > 0:
        request_text = (
            "1 request pending" if pending_requests == 1 else f"{pending_requests} requests pending"
        )
        parts.append((request_text, "yellow"))
    else:
        parts.append(("No requests pending", "dim"))

    if error_message:
        # Format: "[requests] | [error] | F10 to quit"
        quit_hint = " | F10 to quit"
        request_part = parts[0][0] + " | "
        available_width = terminal_width - len(request_part) - len(quit_hint)

        if available_width > 10:
            parts.append((" | ", "dim"))
            parts.append((truncate_text(error_message, available_width), "red"))

    parts.append((" | ", "dim"))
    parts.append(("F10 to quit", "cyan"))

    footer = Text()
    for text, style in parts:
        footer.append(text, style=style)

    return footer
