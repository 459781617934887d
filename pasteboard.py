"""Send text to the OS pasteboard (pbcopy, xclip/xsel/wl-copy, or the Windows clipboard)."""

import logging

import pyperclip


def copy_to_pasteboard(text: str) -> None:
    """Copy ``text`` to the system clipboard in one shot.

    Returns once the clipboard command has consumed its input. Raises
    ``pyperclip.PyperclipException`` when no clipboard mechanism is usable.
    """
    pyperclip.copy(text)
    logging.debug(f"Copied {len(text):,} chars to clipboard")
