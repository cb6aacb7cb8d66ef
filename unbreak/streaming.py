import os
import re
from typing import Any, Dict, Optional

import markdown_it

from .markdown_functional import finalize_markdown, unbreak

renderer_cfg: Dict[str, Any] = {
    "preset": os.environ.get("UNBREAK_MARKDOWN_PRESET", "commonmark"),
    "options": {
        "html": False,      # Escape raw HTML coming from the stream
        "breaks": True,     # Convert '\n' in paragraphs into <br>
    },
    "tables": True,
    # Render the repaired, not-yet-stable last line instead of holding it back
    "render_partial": True,
}

# A code fence line (``` or ~~~, optionally followed by an info string)
FENCE_LINE_PATTERN = re.compile(r"^[ \t]*(`{3,}|~{3,})(.*)$", re.MULTILINE)


def build_renderer(cfg: Optional[Dict[str, Any]] = None) -> markdown_it.MarkdownIt:
    cfg = cfg or renderer_cfg
    md = markdown_it.MarkdownIt(cfg.get("preset", "commonmark"), dict(cfg.get("options") or {}))
    if cfg.get("tables"):
        md.enable("table")
    return md


# Initialize the markdown-it parser once to be reused.
md = build_renderer()


def render_markdown(markdown: str) -> str:
    """Repairs a markdown fragment and renders it to HTML in one go."""
    return md.render(unbreak(markdown) or "")


def find_open_fence(text: str) -> int:
    """Returns the offset of the last code fence if it is still unclosed, else -1."""
    opener = ""
    open_start = -1
    for match in FENCE_LINE_PATTERN.finditer(text):
        fence, info = match.group(1), match.group(2)
        if not opener:
            opener, open_start = fence, match.start()
        # Only a bare fence of the same character, at least as long, closes it
        elif fence[0] == opener[0] and len(fence) >= len(opener) and not info.strip():
            opener, open_start = "", -1
    return open_start


def find_stable_boundary(buffer: str) -> int:
    """
    Finds where the stable part of a streaming buffer ends.

    Everything before the returned offset can be rendered for good: it stops
    right before an unclosed code fence, otherwise after the last newline.
    Returns 0 when nothing is stable yet (e.g. the first line is still
    streaming).
    """
    open_fence = find_open_fence(buffer)
    if open_fence != -1:
        return open_fence
    return buffer.rfind("\n") + 1


class MarkdownBufferProcessor:
    """
    Manages the streaming of text chunks, splitting the incoming text into a
    stable part and an unstable tail, repairing broken inline markdown and
    rendering the result to HTML for a real-time UI.
    """

    def __init__(self, cfg: Optional[Dict[str, Any]] = None):
        self.cfg = cfg or renderer_cfg
        self.md = build_renderer(self.cfg)
        # Incoming text that is not yet stable
        self.buffer = ""
        # Text that will not change anymore
        self.stable_text = ""

    @property
    def visible_tail(self) -> str:
        # Code inside an unclosed fence is never shown half-way
        if not self.cfg.get("render_partial", True) or find_open_fence(self.buffer) != -1:
            return ""
        return self.buffer

    @property
    def text(self) -> str:
        """The repaired markdown of everything that can be shown right now."""
        return unbreak(self.stable_text + self.visible_tail)

    def process_chunk(self, chunk: str) -> str:
        """
        Processes a new chunk, updates the internal buffers and returns the
        rendered HTML of the whole document so far.
        """
        self.buffer += chunk or ""

        stable_index = find_stable_boundary(self.buffer)
        if stable_index > 0:
            self.stable_text += self.buffer[:stable_index]
            self.buffer = self.buffer[stable_index:]

        return self.md.render(self.text)

    def finish(self) -> str:
        """
        Flushes any remaining content in the buffer when the stream ends.
        Returns the final rendered HTML for the full document.
        """
        final_text = finalize_markdown(self.buffer, self.stable_text)
        self.stable_text = final_text
        self.buffer = ""
        return self.md.render(final_text)
