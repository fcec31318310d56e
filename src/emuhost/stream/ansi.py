"""ANSI SGR to HTML rendering for emulator output lines."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, replace

ESC = "\x1b"

PRE_OPEN = '<pre style="white-space:pre-wrap; margin:0">'
PRE_CLOSE = "</pre>"

# SGR foreground code -> CSS colour (8 standard + 8 bright)
CSS_COLORS: dict[int, str] = {
    30: "black",
    31: "red",
    32: "green",
    33: "yellow",
    34: "blue",
    35: "magenta",
    36: "cyan",
    37: "white",
    90: "#808080",
    91: "#ff5555",
    92: "#55ff55",
    93: "#ffff55",
    94: "#5555ff",
    95: "#ff55ff",
    96: "#55ffff",
    97: "#ffffff",
}

_HTML_ESCAPES = {"&": "&amp;", "<": "&lt;", ">": "&gt;", '"': "&quot;"}
_LEADING_DIGITS = re.compile(r"\d+")


def html_escape(text: str) -> str:
    """Escape the four markup-unsafe characters."""
    return "".join(_HTML_ESCAPES.get(ch, ch) for ch in text)


@dataclass(frozen=True)
class StyleState:
    """Text attributes active at a point in the line."""

    foreground: str | None = None
    background: str | None = None
    bold: bool = False
    underline: bool = False
    inverse: bool = False

    @property
    def is_default(self) -> bool:
        return self == DEFAULT_STYLE

    def apply(self, codes: list[int]) -> StyleState:
        """Return the state after applying SGR codes left to right."""
        state = self
        for code in codes:
            if code == 0:
                state = DEFAULT_STYLE
            elif code == 1:
                state = replace(state, bold=True)
            elif code in (21, 22):
                state = replace(state, bold=False)
            elif code == 4:
                state = replace(state, underline=True)
            elif code == 24:
                state = replace(state, underline=False)
            elif code == 7:
                state = replace(state, inverse=True)
            elif 30 <= code <= 37 or 90 <= code <= 97:
                state = replace(state, foreground=CSS_COLORS[code])
            elif 40 <= code <= 47:
                state = replace(state, background=CSS_COLORS[code - 10])
            elif 100 <= code <= 107:
                state = replace(state, background=CSS_COLORS[code - 60])
            # 38/48 extended colours and anything else are ignored
        return state

    def span_open(self) -> str:
        """Opening ``<span>`` for this state, or ``""`` when nothing is set."""
        styles = []
        if self.inverse:
            if self.foreground:
                styles.append(f"background:{self.foreground}")
            if self.background:
                styles.append(f"color:{self.background}")
        else:
            if self.foreground:
                styles.append(f"color:{self.foreground}")
            if self.background:
                styles.append(f"background:{self.background}")
        if self.bold:
            styles.append("font-weight:700")
        if self.underline:
            styles.append("text-decoration:underline")
        if not styles:
            return ""
        return f'<span style="{";".join(styles)}">'


DEFAULT_STYLE = StyleState()


def parse_sgr_params(body: str) -> list[int]:
    """Split a CSI body on ``;`` into integer codes.

    Empty parameters count as ``0``; parameters without a leading digit are
    dropped.
    """
    if not body:
        return [0]
    codes = []
    for part in body.split(";"):
        if not part:
            codes.append(0)
            continue
        match = _LEADING_DIGITS.match(part)
        if match:
            codes.append(int(match.group()))
    return codes


class ScanState(enum.Enum):
    """Scanner states."""

    LITERAL = "literal"
    CSI = "csi"


class AnsiRenderer:
    """Convert one line of terminal text into an HTML fragment.

    Each call starts from the default style, so nothing carries over from
    the previous line. The scanner has two states: ``LITERAL`` copies
    characters through, ``CSI`` collects parameters after ``ESC [`` until the
    terminating ``m``. A sequence that never terminates is rewound: the ESC
    is emitted as text and scanning resumes right after it.
    """

    def render(self, text: str) -> str:
        out: list[str] = []
        style = DEFAULT_STYLE
        open_span = ""
        state = ScanState.LITERAL
        csi_start = 0
        params: list[str] = []
        i = 0
        n = len(text)

        while True:
            if state is ScanState.CSI:
                if i >= n:
                    # Unterminated: ESC becomes literal text
                    out.append(html_escape(ESC))
                    i = csi_start + 1
                    state = ScanState.LITERAL
                    continue
                ch = text[i]
                i += 1
                if ch != "m":
                    params.append(ch)
                    continue
                new_style = style.apply(parse_sgr_params("".join(params)))
                state = ScanState.LITERAL
                if new_style == style:
                    continue
                if open_span:
                    out.append("</span>")
                style = new_style
                open_span = style.span_open()
                out.append(open_span)
                continue

            if i >= n:
                break
            ch = text[i]
            if ch == ESC and i + 1 < n and text[i + 1] == "[":
                state = ScanState.CSI
                csi_start = i
                params = []
                i += 2
                continue
            if ch == "\r":
                if i + 1 < n and text[i + 1] == "\n":
                    i += 1
                    continue
                out = _return_to_line_start(out)
                if open_span and not _span_is_open(out):
                    out.append(open_span)
                i += 1
                continue
            out.append(html_escape(ch))
            i += 1

        if open_span:
            out.append("</span>")
        body = "".join(out).replace("\n", "<br>")
        return f"{PRE_OPEN}{body}{PRE_CLOSE}"


def _return_to_line_start(out: list[str]) -> list[str]:
    """Drop everything rendered after the last newline."""
    rendered = "".join(out)
    cut = rendered.rfind("\n")
    return [rendered[: cut + 1]] if cut >= 0 else []


def _span_is_open(out: list[str]) -> bool:
    # Spans never nest, so the balance is 0 or 1
    rendered = "".join(out)
    return rendered.count("<span") > rendered.count("</span>")


_renderer = AnsiRenderer()


def render_html(text: str) -> str:
    """Render ``text`` with a fresh style state."""
    return _renderer.render(text)


def strip_ansi(text: str) -> str:
    """Strip ANSI escape sequences from text."""
    return re.sub(r"\x1b\[[0-9;]*[a-zA-Z]", "", text)
