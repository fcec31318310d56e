"""Tests for emuhost.stream.ansi (AnsiRenderer, StyleState, SGR parsing)."""

from __future__ import annotations

from emuhost.stream.ansi import (
    DEFAULT_STYLE,
    PRE_CLOSE,
    PRE_OPEN,
    AnsiRenderer,
    StyleState,
    html_escape,
    parse_sgr_params,
    render_html,
    strip_ansi,
)


def pre(body: str) -> str:
    return f"{PRE_OPEN}{body}{PRE_CLOSE}"


# ---------------------------------------------------------------------------
# parse_sgr_params
# ---------------------------------------------------------------------------


class TestParseSgrParams:
    def test_empty_body_is_reset(self) -> None:
        assert parse_sgr_params("") == [0]

    def test_single(self) -> None:
        assert parse_sgr_params("31") == [31]

    def test_multiple(self) -> None:
        assert parse_sgr_params("1;31;44") == [1, 31, 44]

    def test_empty_parameter_defaults_to_zero(self) -> None:
        assert parse_sgr_params("1;;4") == [1, 0, 4]
        assert parse_sgr_params(";") == [0, 0]

    def test_non_numeric_dropped(self) -> None:
        assert parse_sgr_params("abc") == []
        assert parse_sgr_params("1;x;4") == [1, 4]

    def test_leading_digits_used(self) -> None:
        assert parse_sgr_params("12x") == [12]


# ---------------------------------------------------------------------------
# StyleState
# ---------------------------------------------------------------------------


class TestStyleState:
    def test_default(self) -> None:
        assert StyleState().is_default
        assert StyleState().span_open() == ""

    def test_reset_clears_everything(self) -> None:
        state = StyleState(
            foreground="red", background="blue", bold=True, underline=True, inverse=True
        )
        assert state.apply([0]) == DEFAULT_STYLE

    def test_bold_and_clear(self) -> None:
        assert StyleState().apply([1]).bold is True
        assert StyleState(bold=True).apply([21]).bold is False
        assert StyleState(bold=True).apply([22]).bold is False

    def test_underline_and_clear(self) -> None:
        assert StyleState().apply([4]).underline is True
        assert StyleState(underline=True).apply([24]).underline is False

    def test_inverse(self) -> None:
        assert StyleState().apply([7]).inverse is True

    def test_standard_foreground(self) -> None:
        assert StyleState().apply([30]).foreground == "black"
        assert StyleState().apply([37]).foreground == "white"

    def test_bright_foreground(self) -> None:
        assert StyleState().apply([90]).foreground == "#808080"
        assert StyleState().apply([97]).foreground == "#ffffff"

    def test_background_maps_through_foreground_table(self) -> None:
        assert StyleState().apply([42]).background == "green"
        assert StyleState().apply([104]).background == "#5555ff"

    def test_later_codes_override_earlier(self) -> None:
        assert StyleState().apply([31, 32]).foreground == "green"
        assert StyleState().apply([1, 0, 4]) == StyleState(underline=True)

    def test_unknown_codes_ignored(self) -> None:
        assert StyleState().apply([38, 5, 196]) == DEFAULT_STYLE
        assert StyleState().apply([27, 99, 200]) == DEFAULT_STYLE

    def test_span_open_inverse_swaps_colors(self) -> None:
        state = StyleState(foreground="red", background="blue", inverse=True)
        assert state.span_open() == '<span style="background:red;color:blue">'
        # Stored state is not swapped
        assert state.foreground == "red"

    def test_span_open_all_attributes(self) -> None:
        state = StyleState(foreground="red", background="blue", bold=True, underline=True)
        assert state.span_open() == (
            '<span style="color:red;background:blue;'
            'font-weight:700;text-decoration:underline">'
        )


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


class TestRender:
    def test_plain_text(self) -> None:
        assert render_html("hello") == pre("hello")

    def test_empty(self) -> None:
        assert render_html("") == pre("")

    def test_markup_unsafe_characters_escaped(self) -> None:
        assert render_html('a<b>&"c') == pre("a&lt;b&gt;&amp;&quot;c")
        assert html_escape("'") == "'"

    def test_color_then_reset(self) -> None:
        assert render_html("\x1b[31mRED\x1b[0mplain") == pre(
            '<span style="color:red">RED</span>plain'
        )

    def test_reset_from_default_is_noop(self) -> None:
        assert render_html("\x1b[0mx") == pre("x")
        assert render_html("\x1b[mx") == pre("x")

    def test_inverse_swap(self) -> None:
        assert render_html("\x1b[31;44;7mX") == pre(
            '<span style="background:red;color:blue">X</span>'
        )

    def test_inverse_with_foreground_only(self) -> None:
        assert render_html("\x1b[7;32mX") == pre('<span style="background:green">X</span>')

    def test_open_span_closed_at_end(self) -> None:
        assert render_html("\x1b[1mbold") == pre(
            '<span style="font-weight:700">bold</span>'
        )

    def test_unchanged_style_keeps_span(self) -> None:
        assert render_html("\x1b[31mA\x1b[31mB") == pre('<span style="color:red">AB</span>')

    def test_style_change_reopens_span(self) -> None:
        assert render_html("\x1b[31mA\x1b[1mB") == pre(
            '<span style="color:red">A</span>'
            '<span style="color:red;font-weight:700">B</span>'
        )

    def test_clear_bold(self) -> None:
        assert render_html("\x1b[1mA\x1b[22mB") == pre(
            '<span style="font-weight:700">A</span>B'
        )

    def test_extended_color_ignored(self) -> None:
        assert render_html("\x1b[38;5;196mX") == pre("X")

    def test_embedded_newline_becomes_br(self) -> None:
        assert render_html("x\ny") == pre("x<br>y")


class TestMalformedSequences:
    def test_unterminated_sequence_is_literal(self) -> None:
        assert render_html("\x1b[31") == pre("\x1b[31")

    def test_unterminated_sequence_keeps_following_text(self) -> None:
        assert render_html("a\x1b[1;2b") == pre("a\x1b[1;2b")

    def test_lone_escape(self) -> None:
        assert render_html("a\x1bb") == pre("a\x1bb")
        assert render_html("\x1b") == pre("\x1b")

    def test_garbage_parameters_ignored(self) -> None:
        assert render_html("\x1b[3x1mZ") == pre("Z")

    def test_text_after_literal_escape_still_escaped(self) -> None:
        assert render_html("\x1b[<b>") == pre("\x1b[&lt;b&gt;")


class TestCarriageReturn:
    def test_collapse(self) -> None:
        assert render_html("AAA\rBB") == pre("BB")

    def test_repeated_redraw_keeps_last(self) -> None:
        assert render_html("10%\r50%\r100%") == pre("100%")

    def test_only_current_line_erased(self) -> None:
        assert render_html("L1\nAAA\rB") == pre("L1<br>B")

    def test_crlf_is_a_newline(self) -> None:
        assert render_html("AB\r\nCD") == pre("AB<br>CD")

    def test_style_survives_erase(self) -> None:
        assert render_html("\x1b[31mAAA\rBB") == pre('<span style="color:red">BB</span>')

    def test_span_opened_on_earlier_line_not_duplicated(self) -> None:
        assert render_html("\x1b[31mL1\nAAA\rB") == pre(
            '<span style="color:red">L1<br>B</span>'
        )


class TestNoStyleBleed:
    def test_fresh_state_per_call(self) -> None:
        renderer = AnsiRenderer()
        renderer.render("\x1b[31;1mstyled")
        assert renderer.render("plain") == pre("plain")


class TestStripAnsi:
    def test_strip(self) -> None:
        assert strip_ansi("\x1b[31mred\x1b[0m text") == "red text"

    def test_no_codes(self) -> None:
        assert strip_ansi("plain") == "plain"
