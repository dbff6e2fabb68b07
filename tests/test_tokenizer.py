"""Tests for the quote-aware DATEV tokenizer."""

from bankconv.utils.tokenizer import render, tokenize


class TestTokenize:
    """Tests for tokenize()."""

    def test_quoted_and_unquoted_tokens(self):
        """Test that quoting is reported per token."""
        assert tokenize('"37040044";0532013000;"EUR"') == [
            ("37040044", True),
            ("0532013000", False),
            ("EUR", True),
        ]

    def test_doubled_quote_is_literal(self):
        """Test that a doubled quote inside quotes yields one quote."""
        assert tokenize('"Muster ""GmbH""";x') == [('Muster "GmbH"', True), ("x", False)]

    def test_delimiter_inside_quotes(self):
        """Test that a quoted delimiter does not split the token."""
        assert tokenize('"a;b";c') == [("a;b", True), ("c", False)]

    def test_trailing_delimiter_gives_empty_token(self):
        """Test that a trailing delimiter produces an empty last field."""
        assert tokenize("a;") == [("a", False), ("", False)]

    def test_empty_quoted_token(self):
        """Test that "" is an empty but quoted value."""
        assert tokenize('"";x') == [("", True), ("x", False)]

    def test_line_terminator_is_stripped(self):
        """Test that CRLF does not end up in the last token."""
        assert tokenize("a;b\r\n") == [("a", False), ("b", False)]

    def test_custom_delimiter(self):
        """Test tokenizing with a comma delimiter."""
        assert tokenize("a,'b,c'", delimiter=",", quote="'") == [("a", False), ("b,c", True)]


class TestRender:
    """Tests for render()."""

    def test_render_reverses_tokenize(self):
        """Test that rendering tokens reproduces the source line."""
        line = 'x;"y;z";"q""r";;""'
        assert render(tokenize(line)) == line

    def test_render_escapes_quotes(self):
        """Test that quotes inside quoted values are doubled."""
        assert render([('say "hi"', True), ("1", False)]) == '"say ""hi""";1'
