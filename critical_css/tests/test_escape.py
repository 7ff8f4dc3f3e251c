"""Tests for the placeholder escaping of special characters."""

import itertools

import pytest

from ..utils.config import SPECIAL_CHARS
from ..utils.escape import escape_classes, escape_selectors, restore_selectors

class TestEscapeSelectors:
    """Tests for the CSS side of the codec."""

    def test_escaped_colon(self):
        """Test an escaped colon is replaced by its placeholder."""
        assert escape_selectors('.md\\:flex{display:flex}') == '.md__0__flex{display:flex}'

    def test_unescaped_characters_untouched(self):
        """Test plain pseudo-classes and values are left alone."""
        css = 'a:hover{background:url(a/b.png)}'
        assert escape_selectors(css) == css

    def test_restore(self):
        """Test placeholders are restored to the escaped form."""
        assert restore_selectors('.w-1__1__2{width:50%}') == '.w-1\\/2{width:50%}'

    def test_placeholder_followed_by_digit(self):
        """Test a placeholder followed by a digit is not read as a longer one."""
        css = '.a\\/2\\.5{x:y}'
        assert restore_selectors(escape_selectors(css)) == css

    @pytest.mark.parametrize('size', [1, 2, 3])
    def test_round_trip_combinations(self, size):
        """Test restore(escape(x)) == x for combinations of special characters."""
        escaped_forms = [css for css, _ in SPECIAL_CHARS]
        for combination in itertools.permutations(escaped_forms, size):
            css = '.x' + '1'.join(combination) + '0{a:b}'
            assert restore_selectors(escape_selectors(css)) == css

class TestEscapeClasses:
    """Tests for the HTML side of the codec."""

    def test_class_value(self):
        """Test special characters are replaced inside class values."""
        html = '<div class="md:flex w-1/2">x</div>'
        assert escape_classes(html) == '<div class="md__0__flex w-1__1__2">x</div>'

    def test_single_quotes(self):
        """Test single quoted class values."""
        assert escape_classes("<p class='a:b'>") == "<p class='a__0__b'>"

    def test_entities(self):
        """Test entity aliases share the placeholder of their character."""
        assert escape_classes('<p class="&lt;x&gt;">') == '<p class="__6__x__7__">'

    def test_outside_class_untouched(self):
        """Test the rest of the markup is left untouched."""
        html = '<a href="http://x.org/a:b" data-x="1.5">a:b</a>'
        assert escape_classes(html) == html

    def test_same_placeholder_both_sides(self):
        """Test both sides produce the same selector token."""
        css = escape_selectors('.hover\\:text-\\[\\#fff\\]{color:#fff}')
        html = escape_classes('<span class="hover:text-[#fff]"></span>')
        assert '.hover__0__text-__10__' in css
        assert 'hover__0__text-__10__#fff__11__' in html
