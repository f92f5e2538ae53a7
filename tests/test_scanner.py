"""
Directive scanner tests

Tests import statements, assignment heads, sprite and custom calls, and the
regions (comments, strings, url(), interpolation) the scanner must ignore.
"""

import pytest

from wellington.lib.scanner import Scanner, args_split, args_partition, dequote
from wellington.lib.errors import ScanError
from wellington.models.directives import (
    Assignment,
    CustomFunctionCall,
    FunctionSignature,
    Import,
    PlainRun,
    SpriteRule,
)


def scan(text, signatures=()):
    return list(Scanner(signatures).scan(text))


class TestImports:
    """Test @import recognition"""

    def test_single_import(self):
        """Import consumes the statement and the rest of its line"""
        directives = scan('@import "b";\ndiv { color: red; }')

        assert isinstance(directives[0], Import)
        assert directives[0].target == "b"
        assert directives[0].text == '@import "b";\n'
        assert directives[0].span.line == 1
        assert isinstance(directives[1], PlainRun)
        assert directives[1].text == "div { color: red; }"
        assert directives[1].span.line == 2

    def test_multiple_targets(self):
        """One Import per comma-separated target, sharing the span"""
        directives = scan('@import "reset", "grid";')
        imports = [d for d in directives if isinstance(d, Import)]

        assert [i.target for i in imports] == ["reset", "grid"]
        assert imports[0].span == imports[1].span

    def test_single_quotes(self):
        """Single-quoted targets are recognized"""
        directives = scan("@import 'mixins';")
        assert directives[0].target == "mixins"

    def test_css_import_passes_through(self):
        """Plain-CSS imports stay in the text"""
        for source in ['@import "print.css";', '@import url(foo.css);',
                       '@import "http://fonts.example.com/x";']:
            directives = scan(source)
            assert all(isinstance(d, PlainRun) for d in directives)
            assert "".join(d.text for d in directives) == source

    def test_import_later_in_file(self):
        """Line numbers of imports after other content"""
        directives = scan('a { b: c; }\n\n@import "x";\n')
        imports = [d for d in directives if isinstance(d, Import)]
        assert imports[0].span.line == 3

    def test_import_without_target(self):
        """An @import with nothing after it is malformed"""
        with pytest.raises(ScanError) as excinfo:
            scan("a {}\n@import ;")
        assert excinfo.value.line == 2

    def test_empty_target(self):
        """An empty quoted target is malformed"""
        with pytest.raises(ScanError):
            scan('@import "";')

    def test_line_comment_after_target(self):
        """A trailing // comment ends the statement without hiding the import"""
        directives = scan('@import "b" // base\ndiv {}')

        assert [type(d) for d in directives] == [Import, PlainRun]
        assert directives[0].target == "b"
        assert directives[0].text == '@import "b" // base\n'
        assert directives[1].text == "div {}"

    def test_block_comment_between_parts(self):
        """Block comments may sit between targets and before the semicolon"""
        directives = scan('@import "a" /* x */, "b" /* y */;\ndiv {}')
        imports = [d for d in directives if isinstance(d, Import)]

        assert [i.target for i in imports] == ["a", "b"]
        assert directives[-1].text == "div {}"

    def test_media_query_stops_at_newline(self):
        """A pass-through import without a semicolon ends at its line"""
        directives = scan('@import "print" screen\n@import "b";\n')
        imports = [d for d in directives if isinstance(d, Import)]

        assert [i.target for i in imports] == ["b"]
        assert directives[0].text == '@import "print" screen\n'


class TestAssignments:
    """Test $name: declaration heads"""

    def test_assignment_head(self):
        """Assignment covers only the head; the value stays plain text"""
        directives = scan("$hex: #00FF00;\n")

        assert isinstance(directives[0], Assignment)
        assert directives[0].name == "hex"
        assert directives[0].value == "#00FF00"
        assert directives[0].text == "$hex:"
        assert "".join(d.text for d in directives) == "$hex: #00FF00;\n"

    def test_default_flag(self):
        """!default is recorded and stripped from the value"""
        assignment = scan("$gap: 4px !default;")[0]
        assert assignment.default is True
        assert assignment.is_global is False
        assert assignment.value == "4px"

    def test_global_flag(self):
        """!global is recorded"""
        assignment = scan("a { $gap: 4px !global; }")[1]
        assert isinstance(assignment, Assignment)
        assert assignment.is_global is True

    def test_variable_reference_is_not_assignment(self):
        """$name in a value position is plain text"""
        directives = scan("a { b: $x; }")
        assert all(isinstance(d, PlainRun) for d in directives)

    def test_sprite_map_assignment(self):
        """$m: sprite-map(glob) becomes one SpriteRule bound to m"""
        directives = scan('$icons: sprite-map("icons/*.png");')

        rule = directives[0]
        assert isinstance(rule, SpriteRule)
        assert rule.name == "sprite-map"
        assert rule.assign == "icons"
        assert rule.args == ['"icons/*.png"']
        assert rule.text == '$icons: sprite-map("icons/*.png")'

    def test_sprite_map_keyword_arguments(self):
        """Keyword arguments stay in the argument list"""
        rule = scan('$m: sprite-map("*.png", $spacing: 2px);')[0]
        assert rule.args == ['"*.png"', "$spacing: 2px"]

    def test_unassigned_sprite_map(self):
        """sprite-map() outside an assignment is malformed"""
        with pytest.raises(ScanError):
            scan('a { b: sprite-map("*.png"); }')


class TestCalls:
    """Test sprite and custom function calls"""

    def test_sprite_call(self):
        """sprite() call splits the surrounding plain text"""
        directives = scan("a { background: sprite($icons, home); }")

        assert [type(d) for d in directives] == [PlainRun, SpriteRule, PlainRun]
        assert directives[0].text == "a { background: "
        assert directives[1].name == "sprite"
        assert directives[1].args == ["$icons", "home"]
        assert directives[2].text == "; }"

    def test_call_spanning_lines(self):
        """Calls may span lines; the span keeps the first and last line"""
        directives = scan("a {\n  b: image-url(\n    'logo.png'\n  );\n}")
        rule = [d for d in directives if isinstance(d, SpriteRule)][0]

        assert rule.span.line == 2
        assert rule.span.end_line == 4

    def test_suffix_identifier_is_not_call(self):
        """my-sprite() is not sprite()"""
        directives = scan("a { b: my-sprite(x); }")
        assert all(isinstance(d, PlainRun) for d in directives)

    def test_unterminated_call(self):
        """A call cut off by ';' is malformed"""
        with pytest.raises(ScanError) as excinfo:
            scan("a {\n  b: sprite($m, x;\n}")
        assert excinfo.value.line == 2

    def test_custom_call(self):
        """Registered signatures are recognized"""
        sig = FunctionSignature.parse("foo($bar, $baz)")
        directives = scan("a { b: foo(1px, 2px); }", [sig])

        call = directives[1]
        assert isinstance(call, CustomFunctionCall)
        assert call.args == ["1px", "2px"]
        assert call.signature is sig

    def test_custom_call_keywords(self):
        """Keyword arguments bind by name"""
        sig = FunctionSignature.parse("foo($bar, $baz)")
        directives = scan("a { b: foo($baz: 1, $bar: 2); }", [sig])
        assert isinstance(directives[1], CustomFunctionCall)

    def test_custom_call_missing_argument(self):
        """Required parameters must be bound"""
        sig = FunctionSignature.parse("foo($bar, $baz)")
        with pytest.raises(ScanError):
            scan("a { b: foo(1px); }", [sig])

    def test_custom_call_too_many_arguments(self):
        """Extra positional arguments are rejected"""
        sig = FunctionSignature.parse("foo($bar, $baz)")
        with pytest.raises(ScanError):
            scan("a { b: foo(1, 2, 3); }", [sig])

    def test_custom_call_default_parameter(self):
        """Parameters with defaults may be omitted"""
        sig = FunctionSignature.parse("foo($bar, $baz: 10px)")
        directives = scan("a { b: foo(1px); }", [sig])
        assert isinstance(directives[1], CustomFunctionCall)

    def test_custom_call_arguments_scanned(self):
        """Built-in calls inside a custom call's arguments are still found"""
        sig = FunctionSignature.parse("foo($n)")
        directives = scan("a { b: foo(sprite-url($icons)); }", [sig])

        assert [type(d) for d in directives] == [PlainRun, CustomFunctionCall, SpriteRule, PlainRun]
        assert directives[1].text == "foo("
        assert directives[1].args == ["sprite-url($icons)"]
        assert directives[2].name == "sprite-url"
        assert directives[3].text == "); }"

    def test_unregistered_call_is_plain(self):
        """Calls without a signature are plain text"""
        directives = scan("a { b: foo(1px); }")
        assert all(isinstance(d, PlainRun) for d in directives)


class TestOpaqueRegions:
    """Test that nothing is recognized inside comments, strings and url()"""

    def test_block_comment(self):
        """Directives inside /* */ are ignored"""
        directives = scan('/* @import "x"; sprite($m, a) */\na {}')
        assert all(isinstance(d, PlainRun) for d in directives)

    def test_line_comment(self):
        """Directives after // are ignored"""
        directives = scan('// @import "x";\na {}')
        assert all(isinstance(d, PlainRun) for d in directives)

    def test_string(self):
        """Directives inside strings are ignored"""
        directives = scan('a { content: "sprite($m, a)"; }')
        assert all(isinstance(d, PlainRun) for d in directives)

    def test_url_with_slashes(self):
        """// inside url() does not start a comment"""
        directives = scan("a { b: url(http://x.org/a.png); c: image-url('a.png'); }")
        assert any(isinstance(d, SpriteRule) for d in directives)

    def test_interpolation(self):
        """#{} interpolations are opaque"""
        directives = scan('a { b: #{"sprite($m, a)"}; }')
        assert all(isinstance(d, PlainRun) for d in directives)

    def test_unterminated_comment(self):
        """An unterminated block comment is malformed"""
        with pytest.raises(ScanError):
            scan("a {}\n/* never closed")


class TestRunCoalescing:
    """Test PlainRun boundaries and text preservation"""

    def test_empty_source(self):
        """Empty text yields nothing"""
        assert scan("") == []

    def test_plain_source_is_one_run(self):
        """Text without directives is a single run"""
        source = "a {\n  color: red;\n}\n\nb { margin: 0; }\n"
        directives = scan(source)

        assert len(directives) == 1
        assert directives[0].text == source
        assert directives[0].braces == ("{", "}", "{", "}")

    def test_text_reproduced(self):
        """Concatenated directive text reproduces the input"""
        source = (
            '@import "reset";\n'
            "$icons: sprite-map(\"i/*.png\");\n"
            "/* note */\n"
            "a { background: sprite($icons, home); }\n"
        )
        assert "".join(d.text for d in scan(source)) == source

    def test_rescan_is_independent(self):
        """Each scan() starts from scratch"""
        scanner = Scanner()
        first = list(scanner.scan('@import "a";'))
        second = list(scanner.scan('@import "a";'))
        assert first == second


class TestArgumentHelpers:
    """Test argument splitting helpers"""

    def test_args_split_nested(self):
        """Commas in strings and nested parens do not split"""
        assert args_split('$icons, "a,b", rgba(0, 0, 0, 1)') == \
            ["$icons", '"a,b"', "rgba(0, 0, 0, 1)"]

    def test_args_split_empty(self):
        """No arguments"""
        assert args_split("  ") == []

    def test_args_partition(self):
        """Keyword arguments are separated"""
        assert args_partition(['"x"', "$spacing: 2px"]) == (['"x"'], {"spacing": "2px"})

    def test_dequote(self):
        """One level of matching quotes is removed"""
        assert dequote('"a"') == "a"
        assert dequote("'a'") == "a"
        assert dequote("a") == "a"
        assert dequote("\"a'") == "\"a'"
