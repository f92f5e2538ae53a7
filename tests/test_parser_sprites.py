"""
Sprite directive tests

Tests sprite-map packing, the rewrites of every built-in sprite/image
function, attribution of generated lines, and sprite failures.
"""

import re
import pytest
from pathlib import Path

from PIL import Image

from wellington.lib.directives import SpriteRegistry
from wellington.lib.parser import Parser
from wellington.lib.scanner import SPRITE_FUNCTIONS
from wellington.lib.errors import ScanError, SpriteError, SpriteErrorReason
from wellington.models.directives import DirectiveCategory
from wellington.models.parser import LineOrigin, ParserState
from wellington.models.sprites import Offset


SHEET_URL = r'url\("icons-[0-9a-f]{6}\.png"\)'


def png(path: Path, size, color=(255, 0, 0, 255)) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGBA", size, color).save(path)
    return path


@pytest.fixture
def project(tmp_path):
    """Image tree with two icons: home 10x10 and user 20x15"""
    png(tmp_path / "img" / "icons" / "home.png", (10, 10))
    png(tmp_path / "img" / "icons" / "user.png", (20, 15), (0, 0, 255, 255))
    png(tmp_path / "img" / "logo.png", (32, 8))
    return tmp_path


def parse(project: Path, source: str, **kwargs):
    main = project / "main.scss"
    main.write_text(source, encoding="utf-8")
    parser = Parser(
        main,
        include_paths=[],
        image_dir=project / "img",
        gen_img_dir=project / "gen",
        **kwargs,
    )
    return parser, parser.parse()


MAP = '$icons: sprite-map("icons/*.png");\n'


class TestSpriteMap:
    """Test packing through $var: sprite-map(glob)"""

    def test_map_packed(self, project):
        """The sheet is written and bound to the variable"""
        parser, result = parse(project, MAP)

        sheet = result.sprites["icons"]
        assert sheet.offsets["home"] == Offset(0, 0, 10, 10)
        assert sheet.offsets["user"] == Offset(0, 10, 20, 15)
        assert sheet.path.parent == project / "gen"
        assert re.fullmatch(r"icons-[0-9a-f]{6}\.png", sheet.path.name)

        with Image.open(sheet.path) as image:
            assert image.size == (20, 25)

    def test_assignment_rewritten(self, project):
        """The assignment becomes a plain string variable holding the URL"""
        parser, result = parse(project, MAP)
        assert re.fullmatch(r'\$icons: "icons-[0-9a-f]{6}\.png";\n', result.buffer)

    def test_spacing_keyword(self, project):
        """$spacing separates images"""
        parser, result = parse(
            project, '$icons: sprite-map("icons/*.png", $spacing: 5px);\n'
        )
        sheet = result.sprites["icons"]
        assert sheet.offsets["user"].y == 15
        assert sheet.height == 30

    def test_horizontal_layout(self, project):
        """$layout: horizontal places images side by side"""
        parser, result = parse(
            project, '$icons: sprite-map("icons/*.png", $layout: horizontal);\n'
        )
        sheet = result.sprites["icons"]
        assert sheet.offsets["user"] == Offset(10, 0, 20, 15)
        assert (sheet.width, sheet.height) == (30, 15)

    def test_global_flag(self, project):
        """A map assigned !global inside a block stays visible after it"""
        parser, result = parse(
            project,
            'a {\n  $icons: sprite-map("icons/*.png") !global;\n}\n'
            "b { c: sprite-position($icons, user); }\n",
        )
        lines = result.buffer.splitlines()

        assert re.fullmatch(r'  \$icons: "icons-[0-9a-f]{6}\.png" !global;', lines[1])
        assert lines[3] == "b { c: 0px -10px; }"
        assert "icons" in result.sprites

    def test_default_flag(self, project):
        """A map assigned !default does not replace an existing binding"""
        parser, result = parse(
            project,
            MAP + '$icons: sprite-map("icons/*.png", $spacing: 5px) !default;\n'
            "a { b: sprite-position($icons, user); }\n",
        )
        assert result.buffer.splitlines()[2] == "a { b: 0px -10px; }"

    def test_unknown_layout(self, project):
        """Unknown layouts are malformed"""
        with pytest.raises(ScanError):
            parse(project, '$icons: sprite-map("icons/*.png", $layout: diagonal);\n')

    def test_glob_matches_nothing(self, project):
        """An empty glob is a missing image"""
        with pytest.raises(SpriteError) as excinfo:
            parse(project, '$icons: sprite-map("nothing/*.png");\n')
        assert excinfo.value.reason == SpriteErrorReason.MISSING_IMAGE


class TestSpriteRewrites:
    """Test the built-in sprite functions"""

    def test_sprite(self, project):
        """sprite() gives the sheet URL and the background position"""
        parser, result = parse(project, MAP + ".user { background: sprite($icons, user); }\n")
        line = result.buffer.splitlines()[1]
        assert re.fullmatch(r"\.user \{ background: " + SHEET_URL + r" 0px -10px; \}", line)

    def test_sprite_with_offsets(self, project):
        """Extra arguments shift the position"""
        parser, result = parse(
            project, MAP + "a { b: sprite-position($icons, user, 2px, 1px); }\n"
        )
        assert result.buffer.splitlines()[1] == "a { b: 2px -9px; }"

    def test_sprite_position_origin(self, project):
        """The first image sits at the origin"""
        parser, result = parse(project, MAP + "a { b: sprite-position($icons, home); }\n")
        assert result.buffer.splitlines()[1] == "a { b: 0px 0px; }"

    def test_sprite_url(self, project):
        parser, result = parse(project, MAP + "a { b: sprite-url($icons); }\n")
        assert re.fullmatch(r"a \{ b: " + SHEET_URL + r"; \}", result.buffer.splitlines()[1])

    def test_sprite_dimensions_helpers(self, project):
        """sprite-width() and sprite-height() give pixel sizes"""
        parser, result = parse(
            project,
            MAP + "a { width: sprite-width($icons, user); height: sprite-height($icons, user); }\n",
        )
        assert result.buffer.splitlines()[1] == "a { width: 20px; height: 15px; }"

    def test_sprite_file(self, project):
        """sprite-file() gives the original image relative to the image directory"""
        parser, result = parse(project, MAP + "$f: sprite-file($icons, home);\n")
        assert result.buffer.splitlines()[1] == '$f: "icons/home.png";'

    def test_quoted_image_name(self, project):
        """Image names may be quoted"""
        parser, result = parse(project, MAP + 'a { b: sprite-position($icons, "user"); }\n')
        assert result.buffer.splitlines()[1] == "a { b: 0px -10px; }"

    def test_image_functions(self, project):
        """image-url(), image-width() and image-height() read single files"""
        parser, result = parse(
            project,
            'a {\n  background: image-url("logo.png");\n'
            '  width: image-width("logo.png");\n  height: image-height("logo.png");\n}\n',
        )
        lines = result.buffer.splitlines()
        assert lines[1] == '  background: url("logo.png");'
        assert lines[2] == "  width: 32px;"
        assert lines[3] == "  height: 8px;"

    def test_inline_image(self, project):
        """inline-image() embeds a data URI"""
        parser, result = parse(project, 'a { b: inline-image("logo.png"); }\n')
        assert result.buffer.startswith('a { b: url("data:image/png;base64,')

    def test_inside_custom_call(self, project):
        """Built-ins passed to a custom function are expanded in place"""
        parser, result = parse(
            project,
            'a { width: foo(image-width("logo.png")); }\n',
            custom_functions=["foo($n)"],
        )
        assert result.buffer == "a { width: foo(32px); }\n"
        assert [call.name for call in result.calls] == ["foo"]

    def test_build_dir_urls(self, project):
        """URLs are relative to the build directory when one is given"""
        parser, result = parse(
            project,
            MAP + "a { b: sprite-url($icons); c: image-url('logo.png'); }\n",
            build_dir=project / "css",
        )
        line = result.buffer.splitlines()[1]
        assert re.search(r'url\("\.\./gen/icons-[0-9a-f]{6}\.png"\)', line)
        assert 'url("../img/logo.png")' in line


class TestAttribution:
    """Test line attribution of generated text"""

    def test_dimensions_attributed_to_directive(self, project):
        """Both generated lines map to the directive's line"""
        parser, result = parse(
            project,
            MAP + ".user {\n  sprite-dimensions($icons, user);\n}\n",
        )
        main = (project / "main.scss").resolve()

        assert result.buffer.splitlines()[2:5] == ["  width: 20px;", "height: 15px;", "}"]
        assert parser.file_lookup(3) == LineOrigin(main, 3)
        assert parser.file_lookup(4) == LineOrigin(main, 3)
        assert parser.file_lookup(5) == LineOrigin(main, 4)

    def test_call_spanning_lines(self, project):
        """A multi-line call maps to its first line and later text keeps its lines"""
        parser, result = parse(
            project,
            'a {\n  width: image-width(\n    "logo.png"\n  );\n  color: red;\n}\n',
        )
        main = (project / "main.scss").resolve()

        assert result.buffer == "a {\n  width: 32px;\n  color: red;\n}\n"
        assert parser.file_lookup(2) == LineOrigin(main, 2)
        assert parser.file_lookup(3) == LineOrigin(main, 5)
        assert parser.file_lookup(4) == LineOrigin(main, 6)

    def test_map_from_imported_file(self, project):
        """Maps defined in an import are visible to the importer"""
        (project / "_sprites.scss").write_text(MAP, encoding="utf-8")
        parser, result = parse(
            project, '@import "sprites";\na { b: sprite-position($icons, user); }\n'
        )
        assert result.buffer.splitlines()[1] == "a { b: 0px -10px; }"
        assert parser.file_lookup(1).path.name == "_sprites.scss"


class TestSpriteFailures:
    """Test sprite errors and all-or-nothing behaviour"""

    def test_missing_image_aborts(self, project):
        """Referencing an image not in the map fails with no output"""
        main_source = MAP + "a {\n  b: sprite($icons, nope);\n}\n"

        with pytest.raises(SpriteError) as excinfo:
            parse(project, main_source)

        assert excinfo.value.reason == SpriteErrorReason.MISSING_IMAGE
        assert excinfo.value.image == "nope"
        assert excinfo.value.path == (project / "main.scss").resolve()
        assert excinfo.value.line == 3

    def test_missing_image_leaves_no_result(self, project):
        """The parser keeps no buffer after a sprite failure"""
        main = project / "main.scss"
        main.write_text('a { b: image-url("nope.png"); }\n', encoding="utf-8")
        parser = Parser(main, include_paths=[], image_dir=project / "img")

        with pytest.raises(SpriteError) as excinfo:
            parser.parse()

        assert excinfo.value.reason == SpriteErrorReason.MISSING_IMAGE
        assert parser.state == ParserState.FAILED
        assert parser.result is None

    def test_unknown_map(self, project):
        """A variable that holds no sprite map is an unknown map"""
        with pytest.raises(SpriteError) as excinfo:
            parse(project, "a { b: sprite($nomap, home); }\n")
        assert excinfo.value.reason == SpriteErrorReason.UNKNOWN_MAP

    def test_map_out_of_scope(self, project):
        """A map bound inside a block is gone once the block closes"""
        source = (
            'a {\n  $icons: sprite-map("icons/*.png");\n  b: sprite-url($icons);\n}\n'
            "c { d: sprite-url($icons); }\n"
        )
        with pytest.raises(SpriteError) as excinfo:
            parse(project, source)
        assert excinfo.value.reason == SpriteErrorReason.UNKNOWN_MAP
        assert excinfo.value.line == 5

    def test_wrong_arity(self, project):
        """Too few arguments is a malformed directive"""
        with pytest.raises(ScanError) as excinfo:
            parse(project, MAP + "a { b: sprite($icons); }\n")
        assert excinfo.value.line == 2

    def test_undecodable_image(self, project):
        """Files that are not images fail to pack"""
        (project / "img" / "icons" / "broken.png").write_bytes(b"not a png")
        with pytest.raises(SpriteError) as excinfo:
            parse(project, MAP)
        assert excinfo.value.reason == SpriteErrorReason.PACK_FAILURE


class TestRegistry:
    """Test the built-in function registry"""

    def test_names_match_scanner(self):
        """Every built-in the scanner recognizes has a handler"""
        registry = SpriteRegistry()
        assert set(registry.names()) == SPRITE_FUNCTIONS
        assert all(registry.get(name) is not None for name in SPRITE_FUNCTIONS)

    def test_categories(self):
        """sprite-map is the only assigning function"""
        registry = SpriteRegistry()
        maps = registry.directives_listByCategory(DirectiveCategory.SPRITE_MAP)
        assert [spec.name for spec in maps] == ["sprite-map"]
        assert [s.name for s in registry.specs.values() if s.assigns] == ["sprite-map"]
