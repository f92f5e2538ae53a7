"""
Built-in sprite and image functions

Each function rewrites a sprite/image call into plain declarations that
reference the packed sheet or the image on disk. Uses DirectiveSpec for
metadata and arity validation.
"""

import base64
import mimetypes
from typing import Any, Dict, List, Optional

from ..models.directives import DirectiveSpec, DirectiveCategory, SpriteRule
from .errors import SpriteError, SpriteErrorReason


def px(value: int) -> str:
    """Format a pixel length the way the rewrites print it"""
    return "0px" if value == 0 else f"{value}px"


class SpriteRegistry:
    """
    Registry of sprite/image function specifications and handlers

    Maps function names to DirectiveSpec objects. The set of names is fixed
    at construction and is what the scanner recognizes as sprite rules.
    """

    def __init__(self) -> None:
        """Initialize the registry and register all built-in functions"""
        self.specs: Dict[str, DirectiveSpec] = {}
        self.spriteMapDirectives_register()
        self.spriteDirectives_register()
        self.dimensionDirectives_register()
        self.imageDirectives_register()

    def register(self, spec: DirectiveSpec) -> None:
        """Register a function specification"""
        self.specs[spec.name] = spec

    def get(self, name: str) -> Optional[Any]:
        """Get the handler for a function name, or None"""
        spec = self.specs.get(name)
        return spec.handler if spec else None

    def spec_get(self, name: str) -> Optional[DirectiveSpec]:
        """Get full specification by name"""
        return self.specs.get(name)

    def names(self) -> List[str]:
        return sorted(self.specs)

    def directives_listByCategory(self, category: DirectiveCategory) -> List[DirectiveSpec]:
        """Get all functions in a category"""
        return [spec for spec in self.specs.values() if spec.category == category]

    def spriteMapDirectives_register(self) -> None:
        """Register the sprite-map builder"""

        def spriteMap_handler(rule: SpriteRule, expander: Any, variables: Any) -> str:
            """Handle `$m: sprite-map(glob)` - pack and bind the sheet to $m"""
            sheet = expander.map_create(rule, variables)
            variables.assign(
                rule.assign, sheet, default=rule.default, is_global=rule.is_global
            )
            return f'${rule.assign}: "{expander.sheetUrl_make(sheet)}"'

        self.register(DirectiveSpec(
            name='sprite-map',
            category=DirectiveCategory.SPRITE_MAP,
            description='Pack images matching a glob into one sheet',
            handler=spriteMap_handler,
            min_args=1,
            max_args=1,
            assigns=True,
            examples=['$icons: sprite-map("icons/*.png");',
                      '$icons: sprite-map("icons/*.png", $spacing: 2px);']
        ))

    def spriteDirectives_register(self) -> None:
        """Register functions that reference a packed sheet"""

        def position_make(rule: SpriteRule, expander: Any, variables: Any) -> str:
            sheet = expander.sheet_get(rule.args[0], variables)
            offset = expander.offset_get(sheet, rule.args[1], variables)
            dx = expander.pixels_parse(rule.args[2], variables) if len(rule.args) > 2 else 0
            dy = expander.pixels_parse(rule.args[3], variables) if len(rule.args) > 3 else 0
            return f"{px(dx - offset.x)} {px(dy - offset.y)}"

        def sprite_handler(rule: SpriteRule, expander: Any, variables: Any) -> str:
            """Handle sprite($m, name) - sheet url plus background position"""
            sheet = expander.sheet_get(rule.args[0], variables)
            url = expander.sheetUrl_make(sheet)
            return f'url("{url}") {position_make(rule, expander, variables)}'

        def position_handler(rule: SpriteRule, expander: Any, variables: Any) -> str:
            """Handle sprite-position($m, name) - background position only"""
            return position_make(rule, expander, variables)

        def url_handler(rule: SpriteRule, expander: Any, variables: Any) -> str:
            """Handle sprite-url($m) - url of the packed sheet"""
            sheet = expander.sheet_get(rule.args[0], variables)
            return f'url("{expander.sheetUrl_make(sheet)}")'

        def file_handler(rule: SpriteRule, expander: Any, variables: Any) -> str:
            """Handle sprite-file($m, name) - path of the original image"""
            sheet = expander.sheet_get(rule.args[0], variables)
            name = expander.arg_resolve(rule.args[1], variables)
            expander.offset_get(sheet, rule.args[1], variables)
            return f'"{expander.imageUrl_make(sheet.sources[name])}"'

        self.register(DirectiveSpec(
            name='sprite',
            category=DirectiveCategory.SPRITE,
            description='Background shorthand for one image of a sprite map',
            handler=sprite_handler,
            min_args=2,
            max_args=4,
            examples=['background: sprite($icons, home);',
                      'background: sprite($icons, home, 2px, 0);']
        ))

        self.register(DirectiveSpec(
            name='sprite-position',
            category=DirectiveCategory.SPRITE,
            description='Background position of one image of a sprite map',
            handler=position_handler,
            min_args=2,
            max_args=4,
            examples=['background-position: sprite-position($icons, home);']
        ))

        self.register(DirectiveSpec(
            name='sprite-url',
            category=DirectiveCategory.SPRITE,
            description='URL of the packed sprite sheet',
            handler=url_handler,
            min_args=1,
            max_args=1,
            examples=['background-image: sprite-url($icons);']
        ))

        self.register(DirectiveSpec(
            name='sprite-file',
            category=DirectiveCategory.SPRITE,
            description='Path of an original image in a sprite map',
            handler=file_handler,
            min_args=2,
            max_args=2,
            examples=['$path: sprite-file($icons, home);']
        ))

    def dimensionDirectives_register(self) -> None:
        """Register width/height functions"""

        def spriteHeight_handler(rule: SpriteRule, expander: Any, variables: Any) -> str:
            """Handle sprite-height($m, name)"""
            sheet = expander.sheet_get(rule.args[0], variables)
            return px(expander.offset_get(sheet, rule.args[1], variables).height)

        def spriteWidth_handler(rule: SpriteRule, expander: Any, variables: Any) -> str:
            """Handle sprite-width($m, name)"""
            sheet = expander.sheet_get(rule.args[0], variables)
            return px(expander.offset_get(sheet, rule.args[1], variables).width)

        def spriteDimensions_handler(rule: SpriteRule, expander: Any, variables: Any) -> str:
            """Handle sprite-dimensions($m, name) - width and height declarations"""
            sheet = expander.sheet_get(rule.args[0], variables)
            offset = expander.offset_get(sheet, rule.args[1], variables)
            return f"width: {px(offset.width)};\nheight: {px(offset.height)}"

        def imageHeight_handler(rule: SpriteRule, expander: Any, variables: Any) -> str:
            """Handle image-height(file)"""
            path = expander.image_find(rule.args[0], variables)
            return px(expander.image_size(path)[1])

        def imageWidth_handler(rule: SpriteRule, expander: Any, variables: Any) -> str:
            """Handle image-width(file)"""
            path = expander.image_find(rule.args[0], variables)
            return px(expander.image_size(path)[0])

        dimension_specs = [
            ('sprite-height', spriteHeight_handler, 2, 'Height of a sprite image',
             ['height: sprite-height($icons, home);']),
            ('sprite-width', spriteWidth_handler, 2, 'Width of a sprite image',
             ['width: sprite-width($icons, home);']),
            ('sprite-dimensions', spriteDimensions_handler, 2,
             'Width and height declarations for a sprite image',
             ['.home { sprite-dimensions($icons, home); }']),
            ('image-height', imageHeight_handler, 1, 'Height of an image file',
             ['height: image-height("logo.png");']),
            ('image-width', imageWidth_handler, 1, 'Width of an image file',
             ['width: image-width("logo.png");']),
        ]

        for name, handler, arity, desc, examples in dimension_specs:
            self.register(DirectiveSpec(
                name=name,
                category=DirectiveCategory.DIMENSION,
                description=desc,
                handler=handler,
                min_args=arity,
                max_args=arity,
                examples=examples
            ))

    def imageDirectives_register(self) -> None:
        """Register functions that reference single image files"""

        def imageUrl_handler(rule: SpriteRule, expander: Any, variables: Any) -> str:
            """Handle image-url(file)"""
            path = expander.image_find(rule.args[0], variables)
            return f'url("{expander.imageUrl_make(path)}")'

        def inlineImage_handler(rule: SpriteRule, expander: Any, variables: Any) -> str:
            """Handle inline-image(file[, mime]) - embed as a data URI"""
            path = expander.image_find(rule.args[0], variables)
            if len(rule.args) > 1:
                mime = expander.arg_resolve(rule.args[1], variables)
            else:
                mime = mimetypes.guess_type(path.name)[0] or 'application/octet-stream'
            try:
                payload = base64.b64encode(path.read_bytes()).decode('ascii')
            except OSError as e:
                raise SpriteError(
                    f"Failed to read image {path}: {e}",
                    SpriteErrorReason.PACK_FAILURE,
                    image=path.name,
                )
            return f'url("data:{mime};base64,{payload}")'

        self.register(DirectiveSpec(
            name='image-url',
            category=DirectiveCategory.IMAGE,
            description='URL of an image file',
            handler=imageUrl_handler,
            min_args=1,
            max_args=1,
            examples=['background: image-url("logo.png");']
        ))

        self.register(DirectiveSpec(
            name='inline-image',
            category=DirectiveCategory.IMAGE,
            description='Image embedded as a base64 data URI',
            handler=inlineImage_handler,
            min_args=1,
            max_args=2,
            examples=['background: inline-image("dot.png");',
                      'background: inline-image("dot.svg", "image/svg+xml");']
        ))
