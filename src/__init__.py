"""
wellington - Sass preprocessor with imports, sprites and line attribution

Assembles a root style sheet and its imports into one buffer for libsass,
remembering where every line came from.
"""

__version__ = "1.0.0"

from .lib import Parser, Compiler, stylesheet_compile, SpriteCache, LOG, state_connectToLogger

__all__ = ["Parser", "Compiler", "stylesheet_compile", "SpriteCache", "LOG", "state_connectToLogger", "__version__"]
