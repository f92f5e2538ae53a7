"""
Sprite sheet data models

Structures exchanged with the sprite-packing collaborator and returned by
the sprite directive expander.
"""

import hashlib
from pathlib import Path
from dataclasses import dataclass, field
from typing import Dict, List, Tuple


LAYOUTS: Tuple[str, ...] = ("vertical", "horizontal")


@dataclass(frozen=True)
class Offset:
    """Pixel placement of one image inside a packed sheet"""
    x: int
    y: int
    width: int
    height: int


@dataclass(frozen=True)
class SpriteOptions:
    """
    Packing options that take part in the cache identity

    Attributes:
        spacing: Pixels left between neighbouring images
        layout: "vertical" (stack downwards) or "horizontal"
    """
    spacing: int = 0
    layout: str = "vertical"


@dataclass
class SpriteSheet:
    """
    A packed sprite sheet

    Attributes:
        name: Map name, used as the output file stem
        path: Location of the written sheet
        offsets: Placement per image name (file stem)
        sources: Image name -> original image path
        width: Sheet width in pixels
        height: Sheet height in pixels
    """
    name: str
    path: Path
    offsets: Dict[str, Offset]
    sources: Dict[str, Path] = field(default_factory=dict)
    width: int = 0
    height: int = 0


@dataclass
class Expansion:
    """
    Rewritten text for one sprite directive

    Attributes:
        text: Replacement text
        line_count: Number of output lines the replacement occupies
    """
    text: str
    line_count: int


def cacheKey_make(name: str, images: List[Path], options: SpriteOptions) -> str:
    """
    Derive the cache identity of a sprite pack

    The key covers the map name, every image path with its size and
    modification time, and the packing options, so editing an image or
    changing the spacing produces a new sheet.
    """
    digest = hashlib.sha1()
    digest.update(name.encode("utf-8"))
    for image in sorted(images):
        stat = image.stat()
        digest.update(f"\0{image}\0{stat.st_size}\0{stat.st_mtime_ns}".encode("utf-8"))
    digest.update(f"\0{options.spacing}\0{options.layout}".encode("utf-8"))
    return digest.hexdigest()
