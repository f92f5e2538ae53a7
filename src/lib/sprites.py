"""
Sprite directive expansion

Rewrites sprite/image directives into plain declarations. Image layout is
delegated to SpritePacker (Pillow); packed sheets are shared between
compilations through an explicit, thread-safe SpriteCache that packs each
distinct image set at most once.
"""

import os
import glob
import threading
from concurrent.futures import Future
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple, Union

from PIL import Image, UnidentifiedImageError

from ..models.directives import SpriteRule
from ..models.sprites import (
    LAYOUTS,
    Expansion,
    Offset,
    SpriteOptions,
    SpriteSheet,
    cacheKey_make,
)
from .directives import SpriteRegistry
from .errors import ScanError, SpriteError, SpriteErrorReason
from .linemap import lines_count
from .log import LOG
from .scanner import args_partition, dequote
from .variables import VariableTable


class SpritePacker:
    """
    Packs images into a single PNG sheet

    Images are laid out in one column (vertical) or one row (horizontal),
    `spacing` pixels apart, in the order given.
    """

    def pack(
        self,
        name: str,
        images: Dict[str, Path],
        output_dir: Union[str, Path],
        options: SpriteOptions,
        key: str,
    ) -> SpriteSheet:
        """
        Pack images and write the sheet

        Args:
            name: Map name, used as the file stem
            images: Image name -> source path, in layout order
            output_dir: Directory receiving `<name>-<key[:6]>.png`
            options: Spacing and layout
            key: Cache identity of this pack

        Returns:
            SpriteSheet with per-image offsets

        Raises:
            SpriteError: PACK_FAILURE if an image cannot be decoded or the
                         sheet cannot be written
        """
        loaded: List[Tuple[str, Image.Image]] = []
        for image_name, path in images.items():
            try:
                with Image.open(path) as source:
                    loaded.append((image_name, source.convert('RGBA')))
            except (UnidentifiedImageError, OSError) as e:
                raise SpriteError(
                    f"Cannot decode image {path}: {e}",
                    SpriteErrorReason.PACK_FAILURE,
                    image=image_name,
                )

        offsets: Dict[str, Offset] = {}
        cursor = 0
        for image_name, image in loaded:
            width, height = image.size
            if options.layout == 'horizontal':
                offsets[image_name] = Offset(cursor, 0, width, height)
                cursor += width + options.spacing
            else:
                offsets[image_name] = Offset(0, cursor, width, height)
                cursor += height + options.spacing

        total = max(cursor - options.spacing, 0)
        if options.layout == 'horizontal':
            size = (total, max((o.height for o in offsets.values()), default=0))
        else:
            size = (max((o.width for o in offsets.values()), default=0), total)

        sheet = Image.new('RGBA', size, (0, 0, 0, 0))
        for image_name, image in loaded:
            offset = offsets[image_name]
            sheet.paste(image, (offset.x, offset.y))

        output_path = Path(output_dir) / f"{name}-{key[:6]}.png"
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            sheet.save(output_path, 'PNG')
        except OSError as e:
            raise SpriteError(
                f"Cannot write sprite sheet {output_path}: {e}",
                SpriteErrorReason.PACK_FAILURE,
                image=name,
            )

        LOG(f"Packed {len(offsets)} images into {output_path.name} {size[0]}x{size[1]}", level=2)
        return SpriteSheet(
            name=name,
            path=output_path,
            offsets=offsets,
            sources=dict(images),
            width=size[0],
            height=size[1],
        )


class SpriteCache:
    """
    Process-wide cache of packed sheets, keyed by content identity

    Safe for concurrent compilations: the first caller for a key packs,
    later callers for the same key wait for that result. A failed pack is
    evicted so a later compilation can retry it.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: Dict[str, 'Future[SpriteSheet]'] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    def get_or_pack(self, key: str, factory: Callable[[], SpriteSheet]) -> SpriteSheet:
        """
        Return the sheet for `key`, running `factory` only if nobody has

        Raises:
            Whatever `factory` raised, for the owner and every waiter
        """
        with self._lock:
            future = self._entries.get(key)
            owner = future is None
            if owner:
                future = Future()
                self._entries[key] = future

        if owner:
            try:
                future.set_result(factory())
            except BaseException as e:
                with self._lock:
                    self._entries.pop(key, None)
                future.set_exception(e)
        else:
            LOG(f"Sprite cache hit {key[:6]}", level=3)

        return future.result()


class SpriteExpander:
    """
    Expands SpriteRule directives into replacement text

    Attributes:
        image_dir: Directory sprite globs and image files are relative to
        gen_img_dir: Directory receiving packed sheets
        build_dir: Directory the CSS is written to; URLs are made relative
                   to it when set
        cache: Shared SpriteCache
        packer: Sprite-packing collaborator
        options: Default packing options
        registry: Built-in function handlers
    """

    def __init__(
        self,
        image_dir: Union[str, Path] = ".",
        gen_img_dir: Optional[Union[str, Path]] = None,
        build_dir: Optional[Union[str, Path]] = None,
        cache: Optional[SpriteCache] = None,
        packer: Optional[SpritePacker] = None,
        options: Optional[SpriteOptions] = None,
        registry: Optional[SpriteRegistry] = None,
    ) -> None:
        self.image_dir = Path(image_dir)
        self.gen_img_dir = Path(gen_img_dir) if gen_img_dir else self.image_dir
        self.build_dir = Path(build_dir) if build_dir else None
        self.cache = cache if cache is not None else SpriteCache()
        self.packer = packer or SpritePacker()
        self.options = options or SpriteOptions()
        self.registry = registry or SpriteRegistry()

    def expand(self, rule: SpriteRule, variables: VariableTable) -> Expansion:
        """
        Rewrite a sprite directive

        Args:
            rule: The scanned directive
            variables: Variable table of the current compilation

        Returns:
            Expansion with the replacement text and its line count

        Raises:
            ScanError: Unknown function or wrong number of arguments
            SpriteError: Missing image, unknown map or packing failure
        """
        spec = self.registry.spec_get(rule.name)
        if spec is None:
            raise ScanError(f"Unknown sprite function '{rule.name}'", rule.span.line)

        positional, _ = args_partition(rule.args) if spec.assigns else (rule.args, {})
        if not spec.arity_check(len(positional)):
            raise ScanError(
                f"{rule.name}() takes {spec.min_args}"
                + (f"-{spec.max_args}" if spec.max_args != spec.min_args else "")
                + f" argument(s), got {len(positional)}",
                rule.span.line,
            )

        LOG(f"Expanding {rule.name}() at line {rule.span.line}", level=3)
        text = spec.handler(rule, self, variables)
        return Expansion(text=text, line_count=lines_count(text))

    # ------------------------------------------------------------------
    # Helpers used by the registry handlers
    # ------------------------------------------------------------------

    def arg_resolve(self, arg: str, variables: VariableTable) -> str:
        """
        Turn an argument into a plain string

        Quoted strings are dequoted, `$variables` are looked up (and their
        value dequoted), anything else is taken literally.

        Raises:
            ScanError: For an undefined variable or one bound to a sprite map
        """
        arg = arg.strip()
        if arg.startswith('$'):
            value = variables.lookup(arg[1:])
            if value is None:
                raise ScanError(f"Undefined variable {arg}")
            if not isinstance(value, str):
                raise ScanError(f"Variable {arg} does not hold a string")
            return dequote(value)
        return dequote(arg)

    def pixels_parse(self, arg: str, variables: VariableTable) -> int:
        """Parse an offset such as `4px`, `-2` or `$gap`"""
        value = self.arg_resolve(arg, variables)
        number = value[:-2] if value.endswith('px') else value
        try:
            return int(float(number))
        except ValueError:
            raise ScanError(f"Expected a pixel length, got {arg!r}")

    def sheet_get(self, arg: str, variables: VariableTable) -> SpriteSheet:
        """
        Look up the sprite map bound to a `$variable` argument

        Raises:
            SpriteError: UNKNOWN_MAP if the variable holds no sprite map
        """
        name = arg.strip()
        sheet = variables.lookup(name[1:]) if name.startswith('$') else None
        if not isinstance(sheet, SpriteSheet):
            raise SpriteError(
                f"{name} is not a sprite map", SpriteErrorReason.UNKNOWN_MAP, image=name
            )
        return sheet

    def offset_get(self, sheet: SpriteSheet, arg: str, variables: VariableTable) -> Offset:
        """
        Offset of one image in a sheet

        Raises:
            SpriteError: MISSING_IMAGE if the map holds no such image
        """
        name = self.arg_resolve(arg, variables)
        if name not in sheet.offsets:
            raise SpriteError(
                f"Image '{name}' is not in sprite map '{sheet.name}'",
                SpriteErrorReason.MISSING_IMAGE,
                image=name,
            )
        return sheet.offsets[name]

    def image_find(self, arg: str, variables: VariableTable) -> Path:
        """
        Locate an image file relative to the image directory

        Raises:
            SpriteError: MISSING_IMAGE if the file does not exist
        """
        name = self.arg_resolve(arg, variables)
        path = self.image_dir / name
        if not path.is_file():
            raise SpriteError(
                f"Image not found: {path}", SpriteErrorReason.MISSING_IMAGE, image=name
            )
        return path

    def image_size(self, path: Path) -> Tuple[int, int]:
        """Pixel size of an image file"""
        try:
            with Image.open(path) as image:
                return image.size
        except (UnidentifiedImageError, OSError) as e:
            raise SpriteError(
                f"Cannot decode image {path}: {e}",
                SpriteErrorReason.PACK_FAILURE,
                image=path.name,
            )

    def map_create(self, rule: SpriteRule, variables: VariableTable) -> SpriteSheet:
        """
        Pack the images matched by a sprite-map glob

        Keyword arguments `$spacing` and `$layout` override the default
        options. Identical image sets with identical options are packed once
        per cache.

        Raises:
            SpriteError: MISSING_IMAGE if the glob matches nothing
            ScanError: For an invalid layout or spacing
        """
        positional, keywords = args_partition(rule.args)
        pattern = self.arg_resolve(positional[0], variables)

        spacing = self.options.spacing
        if 'spacing' in keywords:
            spacing = self.pixels_parse(keywords['spacing'], variables)
        layout = self.arg_resolve(keywords['layout'], variables) if 'layout' in keywords \
            else self.options.layout
        if layout not in LAYOUTS:
            raise ScanError(f"Unknown sprite layout '{layout}'", rule.span.line)
        options = SpriteOptions(spacing=spacing, layout=layout)

        images: Dict[str, Path] = {}
        for match in sorted(glob.glob(os.path.join(str(self.image_dir), pattern))):
            path = Path(match)
            if path.is_file():
                images.setdefault(path.stem, path.resolve())

        if not images:
            raise SpriteError(
                f"No images match '{pattern}' in {self.image_dir}",
                SpriteErrorReason.MISSING_IMAGE,
                image=pattern,
            )

        name = rule.assign or 'sprite'
        key = cacheKey_make(name, list(images.values()), options)
        return self.cache.get_or_pack(
            key, lambda: self.packer.pack(name, images, self.gen_img_dir, options, key)
        )

    def sheetUrl_make(self, sheet: SpriteSheet) -> str:
        return self.url_make(sheet.path, self.build_dir or self.gen_img_dir)

    def imageUrl_make(self, path: Path) -> str:
        return self.url_make(path, self.build_dir or self.image_dir)

    def url_make(self, path: Path, base: Path) -> str:
        """Path of `path` relative to `base`, with forward slashes"""
        return Path(os.path.relpath(Path(path).resolve(), Path(base).resolve())).as_posix()
