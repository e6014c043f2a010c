"""
Pillow-backed image transformations.

Each transformation is an EventBus listener for
``image.transformation.<name>``. The dispatching plugin puts the Image in
the event argument ``image`` and the parsed parameters in ``params``.
"""

import io
import logging
from abc import ABC, abstractmethod
from typing import Dict, Iterable, Optional, Tuple

from PIL import Image as PILImage
from PIL import ImageChops, ImageColor, ImageDraw, ImageOps, UnidentifiedImageError

from ..core.events import Event, EventBus
from ..core.exceptions import TransformationError, UnsupportedImageError
from ..models import Image

logger = logging.getLogger("image_server.image_transform")

TRANSFORMATION_EVENT_PREFIX = "image.transformation."

# extension -> (Pillow format, mime type)
FORMATS: Dict[str, Tuple[str, str]] = {
    "jpg": ("JPEG", "image/jpeg"),
    "png": ("PNG", "image/png"),
    "gif": ("GIF", "image/gif"),
    "webp": ("WEBP", "image/webp"),
}
PIL_FORMAT_TO_EXTENSION = {pil_format: ext for ext, (pil_format, _) in FORMATS.items()}


def transformation_event(name: str) -> str:
    return f"{TRANSFORMATION_EVENT_PREFIX}{name}"


def identify(blob: bytes) -> Tuple[str, str, int, int]:
    """
    Detect the type and size of an image.

    Returns:
        (mime_type, extension, width, height)

    Raises:
        UnsupportedImageError: not an image, or a format the server does not serve
    """
    try:
        with PILImage.open(io.BytesIO(blob)) as pil:
            pil_format = pil.format
            width, height = pil.size
    except (UnidentifiedImageError, OSError) as e:
        raise UnsupportedImageError(f"Unsupported image type: {e}") from e

    extension = PIL_FORMAT_TO_EXTENSION.get(pil_format)
    if extension is None:
        raise UnsupportedImageError(f"Unsupported image type: {pil_format}")
    return FORMATS[extension][1], extension, width, height


def open_image(image: Image) -> PILImage.Image:
    try:
        pil = PILImage.open(io.BytesIO(image.blob))
        pil.load()
    except (UnidentifiedImageError, OSError) as e:
        raise UnsupportedImageError(f"Unsupported image type: {e}") from e
    return pil


def save_image(
    image: Image,
    pil: PILImage.Image,
    extension: Optional[str] = None,
    quality: Optional[int] = None,
) -> None:
    """Encode ``pil`` back into ``image`` and refresh its metadata."""
    extension = extension or image.extension or "png"
    pil_format, mime_type = FORMATS[extension]

    if pil_format == "JPEG" and pil.mode not in ("RGB", "L", "CMYK"):
        pil = pil.convert("RGB")

    options = {}
    if quality is not None and pil_format in ("JPEG", "WEBP"):
        options["quality"] = quality

    buffer = io.BytesIO()
    pil.save(buffer, format=pil_format, **options)

    image.set_blob(buffer.getvalue())
    image.extension = extension
    image.mime_type = mime_type
    image.width, image.height = pil.size


def convert(image: Image, extension: str) -> None:
    if extension not in FORMATS:
        raise TransformationError(f"Unsupported output format: {extension}")
    save_image(image, open_image(image), extension=extension)


def _int_param(params: Dict[str, str], key: str, default: Optional[int] = None) -> int:
    value = params.get(key)
    if value is None or value == "":
        if default is None:
            raise TransformationError(f"Missing required parameter: {key}")
        return default
    try:
        return int(value)
    except ValueError as e:
        raise TransformationError(f"Invalid value for {key}: {value!r}") from e


def _color_param(params: Dict[str, str], key: str, default: str) -> Tuple[int, ...]:
    value = params.get(key) or default
    if not value.startswith("#") and all(c in "0123456789abcdefABCDEF" for c in value):
        value = f"#{value}"
    try:
        return ImageColor.getrgb(value)
    except ValueError as e:
        raise TransformationError(f"Invalid color for {key}: {params.get(key)!r}") from e


class ImageTransformation(ABC):
    name: str = ""

    def __call__(self, event: Event) -> None:
        image = event.get_argument("image")
        params = event.get_argument("params") or {}
        self.transform(image, params)

    def transform(self, image: Image, params: Dict[str, str]) -> None:
        pil = open_image(image)
        try:
            result = self.apply(pil, params)
        except ValueError as e:
            raise TransformationError(f"{self.name}: {e}") from e
        save_image(image, result)

    @abstractmethod
    def apply(self, pil: PILImage.Image, params: Dict[str, str]) -> PILImage.Image:
        pass


class Border(ImageTransformation):
    name = "border"

    def apply(self, pil, params):
        color = _color_param(params, "color", "000000")
        width = _int_param(params, "width", 1)
        height = _int_param(params, "height", 1)
        mode = params.get("mode", "outbound")

        if mode == "outbound":
            return ImageOps.expand(pil.convert("RGB"), border=(width, height), fill=color)
        if mode != "inline":
            raise TransformationError(f"Invalid border mode: {mode}")

        canvas = pil.convert("RGB")
        draw = ImageDraw.Draw(canvas)
        w, h = canvas.size
        draw.rectangle((0, 0, w - 1, height - 1), fill=color)
        draw.rectangle((0, h - height, w - 1, h - 1), fill=color)
        draw.rectangle((0, 0, width - 1, h - 1), fill=color)
        draw.rectangle((w - width, 0, w - 1, h - 1), fill=color)
        return canvas


class Compress(ImageTransformation):
    name = "compress"

    def transform(self, image, params):
        quality = _int_param(params, "quality")
        if not 1 <= quality <= 100:
            raise TransformationError("quality must be between 1 and 100")
        save_image(image, open_image(image), quality=quality)

    def apply(self, pil, params):
        return pil


class Crop(ImageTransformation):
    name = "crop"

    def apply(self, pil, params):
        x = _int_param(params, "x", 0)
        y = _int_param(params, "y", 0)
        width = _int_param(params, "width")
        height = _int_param(params, "height")

        if x < 0 or y < 0 or width <= 0 or height <= 0:
            raise TransformationError("Crop area must be positive")
        if x + width > pil.width or y + height > pil.height:
            raise TransformationError("Crop area is out of bounds")
        return pil.crop((x, y, x + width, y + height))


class FlipHorizontally(ImageTransformation):
    name = "flipHorizontally"

    def apply(self, pil, params):
        return ImageOps.mirror(pil)


class FlipVertically(ImageTransformation):
    name = "flipVertically"

    def apply(self, pil, params):
        return ImageOps.flip(pil)


class MaxSize(ImageTransformation):
    name = "maxSize"

    def apply(self, pil, params):
        width = _int_param(params, "width", pil.width)
        height = _int_param(params, "height", pil.height)
        if width <= 0 or height <= 0:
            raise TransformationError("maxSize dimensions must be positive")
        resized = pil.copy()
        resized.thumbnail((width, height))
        return resized


class Resize(ImageTransformation):
    name = "resize"

    def apply(self, pil, params):
        width = _int_param(params, "width", 0)
        height = _int_param(params, "height", 0)
        if width <= 0 and height <= 0:
            raise TransformationError("Missing both width and height")
        if width <= 0:
            width = max(1, round(pil.width * height / pil.height))
        if height <= 0:
            height = max(1, round(pil.height * width / pil.width))
        return pil.resize((width, height))


class Rotate(ImageTransformation):
    name = "rotate"

    def apply(self, pil, params):
        angle = _int_param(params, "angle")
        bg = _color_param(params, "bg", "000000")
        # Positive angles rotate clockwise.
        return pil.convert("RGB").rotate(-angle, expand=True, fillcolor=bg)


class Strip(ImageTransformation):
    name = "strip"

    def apply(self, pil, params):
        stripped = pil.copy()
        stripped.info.clear()
        return stripped


class Thumbnail(ImageTransformation):
    name = "thumbnail"

    def apply(self, pil, params):
        width = _int_param(params, "width", 50)
        height = _int_param(params, "height", 50)
        fit = params.get("fit", "outbound")
        if width <= 0 or height <= 0:
            raise TransformationError("thumbnail dimensions must be positive")

        if fit == "outbound":
            return ImageOps.fit(pil, (width, height))
        if fit == "inset":
            thumb = pil.copy()
            thumb.thumbnail((width, height))
            return thumb
        raise TransformationError(f"Invalid thumbnail fit: {fit}")


class Vignette(ImageTransformation):
    name = "vignette"

    def apply(self, pil, params):
        inner = params.get("inner", "none")
        inner_color = (255, 255, 255) if inner == "none" else _color_param(params, "inner", "fff")
        outer_color = _color_param(params, "outer", "000")
        try:
            scale = max(float(params.get("scale", 1.5)), 1.0)
        except ValueError as e:
            raise TransformationError(f"Invalid value for scale: {params['scale']!r}") from e

        base = pil.convert("RGB")
        width, height = base.size
        scale_x, scale_y = int(width * scale), int(height * scale)

        # radial_gradient is 0 in the center and 255 at the edge.
        mask = PILImage.radial_gradient("L").resize((scale_x, scale_y))
        left, top = (scale_x - width) // 2, (scale_y - height) // 2
        mask = mask.crop((left, top, left + width, top + height))

        vignette = PILImage.composite(
            PILImage.new("RGB", base.size, outer_color),
            PILImage.new("RGB", base.size, inner_color),
            mask,
        )
        return ImageChops.multiply(base, vignette)


TRANSFORMATIONS = (
    Border,
    Compress,
    Crop,
    FlipHorizontally,
    FlipVertically,
    MaxSize,
    Resize,
    Rotate,
    Strip,
    Thumbnail,
    Vignette,
)


def register_transformations(bus: EventBus, names: Optional[Iterable[str]] = None) -> EventBus:
    """
    Subscribe the built-in transformations (or the named subset) to ``bus``.
    """
    enabled = set(names) if names is not None else None
    for transformation_cls in TRANSFORMATIONS:
        if enabled is not None and transformation_cls.name not in enabled:
            continue
        bus.subscribe(transformation_event(transformation_cls.name), transformation_cls())
    logger.debug(f"Registered transformations: {bus.event_names()}")
    return bus
