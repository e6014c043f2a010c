import io

import pytest
from PIL import Image as PILImage

from services.image_server.core.events import EventBus
from services.image_server.core.exceptions import TransformationError, UnsupportedImageError
from services.image_server.models import Image
from services.image_server.services.image_transform import (
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
    convert,
    identify,
    register_transformations,
    transformation_event,
)


def make_image(blob):
    mime_type, extension, width, height = identify(blob)
    return Image(blob=blob, mime_type=mime_type, extension=extension, width=width, height=height)


def pixels(image):
    return PILImage.open(io.BytesIO(image.blob)).convert("RGB")


@pytest.fixture
def image(png_bytes):
    return make_image(png_bytes(40, 30))


@pytest.fixture
def two_tone():
    """Left half red, right half blue; top rows green."""
    pil = PILImage.new("RGB", (40, 30), (255, 0, 0))
    pil.paste((0, 0, 255), (20, 0, 40, 30))
    pil.paste((0, 255, 0), (0, 0, 40, 5))
    buffer = io.BytesIO()
    pil.save(buffer, format="PNG")
    return make_image(buffer.getvalue())


class TestIdentify:
    def test_png(self, png_bytes):
        assert identify(png_bytes(40, 30)) == ("image/png", "png", 40, 30)

    def test_jpeg(self, png_bytes):
        assert identify(png_bytes(10, 20, fmt="JPEG")) == ("image/jpeg", "jpg", 10, 20)

    def test_not_an_image(self):
        with pytest.raises(UnsupportedImageError) as exc_info:
            identify(b"definitely not an image")
        assert exc_info.value.status_code == 415

    def test_unsupported_format(self, png_bytes):
        with pytest.raises(UnsupportedImageError):
            identify(png_bytes(10, 10, fmt="BMP"))


class TestTransformations:
    def test_crop(self, image):
        Crop().transform(image, {"x": "5", "y": "5", "width": "10", "height": "5"})

        assert (image.width, image.height) == (10, 5)
        assert image.transformed

    @pytest.mark.parametrize(
        "params",
        [
            {"x": "35", "y": "0", "width": "10", "height": "5"},
            {"x": "0", "y": "0", "width": "0", "height": "5"},
            {"x": "0", "y": "0", "height": "5"},
            {"x": "a", "y": "0", "width": "1", "height": "1"},
        ],
    )
    def test_crop_invalid(self, image, params):
        with pytest.raises(TransformationError):
            Crop().transform(image, params)

    def test_border_outbound(self, image):
        Border().transform(image, {"width": "2", "height": "3", "color": "00ff00"})

        assert (image.width, image.height) == (44, 36)
        assert pixels(image).getpixel((0, 0)) == (0, 255, 0)

    def test_border_inline(self, image):
        Border().transform(image, {"width": "2", "height": "2", "mode": "inline"})

        assert (image.width, image.height) == (40, 30)
        result = pixels(image)
        assert result.getpixel((0, 0)) == (0, 0, 0)
        assert result.getpixel((20, 15)) == (255, 0, 0)

    def test_border_invalid_mode(self, image):
        with pytest.raises(TransformationError):
            Border().transform(image, {"mode": "sideways"})

    def test_flip_horizontally(self, two_tone):
        FlipHorizontally().transform(two_tone, {})
        assert pixels(two_tone).getpixel((0, 20)) == (0, 0, 255)

    def test_flip_vertically(self, two_tone):
        FlipVertically().transform(two_tone, {})
        result = pixels(two_tone)
        assert result.getpixel((0, 0)) == (255, 0, 0)
        assert result.getpixel((0, 29)) == (0, 255, 0)

    def test_max_size(self, image):
        MaxSize().transform(image, {"width": "20", "height": "20"})
        assert (image.width, image.height) == (20, 15)

    def test_max_size_never_enlarges(self, image):
        MaxSize().transform(image, {"width": "400"})
        assert (image.width, image.height) == (40, 30)

    def test_resize_keeps_aspect_ratio(self, image):
        Resize().transform(image, {"width": "20"})
        assert (image.width, image.height) == (20, 15)

    def test_resize_both_dimensions(self, image):
        Resize().transform(image, {"width": "10", "height": "50"})
        assert (image.width, image.height) == (10, 50)

    def test_resize_requires_a_dimension(self, image):
        with pytest.raises(TransformationError):
            Resize().transform(image, {})

    def test_rotate(self, image):
        Rotate().transform(image, {"angle": "90"})
        assert (image.width, image.height) == (30, 40)

    def test_rotate_requires_angle(self, image):
        with pytest.raises(TransformationError):
            Rotate().transform(image, {})

    def test_thumbnail_outbound_default(self, image):
        Thumbnail().transform(image, {})
        assert (image.width, image.height) == (50, 50)

    def test_thumbnail_inset(self, image):
        Thumbnail().transform(image, {"width": "20", "height": "20", "fit": "inset"})
        assert (image.width, image.height) == (20, 15)

    def test_thumbnail_invalid_fit(self, image):
        with pytest.raises(TransformationError):
            Thumbnail().transform(image, {"fit": "stretch"})

    def test_strip(self, image):
        Strip().transform(image, {})
        assert (image.width, image.height) == (40, 30)
        assert image.transformed

    def test_vignette_darkens_corners(self, png_bytes):
        image = make_image(png_bytes(40, 30, color=(255, 255, 255)))
        Vignette().transform(image, {})

        result = pixels(image)
        assert (image.width, image.height) == (40, 30)
        assert sum(result.getpixel((20, 15))) > sum(result.getpixel((0, 0)))

    def test_compress_lowers_jpeg_size(self):
        noise = PILImage.effect_noise((64, 64), 80).convert("RGB")
        buffer = io.BytesIO()
        noise.save(buffer, format="JPEG", quality=95)
        image = make_image(buffer.getvalue())
        original_size = image.filesize

        Compress().transform(image, {"quality": "5"})

        assert image.filesize < original_size
        assert image.mime_type == "image/jpeg"

    @pytest.mark.parametrize("quality", ["0", "101", "abc"])
    def test_compress_invalid_quality(self, image, quality):
        with pytest.raises(TransformationError):
            Compress().transform(image, {"quality": quality})


class TestConvert:
    def test_convert_to_jpg(self, image):
        convert(image, "jpg")

        assert image.extension == "jpg"
        assert image.mime_type == "image/jpeg"
        assert identify(image.blob)[1] == "jpg"

    def test_convert_unknown_format(self, image):
        with pytest.raises(TransformationError):
            convert(image, "tiff")


class TestRegistration:
    def test_registers_all(self):
        bus = register_transformations(EventBus())
        for name in ("border", "crop", "flipHorizontally", "thumbnail", "vignette"):
            assert bus.has_listeners(transformation_event(name))

    def test_registers_subset(self):
        bus = register_transformations(EventBus(), names=["crop"])
        assert bus.event_names() == [transformation_event("crop")]

    def test_listener_reads_event_arguments(self, make_event, image):
        bus = register_transformations(EventBus())
        event = make_event("http://imbo/users/christer/images/abc")
        event.set_argument("image", image)
        event.set_argument("params", {"width": "10", "height": "10", "x": "0", "y": "0"})

        bus.dispatch(transformation_event("crop"), event)

        assert (image.width, image.height) == (10, 10)
