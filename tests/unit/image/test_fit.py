"""Tests for image resizing."""

from io import BytesIO

import pytest
from PIL import Image

from commentboard.core.modules.image.image import fit_dimensions, fit_image


def make_image(size, fmt="PNG", mode="RGB") -> bytes:
    buffer = BytesIO()
    Image.new(mode, size).save(buffer, format=fmt)
    return buffer.getvalue()


class TestFitDimensions:
    """Tests for fit_dimensions function."""

    @pytest.mark.parametrize(
        ("size", "expected"),
        [
            ((640, 480), (320, 240)),
            ((1000, 200), (320, 64)),
            ((200, 1000), (48, 240)),
            ((320, 240), (320, 240)),
            ((100, 50), (100, 50)),
            ((10000, 1), (320, 1)),
        ],
    )
    def test_fit(self, size, expected):
        """Test that sizes fit the box, keep aspect ratio and are never enlarged."""
        assert fit_dimensions(*size, 320, 240) == expected


class TestFitImage:
    """Tests for fit_image function."""

    def test_png_with_alpha(self):
        """Test that transparent images are flattened to JPEG."""
        result = fit_image(make_image((800, 600), mode="RGBA"), 320, 240)
        with Image.open(BytesIO(result)) as img:
            assert img.format == "JPEG"
            assert img.mode == "RGB"
            assert img.size == (320, 240)

    def test_gif(self):
        """Test that palette GIFs are converted."""
        result = fit_image(make_image((100, 100), fmt="GIF", mode="P"), 320, 240)
        with Image.open(BytesIO(result)) as img:
            assert img.format == "JPEG"
            assert img.size == (100, 100)

    def test_not_an_image(self):
        """Test that invalid data raises OSError."""
        with pytest.raises(OSError):
            fit_image(b"definitely not an image", 320, 240)
