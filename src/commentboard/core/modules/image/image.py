"""Image resizing for comment attachments."""

from io import BytesIO

from PIL import Image, ImageOps

JPEG_QUALITY = 85


def fit_dimensions(width: int, height: int, max_width: int, max_height: int) -> tuple[int, int]:
    """Calculate the size that fits inside max_width x max_height, keeping aspect ratio.

    Images that already fit are never enlarged.
    """
    if width <= max_width and height <= max_height:
        return width, height

    scale = min(max_width / width, max_height / height)
    return max(1, round(width * scale)), max(1, round(height * scale))


def fit_image(content: bytes, max_width: int, max_height: int) -> bytes:
    """Resize image bytes to fit within the bounds and re-encode as JPEG.

    Args:
        content: Original image data (JPEG, PNG or GIF)
        max_width: Maximum width of the result
        max_height: Maximum height of the result

    Returns:
        JPEG image data as bytes

    Raises:
        OSError: If image cannot be opened or converted
    """
    with Image.open(BytesIO(content)) as img:
        oriented = ImageOps.exif_transpose(img)
        new_size = fit_dimensions(oriented.width, oriented.height, max_width, max_height)
        resized = oriented.resize(new_size, Image.Resampling.LANCZOS) if new_size != oriented.size else oriented

        if resized.mode != "RGB":
            # JPEG has no alpha channel: flatten onto white
            rgba = resized.convert("RGBA")
            flattened = Image.new("RGB", rgba.size, (255, 255, 255))
            flattened.paste(rgba, mask=rgba.getchannel("A"))
            resized = flattened

        buffer = BytesIO()
        resized.save(buffer, format="JPEG", quality=JPEG_QUALITY)
        return buffer.getvalue()
