"""Pure rendition pixel work: crop and/or scale, then encode (single file)."""

from io import BytesIO
from pathlib import Path

from PIL import Image

from ..common.schemas import CropRect, ImageFormat
from ..utils.profiling import timed


@timed
def image_render(
    *,
    input_path: str | Path,
    width: int,
    height: int,
    format: ImageFormat,
    crop: CropRect | None = None,
    quality: int | None = None,
) -> bytes:
    """
    Produce one encoded rendition of a source image.

    With a crop rectangle, the window is cropped and scaled to exactly
    width x height in a single resample. Without one, the image is scaled to
    fit inside the box, keeping its aspect ratio and never upscaling.

    Args:
        input_path: Path to the source image
        width: Target width (exact with crop, bounding box otherwise)
        height: Target height (exact with crop, bounding box otherwise)
        format: Output encoding
        crop: Window in source coordinates, or None to scale to fit
        quality: Encoder quality for JPEG/WEBP

    Returns:
        Encoded image bytes

    Raises:
        FileNotFoundError: If the source does not exist
        OSError: If Pillow fails to decode or encode the image
    """
    input_path = Path(input_path)

    with Image.open(input_path) as img:
        if crop is not None:
            rendered = img.resize(
                (width, height),
                Image.Resampling.LANCZOS,
                box=crop.box,
            )
        else:
            img.thumbnail((width, height), Image.Resampling.LANCZOS)
            rendered = img

        return encode_image(rendered, format=format, quality=quality)


def encode_image(
    img: Image.Image,
    *,
    format: ImageFormat,
    quality: int | None = None,
) -> bytes:
    # JPEG does not support alpha or palette images
    if format is ImageFormat.JPEG and img.mode not in ("RGB", "L", "CMYK"):
        img = img.convert("RGB")

    save_kwargs: dict[str, object] = {}

    if format in (ImageFormat.JPEG, ImageFormat.WEBP) and quality is not None:
        save_kwargs["quality"] = quality

    if format is ImageFormat.PNG:
        save_kwargs["optimize"] = True

    buffer = BytesIO()
    img.save(buffer, format=format.pil_format, **save_kwargs)
    return buffer.getvalue()
