"""
Mosaic Backend — Image Normalizer
===================================

What:  Turns an arbitrary uploaded image into the canonical contribution format.
How:   Pillow pipeline, run in a worker thread by the caller:

    decode → RGB → gamma darken → cover-fit 400×400 → gamma brighten
           → contrast stretch → PNG

    Cover fit crops the centre of the image so it fills the square while
    keeping its aspect ratio; there is never any letterboxing.
    The gamma pair darkens before resampling and brightens afterwards, so the
    resize averages in a roughly linear light space.

Guarantees:
    - Output is always image_size × image_size pixels, mode RGB, PNG encoded
    - Identical input bytes give identical output bytes
    - Undecodable input raises ImageDecodeError (→ HTTP 400)
"""

import io
import logging
from typing import List, Optional

from PIL import Image, ImageOps, UnidentifiedImageError

from mosaic.config import settings
from mosaic.exceptions import ImageDecodeError

logger = logging.getLogger(__name__)

OUTPUT_FORMAT = "PNG"

# Percentage of darkest/lightest pixels ignored when stretching contrast
CONTRAST_CUTOFF = 1

_BACKGROUND = (255, 255, 255)


def _gamma_table(exponent: float) -> List[int]:
    """Lookup table mapping each 8-bit level v to 255 * (v / 255) ** exponent."""
    return [round(255 * (level / 255) ** exponent) for level in range(256)]


def _to_rgb(image: Image.Image) -> Image.Image:
    """Force RGB, compositing any transparency onto a white background."""
    has_alpha = image.mode in ("RGBA", "LA", "PA") or (
        image.mode == "P" and "transparency" in image.info
    )
    if has_alpha:
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, _BACKGROUND)
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    if image.mode != "RGB":
        return image.convert("RGB")
    return image


def normalize_image(
    data: bytes,
    size: Optional[int] = None,
    gamma: Optional[float] = None,
) -> bytes:
    """
    Normalize an image buffer into a square RGB PNG.

    Args:
        data: Raw uploaded bytes in any format Pillow can decode.
        size: Edge length of the output square (default: settings.image_size).
        gamma: Gamma factor (default: settings.image_gamma).

    Returns:
        PNG-encoded bytes of the normalized image.

    Raises:
        ImageDecodeError: `data` is empty or not a decodable image.
    """
    size = size or settings.image_size
    gamma = gamma or settings.image_gamma

    if not data:
        raise ImageDecodeError(message="The uploaded image is empty.")

    try:
        with Image.open(io.BytesIO(data)) as source:
            source.load()
            image = _to_rgb(source)
    except (
        UnidentifiedImageError,
        Image.DecompressionBombError,
        OSError,
        SyntaxError,
        ValueError,
    ) as e:
        logger.info("Rejected undecodable upload (%d bytes): %s", len(data), str(e))
        raise ImageDecodeError(context={"error": str(e), "size": len(data)})

    original_size = image.size

    image = image.point(_gamma_table(gamma) * 3)
    image = ImageOps.fit(
        image,
        (size, size),
        method=Image.Resampling.LANCZOS,
        centering=(0.5, 0.5),
    )
    image = image.point(_gamma_table(1 / gamma) * 3)
    image = ImageOps.autocontrast(image, cutoff=CONTRAST_CUTOFF)

    output = io.BytesIO()
    image.save(output, format=OUTPUT_FORMAT)
    result = output.getvalue()

    logger.debug(
        "Normalized image %sx%s -> %dx%d (%d -> %d bytes)",
        original_size[0], original_size[1], size, size, len(data), len(result),
    )
    return result
