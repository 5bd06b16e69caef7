"""Image decoding, resizing and re-encoding."""

import logging
import time
from dataclasses import dataclass
from io import BytesIO
from typing import Dict

from PIL import Image, ImageSequence

from src.api.models import AvifEncoding, Encoding, GifEncoding, JpegEncoding, WebpEncoding

logger = logging.getLogger(__name__)

PIL_FORMATS: Dict[str, str] = {
    "avif": "AVIF",
    "webp": "WEBP",
    "jpg": "JPEG",
    "gif": "GIF",
}

ANIMATED_FORMATS = {"avif", "webp", "gif"}

DEFAULT_FRAME_DURATION_MS = 100

# libavif speed runs 0 (slowest) to 10; effort runs the other way.
AVIF_MAX_EFFORT = 9


class TransformError(Exception):
    """Raised when an image cannot be decoded or encoded."""

    pass


@dataclass
class TransformedImage:
    """Encoded output of a transformation."""

    data: bytes
    content_type: str
    width: int
    height: int
    frames: int


class ImageTransformer:
    """Resize and re-encode images into the selected encoding."""

    def transform(self, data: bytes, encoding: Encoding) -> TransformedImage:
        """
        Decode, resize and encode an image.

        Animated sources keep all frames when the target format supports
        animation. Images are only ever scaled down.

        Args:
            data: Source image bytes
            encoding: Target encoding

        Returns:
            Transformed image

        Raises:
            TransformError: If decoding or encoding fails
        """
        start_time = time.time()

        try:
            image = Image.open(BytesIO(data))
            frames, durations = self._decode_frames(image, encoding)
            frames = [self._resize(frame, encoding.width) for frame in frames]
            image_bytes = self._encode(frames, durations, image.info.get("loop", 0), encoding)
        except Exception as e:
            logger.error(f"Error transforming image to {encoding.format}: {e}")
            raise TransformError(f"Failed to transform image: {str(e)}") from e

        processing_time_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"Transformed image: {frames[0].width}x{frames[0].height}, "
            f"{len(frames)} frame(s), {encoding.format}, "
            f"{len(data) / 1024:.1f}KB -> {len(image_bytes) / 1024:.1f}KB, "
            f"time: {processing_time_ms}ms"
        )

        return TransformedImage(
            data=image_bytes,
            content_type=encoding.content_type,
            width=frames[0].width,
            height=frames[0].height,
            frames=len(frames),
        )

    def _decode_frames(
        self, image: Image.Image, encoding: Encoding
    ) -> tuple[list[Image.Image], list[int]]:
        """Decode all frames for animated output, the first frame otherwise."""
        keep_animation = encoding.format in ANIMATED_FORMATS and getattr(
            image, "is_animated", False
        )

        if not keep_animation:
            image.seek(0)
            return [self._normalize_mode(image.copy(), encoding)], []

        frames = []
        durations = []
        for frame in ImageSequence.Iterator(image):
            durations.append(int(frame.info.get("duration") or DEFAULT_FRAME_DURATION_MS))
            frames.append(self._normalize_mode(frame.copy(), encoding))
        return frames, durations

    def _normalize_mode(self, image: Image.Image, encoding: Encoding) -> Image.Image:
        """Convert to a mode the target encoder and LANCZOS resampling accept."""
        has_alpha = image.mode in ("RGBA", "LA", "PA") or "transparency" in image.info

        if isinstance(encoding, JpegEncoding):
            if has_alpha:
                rgba = image.convert("RGBA")
                background = Image.new("RGB", rgba.size, (255, 255, 255))
                background.paste(rgba, mask=rgba.split()[3])
                return background
            if image.mode not in ("RGB", "L", "CMYK"):
                return image.convert("RGB")
            return image

        target_mode = "RGBA" if has_alpha else "RGB"
        if image.mode != target_mode:
            return image.convert(target_mode)
        return image

    def _resize(self, image: Image.Image, width: int) -> Image.Image:
        """Scale down to width, keeping the aspect ratio."""
        if image.width <= width:
            return image

        new_height = max(1, round(image.height * width / image.width))
        return image.resize((width, new_height), Image.Resampling.LANCZOS)

    def _encode(
        self,
        frames: list[Image.Image],
        durations: list[int],
        loop: int,
        encoding: Encoding,
    ) -> bytes:
        """Encode frames with format-specific options."""
        buffer = BytesIO()
        save_kwargs = self._save_options(encoding)

        if len(frames) > 1:
            save_kwargs["save_all"] = True
            save_kwargs["append_images"] = frames[1:]
            save_kwargs["duration"] = durations
            save_kwargs["loop"] = loop
            if isinstance(encoding, GifEncoding):
                save_kwargs["disposal"] = 2

        frames[0].save(buffer, format=PIL_FORMATS[encoding.format], **save_kwargs)
        return buffer.getvalue()

    def _save_options(self, encoding: Encoding) -> Dict[str, object]:
        if isinstance(encoding, AvifEncoding):
            return {
                "quality": encoding.options.quality,
                "subsampling": encoding.options.chroma_subsampling,
                "speed": AVIF_MAX_EFFORT - encoding.options.effort,
            }

        if isinstance(encoding, WebpEncoding):
            return {"quality": encoding.options.quality}

        if isinstance(encoding, GifEncoding):
            return {"optimize": encoding.options.effort > 0}

        save_kwargs: Dict[str, object] = {"quality": encoding.options.quality}
        if encoding.options.mozjpeg:
            save_kwargs["optimize"] = True
            save_kwargs["progressive"] = True
        return save_kwargs
