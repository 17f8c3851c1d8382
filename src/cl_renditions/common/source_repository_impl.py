from collections.abc import Mapping
from os import PathLike
from pathlib import Path
from typing_extensions import override

from loguru import logger
from PIL import Image

from ..utils.media_types import MediaType, sniff_file
from .schemas import ImageFormat, SourceImage, coerce_source_id, validate_source_id
from .source_repository import SourceRepository


class LocalSourceRepository(SourceRepository):
    """
    Registry of source image files on the local filesystem, keyed by id.

    Metadata is read from disk on every lookup, so a replaced file is picked
    up without registering it again.
    """

    def __init__(self, sources: Mapping[str | int, str | PathLike[str]] | None = None):
        self._paths: dict[str, Path] = {}
        for source_id, path in (sources or {}).items():
            _ = self.add(source_id, path)

    def add(self, source_id: str | int, path: str | PathLike[str]) -> str:
        """Register (or re-point) a source id.

        Returns:
            The normalized source id

        Raises:
            ValueError: If the id is not a valid source id
        """
        key = validate_source_id(source_id)
        self._paths[key] = Path(path).expanduser().resolve()
        return key

    def remove(self, source_id: str | int) -> bool:
        return self._paths.pop(str(coerce_source_id(source_id)), None) is not None

    @override
    def get_source(self, source_id: str) -> SourceImage | None:
        key = str(coerce_source_id(source_id))
        path = self._paths.get(key)

        if path is None or not path.is_file():
            return None

        try:
            if sniff_file(path) != MediaType.IMAGE:
                logger.warning(f"Source {key} is not an image: {path}")
                return None

            with Image.open(path) as img:
                width, height = img.size
                image_format = ImageFormat.from_pil(img.format)
        except (OSError, Image.DecompressionBombError) as e:
            logger.warning(f"Source {key} is unreadable: {e}")
            return None

        return SourceImage(
            source_id=key,
            path=path,
            width=width,
            height=height,
            format=image_format,
        )
