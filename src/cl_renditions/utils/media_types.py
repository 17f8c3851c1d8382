from enum import StrEnum
from io import BytesIO
from os import PathLike
from pathlib import Path

import magic

# libmagic only needs the leading bytes to identify image containers
SNIFF_SIZE = 8192


class MediaType(StrEnum):
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    TEXT = "text"
    FILE = "file"

    @classmethod
    def from_mime(cls, file_type: str) -> "MediaType":
        if file_type.startswith("image"):
            return MediaType.IMAGE
        elif file_type.startswith("video"):
            return MediaType.VIDEO
        elif file_type.startswith("audio"):
            return MediaType.AUDIO
        elif file_type.startswith("text"):
            return MediaType.TEXT
        else:
            return MediaType.FILE


def determine_mime(bytes_io: BytesIO, file_type: str | None = None) -> MediaType:
    if not file_type:
        _ = bytes_io.seek(0)
        mime = magic.Magic(mime=True)

        file_type = mime.from_buffer(bytes_io.getvalue())
        if not file_type:
            file_type = "application/octet-stream"
    return MediaType.from_mime(file_type)


def sniff_file(path: str | PathLike[str]) -> MediaType:
    """Classify a file on disk from its leading bytes.

    Raises:
        OSError: If the file cannot be read
    """
    with open(Path(path), "rb") as f:
        head = f.read(SNIFF_SIZE)
    return determine_mime(BytesIO(head))
