from __future__ import annotations

import errno
import logging
import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import BinaryIO, Callable, Union

from errors import ImageNotFound, StorageError, ValidationError


logger = logging.getLogger(__name__)

IMAGE_NAME_FMT = "img_%d-%m-%Y-%H-%M-%S"
FORBIDDEN = {"/", "\\", os.sep, "\x00"}


def is_plain_name(name: str) -> bool:
    """True for a bare file name: no separators, no NUL, not "." or ".."."""
    if not name or name in (".", ".."):
        return False
    return not any(ch in name for ch in FORBIDDEN)


def extension_of(filename: str) -> str:
    """Suffix after the last dot, dot included, case kept. Empty if there is none."""
    idx = filename.rfind(".")
    return filename[idx:] if idx >= 0 else ""


def content_type(name: str) -> str:
    # A name without a dot yields "image/<name>".
    return f"image/{name[name.rfind('.') + 1:]}"


class FileManager:
    """Images stored as plain files in one directory, addressed by name.

    Names come from the upload time, so two uploads within the same second
    end up in the same file and the later one wins.
    """

    def __init__(
        self,
        image_path: Union[str, Path],
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.image_path = Path(image_path)
        self.clock = clock

    def generate_name(self, filename: str) -> str:
        extension = extension_of(filename)
        if any(ch in extension for ch in FORBIDDEN):
            raise ValidationError(f"Unsupported image name: {filename!r}")
        return self.clock().strftime(IMAGE_NAME_FMT) + extension

    def save_image(self, image) -> str:
        """Store an uploaded file (a werkzeug ``FileStorage``) and return its name."""
        file_name = self.generate_name(image.filename or "")
        target = self.image_path / file_name
        try:
            self.image_path.mkdir(parents=True, exist_ok=True)
            with open(target, "wb") as fh:
                if hasattr(image, "save"):
                    image.save(fh)
                else:
                    shutil.copyfileobj(image.stream, fh)
        except OSError as exc:
            raise StorageError(f"Could not save image {file_name}: {exc}") from exc
        logger.info("Saved image %s as %s", image.filename, file_name)
        return file_name

    def image_stream(self, image: str) -> BinaryIO:
        """Open a stored image for reading. The caller closes the stream.

        Any name that does not address an existing file directly inside the
        image directory raises :class:`ImageNotFound`.
        """
        if not is_plain_name(image):
            raise ImageNotFound(image)
        path = self.image_path / image
        try:
            if path.resolve().parent != self.image_path.resolve():
                raise ImageNotFound(image)
            return open(path, "rb")
        except (ValueError, FileNotFoundError, IsADirectoryError, NotADirectoryError) as exc:
            raise ImageNotFound(image) from exc
        except OSError as exc:
            if exc.errno == errno.ENAMETOOLONG:
                raise ImageNotFound(image) from exc
            raise StorageError(f"Could not open image {image}: {exc}") from exc
