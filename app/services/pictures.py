"""
Picture references and insertion into runs.

A paragraph whose whole text is ``${file name}`` is replaced by the picture
stored under that file name.
"""
from __future__ import annotations

import io
import logging
import re
from pathlib import Path
from typing import Dict, Mapping, Optional

from docx.shared import Cm
from docx.text.run import Run

from app.config import settings
from app.exceptions import PictureNotFoundError

logger = logging.getLogger(__name__)

PICTURE_PATTERN = re.compile(r"^\$\{(.+)\}$")

# picture dimensions in centimeters
PICTURE_WIDTH_PORTRAIT = 15
PICTURE_WIDTH_LANDSCAPE_HALF = 11
PICTURE_HEIGHT_LANDSCAPE_HALF = 7


def is_picture(text: Optional[str]) -> bool:
    """True if the text is a ``${file name}`` picture reference."""
    return text is not None and PICTURE_PATTERN.match(text.strip()) is not None


def get_picture_file_name(text: str) -> str:
    match = PICTURE_PATTERN.match(text.strip())
    if match is None:
        raise ValueError(f"Not a picture reference: {text!r}")
    return match.group(1)


def get_picture_type(file_name: Optional[str]) -> Optional[str]:
    """
    Return the lower case extension (e.g. ``.png``) if the file name is a
    supported picture, else None.
    """
    if not file_name:
        return None
    suffix = Path(file_name).suffix.lower()
    return suffix if suffix in settings.SUPPORTED_PICTURE_TYPES else None


class PictureUtils:
    """Embeds pictures from an in-memory file name -> bytes map."""

    def __init__(self, pictures: Optional[Mapping[str, bytes]] = None) -> None:
        self.pictures: Dict[str, bytes] = dict(pictures or {})

    def get_picture(self, file_name: str) -> bytes:
        try:
            return self.pictures[file_name]
        except KeyError:
            raise PictureNotFoundError(file_name) from None

    def add_picture(self, run: Run, text: str, num_columns: int = 1) -> Run:
        """
        Add the picture referenced by ``text`` to the run.

        Pictures take the full text width on single column pages and are
        scaled down to fit one column otherwise.

        Raises:
            PictureNotFoundError: No bytes stored under the file name.
        """
        file_name = get_picture_file_name(text)
        data = self.get_picture(file_name)

        if num_columns > 1:
            run.add_picture(
                io.BytesIO(data),
                width=Cm(PICTURE_WIDTH_LANDSCAPE_HALF),
                height=Cm(PICTURE_HEIGHT_LANDSCAPE_HALF),
            )
        else:
            run.add_picture(io.BytesIO(data), width=Cm(PICTURE_WIDTH_PORTRAIT))

        logger.debug("Added picture %s", file_name)
        return run
