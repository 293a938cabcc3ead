"""Custom exception hierarchy for the document builder.

Catching DocumentBuilderError catches every failure raised while assembling,
writing or converting a document.
"""


class DocumentBuilderError(Exception):
    """Base exception for all document builder errors."""
    pass


class InvalidContentError(DocumentBuilderError):
    """Raised when the content list is structurally invalid (e.g. a missing paragraph)."""

    def __init__(self, message: str, index: int | None = None):
        self.index = index
        super().__init__(message)


class PictureNotFoundError(DocumentBuilderError):
    """Raised when a ``${file name}`` reference has no matching picture bytes."""

    def __init__(self, file_name: str):
        self.file_name = file_name
        super().__init__(f"Picture not found: {file_name}")


class DocumentWriteError(DocumentBuilderError):
    """Raised when the .docx file cannot be written or is missing afterwards."""

    def __init__(self, path: str, reason: str = "file was not written"):
        self.path = path
        super().__init__(f"Cannot write document {path}: {reason}")


class ConversionError(DocumentBuilderError):
    """Raised when the external converter fails or times out."""
    pass
