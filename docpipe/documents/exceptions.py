class DocumentError(Exception):
    """Base exception for document handling errors."""


class DocumentReadError(DocumentError):
    """Raised when a document's content handle or file format cannot be read."""
