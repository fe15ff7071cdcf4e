"""Supported media types and the file-category tag derived from them."""

SUPPORTED_MEDIA_TYPES: frozenset[str] = frozenset({
    "application/pdf",
    "text/plain",
    "text/csv",
    "application/json",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "image/bmp",
    "image/tiff",
})

# Media types that a vision model accepts directly as image input.
VISION_MEDIA_TYPES: frozenset[str] = frozenset({
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
})

_EXTENSION_MEDIA_TYPES: dict[str, str] = {
    ".pdf": "application/pdf",
    ".txt": "text/plain",
    ".csv": "text/csv",
    ".json": "application/json",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".bmp": "image/bmp",
    ".tif": "image/tiff",
    ".tiff": "image/tiff",
}

UNKNOWN_MEDIA_TYPE = "application/octet-stream"


def is_supported(media_type: str) -> bool:
    return media_type in SUPPORTED_MEDIA_TYPES


def file_category(media_type: str) -> str:
    """Normalize a media type into one of: image, pdf, text, document."""
    if media_type.startswith("image/"):
        return "image"
    if "pdf" in media_type:
        return "pdf"
    if media_type.startswith("text/"):
        return "text"
    return "document"


def guess_media_type(filename: str) -> str:
    suffix = "." + filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    return _EXTENSION_MEDIA_TYPES.get(suffix, UNKNOWN_MEDIA_TYPE)
