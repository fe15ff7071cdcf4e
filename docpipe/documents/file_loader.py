from pathlib import Path

from docpipe.documents.exceptions import DocumentReadError
from docpipe.documents.media_types import guess_media_type
from docpipe.documents.models import DocumentDescriptor


class FileLoader:
    """Builds descriptors from filesystem paths and reads their bytes."""

    def describe(self, path: Path) -> DocumentDescriptor:
        """Create a descriptor for a file on disk.

        Raises:
            FileNotFoundError: if the path does not point to a file.
        """
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {path}")
        stat = path.stat()
        return DocumentDescriptor(
            name=path.name,
            size=stat.st_size,
            media_type=guess_media_type(path.name),
            last_modified=stat.st_mtime,
            path=path,
        )

    def collect(self, paths: list[Path]) -> list[DocumentDescriptor]:
        """Describe every file given, expanding directories one level deep."""
        descriptors: list[DocumentDescriptor] = []
        for path in paths:
            if path.is_dir():
                descriptors.extend(
                    self.describe(child) for child in sorted(path.iterdir()) if child.is_file()
                )
            else:
                descriptors.append(self.describe(path))
        return descriptors

    def read(self, document: DocumentDescriptor) -> bytes:
        """Resolve the document's content handle into bytes.

        Raises:
            DocumentReadError: if there is no handle or the file cannot be read.
        """
        if document.data is not None:
            return document.data
        if document.path is None:
            raise DocumentReadError(f"Document '{document.name}' has no content handle")
        try:
            return document.path.read_bytes()
        except OSError as exc:
            raise DocumentReadError(f"Failed to read '{document.path}': {exc}") from exc
