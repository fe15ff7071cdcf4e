from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True)
class DocumentDescriptor:
    """Identity of one file entering the pipeline plus its content handle.

    The handle is either a filesystem ``path`` or in-memory ``data``;
    ``FileLoader.read`` resolves it.
    """

    name: str
    size: int
    media_type: str
    last_modified: float
    path: Path | None = None
    data: bytes | None = field(default=None, repr=False, compare=False)

    @classmethod
    def from_bytes(
        cls,
        name: str,
        data: bytes,
        media_type: str,
        last_modified: float = 0.0,
    ) -> "DocumentDescriptor":
        return cls(
            name=name,
            size=len(data),
            media_type=media_type,
            last_modified=last_modified,
            data=data,
        )

    @property
    def is_image(self) -> bool:
        return self.media_type.startswith("image/")


@dataclass(frozen=True)
class FileInfo:
    """Serializable identity of a document, as reported in results."""

    name: str
    size: int
    media_type: str
    last_modified: float

    @classmethod
    def of(cls, document: DocumentDescriptor) -> "FileInfo":
        return cls(
            name=document.name,
            size=document.size,
            media_type=document.media_type,
            last_modified=document.last_modified,
        )
