"""Classification cache shared by concurrently running pipelines."""

import dataclasses
import hashlib
import threading

from docpipe.classification.models import ClassificationResult
from docpipe.documents.models import DocumentDescriptor


def document_fingerprint(document: DocumentDescriptor | str) -> str:
    """Cache key: file identity for descriptors, SHA-256 of the text for inline text."""
    if isinstance(document, str):
        return f"text_{hashlib.sha256(document.encode('utf-8')).hexdigest()}"
    return f"file_{document.name}_{document.size}_{document.last_modified}"


class ClassificationCache:
    """Thread-safe fingerprint -> result map.

    Results go in and come out as copies, so a caller editing the ``labels``
    or ``scores`` of its result cannot change what later hits see.
    """

    def __init__(self) -> None:
        self._entries: dict[str, ClassificationResult] = {}
        self._lock = threading.Lock()

    def get(self, fingerprint: str) -> ClassificationResult | None:
        with self._lock:
            result = self._entries.get(fingerprint)
        return _detached(result) if result is not None else None

    def set(self, fingerprint: str, result: ClassificationResult) -> None:
        with self._lock:
            self._entries[fingerprint] = _detached(result)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, fingerprint: object) -> bool:
        with self._lock:
            return fingerprint in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def _detached(result: ClassificationResult) -> ClassificationResult:
    return dataclasses.replace(result, labels=dict(result.labels), scores=dict(result.scores))
