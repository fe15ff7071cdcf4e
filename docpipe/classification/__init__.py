from docpipe.classification.cache import ClassificationCache, document_fingerprint
from docpipe.classification.categories import DEFAULT_CATEGORIES, CategoryDefinition
from docpipe.classification.classifier import HybridClassifier
from docpipe.classification.models import (
    ClassificationResult,
    ClassificationRules,
    ClassifyOptions,
)

__all__ = [
    "DEFAULT_CATEGORIES",
    "CategoryDefinition",
    "ClassificationCache",
    "ClassificationResult",
    "ClassificationRules",
    "ClassifyOptions",
    "HybridClassifier",
    "document_fingerprint",
]
