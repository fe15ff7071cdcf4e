from docpipe.intelligence.analyst import DocumentAnalyst
from docpipe.intelligence.client_base import BaseIntelligenceClient
from docpipe.intelligence.factory import IntelligenceClientFactory

__all__ = ["BaseIntelligenceClient", "DocumentAnalyst", "IntelligenceClientFactory"]
