"""Document generation collaborators."""

from repowiki.generate.generator import DocumentGenerator, LlmDocumentGenerator

__all__ = ["DocumentGenerator", "LlmDocumentGenerator"]
