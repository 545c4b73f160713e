"""Record extraction from incoming documents."""

from skillsmith.extract.extractor import Extraction, Extractor, normalize_subject
from skillsmith.extract.markdown import Chunk, CodeBlock, chunk_markdown
from skillsmith.extract.versions import find_versions, min_version, strip_versions

__all__ = [
    "Extractor",
    "Extraction",
    "normalize_subject",
    "Chunk",
    "CodeBlock",
    "chunk_markdown",
    "find_versions",
    "min_version",
    "strip_versions",
]
