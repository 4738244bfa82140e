"""Extraction module — structured data embedded in assistant content.

Pure functions over the final accumulated content of a stream: artifact
tags, clarify question blocks and legal article links, plus the
finalizer that applies them to a terminal snapshot.
"""

from sanbao_stream.extraction.artifacts import (
    ArtifactParseResult,
    ArtifactType,
    ArtifactVersion,
    FullArtifact,
    detect_language,
    extract_artifacts,
    has_artifact_tags,
)
from sanbao_stream.extraction.clarify import (
    ClarifyParseResult,
    ClarifyQuestion,
    extract_clarify_questions,
    format_clarify_answers,
    has_clarify_block,
)
from sanbao_stream.extraction.finalize import FinalizedMessage, finalize
from sanbao_stream.extraction.legal import LegalReference, extract_legal_references, has_legal_references

__all__ = [
    "ArtifactParseResult",
    "ArtifactType",
    "ArtifactVersion",
    "ClarifyParseResult",
    "ClarifyQuestion",
    "FinalizedMessage",
    "FullArtifact",
    "LegalReference",
    "detect_language",
    "extract_artifacts",
    "extract_clarify_questions",
    "extract_legal_references",
    "finalize",
    "format_clarify_answers",
    "has_artifact_tags",
    "has_clarify_block",
    "has_legal_references",
]
