"""Artifact extraction — parse ``<sanbao-doc>`` tags out of message content.

The assistant embeds generated documents, code and tables in its reply::

    <sanbao-doc type="DOCUMENT" title="Contract Title">
      Markdown or code content here...
    </sanbao-doc>

Extraction runs once on the final content of a finished stream. Artifact
ids (``artifact_0``, ``artifact_1``, ...) are positional within a single
call, so re-extracting content that is still growing yields ids that are
not stable across calls.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime

# Standard attribute order: type first, then title
_STRICT_PATTERN = re.compile(
    r'<sanbao-doc\s+type="([^"]*?)"\s+title="([^"]*?)">([\s\S]*?)</sanbao-doc>',
)

# Either attribute order, optional whitespace before ">"
_PERMISSIVE_PATTERN = re.compile(
    r'<sanbao-doc\s+(?:type="([^"]*?)"\s+title="([^"]*?)"|title="([^"]*?)"\s+type="([^"]*?)")\s*>'
    r"([\s\S]*?)</sanbao-doc>",
)

ORIGINAL_VERSION_LABEL = "Original"


class ArtifactType(enum.Enum):
    """Closed set of artifact kinds shown by the client."""

    DOCUMENT = "document"
    CODE = "code"
    LEGAL = "legal"
    SPREADSHEET = "spreadsheet"
    ANALYSIS = "analysis"
    IMAGE = "image"

    @classmethod
    def from_string(cls, value: str) -> ArtifactType:
        """Map a raw tag ``type`` attribute to an ArtifactType.

        Case-insensitive; unknown values fall back to DOCUMENT.
        """
        return _TYPE_ALIASES.get(value.upper(), cls.DOCUMENT)

    @property
    def label(self) -> str:
        return _TYPE_LABELS[self]

    @property
    def supports_editor(self) -> bool:
        return self is not ArtifactType.IMAGE

    @property
    def defaults_to_preview(self) -> bool:
        return self is not ArtifactType.CODE


_TYPE_ALIASES = {
    "DOCUMENT": ArtifactType.DOCUMENT,
    "CONTRACT": ArtifactType.DOCUMENT,
    "CLAIM": ArtifactType.DOCUMENT,
    "COMPLAINT": ArtifactType.DOCUMENT,
    "CODE": ArtifactType.CODE,
    "LEGAL": ArtifactType.LEGAL,
    "LEGAL_ANALYSIS": ArtifactType.LEGAL,
    "SPREADSHEET": ArtifactType.SPREADSHEET,
    "TABLE": ArtifactType.SPREADSHEET,
    "ANALYSIS": ArtifactType.ANALYSIS,
    "IMAGE": ArtifactType.IMAGE,
}

_TYPE_LABELS = {
    ArtifactType.DOCUMENT: "Документ",
    ArtifactType.CODE: "Код",
    ArtifactType.LEGAL: "Юридический документ",
    ArtifactType.SPREADSHEET: "Таблица",
    ArtifactType.ANALYSIS: "Анализ",
    ArtifactType.IMAGE: "Изображение",
}


@dataclass(frozen=True)
class ArtifactVersion:
    """An immutable snapshot of an artifact's content.

    Attributes:
        id: Version identifier.
        version_number: Sequential version number (1-based).
        content: Full artifact content at this version.
        created_at: When this version was created.
        label: Optional human-readable label (e.g. "Original").
    """

    id: str
    version_number: int
    content: str
    created_at: datetime
    label: str | None = None


@dataclass(frozen=True)
class FullArtifact:
    """A generated document, code block, legal text or table.

    Attributes:
        id: ``artifact_<n>``, positional within one extraction call.
        type: Artifact kind.
        title: Human-readable title from the tag.
        content: Trimmed tag body.
        language: Detected language, only for CODE artifacts.
        versions: Version history, starting with the original.
        current_version: Active version number.
        created_at: Extraction time.
        updated_at: Last modification time.
        conversation_id: Conversation the artifact was generated in.
        message_id: Message that produced the artifact.
    """

    id: str
    type: ArtifactType
    title: str
    content: str
    language: str | None = None
    versions: tuple[ArtifactVersion, ...] = ()
    current_version: int = 1
    created_at: datetime | None = None
    updated_at: datetime | None = None
    conversation_id: str | None = None
    message_id: str | None = None

    @property
    def has_versions(self) -> bool:
        return len(self.versions) > 1

    @property
    def version_count(self) -> int:
        return len(self.versions)


@dataclass(frozen=True)
class ArtifactParseResult:
    """Artifacts found in a message plus the content with their tags removed."""

    artifacts: list[FullArtifact] = field(default_factory=list)
    clean_content: str = ""

    @property
    def has_artifacts(self) -> bool:
        return bool(self.artifacts)


def detect_language(type_str: str, body: str) -> str | None:
    """Guess the language of a CODE artifact from its body.

    Checks are ordered by priority; the first marker found wins.

    Args:
        type_str: Raw ``type`` attribute of the tag.
        body: Tag body.

    Returns:
        Language name, or None when the artifact is not CODE.
    """
    if type_str.upper() != "CODE":
        return None

    text = body.strip().lower()
    if "<!doctype html" in text or "<html" in text:
        return "html"
    if "import react" in text or 'from "react"' in text or "from 'react'" in text:
        return "jsx"
    if "def " in text and "import " in text:
        return "python"
    if "func " in text and "package " in text:
        return "go"
    if "class " in text and "void " in text:
        return "dart"
    return "javascript"


def _strict_fields(match: re.Match[str]) -> tuple[str, str, str]:
    return match.group(1), match.group(2), match.group(3)


def _permissive_fields(match: re.Match[str]) -> tuple[str, str, str]:
    # exactly one alternation branch matched, so each pair has one group set
    if match.group(1) is not None:
        return match.group(1), match.group(2), match.group(5)
    return match.group(4), match.group(3), match.group(5)


def extract_artifacts(
    content: str,
    *,
    conversation_id: str | None = None,
    message_id: str | None = None,
    now: datetime | None = None,
) -> ArtifactParseResult:
    """Parse all ``<sanbao-doc>`` tags from message content.

    The strict pattern (``type`` before ``title``) is tried first. The
    permissive pattern is only used when the strict one finds nothing;
    matches of the two are never mixed.

    Args:
        content: Final accumulated message content.
        conversation_id: Attached to every artifact.
        message_id: Attached to every artifact.
        now: Timestamp for the artifacts and their first version
            (defaults to the current UTC time).

    Returns:
        The artifacts in document order and the content with tags
        removed and trimmed. When nothing is found the content is
        returned unchanged.
    """
    fields = [_strict_fields(m) for m in _STRICT_PATTERN.finditer(content)]
    if not fields:
        fields = [_permissive_fields(m) for m in _PERMISSIVE_PATTERN.finditer(content)]
    if not fields:
        return ArtifactParseResult(artifacts=[], clean_content=content)

    timestamp = now or datetime.now(UTC)
    artifacts = []
    for index, (type_str, title, raw_body) in enumerate(fields):
        body = raw_body.strip()
        artifacts.append(
            FullArtifact(
                id=f"artifact_{index}",
                type=ArtifactType.from_string(type_str),
                title=title,
                content=body,
                language=detect_language(type_str, body),
                versions=(
                    ArtifactVersion(
                        id=f"version_{index}_1",
                        version_number=1,
                        content=body,
                        created_at=timestamp,
                        label=ORIGINAL_VERSION_LABEL,
                    ),
                ),
                current_version=1,
                created_at=timestamp,
                updated_at=timestamp,
                conversation_id=conversation_id,
                message_id=message_id,
            )
        )

    clean_content = _PERMISSIVE_PATTERN.sub("", _STRICT_PATTERN.sub("", content)).strip()
    return ArtifactParseResult(artifacts=artifacts, clean_content=clean_content)


def has_artifact_tags(content: str) -> bool:
    """Whether content contains any ``<sanbao-doc>`` tag."""
    return bool(_STRICT_PATTERN.search(content) or _PERMISSIVE_PATTERN.search(content))
