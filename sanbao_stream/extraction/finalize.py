"""Message finalization — turn a terminal snapshot into a structured reply.

Runs the tag extractors over the final accumulated content, in order:

1. Artifacts (``<sanbao-doc>``) on the raw content
2. Clarify questions (``<sanbao-clarify>``) on the artifact-free content
3. Legal references on the final clean content (non-destructive)

Extraction is only defined on finished streams; finalizing an ACTIVE
snapshot raises instead of producing positional artifact ids that would
shift as more content arrives.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sanbao_stream.exceptions import StreamSessionError
from sanbao_stream.extraction.artifacts import FullArtifact, extract_artifacts
from sanbao_stream.extraction.clarify import ClarifyQuestion, extract_clarify_questions
from sanbao_stream.extraction.legal import LegalReference, extract_legal_references
from sanbao_stream.streaming.session import StreamState

if TYPE_CHECKING:
    from datetime import datetime

    from sanbao_stream.streaming.session import StreamSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FinalizedMessage:
    """The structured assistant reply handed to the UI.

    Attributes:
        clean_content: Display text with artifact and clarify tags removed.
        artifacts: Extracted artifacts in document order.
        questions: Clarify questions in array order.
        legal_references: Article links found in the clean content.
        state: Terminal state of the stream.
        error: Terminal error message, if the stream errored.
        reasoning: Accumulated reasoning text.
        plan: Accumulated plan text.
    """

    clean_content: str
    artifacts: list[FullArtifact] = field(default_factory=list)
    questions: list[ClarifyQuestion] = field(default_factory=list)
    legal_references: list[LegalReference] = field(default_factory=list)
    state: StreamState = StreamState.COMPLETED
    error: str | None = None
    reasoning: str = ""
    plan: str = ""

    @property
    def is_error(self) -> bool:
        return self.state is StreamState.ERRORED


def finalize(
    snapshot: StreamSnapshot,
    *,
    conversation_id: str | None = None,
    message_id: str | None = None,
    now: datetime | None = None,
) -> FinalizedMessage:
    """Extract artifacts, questions and legal references from a finished stream.

    Content streamed before an error or a cancel is kept and extracted
    like any other content.

    Args:
        snapshot: Terminal snapshot of a stream session.
        conversation_id: Bound to extracted artifacts.
        message_id: Bound to extracted artifacts.
        now: Artifact timestamp override.

    Returns:
        The finalized message.

    Raises:
        StreamSessionError: If the snapshot is not terminal.
    """
    if not snapshot.is_done:
        raise StreamSessionError(
            "Cannot finalize a stream that is still active",
            state=snapshot.state.value,
        )

    parsed = extract_artifacts(
        snapshot.content,
        conversation_id=conversation_id,
        message_id=message_id,
        now=now,
    )
    clarify = extract_clarify_questions(parsed.clean_content)
    references = extract_legal_references(clarify.clean_content)

    logger.debug(
        "Finalized %s message: %d artifacts, %d questions, %d legal references",
        snapshot.state.value,
        len(parsed.artifacts),
        len(clarify.questions),
        len(references),
    )

    return FinalizedMessage(
        clean_content=clarify.clean_content,
        artifacts=parsed.artifacts,
        questions=clarify.questions,
        legal_references=references,
        state=snapshot.state,
        error=snapshot.error,
        reasoning=snapshot.reasoning,
        plan=snapshot.plan,
    )
