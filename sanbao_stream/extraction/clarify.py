"""Clarify question extraction — parse ``<sanbao-clarify>`` blocks.

Before answering, the assistant may ask follow-up questions as a JSON
array wrapped in a tag::

    <sanbao-clarify>[
      {"id": "q1", "question": "Тип договора?", "type": "select", "options": ["Аренда", "Услуги"]},
      {"id": "q2", "question": "Укажите ИНН", "type": "text", "placeholder": "12 цифр"}
    ]</sanbao-clarify>

A block whose body can not be parsed fails closed: no questions AND an
empty clean content. Existing clients depend on that, even though it
drops the surrounding text.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

logger = logging.getLogger(__name__)

_CLARIFY_PATTERN = re.compile(r"<sanbao-clarify>([\s\S]*?)</sanbao-clarify>")

ANSWERS_HEADER = "Мои ответы на уточняющие вопросы:"


@dataclass(frozen=True)
class ClarifyQuestion:
    """A follow-up question asked by the assistant.

    ``is_select`` only looks at ``type``; a select question without
    options is still a select question.
    """

    id: str = ""
    question: str = ""
    type: str = "select"
    options: tuple[str, ...] | None = None
    placeholder: str | None = None

    @property
    def is_select(self) -> bool:
        return self.type == "select"

    @property
    def is_text_input(self) -> bool:
        return self.type == "text"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ClarifyQuestion:
        """Build a question from one decoded JSON object.

        Raises:
            ValueError: If a field has the wrong JSON type.
        """
        options = data.get("options")
        if options is not None:
            if not isinstance(options, list) or not all(isinstance(o, str) for o in options):
                raise ValueError("'options' must be a list of strings")
            options = tuple(options)

        return cls(
            id=_optional_str(data, "id") or "",
            question=_optional_str(data, "question") or "",
            type=_optional_str(data, "type") or "select",
            options=options,
            placeholder=_optional_str(data, "placeholder"),
        )


def _optional_str(data: Mapping[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ValueError(f"'{key}' must be a string")
    return value


@dataclass(frozen=True)
class ClarifyParseResult:
    """Questions found in a message plus the content without the block."""

    questions: list[ClarifyQuestion] = field(default_factory=list)
    clean_content: str = ""


def extract_clarify_questions(content: str) -> ClarifyParseResult:
    """Extract the clarify questions from message content.

    Only the first block is parsed; every block is removed from the
    clean content.

    Args:
        content: Message content (artifact tags may already be removed).

    Returns:
        Questions in array order and the trimmed content without the
        block. Content without a block is returned unchanged. An
        unparseable block yields no questions and empty content.
    """
    match = _CLARIFY_PATTERN.search(content)
    if match is None:
        return ClarifyParseResult(questions=[], clean_content=content)

    try:
        items = json.loads(match.group(1))
        if not isinstance(items, list):
            raise ValueError("clarify payload is not a JSON array")
        questions = []
        for item in items:
            if not isinstance(item, dict):
                raise ValueError("clarify question is not a JSON object")
            questions.append(ClarifyQuestion.from_dict(item))
    except ValueError as e:
        # json.JSONDecodeError is a ValueError subclass
        logger.warning("Discarding unparseable clarify block: %s", e)
        return ClarifyParseResult(questions=[], clean_content="")

    clean_content = _CLARIFY_PATTERN.sub("", content).strip()
    return ClarifyParseResult(questions=questions, clean_content=clean_content)


def has_clarify_block(content: str) -> bool:
    """Whether content contains a ``<sanbao-clarify>`` block."""
    return _CLARIFY_PATTERN.search(content) is not None


def format_clarify_answers(
    questions: Sequence[ClarifyQuestion],
    answers: Mapping[str, str],
) -> str:
    """Build the follow-up message answering clarify questions.

    Each answered question becomes ``"<question>\\n→ <answer>"``; blank
    answers are skipped. Multi-select answers are expected to be joined
    by the caller (``"A, B"``).

    Returns:
        The message text, or ``""`` when nothing was answered.
    """
    blocks = []
    for q in questions:
        answer = (answers.get(q.id) or "").strip()
        if not answer:
            continue
        blocks.append(f"{q.question}\n→ {answer}")

    if not blocks:
        return ""
    return ANSWERS_HEADER + "\n\n" + "\n\n".join(blocks)
