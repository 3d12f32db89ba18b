"""Shared base class for LLM-powered generation tasks."""

from __future__ import annotations

import json
import logging
from abc import abstractmethod
from typing import Any

from pydantic import BaseModel

from podflow.config import Settings
from podflow.exceptions import PreconditionError, ValidationError
from podflow.models.artifacts import validate_model
from podflow.models.transcript import Chapter, Transcript
from podflow.providers.llm.base import LLMProvider, Message, OutputSchema
from podflow.stages.base import Artifact, GenerationTask
from podflow.utils.llm_json import parse_llm_json

logger = logging.getLogger(__name__)


def transcript_context(transcript: Transcript, max_chars: int) -> str:
    """Prompt context: a text prefix plus chapter outline when chapters exist."""
    text = transcript.text.strip()
    body = text[:max_chars]
    if len(text) > max_chars:
        body += "..."
    parts = [f"TRANSCRIPT (first {max_chars} chars):\n{body}"]
    chapters = transcript.usable_chapters()
    if chapters:
        outline = "\n".join(
            f"{i + 1}. {ch.headline} - {ch.summary}".rstrip(" -") for i, ch in enumerate(chapters)
        )
        parts.append(f"AUTO-DETECTED CHAPTERS:\n{outline}")
    return "\n\n".join(parts)


class BaseLLMTask(GenerationTask):
    """Prompt construction and output validation kept as separate steps.

    `build_messages` decides how to ask; `parse_output` is a pure function
    that checks what came back.
    """

    output_model: type[BaseModel]
    schema_name: str
    system_prompt: str
    temperature: float = 0.7

    def __init__(self, settings: Settings, llm: LLMProvider) -> None:
        self.settings = settings
        self.llm = llm

    def validate_input(self, transcript: Transcript) -> None:
        if not transcript.has_text():
            raise PreconditionError(
                self.name.value,
                "Cannot generate content: transcript text is empty. "
                "The audio may be silent or transcription produced no words.",
            )

    def output_schema(self) -> OutputSchema:
        return OutputSchema(
            name=self.schema_name,
            schema=self.output_model.model_json_schema(by_alias=True),
        )

    @abstractmethod
    def build_messages(self, transcript: Transcript) -> list[Message]: ...

    def finalize(self, output: Any, transcript: Transcript) -> Artifact:
        """Post-process validated provider output into the stored artifact."""
        return output.to_dict()

    def parse_output(self, text: str, transcript: Transcript) -> Artifact:
        try:
            data = parse_llm_json(text)
        except json.JSONDecodeError as exc:
            raise ValidationError(
                self.name.value, f"provider returned invalid JSON: {exc.msg}"
            ) from exc
        output = validate_model(self.name, self.output_model, data)
        return self.finalize(output, transcript)

    async def run(self, transcript: Transcript) -> Artifact:
        self.validate_input(transcript)
        text = await self.llm.complete_structured(
            self.build_messages(transcript),
            self.output_schema(),
            temperature=self.temperature,
        )
        artifact = self.parse_output(text, transcript)
        logger.info("generation done (task=%s, chars=%d)", self.name.value, len(text))
        return artifact


class ChapterLLMTask(BaseLLMTask):
    """Tasks anchored on topic chapters; they never fall back to raw text."""

    def validate_input(self, transcript: Transcript) -> None:
        if not transcript.usable_chapters():
            raise PreconditionError(
                self.name.value,
                f"Cannot generate {self.name.value}: transcript has no chapters. "
                "Time-anchored content needs topic chapters from transcription.",
            )

    def chapters_for(self, transcript: Transcript) -> list[Chapter]:
        return transcript.usable_chapters()[: self.settings.workflow.max_youtube_chapters]

    def chapter_outline(self, transcript: Transcript) -> str:
        return "\n\n".join(
            f"Chapter {i}: [{int(ch.start)}s]\nContext: {ch.headline}\nSummary: {ch.summary}"
            for i, ch in enumerate(self.chapters_for(transcript))
        )
