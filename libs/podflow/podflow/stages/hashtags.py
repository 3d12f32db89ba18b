"""Platform hashtag generation."""

from __future__ import annotations

from typing import Any

from podflow.models.artifacts import Hashtags, validate_model
from podflow.models.project import TaskName
from podflow.models.transcript import Transcript
from podflow.providers.llm.base import Message
from podflow.stages.base import Artifact
from podflow.stages.base_llm import BaseLLMTask, transcript_context


def _normalize_tag(tag: str) -> str | None:
    cleaned = "".join(str(tag or "").split()).lstrip("#")
    if not cleaned:
        return None
    return f"#{cleaned}"


class HashtagsTask(BaseLLMTask):
    name = TaskName.HASHTAGS
    output_model = Hashtags
    schema_name = "hashtags"
    system_prompt = "You are a social media strategist who knows which hashtags each platform rewards."

    def build_messages(self, transcript: Transcript) -> list[Message]:
        context = transcript_context(transcript, self.settings.workflow.transcript_prompt_chars)
        prompt = (
            "Generate hashtags for promoting this podcast episode.\n\n"
            f"{context}\n\n"
            "- youtube: exactly 5 broad-reach tags.\n"
            "- instagram: 6-8 tags mixing niche and broad.\n"
            "- tiktok: 5-6 trending-style tags.\n"
            "- linkedin: exactly 5 professional tags.\n"
            "- twitter: exactly 5 concise tags.\n"
            "Every tag starts with #."
        )
        return [
            Message(role="system", content=self.system_prompt),
            Message(role="user", content=prompt),
        ]

    def finalize(self, output: Any, transcript: Transcript) -> Artifact:
        # Blank tags are dropped, then per-platform counts are checked again.
        cleaned = {
            platform: [tag for tag in map(_normalize_tag, values) if tag is not None]
            for platform, values in output.to_dict().items()
        }
        return validate_model(self.name, self.output_model, cleaned).to_dict()
