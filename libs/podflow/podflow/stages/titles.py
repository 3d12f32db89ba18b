"""Title and SEO keyword suggestions."""

from __future__ import annotations

from podflow.models.artifacts import Titles
from podflow.models.project import TaskName
from podflow.models.transcript import Transcript
from podflow.providers.llm.base import Message
from podflow.stages.base_llm import BaseLLMTask, transcript_context


class TitlesTask(BaseLLMTask):
    name = TaskName.TITLES
    output_model = Titles
    schema_name = "titles"
    system_prompt = (
        "You are a YouTube growth and podcast SEO specialist. You write titles that "
        "are accurate, searchable and worth clicking."
    )

    def build_messages(self, transcript: Transcript) -> list[Message]:
        context = transcript_context(transcript, self.settings.workflow.transcript_prompt_chars)
        prompt = (
            "Suggest titles for this podcast episode.\n\n"
            f"{context}\n\n"
            "- youtubeShort: exactly 3 hook-focused titles, 40-60 characters.\n"
            "- youtubeLong: exactly 3 keyword-rich titles, 70-100 characters.\n"
            "- podcastTitles: exactly 3 episode titles for podcast feeds.\n"
            "- seoKeywords: 5-10 search keywords."
        )
        return [
            Message(role="system", content=self.system_prompt),
            Message(role="user", content=prompt),
        ]
