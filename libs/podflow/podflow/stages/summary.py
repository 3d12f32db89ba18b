"""Summary generation task."""

from __future__ import annotations

from podflow.models.artifacts import Summary
from podflow.models.project import TaskName
from podflow.models.transcript import Transcript
from podflow.providers.llm.base import Message
from podflow.stages.base_llm import BaseLLMTask, transcript_context


class SummaryTask(BaseLLMTask):
    name = TaskName.SUMMARY
    output_model = Summary
    schema_name = "summary"
    system_prompt = (
        "You are an expert podcast content analyst. Your summaries are engaging, "
        "specific and highlight the most valuable takeaways for listeners."
    )

    def build_messages(self, transcript: Transcript) -> list[Message]:
        context = transcript_context(transcript, self.settings.workflow.transcript_prompt_chars)
        prompt = (
            "Analyze this podcast transcript and create a summary package.\n\n"
            f"{context}\n\n"
            "Produce:\n"
            "1. full: a 200-300 word overview (topic, speakers, main themes, why listen).\n"
            "2. bullets: 5-7 key points in the order they are discussed.\n"
            "3. insights: 3-5 actionable takeaways.\n"
            "4. tldr: one compelling sentence."
        )
        return [
            Message(role="system", content=self.system_prompt),
            Message(role="user", content=prompt),
        ]
