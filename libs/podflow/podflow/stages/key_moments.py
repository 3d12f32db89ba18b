"""Key moments picked from topic chapters."""

from __future__ import annotations

from typing import Any

from podflow.exceptions import ValidationError
from podflow.models.artifacts import KeyMoment, KeyMomentPicks, KeyMoments
from podflow.models.project import TaskName
from podflow.models.transcript import Transcript
from podflow.providers.llm.base import Message
from podflow.stages.base import Artifact
from podflow.stages.base_llm import ChapterLLMTask
from podflow.utils.timefmt import format_timestamp


class KeyMomentsTask(ChapterLLMTask):
    name = TaskName.KEY_MOMENTS
    output_model = KeyMomentPicks
    schema_name = "key_moments"
    temperature = 0.5
    system_prompt = (
        "You are a podcast editor who finds the moments worth clipping: surprising "
        "claims, strong opinions, memorable stories and practical advice."
    )

    def build_messages(self, transcript: Transcript) -> list[Message]:
        prompt = (
            "Pick the most compelling moments of this episode. Each moment belongs to "
            "one chapter, referenced by its index.\n\n"
            f"{self.chapter_outline(transcript)}\n\n"
            "Return 3-10 moments as "
            '{"moments": [{"index": 0, "text": "short quote or hook", '
            '"description": "why it matters"}]}.'
        )
        return [
            Message(role="system", content=self.system_prompt),
            Message(role="user", content=prompt),
        ]

    def finalize(self, output: Any, transcript: Transcript) -> Artifact:
        chapters = self.chapters_for(transcript)
        seen: set[int] = set()
        moments: list[KeyMoment] = []
        for pick in output.moments:
            if pick.index >= len(chapters) or pick.index in seen:
                continue
            seen.add(pick.index)
            start = int(chapters[pick.index].start)
            moments.append(
                KeyMoment(
                    time=format_timestamp(start),
                    timestamp=start,
                    text=pick.text.strip(),
                    description=pick.description.strip(),
                )
            )
        if not moments:
            raise ValidationError(self.name.value, "provider returned no usable key moments")
        moments.sort(key=lambda m: m.timestamp)
        return KeyMoments(moments).to_dict()
