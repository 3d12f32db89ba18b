"""YouTube chapter timestamps: transcript timing plus provider titles."""

from __future__ import annotations

import logging
from typing import Any

from podflow.models.artifacts import ChapterTitles, YouTubeTimestamp, YouTubeTimestamps
from podflow.models.project import TaskName
from podflow.models.transcript import Transcript
from podflow.providers.llm.base import Message
from podflow.stages.base import Artifact
from podflow.stages.base_llm import ChapterLLMTask
from podflow.utils.timefmt import format_timestamp

logger = logging.getLogger(__name__)


class YouTubeTimestampsTask(ChapterLLMTask):
    """Timing always comes from chapters; the provider only names them.

    A chapter the provider leaves untitled keeps its transcript headline.
    """

    name = TaskName.YOUTUBE_TIMESTAMPS
    output_model = ChapterTitles
    schema_name = "youtube_chapter_titles"
    temperature = 0.5
    system_prompt = (
        "You are a YouTube content expert who writes SHORT chapter titles (3-6 words). "
        "You write titles, never transcript excerpts or full sentences."
    )

    def build_messages(self, transcript: Transcript) -> list[Message]:
        chapters = self.chapters_for(transcript)
        prompt = (
            f"Here are {len(chapters)} video chapters with start times.\n\n"
            f"{self.chapter_outline(transcript)}\n\n"
            "For each chapter return a 3-6 word title keyed by its chapter index, as "
            '{"titles": [{"index": 0, "title": "..."}]}.'
        )
        return [
            Message(role="system", content=self.system_prompt),
            Message(role="user", content=prompt),
        ]

    def finalize(self, output: Any, transcript: Transcript) -> Artifact:
        chapters = self.chapters_for(transcript)
        titles: dict[int, str] = {}
        for item in output.titles:
            title = item.title.strip()
            if title and item.index not in titles:
                titles[item.index] = title

        entries: list[YouTubeTimestamp] = []
        for i, chapter in enumerate(chapters):
            title = titles.get(i)
            if title is None:
                logger.warning("chapter title missing, using headline (index=%d)", i)
            entries.append(
                YouTubeTimestamp(
                    timestamp=format_timestamp(int(chapter.start)),
                    description=title or chapter.headline or chapter.gist,
                )
            )
        return YouTubeTimestamps(entries).to_dict()
