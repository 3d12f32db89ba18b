"""Platform-specific social post generation."""

from __future__ import annotations

import logging
from typing import Any

from podflow.models.artifacts import SocialPosts
from podflow.models.project import TaskName
from podflow.models.transcript import Transcript
from podflow.providers.llm.base import Message
from podflow.stages.base import Artifact
from podflow.stages.base_llm import BaseLLMTask, transcript_context

logger = logging.getLogger(__name__)

ELLIPSIS = "..."


def truncate_post(text: str, limit: int) -> str:
    """Cut `text` to at most `limit` characters, ending with an ellipsis."""
    if len(text) <= limit:
        return text
    return text[: limit - len(ELLIPSIS)] + ELLIPSIS


class SocialPostsTask(BaseLLMTask):
    name = TaskName.SOCIAL_POSTS
    output_model = SocialPosts
    schema_name = "social_posts"
    system_prompt = (
        "You are a social media marketing expert who writes platform-native posts "
        "that drive engagement and listens."
    )

    def build_messages(self, transcript: Transcript) -> list[Message]:
        limit = self.settings.workflow.twitter_max_chars
        context = transcript_context(transcript, self.settings.workflow.transcript_prompt_chars)
        prompt = (
            "Write one promotional post per platform for this podcast episode.\n\n"
            f"{context}\n\n"
            f"- twitter: at most {limit} characters including spaces and emojis; punchy.\n"
            "- linkedin: professional tone, 1-2 paragraphs, ends with a question.\n"
            "- instagram: story-driven caption, emojis welcome.\n"
            "- tiktok: short, casual, energetic.\n"
            "- youtube: detailed description with a call to action.\n"
            "- facebook: conversational, invites discussion."
        )
        return [
            Message(role="system", content=self.system_prompt),
            Message(role="user", content=prompt),
        ]

    def finalize(self, output: Any, transcript: Transcript) -> Artifact:
        posts = output.to_dict()
        limit = self.settings.workflow.twitter_max_chars
        twitter = str(posts.get("twitter") or "")
        if len(twitter) > limit:
            logger.warning(
                "twitter post over limit, truncating (chars=%d, limit=%d)", len(twitter), limit
            )
            posts["twitter"] = truncate_post(twitter, limit)
        return posts
