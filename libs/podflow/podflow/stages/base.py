"""Generation task abstractions."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from podflow.models.project import TaskName
from podflow.models.transcript import Transcript

Artifact = dict[str, Any] | list[dict[str, Any]]


class GenerationTask(ABC):
    """One independent artifact producer.

    Tasks read the transcript and return the artifact; they never write to
    the project themselves.
    """

    name: TaskName

    @abstractmethod
    def validate_input(self, transcript: Transcript) -> None:
        """Raise PreconditionError when the transcript cannot feed this task."""

    @abstractmethod
    async def run(self, transcript: Transcript) -> Artifact:
        """Produce the artifact for `transcript`."""

    async def close(self) -> None:
        return None
