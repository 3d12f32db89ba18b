"""Reusable services (persistence)."""

from podflow.services.project_store import ProjectGateway, RedisProjectStore

__all__ = ["ProjectGateway", "RedisProjectStore"]
