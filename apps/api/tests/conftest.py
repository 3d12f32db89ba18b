from __future__ import annotations

import json
import sys
from collections import defaultdict
from pathlib import Path
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from redis.exceptions import WatchError

from podflow.config import Settings

_API_ROOT = Path(__file__).resolve().parents[1]
if str(_API_ROOT) not in sys.path:
    sys.path.insert(0, str(_API_ROOT))


class FakePipeline:
    def __init__(self, redis: "FakeRedis") -> None:
        self.redis = redis
        self._ops: list[tuple[str, tuple, dict]] = []
        self._watched: dict[str, int] = {}

    async def __aenter__(self) -> "FakePipeline":
        return self

    async def __aexit__(self, *exc_info) -> None:  # noqa: ANN002
        self._ops.clear()
        self._watched.clear()

    async def watch(self, *keys: str) -> None:
        for key in keys:
            self._watched[str(key)] = self.redis.versions.get(str(key), 0)

    async def unwatch(self) -> None:
        self._watched.clear()

    async def get(self, key: str) -> str | None:
        return await self.redis.get(key)

    def multi(self) -> None:
        return None

    def set(self, key: str, value: str, *, ex: int | None = None) -> "FakePipeline":
        self._ops.append(("set", (key, value), {"ex": ex}))
        return self

    def sadd(self, key: str, *values: str) -> "FakePipeline":
        self._ops.append(("sadd", (key, *values), {}))
        return self

    async def execute(self) -> list:
        for key, version in self._watched.items():
            if self.redis.versions.get(key, 0) != version:
                raise WatchError(key)
        results = [await getattr(self.redis, name)(*args, **kwargs) for name, args, kwargs in self._ops]
        self._ops.clear()
        return results


class FakeRedis:
    def __init__(self) -> None:
        self._kv: dict[str, str] = {}
        self._sets: dict[str, set[str]] = defaultdict(set)
        self._lists: dict[str, list[str]] = defaultdict(list)
        self.versions: dict[str, int] = {}

    def pipeline(self, transaction: bool = True) -> FakePipeline:  # noqa: ARG002
        return FakePipeline(self)

    async def ping(self) -> bool:
        return True

    async def get(self, key: str) -> str | None:
        return self._kv.get(str(key))

    async def set(self, key: str, value: str, *, ex: int | None = None) -> bool:  # noqa: ARG002
        self._kv[str(key)] = str(value)
        self.versions[str(key)] = self.versions.get(str(key), 0) + 1
        return True

    async def sadd(self, key: str, *values: str) -> int:
        s = self._sets[str(key)]
        before = len(s)
        for v in values:
            s.add(str(v))
        return len(s) - before

    async def smembers(self, key: str) -> set[str]:
        return set(self._sets.get(str(key), set()))

    async def sismember(self, key: str, value: str) -> bool:
        return str(value) in self._sets.get(str(key), set())

    async def lpush(self, key: str, *values: str) -> int:
        lst = self._lists[str(key)]
        for v in values:
            lst.insert(0, str(v))
        return len(lst)

    async def aclose(self) -> None:
        return None

    def subscribe_user(self, user_id: str, tier: str) -> None:
        self._sets[f"podflow:subscriptions:{user_id}"].add(tier)

    def dump_queue(self, key: str) -> list[dict[str, Any]]:
        return [json.loads(x) for x in list(self._lists.get(str(key), []))]


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(log_dir=str(tmp_path / "logs"))


@pytest.fixture()
def redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture()
def app(settings: Settings, redis: FakeRedis) -> FastAPI:
    from routes.health import router as health_router
    from routes.projects import router as projects_router

    test_app = FastAPI()
    test_app.state.redis = redis
    test_app.state.settings = settings
    test_app.include_router(projects_router)
    test_app.include_router(health_router)
    return test_app


@pytest.fixture()
def client(app: FastAPI) -> TestClient:
    return TestClient(app, headers={"X-User-Id": "u1"})
