"""Shared fixtures for ninja-docstore tests."""

from __future__ import annotations

import json
from typing import Annotated, Any

import pytest
from ninja_docstore.adapters.redis_json import JSONRepository
from ninja_docstore.schema import Key, Version
from pydantic import BaseModel, Field
from redis.exceptions import ResponseError


class Widget(BaseModel):
    id: Annotated[str, Key] = ""
    ver: Annotated[int, Version] = 0
    name: str = ""
    tags: list[str] = Field(default_factory=list)


class FakeSaveScript:
    """Runs the optimistic save script's check-and-set against a FakeRedis."""

    def __init__(self, redis: FakeRedis, source: str) -> None:
        self.redis = redis
        self.source = source
        self.calls: list[tuple[list[str], list[str]]] = []

    async def __call__(self, keys: list[str] | None = None, args: list[str] | None = None, client: Any = None):
        keys, args = keys or [], args or []
        self.calls.append((list(keys), list(args)))
        key = keys[0]
        path, expected, document = args
        stored = self.redis.docs.get(key)
        if stored is not None and json.dumps(stored.get(path)) != expected:
            return None
        new_doc = json.loads(document)
        new_doc[path] += 1
        self.redis.docs[key] = new_doc
        return self.redis._out(str(new_doc[path]))


class FakeRedis:
    """In-memory stand-in for ``redis.asyncio.Redis`` with RedisJSON and RediSearch.

    Supports the commands the JSON repository issues through
    ``execute_command`` and ``register_script``. ``FT.SEARCH`` matches every
    document under the index prefix (key order) unless ``search_reply`` is set.
    """

    def __init__(self, decode_responses: bool = False) -> None:
        self.decode_responses = decode_responses
        self.docs: dict[str, dict[str, Any]] = {}
        self.indexes: dict[str, list[Any]] = {}
        self.commands: list[tuple[Any, ...]] = []
        self.scripts: list[FakeSaveScript] = []
        self.search_reply: Any = None

    def _out(self, value: str) -> str | bytes:
        return value if self.decode_responses else value.encode("utf-8")

    def register_script(self, source: str) -> FakeSaveScript:
        script = FakeSaveScript(self, source)
        self.scripts.append(script)
        return script

    async def execute_command(self, *args: Any) -> Any:
        self.commands.append(args)
        name = args[0]
        if name == "JSON.GET":
            doc = self.docs.get(args[1])
            return None if doc is None else self._out(json.dumps(doc))
        if name == "DEL":
            return sum(1 for key in args[1:] if self.docs.pop(key, None) is not None)
        if name == "FT.CREATE":
            if args[1] in self.indexes:
                raise ResponseError("Index already exists")
            self.indexes[args[1]] = list(args[2:])
            return self._out("OK")
        if name == "FT.DROPINDEX":
            if self.indexes.pop(args[1], None) is None:
                raise ResponseError("Unknown Index name")
            return self._out("OK")
        if name == "FT.SEARCH":
            return self._search(args[1], list(args[2:]))
        raise ResponseError(f"unknown command '{name}'")

    def _search(self, index: str, args: list[Any]) -> Any:
        if self.search_reply is not None:
            return self.search_reply
        if index not in self.indexes:
            raise ResponseError("Unknown Index name")
        definition = self.indexes[index]
        key_prefix = definition[definition.index("PREFIX") + 2]
        offset, limit = 0, 10
        if "LIMIT" in args:
            pos = args.index("LIMIT")
            offset, limit = int(args[pos + 1]), int(args[pos + 2])
        keys = sorted(k for k in self.docs if k.startswith(key_prefix))
        reply: list[Any] = [len(keys)]
        for key in keys[offset : offset + limit]:
            reply += [self._out(key), [self._out("$"), self._out(json.dumps(self.docs[key]))]]
        return reply


@pytest.fixture
def redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def repo(redis: FakeRedis) -> JSONRepository[Widget]:
    return JSONRepository("widget", Widget, redis)
