"""
Shared fixtures for the mind-map tests.

Collaborators here are in-memory: nothing talks to the network.
"""

import asyncio
from typing import Dict, List, Optional

import pytest

from mindmap_canvas.controller import MindMapController
from mindmap_canvas.errors import CollaboratorFailure
from mindmap_canvas.generation import OutlineNode, TextGenerator
from mindmap_canvas.layout import LayoutEngine
from mindmap_canvas.models import CounterIdGenerator
from mindmap_canvas.node_store import NodeStore


class ScriptedGenerator(TextGenerator):
    """Answers from fixed tables; with `hold=True` every call waits for `release()`."""

    def __init__(self, labels: Optional[Dict[str, List[str]]] = None,
                 outlines: Optional[Dict[str, OutlineNode]] = None, hold: bool = False):
        self.labels = labels or {}
        self.outlines = outlines or {}
        self.hold = hold
        self.calls: List[str] = []
        self._gate: Optional[asyncio.Event] = None

    def release(self):
        self.hold = False
        if self._gate is not None:
            self._gate.set()

    async def _wait(self):
        if self.hold:
            self._gate = self._gate or asyncio.Event()
            await self._gate.wait()

    async def generate_labels(self, topic: str) -> List[str]:
        self.calls.append(topic)
        await self._wait()
        return list(self.labels.get(topic, []))

    async def generate_outline(self, topic: str) -> OutlineNode:
        self.calls.append(topic)
        await self._wait()
        return self.outlines.get(topic, OutlineNode(topic))


class FailingGenerator(ScriptedGenerator):
    """Every request fails the way an unreachable service does, after `release()` when held."""

    async def generate_labels(self, topic: str) -> List[str]:
        self.calls.append(topic)
        await self._wait()
        raise CollaboratorFailure("service unavailable", topic)

    async def generate_outline(self, topic: str) -> OutlineNode:
        self.calls.append(topic)
        await self._wait()
        raise CollaboratorFailure("service unavailable", topic)


@pytest.fixture
def id_generator():
    return CounterIdGenerator()


@pytest.fixture
def store(id_generator):
    return NodeStore.from_topic("Python", id_generator)


@pytest.fixture
def engine():
    return LayoutEngine()


@pytest.fixture
def scripted_generator():
    return ScriptedGenerator(labels={"Python": ["Basics", "OOP", "Libraries"]})


@pytest.fixture
def controller(scripted_generator, id_generator):
    return MindMapController(generator=scripted_generator, id_generator=id_generator)
