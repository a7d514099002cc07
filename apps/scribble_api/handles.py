from __future__ import annotations

import threading
from typing import Dict, List
from uuid import uuid4

from scribble_agents import Orchestrator


class AgentHandleTable:
    """Explicit registry of live orchestrators, owned by the HTTP layer."""

    def __init__(self) -> None:
        self._agents: Dict[str, Orchestrator] = {}
        self._lock = threading.Lock()

    def create(self, agent: Orchestrator) -> str:
        handle = str(uuid4())
        with self._lock:
            self._agents[handle] = agent
        return handle

    def get(self, handle: str) -> Orchestrator:
        with self._lock:
            if handle not in self._agents:
                raise KeyError(handle)
            return self._agents[handle]

    def destroy(self, handle: str) -> None:
        with self._lock:
            agent = self._agents.pop(handle)
        agent.close()

    def handles(self) -> List[str]:
        with self._lock:
            return list(self._agents)

    def close_all(self) -> None:
        with self._lock:
            agents = list(self._agents.values())
            self._agents.clear()
        for agent in agents:
            agent.close()
