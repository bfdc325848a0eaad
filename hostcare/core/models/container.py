"""Container record parsed from the hypervisor's listing. Never persisted."""

from __future__ import annotations

from pydantic import BaseModel

RUNNING = "running"


class Container(BaseModel):
    id: int
    state: str
    name: str = ""

    @property
    def running(self) -> bool:
        return self.state == RUNNING
