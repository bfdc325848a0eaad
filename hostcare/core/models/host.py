"""
Host model — a machine targeted for maintenance.

Loaded from the ``hosts`` list in hostcare.yml, or built ad hoc from a
name given on the command line. A host only describes how to reach it;
what it is capable of is discovered per run by the capability detector.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, model_validator

LOCAL_ADDRESSES = ("localhost", "127.0.0.1", "::1")


class Host(BaseModel):
    """Connection parameters for one host."""

    name: str
    address: str = ""              # defaults to name
    user: str | None = None
    port: int = Field(default=22, ge=1, le=65535)
    transport: Literal["ssh", "local", "mock"] | None = None
    become: bool = False           # prefix commands with `sudo -n`
    ssh_options: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _fill_defaults(self) -> Host:
        if not self.address:
            self.address = self.name
        if self.transport is None:
            self.transport = "local" if self.address in LOCAL_ADDRESSES else "ssh"
        return self

    @property
    def target(self) -> str:
        """``user@address`` as understood by ssh."""
        if self.user:
            return f"{self.user}@{self.address}"
        return self.address

    def __str__(self) -> str:
        return self.name
