"""Narrative agent thread files."""

from typing import Any
from urllib.parse import unquote, urlparse

from pydantic import BaseModel, Field


class ThreadMessage(BaseModel):
    """One message of a thread, reduced to what drives state."""

    role: str = ""
    state: str = ""  # running, complete, cancelled
    stop_reason: str = ""


class NarrativeThread(BaseModel):
    """A conversation thread as stored by the narrative agent."""

    id: str = ""
    title: str = ""
    created: int = Field(default=0, description="Creation time in epoch milliseconds")
    workspace_uris: list[str] = Field(default_factory=list)
    messages: list[ThreadMessage] = Field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NarrativeThread":
        env = data.get("env")
        initial = env.get("initial") if isinstance(env, dict) else None
        trees = initial.get("trees") if isinstance(initial, dict) else None
        if not isinstance(trees, list):
            trees = []
        uris = [tree.get("uri", "") for tree in trees if isinstance(tree, dict)]

        raw_messages = data.get("messages")
        if not isinstance(raw_messages, list):
            raw_messages = []
        messages = []
        for raw in raw_messages:
            if not isinstance(raw, dict):
                continue
            state = raw.get("state") if isinstance(raw.get("state"), dict) else {}
            messages.append(
                ThreadMessage(
                    role=str(raw.get("role", "")),
                    state=str(state.get("type", "")),
                    stop_reason=str(state.get("stopReason", "")),
                )
            )

        created = data.get("created")
        return cls(
            id=str(data.get("id", "")),
            title=str(data.get("title", "")),
            created=created if isinstance(created, int) else 0,
            workspace_uris=[uri for uri in uris if isinstance(uri, str)],
            messages=messages,
        )

    def workspace_paths(self) -> list[str]:
        """Local paths of the thread's file:// workspace URIs."""
        paths = []
        for uri in self.workspace_uris:
            if not uri.startswith("file://"):
                continue
            path = unquote(urlparse(uri).path)
            if path:
                paths.append(path)
        return paths
