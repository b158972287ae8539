"""Application configuration models with Pydantic validation."""

from pathlib import Path

from pydantic import BaseModel, Field

from panewatch.models.result import AgentKind


def _home_path(*parts: str) -> str:
    return str(Path.home().joinpath(*parts))


class DetectionConfig(BaseModel):
    """Agent identity detection settings."""

    ttl_seconds: float = Field(
        default=15.0,
        gt=0,
        le=3600,
        description="Seconds a cached detection stays valid",
    )
    command_hints: dict[str, AgentKind] = Field(
        default_factory=lambda: {
            "claude": AgentKind.STRUCTURED,
            "amp": AgentKind.NARRATIVE,
        },
        description="Substring of the pane command -> agent kind, checked in order",
    )
    shell_commands: list[str] = Field(
        default_factory=lambda: ["fish", "bash", "zsh", "sh", "dash", "ksh", "tcsh", "csh"],
        description="Commands treated as a bare shell (no output-based detection)",
    )


class SessionLogConfig(BaseModel):
    """Structured agent conversation log settings."""

    projects_dir: str = Field(
        default_factory=lambda: _home_path(".claude", "projects"),
        description="Root directory holding one log directory per project",
    )
    read_limit: int = Field(
        default=50,
        ge=1,
        le=10000,
        description="Number of trailing log messages read per poll",
    )
    window: int = Field(
        default=20,
        ge=1,
        le=1000,
        description="Number of trailing messages replayed to derive current state",
    )


class NarrativeThreadsConfig(BaseModel):
    """Narrative agent thread file settings."""

    threads_dir: str = Field(
        default_factory=lambda: _home_path(".local", "share", "amp", "threads"),
    )
    state_dir: str = Field(
        default_factory=lambda: _home_path(".local", "state", "amp"),
    )


class StatusConfig(BaseModel):
    """Hook status file settings."""

    status_dir: str = Field(
        default="/tmp/claude-status",
        description="Directory the hook writes one status file per session into",
    )
    panes_dir: str = Field(
        default="/tmp/claude-status/panes",
        description="Directory of legacy per-pane status files",
    )
    fresh_seconds: int = Field(
        default=300,
        ge=1,
        le=86400,
        description="Status records older than this are ignored for ranking",
    )


class AppConfig(BaseModel):
    """Root application configuration.

    Loaded from config.yaml and validated with Pydantic.
    """

    scan_interval: int = Field(
        default=2,
        ge=1,
        le=60,
        description="Interval in seconds between polls suggested to clients",
    )
    capture_lines: int = Field(
        default=100,
        ge=10,
        le=10000,
        description="Lines of scrollback captured per pane",
    )
    detection: DetectionConfig = Field(default_factory=DetectionConfig)
    session_log: SessionLogConfig = Field(default_factory=SessionLogConfig)
    narrative_threads: NarrativeThreadsConfig = Field(default_factory=NarrativeThreadsConfig)
    status: StatusConfig = Field(default_factory=StatusConfig)
    port: int = Field(
        default=5050,
        ge=1024,
        le=65535,
        description="Port for the Flask server",
    )
    debug: bool = Field(
        default=False,
        description="Enable Flask debug mode",
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR)$",
    )
