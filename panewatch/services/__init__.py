"""Services for panewatch."""

from panewatch.services.agent_registry import (
    AgentRegistry,
    CachedDetection,
    DetectionCache,
    ReadWriteLock,
)
from panewatch.services.config_service import (
    ConfigService,
    get_config_service,
    reset_config_service,
)
from panewatch.services.priority_service import (
    PriorityService,
    find_priority_pane,
    pane_state_priority,
    result_priority,
    status_priority,
)
from panewatch.services.session_log import (
    SessionLogReader,
    extract_question_and_choices,
    find_latest_session,
    parse_log_line,
    project_dir,
    read_log,
    reconstruct,
    to_result,
)
from panewatch.services.state_fusion import PaneMonitor, PaneReport, agent_state
from panewatch.services.status_watcher import (
    StatusWatcher,
    parse_pane_status,
    parse_status_text,
    read_pane_statuses,
)
from panewatch.services.thread_reader import ThreadReader, analyze_thread

__all__ = [
    # Agent registry
    "AgentRegistry",
    "CachedDetection",
    "DetectionCache",
    "ReadWriteLock",
    # Config
    "ConfigService",
    "get_config_service",
    "reset_config_service",
    # Priority
    "PriorityService",
    "find_priority_pane",
    "pane_state_priority",
    "result_priority",
    "status_priority",
    # Session log
    "SessionLogReader",
    "extract_question_and_choices",
    "find_latest_session",
    "parse_log_line",
    "project_dir",
    "read_log",
    "reconstruct",
    "to_result",
    # Fusion
    "PaneMonitor",
    "PaneReport",
    "agent_state",
    # Status files
    "StatusWatcher",
    "parse_pane_status",
    "parse_status_text",
    "read_pane_statuses",
    # Narrative threads
    "ThreadReader",
    "analyze_thread",
]
