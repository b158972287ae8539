"""tmux pane source."""

import logging
import shutil
import subprocess

from panewatch.backends.base import PaneInfo, PaneSource

logger = logging.getLogger(__name__)

# Field separator unlikely to appear in session names or paths
SEPARATOR = "\t"

PANE_FORMAT = SEPARATOR.join(
    [
        "#{session_name}",
        "#{window_index}",
        "#{pane_index}",
        "#{pane_id}",
        "#{pane_current_command}",
        "#{pane_current_path}",
        "#{pane_active}",
    ]
)


def _run_tmux(*args: str, timeout: int = 10) -> tuple[int, str, str]:
    """Run a tmux command.

    Args:
        *args: Command arguments to pass to tmux.
        timeout: Command timeout in seconds.

    Returns:
        Tuple of (return_code, stdout, stderr).
    """
    cmd = ["tmux", *args]
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
        return (result.returncode, result.stdout or "", result.stderr or "")
    except subprocess.TimeoutExpired:
        logger.warning(f"tmux {args[0] if args else ''} timed out after {timeout}s")
        return (1, "", "Command timed out")
    except FileNotFoundError:
        return (1, "", "tmux not found")


def parse_pane_line(line: str) -> PaneInfo | None:
    """Parse one line of ``list-panes`` output in PANE_FORMAT."""
    parts = line.split(SEPARATOR)
    if len(parts) < 7:
        return None

    session, window_str, index_str, pane_id, command, path, active = parts[:7]
    try:
        window = int(window_str)
        index = int(index_str)
    except ValueError:
        return None

    return PaneInfo(
        target=f"{session}:{window}.{index}",
        session=session,
        window=window,
        index=index,
        command=command,
        path=path,
        active=active == "1",
        pane_id=pane_id,
    )


class TmuxBackend(PaneSource):
    """Pane source backed by the tmux CLI."""

    def __init__(self, timeout: int = 10):
        self.timeout = timeout
        self._available: bool | None = None

    @property
    def backend_name(self) -> str:
        return "tmux"

    def is_available(self) -> bool:
        """Check if tmux is installed and a server is running.

        The result is cached for the lifetime of the backend.
        """
        if self._available is not None:
            return self._available

        if shutil.which("tmux") is None:
            logger.warning("tmux not found on PATH")
            self._available = False
            return False

        returncode, _, _ = _run_tmux("list-sessions", timeout=self.timeout)
        self._available = returncode == 0
        return self._available

    def list_panes(self) -> list[PaneInfo]:
        if not self.is_available():
            return []

        returncode, stdout, stderr = _run_tmux("list-panes", "-a", "-F", PANE_FORMAT, timeout=self.timeout)
        if returncode != 0:
            logger.warning(f"tmux list-panes failed: {stderr.strip()}")
            return []

        panes = []
        for line in stdout.strip().split("\n"):
            if not line:
                continue
            pane = parse_pane_line(line)
            if pane is not None:
                panes.append(pane)
        return panes

    def capture_pane(self, target: str, lines: int = 100) -> str | None:
        if not self.is_available():
            return None

        # -e keeps escape sequences, -J joins wrapped lines
        args = ["capture-pane", "-p", "-e", "-J", "-t", target, "-S", str(-lines)]
        returncode, stdout, stderr = _run_tmux(*args, timeout=self.timeout)
        if returncode != 0:
            logger.warning(f"tmux capture-pane failed for {target}: {stderr.strip()}")
            return None
        return stdout


# Singleton instance
_backend_instance: TmuxBackend | None = None


def get_tmux_backend() -> TmuxBackend:
    """Get the singleton tmux backend instance."""
    global _backend_instance
    if _backend_instance is None:
        _backend_instance = TmuxBackend()
    return _backend_instance


def reset_tmux_backend() -> None:
    """Reset the singleton instance (for testing)."""
    global _backend_instance
    _backend_instance = None
