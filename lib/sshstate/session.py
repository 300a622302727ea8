"""Session state and logging for a run against one target."""

import json
import sys
from dataclasses import dataclass, asdict
from datetime import datetime
from pathlib import Path
from typing import Optional


@dataclass
class SessionState:
    """Represents the persisted state of a session (state.json).

    Example:
        state = SessionState.create('root@web1')
        state.save(session_dir)
        # later:
        state = SessionState.load(session_dir)
    """

    session_id: str
    target: str
    status: str          # 'running' | 'complete' | 'failed'
    started_at: str      # ISO 8601 string
    ended_at: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def create(cls, target: str) -> 'SessionState':
        """Create a new SessionState for a fresh session."""
        now = datetime.now()
        return cls(
            session_id=now.strftime('%Y%m%d-%H%M%S-%f'),
            target=target,
            status='running',
            started_at=now.isoformat(timespec='seconds'),
        )

    @classmethod
    def load(cls, session_dir: Path) -> 'SessionState':
        """Load state from session directory."""
        state_file = session_dir / 'state.json'
        try:
            data = json.loads(state_file.read_text())
            return cls(**data)
        except json.JSONDecodeError as e:
            raise ValueError(f"Malformed state.json in {session_dir}: {e}") from e
        except TypeError as e:
            raise ValueError(f"Invalid state.json schema in {session_dir}: {e}") from e

    def save(self, session_dir: Path) -> None:
        """Persist state to session directory."""
        state_file = session_dir / 'state.json'
        state_file.write_text(json.dumps(asdict(self), indent=2))

    def mark_complete(self, session_dir: Path) -> None:
        """Transition to complete status and persist."""
        self.status = 'complete'
        self.ended_at = datetime.now().isoformat(timespec='seconds')
        self.save(session_dir)

    def mark_failed(self, error: str, session_dir: Path) -> None:
        """Transition to failed status and persist."""
        self.status = 'failed'
        self.error = error
        self.ended_at = datetime.now().isoformat(timespec='seconds')
        self.save(session_dir)


class Session:
    """Logs the operations and remote commands of one run."""

    def __init__(self, state: SessionState, session_dir: Path):
        self.state = state
        self.session_dir = session_dir
        self.command_log = session_dir / 'commands.jsonl'
        self.session_log = session_dir / 'session.log'

    @classmethod
    def start(cls, target: str, logs_dir: Path) -> 'Session':
        """Create and initialise a new session.

        Args:
            target: Display name of the target the session runs against
            logs_dir: Base directory for all session logs

        Returns:
            New Session with state.json written and initial log entry
        """
        state = SessionState.create(target)
        session_dir = logs_dir / f'session-{state.session_id}'
        session_dir.mkdir(parents=True, exist_ok=True)
        state.save(session_dir)
        session = cls(state, session_dir)
        session.log_event(f'Session started for target: {target}')
        return session

    def log_command(self, description: str, script: str, returncode: int) -> None:
        """Log a remote command to commands.jsonl."""
        entry = {
            'timestamp': datetime.now().isoformat(),
            'description': description,
            'script': script,
            'returncode': returncode,
        }
        try:
            with open(self.command_log, 'a') as f:
                f.write(json.dumps(entry) + '\n')
        except (IOError, OSError) as e:
            print(f"Warning: Failed to log command: {e}", file=sys.stderr)

    def log_event(self, message: str, level: str = 'INFO') -> None:
        """Log an event to session.log."""
        timestamp = datetime.now().strftime('%Y-%m-%d %H:%M:%S')
        entry = f'[{timestamp}] {level}: {message}\n'
        try:
            with open(self.session_log, 'a') as f:
                f.write(entry)
        except (IOError, OSError) as e:
            print(f"Warning: Failed to log event: {e}", file=sys.stderr)

    def complete(self) -> None:
        self.log_event('Session complete')
        self.state.mark_complete(self.session_dir)

    def fail(self, error: Exception) -> None:
        self.log_event(f'Error: {error}', level='ERROR')
        self.state.mark_failed(str(error), self.session_dir)
