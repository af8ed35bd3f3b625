"""Sessions owned by the hosting process, keyed by channel."""

from typing import Dict, Iterator, Optional, Tuple

from gevent.lock import RLock

from .constants import Phase
from .errors import GameInProgress
from .error_logger import log_info
from .session import GameSession


class SessionRegistry:
    """
    Maps a channel id to its live session.

    At most one unfinished session per channel. Sessions never see the
    registry; the binding looks them up here and calls them directly.
    """

    def __init__(self, **session_defaults):
        self._sessions: Dict[str, GameSession] = {}
        self._lock = RLock()
        self._defaults = session_defaults

    def create(self, channel_id: str, host_id: str, host_name: str = None, **kwargs) -> GameSession:
        """Open a lobby in a channel. Raises GameInProgress if one is still running."""
        with self._lock:
            existing = self._sessions.get(channel_id)
            if existing is not None and not existing.is_over:
                raise GameInProgress("A game is already running in this channel.")

            options = dict(self._defaults)
            options.update(kwargs)
            session = GameSession(host_id, host_name, **options)
            self._sessions[channel_id] = session
            log_info(f"Session {session.session_id} created in channel {channel_id}")
            return session

    def get(self, channel_id: str) -> Optional[GameSession]:
        return self._sessions.get(channel_id)

    def find_by_player(self, player_id: str) -> Optional[Tuple[str, GameSession]]:
        """First unfinished session the player belongs to."""
        with self._lock:
            for channel_id, session in self._sessions.items():
                if not session.is_over and player_id in session.state.players:
                    return channel_id, session
        return None

    def remove(self, channel_id: str) -> Optional[GameSession]:
        with self._lock:
            return self._sessions.pop(channel_id, None)

    def prune(self) -> int:
        """Drop every ended session. Returns how many were dropped."""
        with self._lock:
            ended = [cid for cid, s in self._sessions.items() if s.state.phase == Phase.ENDED]
            for channel_id in ended:
                del self._sessions[channel_id]
            return len(ended)

    def __contains__(self, channel_id: str) -> bool:
        return channel_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._sessions))
