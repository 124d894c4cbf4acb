import asyncio
import re
from collections import defaultdict
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError

from burrow.constants import SUMMARIZE_COOLDOWN, SUMMARIZE_THRESHOLD
from burrow.logging import get_logger
from burrow.session.models import Session
from burrow.types import Message

if TYPE_CHECKING:
    from burrow.session.remote import RemoteSessionStore

_logger = get_logger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def safe_key(session_key: str) -> str:
    return _UNSAFE_CHARS.sub("_", session_key)


class SessionStore:
    """Per-conversation history and rolling summary.

    Sessions are loaded lazily (remote mirror first, then the local JSON file)
    and cached in memory. Every mutation holds the session's lock for the
    whole read-modify-write including the local file write. Remote appends
    run as background tasks; their failures are logged and never reach the
    caller.
    """

    def __init__(
        self,
        storage_dir: Path,
        remote: "RemoteSessionStore | None" = None,
        summarize_threshold: int = SUMMARIZE_THRESHOLD,
        summarize_cooldown: float = SUMMARIZE_COOLDOWN,
    ):
        self.storage_dir = storage_dir
        self.remote = remote
        self.summarize_threshold = summarize_threshold
        self.summarize_cooldown = summarize_cooldown
        self._sessions: dict[str, Session] = {}
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._turn_locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._background: set[asyncio.Task] = set()

    def path_for(self, session_key: str) -> Path:
        return self.storage_dir / f"{safe_key(session_key)}.json"

    # --- persistence ---

    def _read_local(self, session_key: str) -> Session:
        path = self.path_for(session_key)
        if not path.exists():
            return Session()
        try:
            return Session.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValidationError):
            _logger.warning("Unreadable session file, starting fresh", path=str(path), exc_info=True)
            return Session()

    def _write_local(self, session_key: str, session: Session) -> None:
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(session_key)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(session.model_dump_json(indent=2), encoding="utf-8")
        tmp.replace(path)

    async def _save(self, session_key: str, session: Session) -> None:
        # in-memory state stays authoritative when the local write fails
        try:
            await asyncio.to_thread(self._write_local, session_key, session)
        except OSError:
            _logger.exception("Failed to write local session file", session=session_key)

    async def _load(self, session_key: str) -> Session:
        if self.remote is not None:
            try:
                remote_session = await self.remote.load_session(session_key)
            except Exception:
                _logger.exception("Failed to load session from remote mirror", session=session_key)
            else:
                if remote_session is not None:
                    await self._save(session_key, remote_session)
                    return remote_session
        return await asyncio.to_thread(self._read_local, session_key)

    async def _get(self, session_key: str) -> Session:
        # caller holds the session lock
        session = self._sessions.get(session_key)
        if session is None:
            session = await self._load(session_key)
            self._sessions[session_key] = session
        return session

    # --- remote mirror ---

    def _mirror(self, session_key: str, message: Message) -> None:
        if self.remote is None:
            return
        task = asyncio.create_task(self._mirror_append(session_key, message))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _mirror_append(self, session_key: str, message: Message) -> None:
        try:
            await self.remote.append_message(session_key, message)
        except Exception:
            _logger.exception("Failed to append message to remote mirror", session=session_key)

    async def drain(self) -> None:
        while self._background:
            await asyncio.gather(*list(self._background))

    # --- public API ---

    async def get_history(self, session_key: str) -> list[Message]:
        async with self._locks[session_key]:
            session = await self._get(session_key)
            return list(session.history)

    async def get_summary(self, session_key: str) -> str | None:
        async with self._locks[session_key]:
            session = await self._get(session_key)
            return session.summary

    async def add_message(self, session_key: str, message: Message) -> None:
        async with self._locks[session_key]:
            session = await self._get(session_key)
            session.history.append(message)
            await self._save(session_key, session)
        self._mirror(session_key, message)

    async def set_summary(self, session_key: str, summary: str) -> None:
        async with self._locks[session_key]:
            session = await self._get(session_key)
            session.summary = summary
            await self._save(session_key, session)

    async def trim_history(self, session_key: str, keep: int) -> int:
        """Drop the oldest entries so at most ``keep`` remain. Returns how many were removed."""
        keep = max(keep, 0)
        async with self._locks[session_key]:
            session = await self._get(session_key)
            removed = max(len(session.history) - keep, 0)
            if removed:
                session.history = session.history[removed:]
                await self._save(session_key, session)
            return removed

    async def mark_summarized(self, session_key: str) -> None:
        async with self._locks[session_key]:
            session = await self._get(session_key)
            session.summarized_at = datetime.now(UTC)
            await self._save(session_key, session)

    def should_summarize(self, session_key: str, history_len: int) -> bool:
        if history_len <= self.summarize_threshold:
            return False
        session = self._sessions.get(session_key)
        if session is None or session.summarized_at is None:
            return True
        elapsed = (datetime.now(UTC) - session.summarized_at).total_seconds()
        return elapsed >= self.summarize_cooldown

    @asynccontextmanager
    async def turn(self, session_key: str) -> AsyncIterator[None]:
        """Serialize whole turns for one session key."""
        async with self._turn_locks[session_key]:
            yield
