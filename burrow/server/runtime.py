import asyncio

from burrow.audit import AuditStore
from burrow.bus import MessageBus
from burrow.channel import Channel
from burrow.config import Config, get_config
from burrow.context import ContextBuilder
from burrow.core import AgentLoop, PersonaProfileUpdater
from burrow.database import Database
from burrow.events import AuditEvent
from burrow.llm.base import LLMProvider
from burrow.llm.factory import create_provider
from burrow.logging import get_logger, system_log
from burrow.metrics import MetricsStore
from burrow.session import HttpSessionMirror, RemoteSessionStore, SessionStore
from burrow.skills import SkillRegistry
from burrow.tools import create_registry

_logger = get_logger(__name__)


class Runtime:
    """Owns every long-lived component and the agent consumer tasks."""

    def __init__(self, config: Config | None = None, provider: LLMProvider | None = None):
        self.config = config or get_config()
        self.channel = Channel()
        self.bus = MessageBus(self.config.bus_capacity)
        self.metrics = MetricsStore()

        self.tools = create_registry(self.config.sandbox)
        self.skills = SkillRegistry()
        self.context = ContextBuilder(self.config.workspace, self.skills)

        self.remote: RemoteSessionStore | None = None
        if self.config.sessions_remote_url:
            self.remote = HttpSessionMirror(self.config.sessions_remote_url, self.config.sessions_remote_token)
        self.sessions = SessionStore(self.config.sessions_dir, remote=self.remote)
        self.profile = PersonaProfileUpdater(self.config.workspace)

        self.audit_db = Database(self.config.audit_db_path)
        self.audit: AuditStore | None = None

        self.provider = provider
        self.agent: AgentLoop | None = None
        self._consumers: list[asyncio.Task] = []
        self._connected = False

    async def connect(self) -> None:
        if self._connected:
            return

        self.config.workspace.mkdir(parents=True, exist_ok=True)

        await self.audit_db.connect()
        self.audit = AuditStore(self.audit_db)
        await self.audit.init_schema()
        self.channel.subscribe(AuditEvent, self.audit.record)
        system_log.attach(self.bus)

        self.skills.load([self.config.skills_dir])

        if self.provider is None:
            self.provider = create_provider(self.config)

        self.agent = AgentLoop(
            bus=self.bus,
            provider=self.provider,
            tools=self.tools,
            context=self.context,
            sessions=self.sessions,
            options=self.config.generation_options,
            channel=self.channel,
            metrics=self.metrics,
            profile=self.profile,
        )
        self._connected = True

    def start(self) -> None:
        if not self._connected:
            raise RuntimeError("Runtime not connected. Call await runtime.connect() first.")
        if self._consumers:
            return
        count = self.config.consumers
        for index in range(count):
            # subscribe before the task starts so nothing published after start() is missed
            subscription = self.bus.subscribe()
            shard = (index, count) if count > 1 else None
            self._consumers.append(asyncio.create_task(self.agent.run(subscription, shard=shard)))
        _logger.info("Started %d agent consumer(s)", count)

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._consumers)

    async def close(self) -> None:
        system_log.detach(self.bus)
        self.bus.close()
        if self._consumers:
            await asyncio.gather(*self._consumers, return_exceptions=True)
            self._consumers.clear()

        await self.sessions.drain()
        await self.channel.drain()

        if self.remote:
            await self.remote.aclose()
        if self.provider:
            await self.provider.close()
        await self.audit_db.close()
        self._connected = False
