"""
Interview orchestrator: the entry point that gates, prepares and launches sessions.
"""
import time
import uuid
import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

from .analysis import LLMEvaluator
from .decision_engine import FollowUpPolicy
from .engine import TurnEngine
from .errors import AlreadyAttempted, ConfigurationError
from .events import InterviewEventBus, EventLogger, InterviewMetrics, SessionCreatedEvent
from .handoff import CompletionHandoff
from .models import CandidateIdentity, Session
from .reaper import InactivityReaper
from .registry import AttemptRegistry
from .schemas import TransportMode
from .script import build_question_script, load_role_template
from .services import VoicePromptCache
from .store import SessionStore
from ..config import Config, get_config
from ..infrastructure.audio.speech.tts import SpeechSynthesizer, create_synthesizer
from ..infrastructure.llm import VertexRestClient
from ..infrastructure.meeting import MeetingProvisioner
from ..infrastructure.transport.base import (
    Transport, create_transport, select_transport_mode, validate_transport_setup
)

logger = logging.getLogger("orchestrator")

INSTRUCTIONS = {
    TransportMode.EMBEDDED_ROOM: "Open {url} in Chrome or Edge and allow microphone access. "
                                 "The interview starts as soon as you connect.",
    TransportMode.HEADLESS_BOT: "Join the meeting at {url}. The AI interviewer will join and "
                                "begin once you are in the room.",
    TransportMode.CLOUD_BOT: "Join the meeting at {url}. The AI interviewer will join and "
                             "begin once you are in the room.",
}


class InterviewOrchestrator:
    """
    Starts interviews and keeps track of the engines driving them.

    Collaborators are built from the configuration unless passed in.
    """

    def __init__(self,
                 config: Optional[Config] = None,
                 registry: Optional[AttemptRegistry] = None,
                 store: Optional[SessionStore] = None,
                 synthesizer: Optional[SpeechSynthesizer] = None,
                 evaluator=None,
                 llm_client=None,
                 provisioner: Optional[MeetingProvisioner] = None,
                 transport_factory: Optional[Callable[[TransportMode, Config], Transport]] = None,
                 event_bus: Optional[InterviewEventBus] = None):
        self.config = config or get_config()
        cfg = self.config

        self.registry = registry or AttemptRegistry(cfg.tracking_path)
        self.store = store or SessionStore(cfg.sessions_dir, cfg.results_path)

        if llm_client is None and not cfg.missing_required():
            llm_client = VertexRestClient(
                project=cfg.google_cloud_project,
                location=cfg.vertex_location,
                model=cfg.model_name,
                credentials_json=cfg.google_application_credentials,
            )
        self.llm_client = llm_client

        self.cache = VoicePromptCache(synthesizer or create_synthesizer(cfg), cfg.synthesis_timeout)
        self.policy = FollowUpPolicy(llm_client, cfg.followup_min_chars, cfg.enable_followups)
        self.provisioner = provisioner or MeetingProvisioner(cfg.google_calendar_id, cfg.google_application_credentials)
        self.transport_factory = transport_factory or create_transport

        # Event system
        self.event_bus = event_bus or InterviewEventBus()
        self.event_logger = EventLogger()
        self.metrics = InterviewMetrics()
        self.event_bus.subscribe_all(self.event_logger.handle_event)
        self.event_bus.subscribe_all(self.metrics.handle_event)

        self.handoff = CompletionHandoff(
            evaluator if evaluator is not None else LLMEvaluator(llm_client),
            self.registry, self.store, self.event_bus, cfg.evaluation_timeout,
        )

        self.engines: Dict[str, TurnEngine] = {}
        self.tasks: Dict[str, asyncio.Task] = {}
        self.reaper = InactivityReaper(
            self.store, self.registry, self.engines,
            cfg.abandon_max_age_hours, cfg.reaper_interval_seconds, self.event_bus,
        )

    async def _provision(self, mode: TransportMode, session_id: str, name: str, role: str) -> str:
        if mode == TransportMode.EMBEDDED_ROOM:
            return f"{self.config.public_base_url.rstrip('/')}/interview/{session_id}"
        room = await asyncio.to_thread(self.provisioner.create_room, name, role)
        return room.join_url

    async def start_interview(self, name: str, email: str, role: str) -> Dict[str, Any]:
        """
        Gate, prepare and launch an interview.

        Returns:
            {session_id, join_url, transport_mode, instructions}

        Raises:
            ConfigurationError: Missing credentials or an unusable transport
            AlreadyAttempted: The candidate already has an attempt for this role
        """
        missing = self.config.missing_required()
        if missing:
            raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}", missing)

        mode = select_transport_mode(self.config)
        validate_transport_setup(mode, self.config)

        check = self.registry.can_start(email, role)
        if not check.allowed:
            raise AlreadyAttempted(email, role, check.status.value, check.reason)

        template = load_role_template(role, self.config.roles_dir)
        script = build_question_script(
            template, name,
            opening_wait=self.config.opening_wait_seconds,
            technical_wait=self.config.technical_wait_seconds,
            behavioral_wait=self.config.behavioral_wait_seconds,
        )

        try:
            transport = self.transport_factory(mode, self.config)
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(f"Could not set up {mode.value} transport: {e}") from e

        session_id = uuid.uuid4().hex
        self.registry.register_start(email, role, session_id, name)

        join_url = await self._provision(mode, session_id, name, template.role)
        session = Session(
            id=session_id,
            candidate=CandidateIdentity(name=name, email=email.strip().lower()),
            role=template.role,
            transport_mode=mode,
            join_url=join_url,
        )
        self.store.save(session)

        await self.cache.prewarm(script)

        engine = TurnEngine(
            session, script, transport, self.store, self.cache, self.handoff, self.config,
            policy=self.policy, registry=self.registry, event_bus=self.event_bus,
        )
        self.engines[session_id] = engine
        task = asyncio.create_task(engine.run())
        self.tasks[session_id] = task
        task.add_done_callback(lambda _t, sid=session_id: self._forget(sid))

        self.event_bus.emit(SessionCreatedEvent(session_id, time.time(), template.role, mode.value, len(script)))
        logger.info(f"Started session {session_id} for {email} ({template.role}) via {mode.value}")

        return {
            "session_id": session_id,
            "join_url": join_url,
            "transport_mode": mode.value,
            "instructions": INSTRUCTIONS[mode].format(url=join_url),
        }

    def _forget(self, session_id: str) -> None:
        self.engines.pop(session_id, None)
        task = self.tasks.pop(session_id, None)
        if task is not None and not task.cancelled() and task.exception() is not None:
            logger.error(f"Engine for {session_id} crashed: {task.exception()}")

    def end_interview_now(self, session_id: str) -> bool:
        """Ask a live session to skip its remaining prompts and complete."""
        engine = self.engines.get(session_id)
        if engine is None or engine.is_finished:
            return False
        engine.request_end()
        return True

    def get_transport(self, session_id: str) -> Optional[Transport]:
        """Transport of a live session, for the web layer to feed events into."""
        engine = self.engines.get(session_id)
        return engine.transport if engine else None

    def get_status(self, email: str, role: str) -> Dict[str, Any]:
        return self.registry.status_report(email, role)

    def get_session(self, session_id: str) -> Optional[Session]:
        engine = self.engines.get(session_id)
        if engine is not None:
            return engine.session
        return self.store.load(session_id)

    async def wait_for(self, session_id: str) -> Optional[Session]:
        """Wait for a live session to reach a terminal state."""
        task = self.tasks.get(session_id)
        if task is None:
            return self.get_session(session_id)
        return await task

    async def reap(self) -> List[str]:
        return await self.reaper.sweep()

    async def shutdown(self) -> None:
        """Stop the reaper and cancel engines still running."""
        await self.reaper.stop()
        tasks = list(self.tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
