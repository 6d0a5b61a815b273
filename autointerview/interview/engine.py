"""
Turn engine: the per-session state machine that drives an interview.

The engine is the single consumer of its session's inbox. Transport
events (candidate joined, speech fragments, disconnects) and control
requests (end now, abandon) all arrive on that queue, and the only
timers are the quiet-period and response-budget deadlines of the turn
being captured, plus the pause between prompts.
"""
import time
import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Set

from .decision_engine import FollowUpPolicy
from .errors import CaptureTimeout, TransportError
from .events import (
    InterviewEventBus, CandidateJoinedEvent, PromptAskedEvent, ResponseCapturedEvent,
    FollowUpAskedEvent, SessionCompletedEvent, SessionAbandonedEvent, ErrorOccurredEvent
)
from .handoff import CompletionHandoff
from .models import Prompt, PromptType, ResponseEntry, Session, now_iso
from .prompts import InterviewPrompts
from .registry import AttemptRegistry
from .schemas import TurnState
from .script import QuestionScript
from .services import VoicePromptCache
from .store import SessionStore
from ..config import Config, MAX_PLAYBACK_WAIT, NO_RESPONSE_SENTINEL
from ..infrastructure.transport.base import (
    Transport, CandidateJoined, SpeechFragment, TransportDisconnected
)

logger = logging.getLogger("turn_engine")


@dataclass
class EndInterviewRequested:
    """Operator asked to end the interview now."""
    reason: str = "operator request"


@dataclass
class AbandonRequested:
    """The inactivity reaper gave up on this session."""
    reason: str = "inactive"


class _SessionAbandoned(Exception):
    pass


class TurnEngine:
    """Drives one session from CREATED to a terminal state, exactly once."""

    def __init__(self,
                 session: Session,
                 script: QuestionScript,
                 transport: Transport,
                 store: SessionStore,
                 cache: VoicePromptCache,
                 handoff: CompletionHandoff,
                 config: Config,
                 policy: Optional[FollowUpPolicy] = None,
                 registry: Optional[AttemptRegistry] = None,
                 event_bus: Optional[InterviewEventBus] = None):
        self.session = session
        self.script = script
        self.transport = transport
        self.store = store
        self.cache = cache
        self.handoff = handoff
        self.config = config
        self.policy = policy or FollowUpPolicy(min_chars=config.followup_min_chars,
                                               enabled=config.enable_followups)
        self.registry = registry
        self.event_bus = event_bus
        self.inbox: asyncio.Queue = asyncio.Queue()
        self._ai_labels = {config.ai_speaker_label.strip().lower(), config.bot_name.strip().lower()}
        self._ack_tasks: Set[asyncio.Task] = set()
        self._end_requested = False
        self._candidate_joined = False
        self._started = False

    # Inbox

    def post(self, event) -> None:
        self.inbox.put_nowait(event)

    def request_end(self, reason: str = "operator request") -> None:
        self.post(EndInterviewRequested(reason))

    def request_abandon(self, reason: str = "inactive") -> None:
        self.post(AbandonRequested(reason))

    @property
    def is_finished(self) -> bool:
        return self.session.is_terminal

    # Helpers

    def _emit(self, event) -> None:
        if self.event_bus:
            self.event_bus.emit(event)

    async def _transition(self, state: TurnState) -> None:
        async with self.store.lock(self.session.id):
            self.session.state = state
            self.store.save(self.session)
        logger.debug(f"{self.session.id}: {state.value} (question {self.session.question_index})")

    async def _persist(self) -> None:
        async with self.store.lock(self.session.id):
            self.store.save(self.session)

    async def _call(self, coro, timeout: Optional[float] = None):
        """Run a transport call with a bounded wait; every failure becomes TransportError."""
        timeout = timeout or self.config.transport_call_timeout
        try:
            return await asyncio.wait_for(coro, timeout)
        except asyncio.TimeoutError:
            raise TransportError(f"Transport call timed out after {timeout}s")
        except TransportError:
            raise
        except Exception as e:
            raise TransportError(f"Transport call failed: {e}") from e

    def _is_ai_speaker(self, label: Optional[str]) -> bool:
        return bool(label) and label.strip().lower() in self._ai_labels

    def _handle_control(self, event) -> bool:
        """
        Apply a non-speech event. Returns True when the current wait should stop.
        """
        if isinstance(event, EndInterviewRequested):
            logger.info(f"{self.session.id}: end requested ({event.reason})")
            self._end_requested = True
            return True
        if isinstance(event, AbandonRequested):
            raise _SessionAbandoned(event.reason)
        if isinstance(event, TransportDisconnected):
            if self._candidate_joined:
                raise TransportError(f"Candidate disconnected: {event.reason}")
            logger.debug(f"{self.session.id}: disconnect before join ignored ({event.reason})")
        return False

    async def _speak(self, text: str) -> bool:
        """
        Send text and, when synthesis worked, its audio. Returns whether audio was sent.

        When the transport reports how long the audio still plays, this
        returns only after playback, so response budgets start once the
        prompt has been heard.
        """
        handle = await self.cache.resolve(text)
        playing = None
        if handle is not None:
            playing = await self._call(self.transport.send_audio(handle))
        else:
            logger.warning(f"{self.session.id}: no audio for prompt, continuing with text only")
        await self._call(self.transport.send_text(text))
        if playing:
            await asyncio.sleep(min(float(playing), MAX_PLAYBACK_WAIT))
        return handle is not None

    async def _pause(self, seconds: float) -> None:
        """Inter-prompt pacing; end and abandon requests cut it short."""
        deadline = time.monotonic() + seconds
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0 or self._end_requested:
                return
            try:
                event = await asyncio.wait_for(self.inbox.get(), remaining)
            except asyncio.TimeoutError:
                return
            if self._handle_control(event):
                return

    async def _capture(self, budget: float, accept_after: float) -> str:
        """
        Collect the candidate's answer.

        Every fragment restarts the quiet-period deadline. The answer is
        finished when that deadline passes with something captured, when the
        response budget runs out, or when an end request arrives. Fragments
        received before accept_after belong to an earlier turn and are dropped.

        Raises:
            CaptureTimeout: If nothing was captured
        """
        if self._end_requested:
            raise CaptureTimeout("interview is ending")

        quiet = self.config.quiet_period_seconds
        budget_deadline = time.monotonic() + budget
        silence_deadline: Optional[float] = None
        finals: List[str] = []
        pending = ""

        while True:
            deadline = budget_deadline if silence_deadline is None else min(budget_deadline, silence_deadline)
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            try:
                event = await asyncio.wait_for(self.inbox.get(), remaining)
            except asyncio.TimeoutError:
                break

            if isinstance(event, SpeechFragment):
                if event.received_at < accept_after or self._is_ai_speaker(event.speaker_label):
                    continue
                text = event.text.strip()
                if not text:
                    continue
                if event.is_final_segment:
                    finals.append(text)
                    pending = ""
                else:
                    pending = text
                silence_deadline = time.monotonic() + quiet
            elif self._handle_control(event):
                break

        if pending:
            finals.append(pending)
        answer = " ".join(finals).strip()
        if not answer:
            raise CaptureTimeout(f"no speech within {budget}s")
        return answer

    async def _capture_or_sentinel(self, budget: float, accept_after: float):
        """Returns (answer, timed_out); an empty answer means the sentinel is recorded."""
        try:
            return await self._capture(budget, accept_after), False
        except CaptureTimeout as e:
            logger.info(f"{self.session.id}: no response captured ({e})")
            return "", True

    def _acknowledge(self, index: int) -> None:
        """Fire-and-forget transition phrase between prompts."""
        async def speak():
            try:
                await self._speak(InterviewPrompts.transition(index))
            except TransportError as e:
                logger.warning(f"{self.session.id}: acknowledgment not delivered: {e}")

        task = asyncio.create_task(speak())
        self._ack_tasks.add(task)
        task.add_done_callback(self._ack_tasks.discard)

    async def _cancel_acks(self) -> None:
        tasks = list(self._ack_tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # Phases

    async def _wait_for_candidate(self) -> bool:
        """Block until the candidate joins. Returns False if the interview was ended first."""
        await self._transition(TurnState.WAITING_FOR_CANDIDATE)
        while True:
            event = await self.inbox.get()
            if isinstance(event, CandidateJoined):
                break
            if self._handle_control(event):
                return False

        self._candidate_joined = True
        logger.info(f"{self.session.id}: candidate joined ({event.participant or 'unknown'})")
        self._emit(CandidateJoinedEvent(self.session.id, time.time(), event.participant))
        if self.registry is not None:
            self.registry.mark_in_progress(self.session.id)
        return True

    async def _ask_and_capture(self, prompt: Prompt) -> None:
        index = self.session.question_index
        turn_started = time.monotonic()
        await self._transition(TurnState.ASKING)
        has_audio = await self._speak(prompt.text)
        self._emit(PromptAskedEvent(self.session.id, time.time(), index, prompt.type.value, prompt.text, has_audio))

        if not prompt.expects_response:
            return

        entry = ResponseEntry(prompt_text=prompt.text, prompt_type=prompt.type.value, started_at=now_iso())
        self.session.responses.append(entry)
        await self._transition(TurnState.AWAITING_RESPONSE)

        answer, timed_out = await self._capture_or_sentinel(prompt.response_wait_budget, turn_started)
        entry.answer_text = answer or NO_RESPONSE_SENTINEL
        self._emit(ResponseCapturedEvent(self.session.id, time.time(), index, entry.answer_text, timed_out))

        if not self._end_requested and self.policy.is_thin(prompt, answer):
            await self._follow_up(prompt, entry, answer)

        entry.ended_at = now_iso()

    async def _follow_up(self, prompt: Prompt, entry: ResponseEntry, answer: str) -> None:
        index = self.session.question_index
        text = await self.policy.followup_text(self.session.role, prompt, answer)
        entry.follow_up_prompt = text
        turn_started = time.monotonic()
        await self._transition(TurnState.FOLLOWUP)
        await self._speak(text)
        self._emit(FollowUpAskedEvent(self.session.id, time.time(), index, text))

        await self._transition(TurnState.AWAITING_RESPONSE)
        followup_answer, timed_out = await self._capture_or_sentinel(prompt.response_wait_budget, turn_started)
        entry.follow_up_text = followup_answer or NO_RESPONSE_SENTINEL
        self._emit(ResponseCapturedEvent(self.session.id, time.time(), index, entry.follow_up_text,
                                         timed_out, is_followup=True))

    async def _drive(self) -> None:
        await self._call(self.transport.join(self.session.join_url or ""), self.config.join_timeout)

        if await self._wait_for_candidate():
            self.session.question_index = 0
            while self.session.question_index < len(self.script):
                prompt = self.script[self.session.question_index]
                await self._ask_and_capture(prompt)
                self.session.question_index += 1
                await self._persist()

                if self._end_requested:
                    break
                if self.session.question_index < len(self.script):
                    if prompt.expects_response:
                        self._acknowledge(self.session.question_index)
                    await self._pause(self.config.transition_delay_seconds)
                    if self._end_requested:
                        break
                elif prompt.type == PromptType.CLOSING:
                    # not every transport reports how long the farewell plays
                    await self._pause(self.config.closing_grace_seconds)

        await self._complete()

    async def _complete(self) -> None:
        await self._transition(TurnState.COMPLETING)
        await self._cancel_acks()
        try:
            await self._call(self.transport.leave())
        except TransportError as e:
            logger.error(f"{self.session.id}: teardown failed, completing anyway: {e}")

        async with self.store.lock(self.session.id):
            self.session.mark_terminal(TurnState.COMPLETED)
            self.store.save(self.session)
        logger.info(f"{self.session.id}: completed with {len(self.session.responses)} response(s)")
        self._emit(SessionCompletedEvent(self.session.id, time.time(), len(self.session.responses),
                                         self._end_requested))

        await self.handoff.run(self.session, self.script.traits)

    async def _teardown_quietly(self) -> None:
        await self._cancel_acks()
        try:
            await self._call(self.transport.leave())
        except TransportError as e:
            logger.warning(f"{self.session.id}: leave failed: {e}")

    async def _fail(self, error: Exception) -> None:
        if self.session.is_terminal:
            logger.error(f"{self.session.id}: failure after reaching {self.session.state.value}: {error}")
            return
        logger.error(f"{self.session.id}: entering error state: {error}")
        await self._teardown_quietly()
        async with self.store.lock(self.session.id):
            self.session.mark_terminal(TurnState.ERROR, error=str(error))
            self.store.save(self.session)
        self._emit(ErrorOccurredEvent(self.session.id, time.time(), type(error).__name__, str(error), "turn_engine"))

    async def _abandon(self, reason: str) -> None:
        if self.session.is_terminal:
            return
        logger.warning(f"{self.session.id}: abandoned ({reason})")
        last_state = self.session.state.value
        await self._teardown_quietly()
        async with self.store.lock(self.session.id):
            self.session.mark_terminal(TurnState.ABANDONED, error=reason)
            self.store.save(self.session)
        if self.registry is not None:
            self.registry.mark_abandoned(self.session.id)
        self._emit(SessionAbandonedEvent(self.session.id, time.time(), last_state))

    async def run(self) -> Session:
        """Drive the session to a terminal state. May only be called once."""
        if self._started:
            raise RuntimeError(f"Engine for {self.session.id} already ran")
        self._started = True
        self.transport.on_speech_fragment(self.post)

        try:
            await self._drive()
        except _SessionAbandoned as e:
            await self._abandon(str(e))
        except TransportError as e:
            await self._fail(e)
        except asyncio.CancelledError:
            await self._cancel_acks()
            raise
        except Exception as e:
            logger.exception(f"{self.session.id}: unexpected engine failure")
            await self._fail(e)
        finally:
            self.store.release(self.session.id)

        return self.session
