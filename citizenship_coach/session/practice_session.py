"""
practice_session.py
-------------------

Defines the **PracticeSession**, which keeps the displayed practice question
in step with the realtime conversation.

The conversational model announces every practice question it speaks with a
`request_practice_question` function call. Those calls arrive asynchronously,
may repeat across event snapshots and may be spoken in any language. The
session deduplicates them, resolves the spoken text to the canonical USCIS
question through the search service and shows the match in a single slot.

### Responsibilities
- Drive the `IDLE / ACTIVE / PAUSED / RESUMING` state (see `state.reduce`).
- Send `session.update` once per connection.
- Run the check-in timer and the inactivity watchdog.
- Contain every reconciliation failure: a bad event or a failed lookup is
  logged and the session keeps consuming events.
"""

import asyncio
import inspect
import logging
from typing import Awaitable, Callable, Iterable, List, Optional, Protocol

from .events import (
    is_assistant_activity,
    is_user_activity,
    parse_practice_request,
    practice_calls,
)
from .state import (
    CallAccepted,
    CallSkipped,
    DisplayedQuestion,
    PauseRequested,
    Phase,
    QuestionResolved,
    ReconciliationState,
    ResumeRequested,
    SessionOpened,
    SessionStopped,
    reduce,
    should_update,
)
from .timers import CheckInTimer, InactivityWatchdog
from .tools import check_in_event, inactivity_warning_event, resume_event, session_update_event
from ..core.config import settings
from ..core.errors import MalformedEventError, SearchResolutionError
from ..schemas.documents import CivicsQuestion, SearchResult

logger = logging.getLogger(__name__)

SearchCallable = Callable[[str, int], Awaitable[List[SearchResult]]]


class ConversationChannel(Protocol):
    """Transport to the conversational model."""

    async def open(self): ...

    async def close(self): ...

    async def send(self, event: dict): ...


class PracticeSession:
    """
    Reconciliation of one user's practice session.

    Args:
        channel (ConversationChannel): Transport to the model.
        search (SearchCallable): `search(text, k)` coroutine, e.g. `SearchService.search`.
        check_in_delay (float, optional): Seconds before the gentle check-in.
        inactivity_warning (float, optional): Seconds of inactivity before the warning.
        inactivity_pause (float, optional): Seconds of inactivity before pausing.
        resolution_timeout (float): Seconds allowed for one lookup.
        on_slot_change (Callable, optional): Called with the new slot
            (`DisplayedQuestion` or None) whenever it changes.
    """

    def __init__(
        self,
        channel: ConversationChannel,
        search: SearchCallable,
        *,
        check_in_delay: Optional[float] = None,
        inactivity_warning: Optional[float] = None,
        inactivity_pause: Optional[float] = None,
        resolution_timeout: float = 10.0,
        on_slot_change: Optional[Callable] = None,
    ):
        self.channel = channel
        self.search = search
        self.resolution_timeout = resolution_timeout
        self.on_slot_change = on_slot_change
        self.state = ReconciliationState()
        self._configured = False
        self._greet_on_connect = False
        self._tasks = set()

        self.check_in = CheckInTimer(
            settings.check_in_delay if check_in_delay is None else check_in_delay,
            self._send_check_in,
        )
        self.watchdog = InactivityWatchdog(
            settings.inactivity_warning if inactivity_warning is None else inactivity_warning,
            settings.inactivity_pause if inactivity_pause is None else inactivity_pause,
            on_warning=self._send_inactivity_warning,
            on_timeout=self._on_inactivity_timeout,
        )

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def phase(self) -> Phase:
        return self.state.phase

    @property
    def slot(self) -> Optional[DisplayedQuestion]:
        return self.state.slot

    def _dispatch(self, action) -> ReconciliationState:
        previous_slot = self.state.slot
        self.state = reduce(self.state, action)
        if self.state.slot != previous_slot:
            self._notify_slot()
        return self.state

    def _notify_slot(self):
        if self.on_slot_change is None:
            return
        try:
            result = self.on_slot_change(self.state.slot)
            if inspect.isawaitable(result):
                self._spawn(self._await_callback(result))
        except Exception:
            logger.exception("Slot change callback failed")

    @staticmethod
    async def _await_callback(awaitable: Awaitable):
        try:
            await awaitable
        except Exception as e:
            logger.warning(f"Slot change callback failed: {e}")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self):
        """Open a brand-new session with an empty slot."""
        if self.phase is not Phase.IDLE:
            logger.info(f"Ignoring start while {self.phase.value}")
            return
        await self.channel.open()
        self._reset_connection()
        self._dispatch(SessionOpened())
        self.watchdog.start()
        logger.info("Practice session started.", extra={"status": "success"})

    async def pause(self):
        """Tear down the connection, keeping the slot for a later resume."""
        if self.phase not in (Phase.ACTIVE, Phase.RESUMING):
            return
        check_in_pending = self.check_in.pending
        self.check_in.cancel()
        self.watchdog.stop()
        self._dispatch(PauseRequested(check_in_pending=check_in_pending))
        try:
            await self.channel.close()
        except Exception as e:
            logger.warning(f"Error closing conversation channel: {e}")
        logger.info("Practice session paused.")

    async def resume(self):
        """Reconnect after a pause and restore the slot shown before it."""
        if self.phase is not Phase.PAUSED:
            return
        snapshot = self.state.snapshot
        self._dispatch(ResumeRequested())
        try:
            await self.channel.open()
        except Exception:
            self._dispatch(PauseRequested(check_in_pending=bool(snapshot and snapshot.check_in_pending)))
            raise
        self._reset_connection()
        self._greet_on_connect = True
        self._dispatch(SessionOpened())
        self.watchdog.start()
        if snapshot is not None and snapshot.check_in_pending and self.slot is not None:
            self.check_in.arm()
        logger.info("Practice session resumed.", extra={"status": "success"})

    async def stop(self, close_channel: bool = True):
        """End the session and clear everything."""
        was_connected = self.phase in (Phase.ACTIVE, Phase.RESUMING)
        self.check_in.cancel()
        self.watchdog.stop()
        self._dispatch(SessionStopped())
        self._reset_connection()
        if close_channel and was_connected:
            try:
                await self.channel.close()
            except Exception as e:
                logger.warning(f"Error closing conversation channel: {e}")
        logger.info("Practice session stopped.")

    def _reset_connection(self):
        self._configured = False
        self._greet_on_connect = False

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    async def receive(self, event: dict):
        """Consume one event from the model. Never raises."""
        if not isinstance(event, dict):
            logger.warning(f"Dropping non-object event: {event!r}")
            return
        if self.phase in (Phase.IDLE, Phase.PAUSED):
            logger.debug(f"Ignoring {event.get('type')} while {self.phase.value}")
            return

        try:
            if event.get("type") == "session.created" and not self._configured:
                self._configured = True
                await self._send(session_update_event())
                if self._greet_on_connect:
                    self._greet_on_connect = False
                    await self._send(resume_event())

            if is_user_activity(event):
                self.note_user_activity()
            elif is_assistant_activity(event):
                self.watchdog.record_activity(user_originated=False)

            await self.reconcile([event])
        except Exception:
            logger.exception(f"Failed to handle {event.get('type')} event")

    async def reconcile(self, events_newest_first: Iterable[dict]):
        """
        Process practice question calls found in `events_newest_first`.

        Only the newest unprocessed call is acted on; older unprocessed calls
        in the same pass are marked processed.
        """
        acted = False
        for event in events_newest_first:
            try:
                calls = practice_calls(event)
            except MalformedEventError as e:
                logger.warning(f"Skipping malformed event: {e}")
                continue

            # Outputs within one event are listed oldest first.
            for call in reversed(calls):
                if call.key in self.state.processed_call_ids:
                    continue
                if acted:
                    self._dispatch(CallSkipped(call.key))
                    continue
                acted = True

                request = parse_practice_request(call)
                if not should_update(self.state, request.spoken_question):
                    logger.debug(f"Question unchanged, skipping call {call.key}")
                    self._dispatch(CallSkipped(call.key))
                    continue

                self._dispatch(CallAccepted(call.key, request.spoken_question))
                self._spawn(self._resolve(self.state.generation, request.spoken_question))

    def note_user_activity(self):
        """Genuine user activity: speech, a committed message or a UI action."""
        self.check_in.cancel()
        self.watchdog.record_activity(user_originated=True)

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    async def _lookup(self, spoken_question: str) -> Optional[CivicsQuestion]:
        try:
            results = await asyncio.wait_for(
                self.search(spoken_question, 1), timeout=self.resolution_timeout
            )
        except Exception as e:
            raise SearchResolutionError(f"Lookup failed for \"{spoken_question}\": {e}") from e
        return results[0].metadata if results else None

    async def _resolve(self, generation: int, spoken_question: str):
        try:
            match = await self._lookup(spoken_question)
        except SearchResolutionError as e:
            logger.warning(str(e))
            return
        if match is None:
            logger.info(f"No matching question for \"{spoken_question}\"")
            return

        displayed = DisplayedQuestion(
            question_id=match.question_id,
            question=match.question,
            answer=match.answer,
            category=match.category,
            spoken_question=spoken_question,
        )
        before = self.state
        self._dispatch(QuestionResolved(generation=generation, question=displayed))
        if self.state is before:
            logger.info(f"Dropping stale resolution for \"{spoken_question}\"")
            return

        logger.info(f"Displaying question {match.question_id}: {match.question}")
        if self.phase is Phase.ACTIVE:
            self.check_in.arm()

    # ------------------------------------------------------------------
    # Timers and outbound events
    # ------------------------------------------------------------------

    async def _send(self, event: dict):
        try:
            await self.channel.send(event)
        except Exception as e:
            logger.warning(f"Failed to send {event.get('type')}: {e}")

    async def _send_check_in(self):
        if self.phase is Phase.ACTIVE:
            await self._send(check_in_event())

    async def _send_inactivity_warning(self):
        if self.phase is Phase.ACTIVE:
            await self._send(inactivity_warning_event())

    async def _on_inactivity_timeout(self):
        logger.info("Pausing practice session after inactivity.")
        await self.pause()

    def _spawn(self, coroutine: Awaitable):
        task = asyncio.ensure_future(coroutine)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self):
        """Wait for all pending lookups and callbacks."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
