"""
Signal Relay

Maps inbound signaling events to Session Registry actions and to outbound
events addressed to the other party.

Inbound event      -> outbound
  register(role)   -> recorder-status to the moderator
  moderator-start  -> record-start to the current recorder (dropped if none)
  upload-done      -> transcode job; video-ready to the moderator when it finishes
  disconnect       -> recorder-status{ready:false} if the recorder left
"""
import logging
from typing import Any, Optional, Protocol

from pydantic import ValidationError

from constants import Role, SignalEvents
from exceptions import InvalidRequestError, JobAlreadyInFlightError
from schemas import RecorderStatusEvent, UploadDonePayload
from services.session_registry import SessionRegistry

logger = logging.getLogger(__name__)


class EventSender(Protocol):
    async def send_event(self, conn_id: Optional[str], event: str, data=None) -> bool: ...


class JobSubmitter(Protocol):
    def submit(self, key: str): ...


class ModeratorNotifier:
    """
    Delivers pipeline results to whichever connection is the moderator at send time.

    If no moderator is registered the event is dropped; nothing is queued for later.
    """

    def __init__(self, registry: SessionRegistry, sender: EventSender):
        self.registry = registry
        self.sender = sender

    async def send(self, event: str, data: dict) -> bool:
        moderator = self.registry.current_moderator()
        if moderator is None:
            logger.info(f"No moderator registered, dropping '{event}' for {data.get('key')}")
            return False
        return await self.sender.send_event(moderator, event, data)


class SignalRelay:
    """Dispatches inbound signaling events"""

    def __init__(self, registry: SessionRegistry, sender: EventSender, jobs: JobSubmitter):
        self.registry = registry
        self.sender = sender
        self.jobs = jobs
        self._handlers = {
            SignalEvents.REGISTER: self.on_register,
            SignalEvents.MODERATOR_START: self.on_moderator_start,
            SignalEvents.UPLOAD_DONE: self.on_upload_done,
            SignalEvents.PING: self.on_ping,
        }

    async def handle_message(self, conn_id: str, message: Any):
        """
        Dispatch one decoded frame `{"event": ..., "data": ...}` from `conn_id`.

        Unknown events and malformed frames are logged and ignored.
        """
        if not isinstance(message, dict) or not isinstance(message.get("event"), str):
            logger.warning(f"Malformed frame from {conn_id}: {message!r}")
            await self.sender.send_event(conn_id, SignalEvents.ERROR, {"message": "malformed frame"})
            return

        event = message["event"]
        handler = self._handlers.get(event)
        if handler is None:
            logger.warning(f"Unknown event '{event}' from {conn_id}")
            return

        await handler(conn_id, message.get("data"))

    async def on_register(self, conn_id: str, data: Any):
        role = data.get("role") if isinstance(data, dict) else data
        try:
            result = self.registry.register(role, conn_id)
        except InvalidRequestError as e:
            logger.warning(f"Ignoring register from {conn_id}: {e.message}")
            return
        logger.debug(f"Sessions after register: {self.registry.snapshot()}")

        if result.role is Role.RECORDER:
            if result.counterpart:
                await self.sender.send_event(
                    result.counterpart,
                    SignalEvents.RECORDER_STATUS,
                    RecorderStatusEvent(ready=True).model_dump(),
                )
        else:
            await self.sender.send_event(
                conn_id,
                SignalEvents.RECORDER_STATUS,
                RecorderStatusEvent(ready=self.registry.is_recorder_ready()).model_dump(),
            )

    async def on_moderator_start(self, conn_id: str, payload: Any):
        recorder = self.registry.current_recorder()
        if recorder is None:
            logger.debug(f"moderator-start from {conn_id} dropped: no recorder registered")
            return
        await self.sender.send_event(
            recorder,
            SignalEvents.RECORD_START,
            payload if payload is not None else {},
        )

    async def on_upload_done(self, conn_id: str, data: Any):
        try:
            payload = UploadDonePayload.model_validate(data)
        except ValidationError:
            logger.warning(f"upload-done from {conn_id} without a usable key: {data!r}")
            return

        key = payload.key
        try:
            self.jobs.submit(key)
        except JobAlreadyInFlightError:
            logger.info(f"upload-done for {key} coalesced with the job already in flight")

    async def on_ping(self, conn_id: str, data: Any):
        await self.sender.send_event(conn_id, SignalEvents.PONG, {})

    async def on_disconnect(self, conn_id: str):
        cleared = self.registry.unregister(conn_id)
        if Role.RECORDER in cleared:
            moderator = self.registry.current_moderator()
            if moderator:
                await self.sender.send_event(
                    moderator,
                    SignalEvents.RECORDER_STATUS,
                    RecorderStatusEvent(ready=False).model_dump(),
                )
