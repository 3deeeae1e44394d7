"""
Transcode Pipeline

Turns one raw capture into a delivered artifact:

    downloading -> transforming -> uploading -> delivered

Any stage failure short-circuits to the fallback, which delivers the raw
capture's key instead. The moderator always receives exactly one
video-ready event per job (if a moderator is registered at completion),
and the job's temporary directory is removed on every exit path.
"""
import asyncio
import shutil
import tempfile
import time
import uuid
from pathlib import Path
from typing import Optional

from constants import DeliveryFormat, FailureCategory, SignalEvents, SignedUrlTTL
from domain.value_objects import TranscodeState
from dtos.internal import TranscodeJobContext, TranscodeOutcome
from exceptions import StorageUnavailableError
from schemas import VideoReadyEvent
from services.delivery_links import build_landing_url
from services.failure_classifier import FailureClassifier
from services.key_deriver import derive_output_key, key_extension
from utils.logging_utils import StructuredLogger, logging_context

logger = StructuredLogger(__name__)


class TranscodePipeline:
    """
    Runs transcode jobs. One instance serves every job; per-job state lives
    in a TranscodeJobContext.

    Args:
        gateway: SignedUrlGateway (issue_get / issue_put)
        transfer: BlobTransfer (download_to / upload_from)
        runner: FFmpegRunner (run)
        notifier: ModeratorNotifier (send)
        temp_dir: Parent directory for per-job work directories
        public_base_url: Origin used in landing links
    """

    def __init__(self, gateway, transfer, runner, notifier, temp_dir: Optional[Path] = None, public_base_url: str = ""):
        self.gateway = gateway
        self.transfer = transfer
        self.runner = runner
        self.notifier = notifier
        self.temp_dir = Path(temp_dir) if temp_dir else None
        self.public_base_url = public_base_url

    async def run(self, source_key: str, job_id: Optional[str] = None) -> TranscodeOutcome:
        """
        Run one job to a terminal state and notify the moderator.

        Never raises for stage failures; only task cancellation propagates
        (after the temporary directory has been removed).
        """
        job = TranscodeJobContext(
            job_id=job_id or uuid.uuid4().hex[:12],
            source_key=source_key,
            dest_key=derive_output_key(source_key),
        )
        started = time.monotonic()

        with logging_context(job_id=job.job_id, source_key=source_key):
            try:
                category = error_message = None
                try:
                    logger.info("Transcode started", extra={"dest_key": job.dest_key})
                    job.work_dir = Path(tempfile.mkdtemp(prefix="transcode-", dir=self.temp_dir))

                    await self._download(job)
                    self._advance(job, TranscodeState.TRANSFORMING)
                    await self._transform(job)
                    self._advance(job, TranscodeState.UPLOADING)
                    await self._upload(job)
                    self._advance(job, TranscodeState.DELIVERED)
                    delivered_key = job.dest_key
                except asyncio.CancelledError:
                    logger.warning(f"Transcode cancelled during {job.state.value}")
                    raise
                except Exception as e:
                    category, error_message = FailureClassifier.classify(e)
                    logger.error(
                        f"Transcode failed during {job.state.value} ({FailureCategory.get_ui_label(category)}), delivering raw capture",
                        extra={"category": category.value, "error": error_message},
                        exc_info=category is FailureCategory.UNKNOWN,
                    )
                    self._advance(job, TranscodeState.FALLBACK_DELIVERED)
                    delivered_key = job.source_key

                landing_url = build_landing_url(self.public_base_url, delivered_key)
                notified = await self._notify(delivered_key, landing_url)
            finally:
                self._cleanup(job)

            elapsed = time.monotonic() - started
            logger.info(
                f"Transcode finished: {job.state.value}",
                extra={"delivered_key": delivered_key, "notified": notified, "seconds": round(elapsed, 2)},
            )

        return TranscodeOutcome(
            job_id=job.job_id,
            source_key=source_key,
            delivered_key=delivered_key,
            state=job.state,
            landing_url=landing_url,
            notified=notified,
            failure_category=category,
            error_message=error_message,
            processing_time_seconds=elapsed,
        )

    def _advance(self, job: TranscodeJobContext, new_state: TranscodeState):
        if not job.state.can_transition_to(new_state):
            raise RuntimeError(f"Invalid transcode transition {job.state.value} -> {new_state.value}")
        logger.debug(f"State {job.state.value} -> {new_state.value}")
        job.state = new_state

    async def _download(self, job: TranscodeJobContext):
        url = await self.gateway.issue_get(job.source_key, SignedUrlTTL.PIPELINE_FETCH_SECONDS)
        job.input_path = job.work_dir / f"input.{key_extension(job.source_key)}"
        size = await self.transfer.download_to(url, job.input_path)
        if not size:
            raise StorageUnavailableError(
                operation="download",
                key=job.source_key,
                message=f"Downloaded object {job.source_key} is empty",
            )
        logger.info(f"Downloaded {size:,} bytes")

    async def _transform(self, job: TranscodeJobContext):
        job.output_path = job.work_dir / f"output.{DeliveryFormat.EXTENSION}"
        await self.runner.run(job.input_path, job.output_path)
        logger.info("Transform complete")

    async def _upload(self, job: TranscodeJobContext):
        url = await self.gateway.issue_put(job.dest_key, SignedUrlTTL.UPLOAD_SECONDS)
        size = await self.transfer.upload_from(url, job.output_path, DeliveryFormat.CONTENT_TYPE)
        logger.info(f"Uploaded {size:,} bytes", extra={"dest_key": job.dest_key})

    async def _notify(self, key: str, landing_url: str) -> bool:
        try:
            event = VideoReadyEvent(key=key, landingUrl=landing_url)
            return await self.notifier.send(SignalEvents.VIDEO_READY, event.model_dump())
        except Exception as e:
            logger.error(f"Could not deliver video-ready: {e}")
            return False

    def _cleanup(self, job: TranscodeJobContext):
        # Best effort; a failed removal never changes the job outcome
        if job.work_dir is not None:
            shutil.rmtree(job.work_dir, ignore_errors=True)
            logger.debug(f"Removed work dir {job.work_dir}")
