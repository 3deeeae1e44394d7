"""
Internal Transcode DTOs

DTOs passed between the signal relay, the worker pool and the transcode pipeline.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from constants import FailureCategory
from domain.value_objects import TranscodeState


@dataclass
class TranscodeJobContext:
    """
    Working state of one transcode job.

    Owns the job's temporary directory for the duration of the run.
    """

    job_id: str
    source_key: str
    dest_key: str
    state: TranscodeState = TranscodeState.DOWNLOADING
    work_dir: Optional[Path] = None
    input_path: Optional[Path] = None
    output_path: Optional[Path] = None


@dataclass
class TranscodeOutcome:
    """
    Result of one transcode job.

    `delivered_key` is the destination key on success and the source key on fallback.
    """

    job_id: str
    source_key: str
    delivered_key: str
    state: TranscodeState
    landing_url: str
    notified: bool = False
    failure_category: Optional[FailureCategory] = None
    error_message: Optional[str] = None
    processing_time_seconds: Optional[float] = None

    @property
    def is_fallback(self) -> bool:
        return self.state is TranscodeState.FALLBACK_DELIVERED
