"""
Dependency injection providers for FastAPI.

Every service is built once per application by `build_container` and kept on
`app.state.container`; route handlers receive them through the provider
functions below. Tests build a container with fakes swapped in.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request

from config.app_config import AppConfig
from services.blob_transfer import BlobTransfer
from services.session_registry import SessionRegistry
from services.signal_relay import ModeratorNotifier, SignalRelay
from services.storage_gateway import SignedUrlGateway
from services.transcode_pipeline import TranscodePipeline
from services.websocket import ConnectionManager
from services.worker_pool import TranscodeWorkerPool
from workers.ffmpeg_runner import FFmpegRunner


@dataclass
class ServiceContainer:
    """All long-lived services of one application instance"""

    config: AppConfig
    registry: SessionRegistry
    connections: ConnectionManager
    gateway: SignedUrlGateway
    transfer: BlobTransfer
    runner: FFmpegRunner
    pipeline: TranscodePipeline
    pool: TranscodeWorkerPool
    relay: SignalRelay


def build_container(
    config: AppConfig,
    gateway: Optional[SignedUrlGateway] = None,
    transfer: Optional[BlobTransfer] = None,
    runner: Optional[FFmpegRunner] = None,
) -> ServiceContainer:
    """
    Wire the service graph.

    Args:
        config: Service configuration
        gateway: Optional gateway override (built from config.storage otherwise)
        transfer: Optional blob transfer override
        runner: Optional ffmpeg runner override

    Returns:
        ServiceContainer
    """
    registry = SessionRegistry()
    connections = ConnectionManager()
    gateway = gateway or SignedUrlGateway(config.storage)
    transfer = transfer or BlobTransfer()
    runner = runner or FFmpegRunner(
        ffmpeg_path=config.ffmpeg_path,
        overlay_path=config.overlay_image_path,
        timeout_seconds=config.transcode_timeout_seconds,
    )
    pipeline = TranscodePipeline(
        gateway=gateway,
        transfer=transfer,
        runner=runner,
        notifier=ModeratorNotifier(registry, connections),
        temp_dir=config.temp_dir,
        public_base_url=config.public_base_url,
    )
    pool = TranscodeWorkerPool(pipeline, max_concurrency=config.transcode_max_concurrency)
    relay = SignalRelay(registry, connections, pool)

    return ServiceContainer(
        config=config,
        registry=registry,
        connections=connections,
        gateway=gateway,
        transfer=transfer,
        runner=runner,
        pipeline=pipeline,
        pool=pool,
        relay=relay,
    )


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_gateway(container: ServiceContainer = Depends(get_container)) -> SignedUrlGateway:
    return container.gateway
