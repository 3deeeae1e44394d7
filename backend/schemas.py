from pydantic import BaseModel, ConfigDict, Field


# HTTP responses
class PresignPutResponse(BaseModel):
    """Upload capability for a new capture"""
    key: str
    putUrl: str


class PresignGetResponse(BaseModel):
    """Download capability for an existing key"""
    getUrl: str


class ErrorResponse(BaseModel):
    error: str


# Signaling payloads
class UploadDonePayload(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    key: str = Field(min_length=1)


class RecorderStatusEvent(BaseModel):
    ready: bool


class VideoReadyEvent(BaseModel):
    key: str
    landingUrl: str
