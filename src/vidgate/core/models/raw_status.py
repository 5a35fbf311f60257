"""Provider-specific status payloads.

Each model mirrors one provider's status response closely enough to decode it
and nothing more. Status vocabularies are kept as raw `str`/`int` so unknown
values survive decoding and reach the normalizer, which decides what they
mean. The `provider` literal is the union's tag; it is set by the adapter,
providers never send it.
"""

from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class _RawModel(BaseModel):
    model_config = {"populate_by_name": True, "extra": "ignore", "frozen": True}


# --- Veo (Pollo veo3-fast) ---

class VeoGeneration(_RawModel):
    id: Optional[str] = None
    status: str
    fail_msg: Optional[str] = Field(default=None, alias="failMsg")
    url: Optional[str] = None
    media_type: Optional[str] = Field(default=None, alias="mediaType")


class VeoRawStatus(_RawModel):
    provider: Literal["veo"] = "veo"
    task_id: Optional[str] = Field(default=None, alias="taskId")
    generations: List[VeoGeneration] = Field(default_factory=list)


# --- Runway ---

class RunwayRawStatus(_RawModel):
    provider: Literal["runway"] = "runway"
    id: str
    status: str
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    failure: Optional[str] = None
    failure_code: Optional[str] = Field(default=None, alias="failureCode")
    output: Optional[List[str]] = None
    progress: Optional[float] = None


# --- PixVerse ---

class PixVerseVideo(_RawModel):
    id: Optional[Union[int, str]] = None
    status: int
    url: Optional[str] = None
    prompt: Optional[str] = None
    seed: Optional[int] = None
    output_width: Optional[int] = Field(default=None, alias="outputWidth")
    output_height: Optional[int] = Field(default=None, alias="outputHeight")
    size: Optional[int] = None
    create_time: Optional[str] = None
    modify_time: Optional[str] = None


class PixVerseRawStatus(_RawModel):
    provider: Literal["pixverse"] = "pixverse"
    err_code: int = Field(alias="ErrCode")
    err_msg: str = Field(default="", alias="ErrMsg")
    resp: Optional[PixVerseVideo] = Field(default=None, alias="Resp")


# --- Vidu ---

class ViduVideoResolution(_RawModel):
    width: Optional[int] = None
    height: Optional[int] = None


class ViduVideoInfo(_RawModel):
    duration: Optional[float] = None
    fps: Optional[int] = None
    resolution: Optional[ViduVideoResolution] = None


class ViduCreation(_RawModel):
    id: Optional[str] = None
    url: Optional[str] = None
    cover_url: Optional[str] = None
    watermarked_url: Optional[str] = None
    video: Optional[ViduVideoInfo] = None


class ViduRawStatus(_RawModel):
    provider: Literal["vidu"] = "vidu"
    id: Optional[str] = None
    state: str
    err_code: Optional[str] = None
    creations: Optional[List[ViduCreation]] = None
    credits: Optional[int] = None
    bgm: Optional[bool] = None
    off_peak: Optional[bool] = None


RawProviderStatus = Annotated[
    Union[VeoRawStatus, RunwayRawStatus, PixVerseRawStatus, ViduRawStatus],
    Field(discriminator="provider"),
]
