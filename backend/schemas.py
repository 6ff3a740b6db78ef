"""Learning events accepted by the progression engine."""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class _Event(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


class VideoProgressEvent(_Event):
    type: Literal["video_progress"]
    resource_id: str = Field(..., min_length=1, max_length=255, examples=["yt_dQw4w9WgXcQ"])
    percent: int = Field(..., ge=0, le=100, examples=[45])


class ArticleCompleteEvent(_Event):
    type: Literal["article_complete"]
    resource_id: str = Field(..., min_length=1, max_length=255, examples=["mdn-css-grid"])


class PathCompleteEvent(_Event):
    type: Literal["path_complete"]
    path_id: str = Field(..., min_length=1, max_length=255, examples=["python-basics"])


class DailyLoginEvent(_Event):
    type: Literal["daily_login"]


class PathwayOpenedEvent(_Event):
    type: Literal["pathway_opened"]
    topic: str = Field(..., min_length=1, max_length=200, examples=["machine learning"])


LearningEvent = Annotated[
    Union[
        VideoProgressEvent,
        ArticleCompleteEvent,
        PathCompleteEvent,
        DailyLoginEvent,
        PathwayOpenedEvent,
    ],
    Field(discriminator="type"),
]

_event_adapter = TypeAdapter(LearningEvent)


def parse_event(payload):
    """Validate a raw JSON payload. Raises pydantic.ValidationError."""
    return _event_adapter.validate_python(payload)
