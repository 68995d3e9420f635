from pydantic import BaseModel

from cadence_client.schemas.analysis import Analysis
from cadence_client.schemas.render import Render

class TrackCreate(BaseModel):
    title: str | None = None
    source_filename: str
    mime_type: str
    original_object_key: str
    duration_sec: int | None = None

class Track(BaseModel):
    id: str
    title: str | None = None
    source_filename: str
    mime_type: str
    original_object_key: str
    duration_sec: int | None = None
    created_at: str | None = None

    @property
    def display_title(self) -> str:
        return self.title or self.source_filename

class TrackDetail(BaseModel):
    track: Track
    analysis: Analysis | None = None
    latest_render: Render | None = None
