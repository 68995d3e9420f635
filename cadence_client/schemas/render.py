from pydantic import BaseModel, Field

from cadence_client.schemas.analysis import TERMINAL_STATUSES

MIN_TARGET_BPM = 40.0
MAX_TARGET_BPM = 260.0

class RenderRequest(BaseModel):
    target_bpm: float = Field(ge=MIN_TARGET_BPM, le=MAX_TARGET_BPM)
    preserve_pitch: bool = True

class RenderAccepted(BaseModel):
    render_id: str
    status: str | None = None

class Render(BaseModel):
    id: str
    track_id: str | None = None
    target_bpm: float | None = None
    tempo_ratio: float | None = None
    preserve_pitch: bool | None = None
    status: str
    output_object_key: str | None = None
    error: str | None = None
    created_at: str | None = None
    finished_at: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
