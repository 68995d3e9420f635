import enum

from pydantic import BaseModel

class JobStatus(str, enum.Enum):
    pending = "pending"
    queued = "queued"
    processing = "processing"
    done = "done"
    failed = "failed"

TERMINAL_STATUSES = frozenset({JobStatus.done.value, JobStatus.failed.value})

class AnalyzeAccepted(BaseModel):
    track_id: str | None = None
    status: str | None = None

class Analysis(BaseModel):
    id: str | None = None
    track_id: str | None = None
    # 백엔드가 새 상태값을 추가해도 깨지지 않도록 str 로 받는다
    status: str
    bpm: float | None = None
    confidence: float | None = None
    error: str | None = None
    created_at: str | None = None
    finished_at: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
