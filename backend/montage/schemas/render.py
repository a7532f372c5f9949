from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class JobStatus(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    state: Literal['processing', 'completed', 'error'] = 'processing'
    progress: float = Field(0.0, ge=0, le=100)
    current_label: str = 'Starting...'
    output_path: Optional[str] = None
    error: Optional[str] = None


class RenderRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    video_path: str
    operations: List[Dict[str, Any]]


class RenderResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    job_id: str
    message: str = 'Render started'


class AnalyzeRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    video_path: str
    min_silence: float = Field(0.6, gt=0)
    threshold_db: float = -30.0


class SilenceRangeModel(BaseModel):
    start: float
    end: float


class AnalyzeResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    silence_ranges: List[SilenceRangeModel]
    total_duration: float
