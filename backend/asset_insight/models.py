# backend/asset_insight/models.py

import base64
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """snake_case in Python, camelCase on the wire (Gemini + HTTP API)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class EncodedAsset(WireModel):
    filename: str = ""
    mime_type: str
    data: str  # base64 payload

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"

    def payload_bytes(self) -> bytes:
        return base64.b64decode(self.data)


class ColorData(WireModel):
    name: str
    value: float
    hex: str


class ComparisonItem(WireModel):
    dataset: str
    similarity: float
    style_match: str


class RemoteAnalysis(WireModel):
    """Exactly what the per-asset Gemini call must return."""

    color_distribution: List[ColorData]
    sharpness: float
    complexity: float
    saturation: Optional[float] = None
    style_features: List[str]
    clip_similarity: List[ComparisonItem]
    uniqueness_score: float
    description: str


class AnalysisResult(RemoteAnalysis):
    id: str
    thumbnail: str


class CollectionSummary(WireModel):
    core_features: List[str]
    prompt_formula: str


class GlobalReportData(WireModel):
    avg_sharpness: float
    avg_complexity: float
    avg_uniqueness: float
    avg_saturation: Optional[float] = None
    top_styles: List[str]
    dominant_colors: List[ColorData]
    recommendations: List[str]
    summary: Optional[CollectionSummary] = None


class AssetFailure(WireModel):
    filename: str
    kind: str
    message: str


class RunState(BaseModel):
    """Mutable progress record of one analysis run.

    Only the task executing the run writes to it; HTTP handlers read it.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    run_id: str
    phase: str = "idle"
    progress: float = 0.0
    status: str = ""
    current_index: Optional[int] = None
    uploaded_count: int = 0
    sample_size: int = 0
    results: List[AnalysisResult] = Field(default_factory=list)
    summary: Optional[CollectionSummary] = None
    report: Optional[GlobalReportData] = None
    failures: List[AssetFailure] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def finished(self) -> bool:
        return self.phase in ("done", "failed", "cancelled")
