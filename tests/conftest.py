"""Shared test fixtures for asset-insight."""

from __future__ import annotations

import io
import json
from typing import Any

import pytest
from PIL import Image

from backend.asset_insight.encoder import InMemoryUpload
from backend.asset_insight.models import AnalysisResult, ColorData, ComparisonItem


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Ensure tests never hit real Gemini and never see a developer's .env."""
    monkeypatch.setenv("GEMINI_API_KEY", "test-key-not-real")
    monkeypatch.setenv("ASSET_INSIGHT_SAMPLE_CAP", "6")
    monkeypatch.setattr("backend.asset_insight.config.load_dotenv", lambda *a, **k: False)

    import backend.asset_insight.config as cfg_mod

    cfg_mod.reset_settings()
    yield
    cfg_mod.reset_settings()


@pytest.fixture(autouse=True)
def _clean_state():
    from backend.asset_insight.jobs.jobs import clear_jobs
    from backend.asset_insight.logging_config import reset_metrics

    reset_metrics()
    yield
    clear_jobs()
    reset_metrics()


def png_bytes(color: str = "red", size: tuple[int, int] = (8, 8), fmt: str = "PNG") -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format=fmt)
    return buf.getvalue()


def make_upload(name: str = "asset.png", color: str = "red", content_type: str | None = "image/png") -> InMemoryUpload:
    return InMemoryUpload(filename=name, content_type=content_type, content=png_bytes(color))


def make_result(**overrides: Any) -> AnalysisResult:
    """Build an AnalysisResult with sensible defaults; override any field by snake_case name."""
    fields: dict[str, Any] = {
        "id": "r-1",
        "thumbnail": "data:image/png;base64,AAAA",
        "color_distribution": [ColorData(name="Red", value=60, hex="#ff0000")],
        "sharpness": 50.0,
        "complexity": 50.0,
        "saturation": 50.0,
        "style_features": ["Minimalism"],
        "clip_similarity": [
            ComparisonItem(dataset="WikiArt", similarity=0.4, style_match="Bauhaus"),
        ],
        "uniqueness_score": 50.0,
        "description": "Clean silhouette.",
    }
    fields.update(overrides)
    return AnalysisResult(**fields)


def analysis_payload(**overrides: Any) -> dict[str, Any]:
    """A Gemini per-asset answer as it arrives on the wire (camelCase)."""
    payload: dict[str, Any] = {
        "colorDistribution": [
            {"name": "Crimson", "value": 45, "hex": "#dc143c"},
            {"name": "Gold", "value": 30, "hex": "#ffd700"},
        ],
        "sharpness": 82,
        "complexity": 64,
        "saturation": 71,
        "styleFeatures": ["Cyberpunk", "Neon"],
        "clipSimilarity": [
            {"dataset": "WikiArt", "similarity": 0.21, "styleMatch": "Futurism"},
            {"dataset": "LAION-5B", "similarity": 0.67, "styleMatch": "Digital render"},
            {"dataset": "OpenGameArt", "similarity": 0.74, "styleMatch": "Sci-fi sprite"},
        ],
        "uniquenessScore": 58,
        "description": "Strong neon rim light on the main character.",
    }
    payload.update(overrides)
    return payload


SUMMARY_PAYLOAD = {
    "coreFeatures": ["赛博朋克", "霓虹", "高对比", "角色", "金属质感", "夜景", "光晕", "未来感"],
    "promptFormula": "风格:[赛博朋克] + 构图:[居中角色] + 核心特征:[霓虹] + 色调:[红金] + 细节:[金属]",
}


@pytest.fixture()
def result_factory():
    return make_result


@pytest.fixture()
def analysis_json():
    def _build(**overrides: Any) -> str:
        return json.dumps(analysis_payload(**overrides))

    return _build
