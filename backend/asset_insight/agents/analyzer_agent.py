# backend/asset_insight/agents/analyzer_agent.py

import uuid
from typing import Optional

from google.genai import types

from ..config import get_settings
from ..gemini_client import generate_structured
from ..logging_config import log
from ..models import AnalysisResult, EncodedAsset, RemoteAnalysis

ANALYZE_PROMPT = """Analyze this visual asset for a game or marketing campaign. Provide a detailed quantitative analysis in JSON format.

IMPORTANT: When calculating color distribution, IGNORE the background color (e.g., solid white, solid black, transparent grids, or generic backdrop gradients) and focus exclusively on the foreground subjects/main assets.

Include:
1. Color distribution (top 5 FOREGROUND colors with percentage and approximate HEX).
2. Sharpness score (0-100).
3. Complexity score (0-100).
4. Saturation score (0-100).
5. Primary style tags (e.g., Cyberpunk, Minimalism, Rococo, Ukiyo-e).
6. Comparison against public datasets (WikiArt, LAION-5B, OpenGameArt) simulating a CLIP vector match (give similarity 0-1).
7. Uniqueness score (0-100) based on distance from common tropes.
8. A brief professional critique."""

# saturation is requested but deliberately not required
ANALYSIS_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "colorDistribution": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "name": {"type": "STRING"},
                    "value": {"type": "NUMBER"},
                    "hex": {"type": "STRING"},
                },
                "required": ["name", "value", "hex"],
            },
        },
        "sharpness": {"type": "NUMBER"},
        "complexity": {"type": "NUMBER"},
        "saturation": {"type": "NUMBER"},
        "styleFeatures": {"type": "ARRAY", "items": {"type": "STRING"}},
        "clipSimilarity": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "dataset": {"type": "STRING"},
                    "similarity": {"type": "NUMBER"},
                    "styleMatch": {"type": "STRING"},
                },
                "required": ["dataset", "similarity", "styleMatch"],
            },
        },
        "uniquenessScore": {"type": "NUMBER"},
        "description": {"type": "STRING"},
    },
    "required": [
        "colorDistribution",
        "sharpness",
        "complexity",
        "styleFeatures",
        "clipSimilarity",
        "uniquenessScore",
        "description",
    ],
}


def new_result_id() -> str:
    return uuid.uuid4().hex


async def analyze(
    encoded: EncodedAsset,
    *,
    model: Optional[str] = None,
    timeout: Optional[float] = None,
) -> AnalysisResult:
    """
    Analyzer agent:
    - Sends one inline image plus the fixed audit prompt to Gemini.
    - Validates the JSON answer; scores are passed through unclamped.
    - Stamps a local id and keeps the data URL as thumbnail.

    Raises RemoteServiceError or ResponseFormatError; never returns a partial
    result.
    """
    log.info("🧠 Analyzer Agent started (%s)", encoded.filename)
    settings = get_settings()
    contents = [
        types.Part.from_bytes(data=encoded.payload_bytes(), mime_type=encoded.mime_type),
        ANALYZE_PROMPT,
    ]

    remote = await generate_structured(
        contents,
        schema=RemoteAnalysis,
        response_schema=ANALYSIS_SCHEMA,
        model=model or settings.analysis_model,
        timeout=timeout or settings.analysis_timeout,
    )

    if remote.saturation is None:
        log.info("Analyzer: %s came back without a saturation score", encoded.filename)

    return AnalysisResult(
        **remote.model_dump(),
        id=new_result_id(),
        thumbnail=encoded.data_url,
    )
