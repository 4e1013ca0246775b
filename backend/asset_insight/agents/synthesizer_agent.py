# backend/asset_insight/agents/synthesizer_agent.py

from typing import Optional, Sequence

from ..config import get_settings
from ..gemini_client import generate_structured
from ..logging_config import log
from ..models import AnalysisResult, CollectionSummary

SYNTHESIS_PROMPT = """Based on the following analysis of a collection of visual assets:
Features: {features}
Descriptions: {descriptions}

Please provide a summary in JSON format:
1. coreFeatures: A list of exactly 8 most critical visual keywords/features that define this collection (in Chinese).
2. promptFormula: A professional Chinese prompt formula suitable for training Large Language Models or Stable Diffusion/Midjourney, structured as "风格:[...] + 构图:[...] + 核心特征:[...] + 色调:[...] + 细节:[...]" etc."""

SUMMARY_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "coreFeatures": {"type": "ARRAY", "items": {"type": "STRING"}},
        "promptFormula": {"type": "STRING"},
    },
    "required": ["coreFeatures", "promptFormula"],
}


def build_synthesis_prompt(results: Sequence[AnalysisResult]) -> str:
    features = ", ".join(tag for r in results for tag in r.style_features)
    descriptions = ". ".join(r.description for r in results)
    return SYNTHESIS_PROMPT.format(features=features, descriptions=descriptions)


async def synthesize(
    results: Sequence[AnalysisResult],
    *,
    model: Optional[str] = None,
    timeout: Optional[float] = None,
) -> CollectionSummary:
    """
    Synthesizer agent: condenses every per-asset result into the
    collection's "visual DNA": 8 Chinese keywords plus a prompt formula.

    The keyword count is requested, not enforced locally.
    """
    if not results:
        raise ValueError("synthesize() needs at least one analysis result")

    log.info("🎯 Synthesizer Agent started (%d result(s))", len(results))
    settings = get_settings()
    summary = await generate_structured(
        build_synthesis_prompt(results),
        schema=CollectionSummary,
        response_schema=SUMMARY_SCHEMA,
        model=model or settings.synthesis_model,
        timeout=timeout or settings.synthesis_timeout,
    )
    log.info("✅ Synthesizer Agent complete (%d keyword(s))", len(summary.core_features))
    return summary
