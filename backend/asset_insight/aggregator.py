# backend/asset_insight/aggregator.py

from typing import Dict, List, Optional, Sequence, Tuple

from .models import AnalysisResult, CollectionSummary, ColorData, GlobalReportData

TOP_COLORS = 5
TOP_STYLES = 4

RECOMMENDATIONS = [
    "保持当前核心资产的高对比度线条风格。",
    "在多平台适配时建议统一色域饱和度至当前均值。",
    "对于独特性评分较低的部分，建议引入更具辨识度的装饰元素。",
]


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values)


def _merge_colors(results: Sequence[AnalysisResult]) -> List[ColorData]:
    """
    Sum each named color across all results, then divide by the number of
    results (average share per asset, not re-normalized to 100).
    The first hex seen for a name is kept.
    """
    totals: Dict[str, float] = {}
    hexes: Dict[str, str] = {}
    for r in results:
        for c in r.color_distribution:
            totals[c.name] = totals.get(c.name, 0.0) + c.value
            hexes.setdefault(c.name, c.hex)

    total = len(results)
    merged = [
        ColorData(name=name, value=value / total, hex=hexes[name])
        for name, value in totals.items()
    ]
    # sorted() is stable, so ties keep first-seen order
    merged = sorted(merged, key=lambda c: c.value, reverse=True)
    return merged[:TOP_COLORS]


def _top_styles(results: Sequence[AnalysisResult]) -> List[str]:
    seen = dict.fromkeys(tag for r in results for tag in r.style_features)
    return list(seen)[:TOP_STYLES]


def aggregate(
    results: Sequence[AnalysisResult],
    summary: Optional[CollectionSummary] = None,
) -> GlobalReportData:
    """Reduce per-asset results to collection-level report data."""
    if not results:
        raise ValueError("aggregate() needs at least one analysis result")

    saturations = [r.saturation for r in results if r.saturation is not None]

    return GlobalReportData(
        avg_sharpness=_mean([r.sharpness for r in results]),
        avg_complexity=_mean([r.complexity for r in results]),
        avg_uniqueness=_mean([r.uniqueness_score for r in results]),
        avg_saturation=_mean(saturations) if saturations else None,
        top_styles=_top_styles(results),
        dominant_colors=_merge_colors(results),
        recommendations=list(RECOMMENDATIONS),
        summary=summary,
    )


# ---------- Presentation helpers ----------

def metric_profile(report: GlobalReportData) -> List[Tuple[str, float]]:
    """Values for the visual-dimension chart; a missing saturation plots as 0."""
    return [
        ("Sharpness", report.avg_sharpness),
        ("Complexity", report.avg_complexity),
        ("Uniqueness", report.avg_uniqueness),
        ("Saturation", report.avg_saturation if report.avg_saturation is not None else 0.0),
    ]


def style_trend(report: GlobalReportData) -> str:
    styles = " & ".join(report.top_styles)
    return (
        f"当前资产集合表现出极高的 {styles} 倾向。"
        "建议在后期集成中，对这些核心特征进行持续化巩固，以建立独特的品牌视觉语言。"
    )
