import base64
import json
from typing import Any, Dict, List, Optional

from backend.asset_insight.aggregator import metric_profile
from backend.asset_insight.models import GlobalReportData, RunState


def parse_run(payload: Dict[str, Any]) -> RunState:
    return RunState.model_validate(payload)


def thumbnail_bytes(data_url: str) -> Optional[bytes]:
    """Decode a `data:<mime>;base64,<payload>` thumbnail for st.image."""
    if not data_url.startswith("data:") or "," not in data_url:
        return None
    header, payload = data_url.split(",", 1)
    if not header.endswith(";base64"):
        return None
    try:
        return base64.b64decode(payload, validate=True) or None
    except ValueError:
        return None


def metric_chart_data(report: GlobalReportData) -> Dict[str, List[Any]]:
    profile = metric_profile(report)
    return {
        "dimension": [label for label, _ in profile],
        "score": [value for _, value in profile],
    }


def color_chart_data(report: GlobalReportData) -> Dict[str, List[Any]]:
    colors = report.dominant_colors
    return {
        "name": [c.name for c in colors],
        "value": [round(c.value, 1) for c in colors],
        "hex": [c.hex for c in colors],
    }


def similarity_width(similarity: float) -> float:
    """st.progress only takes 0..1; model values are not guaranteed to."""
    return min(max(similarity, 0.0), 1.0)


def report_json(run: RunState) -> str:
    """Downloadable report; thumbnails are left out to keep it small."""
    data = run.model_dump(mode="json", by_alias=True)
    for r in data.get("results", []):
        r.pop("thumbnail", None)
    return json.dumps(data, ensure_ascii=False, indent=2)
