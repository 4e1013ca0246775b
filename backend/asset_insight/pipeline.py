# backend/asset_insight/pipeline.py

import asyncio
import random
from typing import Awaitable, Callable, Optional, Sequence

from .agents.analyzer_agent import analyze
from .agents.synthesizer_agent import synthesize
from .aggregator import aggregate
from .config import get_settings
from .encoder import Upload, encode
from .errors import AssetInsightError
from .logging_config import inc_metric, log, measure
from .models import (
    AnalysisResult,
    AssetFailure,
    CollectionSummary,
    EncodedAsset,
    RunState,
)
from .sampler import select

Encoder = Callable[[Upload], Awaitable[EncodedAsset]]
Analyzer = Callable[[EncodedAsset], Awaitable[AnalysisResult]]
Synthesizer = Callable[[Sequence[AnalysisResult]], Awaitable[CollectionSummary]]

STATUS_ANALYZING = "正在分析抽样资产: {name} ({index}/{total})"
STATUS_SYNTHESIZING = "正在合成全图集视觉 DNA 与训练 Prompt..."
STATUS_DONE = "分析完成"
STATUS_EMPTY = "没有可分析的资产"


async def _analyze_one(
    upload: Upload,
    encoder: Encoder,
    analyzer: Analyzer,
) -> AnalysisResult:
    encoded = await encoder(upload)
    with measure("analyze"):
        return await analyzer(encoded)


async def run_analysis(
    files: Sequence[Upload],
    state: RunState,
    *,
    rng: Optional[random.Random] = None,
    cap: Optional[int] = None,
    encoder: Encoder = encode,
    analyzer: Analyzer = analyze,
    synthesizer: Synthesizer = synthesize,
) -> RunState:
    """
    Drive one analysis run: sample → (encode → analyze) per asset →
    synthesize → aggregate. Writes progress into `state` as it goes.

    Per-asset failures drop that asset; a synthesis failure only drops the
    summary. Cancellation marks the run cancelled and propagates.
    """
    inc_metric("runs_started")
    state.uploaded_count = len(files)
    log.info("🚀 Run %s: %d file(s) uploaded", state.run_id, len(files))

    try:
        # ---------------- 1. Sampling ----------------
        state.phase = "sampling"
        cap = get_settings().sample_cap if cap is None else cap
        samples = select(files, cap=cap, rng=rng)
        state.sample_size = len(samples)

        if not samples:
            state.phase = "done"
            state.status = STATUS_EMPTY
            state.progress = 100.0
            log.info("Run %s: nothing to analyze", state.run_id)
            return state

        # ---------------- 2. Per-asset analysis ------
        state.phase = "analyzing"
        total = len(samples)
        for i, upload in enumerate(samples):
            name = upload.filename or f"asset-{i + 1}"
            state.current_index = i
            state.status = STATUS_ANALYZING.format(name=name, index=i + 1, total=total)
            state.progress = i / (total + 1) * 100

            try:
                result = await _analyze_one(upload, encoder, analyzer)
            except AssetInsightError as e:
                inc_metric("assets_failed")
                log.warning("❌ Analysis failed for %s (%s): %s", name, e.kind, e)
                state.failures.append(AssetFailure(filename=name, kind=e.kind, message=str(e)))
                continue

            inc_metric("assets_analyzed")
            state.results.append(result)
            log.info("✅ Analyzed %s (%d/%d)", name, i + 1, total)

        state.current_index = None

        # ---------------- 3. Synthesis ---------------
        if state.results:
            state.phase = "synthesizing"
            state.status = STATUS_SYNTHESIZING
            state.progress = 95.0
            try:
                with measure("synthesize"):
                    state.summary = await synthesizer(list(state.results))
            except AssetInsightError as e:
                inc_metric("synthesis_failed")
                log.warning("❌ Collection synthesis failed: %s", e)

        # ---------------- 4. Report ------------------
        if state.results:
            state.report = aggregate(state.results, state.summary)

        state.phase = "done"
        state.status = STATUS_DONE
        state.progress = 100.0
        inc_metric("runs_completed")
        log.info(
            "🏁 Run %s complete: %d/%d asset(s) analyzed, summary=%s",
            state.run_id,
            len(state.results),
            total,
            state.summary is not None,
        )
        return state

    except asyncio.CancelledError:
        state.phase = "cancelled"
        state.current_index = None
        inc_metric("runs_cancelled")
        log.info("Run %s cancelled", state.run_id)
        raise
