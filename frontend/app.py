import os
import re
import time
from pathlib import Path

import streamlit as st

from frontend.api_client import BackendError, discard_run, fetch_run, start_run
from frontend.report_view import (
    color_chart_data,
    metric_chart_data,
    parse_run,
    report_json,
    similarity_width,
    thumbnail_bytes,
)
from backend.asset_insight.aggregator import style_trend

PAGE_TITLE = "Visual Asset Insight Pro"
POLL_INTERVAL = 1.0

# paths
HERE = Path(__file__).resolve().parent
PROJECT_ROOT = HERE.parent
ENV_PATH = PROJECT_ROOT / ".env"
ENV_EXAMPLE_PATH = PROJECT_ROOT / ".env.example"


GEMINI_KEY_NAME = "GEMINI_API_KEY"
PLACEHOLDER_VALUES = {"", "your_key_here", "YOUR_KEY_HERE", "your_key", "replace_me"}

def read_text(path: Path):
    try:
        return path.read_text(encoding="utf-8")
    except OSError:
        return None

def extract_key(contents: str | None):
    if not contents:
        return None
    for line in contents.splitlines():
        line = line.strip()
        if line.startswith(f"{GEMINI_KEY_NAME}="):
            return line.split("=", 1)[1].strip()
    return None

def save_env_from_example(user_key: str):
    """Write .env from .env.example, replacing only the Gemini key line."""
    example_text = read_text(ENV_EXAMPLE_PATH) or ""

    pattern = re.compile(rf"^{GEMINI_KEY_NAME}\s*=.*$", flags=re.MULTILINE)
    new_line = f"{GEMINI_KEY_NAME}={user_key}"

    if pattern.search(example_text):
        new_contents = pattern.sub(new_line, example_text)
    else:
        new_contents = example_text + ("\n" if example_text and not example_text.endswith("\n") else "") + new_line + "\n"

    ENV_PATH.write_text(new_contents, encoding="utf-8")

# ---------- startup check ----------
current_key = extract_key(read_text(ENV_PATH)) or os.getenv(GEMINI_KEY_NAME)
needs_key = current_key is None or current_key in PLACEHOLDER_VALUES

if needs_key:
    st.set_page_config(page_title="API Key Required", layout="centered")

    st.markdown("<h2 style='text-align:center;'>Gemini API Key required</h2>", unsafe_allow_html=True)
    st.markdown(
        """
        The analyzer needs a valid `GEMINI_API_KEY` in `.env`. Paste your key below:
        `.env` is created from `.env.example` with only the `GEMINI_API_KEY` value replaced.
        Restart the backend afterwards so it picks the key up.
        """
    )
    st.caption("Your API key is stored locally in the .env file and only sent to Gemini.")

    key_input = st.text_input("Enter your Gemini API Key", type="password", key="gemini_input")

    if st.button("Save & Continue"):
        if not key_input or not key_input.strip():
            st.error("API key cannot be empty.")
        else:
            try:
                save_env_from_example(key_input.strip())
            except OSError as e:
                st.error(f"Failed to save key: {e}")
            else:
                st.success("Saved! The app will reload now.")
                st.rerun()

    # Block the rest of the app until key is set.
    st.stop()

st.set_page_config(
    page_title=PAGE_TITLE,
    layout="wide",
    initial_sidebar_state="collapsed",
)

# ---------- STYLING ----------
st.markdown(
    """
    <style>
    .section-label {
        font-size: 0.78rem;
        text-transform: uppercase;
        color: #64748b;
        margin-bottom: 0.55rem;
        letter-spacing: 0.12em;
    }

    .pill {
        font-size: 0.7rem;
        padding: 0.2rem 0.65rem;
        border-radius: 999px;
        background: #fffbeb;
        color: #b45309;
        font-weight: 700;
        display: inline-block;
    }

    .tag {
        display: inline-block;
        padding: 0.1rem 0.5rem;
        margin: 0 0.25rem 0.25rem 0;
        border-radius: 0.3rem;
        background: #eff6ff;
        color: #2563eb;
        font-size: 0.65rem;
        font-weight: 700;
        text-transform: uppercase;
    }

    .dna-tile {
        background: #ffffff;
        border: 1px solid #bfdbfe;
        border-radius: 0.75rem;
        padding: 0.8rem;
        text-align: center;
        margin-bottom: 0.6rem;
    }

    .dna-tile .index {
        font-size: 0.65rem;
        color: #60a5fa;
        font-weight: 700;
        display: block;
    }

    .dna-tile .value {
        color: #1e3a8a;
        font-weight: 700;
    }

    .critique {
        font-size: 0.85rem;
        color: #334155;
        font-style: italic;
    }
    </style>
    """,
    unsafe_allow_html=True,
)

# ---------- STATE ----------
if "run" not in st.session_state:
    st.session_state.run = None

if "run_id" not in st.session_state:
    st.session_state.run_id = ""


def reset():
    if st.session_state.run_id:
        try:
            discard_run(st.session_state.run_id)
        except BackendError as e:
            st.warning(f"Backend did not confirm the reset: {e}")
    st.session_state.run = None
    st.session_state.run_id = ""


# ---------- HEADER ----------
st.markdown(f"## {PAGE_TITLE}")
st.caption("Advanced AI Asset Audit & Benchmarking")

run = st.session_state.run

# =========================================================
# UPLOAD + ANALYZE
# =========================================================
if run is None:
    st.markdown("<h1 style='text-align:center;'>解密资产视觉 DNA</h1>", unsafe_allow_html=True)
    st.markdown(
        "<p style='text-align:center;color:#475569;'>结合 Gemini 3 视觉模型与 CLIP 向量聚类，为您的视觉资产提供可量化的锐度、色值与风格独特性审计，并自动生成训练 Prompt。</p>",
        unsafe_allow_html=True,
    )

    st.markdown('<div class="section-label">批量资产上传</div>', unsafe_allow_html=True)
    uploaded = st.file_uploader(
        "支持拖拽或选择多个图像文件（JPG, PNG, WebP）。我们将进行随机抽样并生成多维深度分析报告。",
        type=["png", "jpg", "jpeg", "webp"],
        accept_multiple_files=True,
    )

    if st.button("开始分析"):
        if not uploaded:
            st.warning("Upload at least one image first.")
            st.stop()

        files = [(f.name, f.getvalue(), f.type) for f in uploaded]
        try:
            run_id = start_run(files)
        except BackendError as e:
            st.error(str(e))
            st.stop()
        st.session_state.run_id = run_id

        bar = st.progress(0)
        status_line = st.empty()
        st.caption("正在通过 CLIP 向量模型计算风格指纹并提取视觉 DNA...")

        while True:
            try:
                payload = fetch_run(run_id)
            except BackendError as e:
                st.error(str(e))
                st.stop()
            current = parse_run(payload)
            bar.progress(int(min(max(current.progress, 0), 100)))
            status_line.markdown(f"**{current.status or '排队中...'}**")
            if current.finished:
                break
            time.sleep(POLL_INTERVAL)

        if current.phase == "failed":
            st.error(f"Analysis failed: {current.error}")
            st.stop()

        st.session_state.run = current
        st.rerun()

    st.stop()

# =========================================================
# REPORT
# =========================================================
report = run.report

title_col, action_col = st.columns([0.75, 0.25])
with title_col:
    st.markdown("### 《外显资产视觉分析报告》")
with action_col:
    st.download_button(
        "导出 JSON 报告",
        data=report_json(run),
        file_name=f"asset-insight-{run.run_id[:8]}.json",
        mime="application/json",
    )
    if st.button("重新分析"):
        reset()
        st.rerun()

if run.failures:
    with st.expander(f"{len(run.failures)} 个抽样资产分析失败"):
        for f in run.failures:
            st.write(f"- **{f.filename}** ({f.kind}): {f.message}")

if report is None:
    st.info("No sampled asset could be analyzed, so there is no report for this run.")
    st.stop()

st.caption(f"已上传 {run.uploaded_count} 个资产，抽样分析 {len(run.results)}/{run.sample_size} 个。")

# ---------- Headline metrics ----------
m1, m2, m3 = st.columns(3)
m1.metric("平均锐度", f"{report.avg_sharpness:.1f}")
m2.metric("装饰复杂度", f"{report.avg_complexity:.1f}")
m3.metric("风格独特性", f"{report.avg_uniqueness:.1f}")

# ---------- Charts ----------
left, right = st.columns(2)
with left:
    st.markdown("#### 视觉维度分布")
    st.bar_chart(metric_chart_data(report), x="dimension", y="score", horizontal=True)
    if report.avg_saturation is None:
        st.caption("Saturation was not reported for any sample.")

with right:
    st.markdown("#### 全量资产主体色域统计 <span class='pill'>已忽略背景色</span>", unsafe_allow_html=True)
    st.bar_chart(color_chart_data(report), x="name", y="value", color="hex")

# ---------- CLIP comparison ----------
st.markdown("#### CLIP 向量对比分析 (抽样基准)")
st.write(
    "通过多模态 CLIP 向量空间，将资产与 WikiArt (古典艺术)、LAION-5B (现代摄影) "
    "以及 OpenGameArt (二次元/游戏资产) 进行余弦相似度计算。"
)
comparisons = run.results[0].clip_similarity
if comparisons:
    for col, comp in zip(st.columns(len(comparisons)), comparisons):
        with col:
            st.caption(comp.dataset)
            st.markdown(f"**{comp.style_match}**")
            st.progress(similarity_width(comp.similarity))
            st.caption(f"Similarity: {comp.similarity * 100:.2f}%")

# ---------- Sample gallery ----------
st.markdown("#### 代表性资产抽样图例")
gallery = st.columns(3)
for i, r in enumerate(run.results):
    with gallery[i % 3]:
        img = thumbnail_bytes(r.thumbnail)
        if img is not None:
            st.image(img, use_container_width=True)
        tags = "".join(f"<span class='tag'>{tag}</span>" for tag in r.style_features)
        st.markdown(tags, unsafe_allow_html=True)
        st.markdown(f"<div class='critique'>\"{r.description}\"</div>", unsafe_allow_html=True)

# ---------- Visual DNA ----------
if report.summary is not None:
    st.markdown("#### 图集核心视觉 DNA 总结")
    tiles = st.columns(4)
    for i, feat in enumerate(report.summary.core_features):
        with tiles[i % 4]:
            st.markdown(
                f"<div class='dna-tile'><span class='index'>FEATURE {i + 1}</span>"
                f"<span class='value'>{feat}</span></div>",
                unsafe_allow_html=True,
            )
    st.markdown('<div class="section-label">大模型训练 Prompt 公式 (中文)</div>', unsafe_allow_html=True)
    # st.code renders its own copy button
    st.code(report.summary.prompt_formula, language=None, wrap_lines=True)

# ---------- Conclusions ----------
st.markdown("#### 核心结论与建议")
trend_col, rec_col = st.columns(2)
with trend_col:
    st.markdown("**风格趋势 (Style Trend)**")
    st.write(style_trend(report))
with rec_col:
    for rec in report.recommendations:
        st.markdown(f"✅ {rec}")

st.caption("© Visual Asset Insight Pro. 采用 Gemini 3 Pro 与 CLIP 基准测试。")
