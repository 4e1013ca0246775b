import os
from typing import Any, Dict, List, Optional, Tuple

import requests

API_BASE = os.getenv("ASSET_INSIGHT_API_BASE", "http://127.0.0.1:8000")

# (filename, bytes, mime type) as handed over by st.file_uploader
FilePayload = Tuple[str, bytes, Optional[str]]


class BackendError(RuntimeError):
    pass


def _check(r: requests.Response) -> Dict[str, Any]:
    if not r.ok:
        try:
            detail = r.json().get("detail", r.text)
        except ValueError:
            detail = r.text
        raise BackendError(f"{r.status_code}: {detail}")
    return r.json()


def start_run(files: List[FilePayload], api_base: str = API_BASE, timeout: float = 60) -> str:
    """Upload the batch and return the run id of the background analysis."""
    multipart = [("files", (name, content, mime or "application/octet-stream")) for name, content, mime in files]
    try:
        r = requests.post(f"{api_base}/api/v1/assets/analyze_async", files=multipart, timeout=timeout)
    except requests.exceptions.RequestException as e:
        raise BackendError(f"Could not reach backend: {e}") from e
    return _check(r)["runId"]


def fetch_run(run_id: str, api_base: str = API_BASE, timeout: float = 10) -> Dict[str, Any]:
    try:
        r = requests.get(f"{api_base}/api/v1/runs/{run_id}", timeout=timeout)
    except requests.exceptions.RequestException as e:
        raise BackendError(f"Could not reach backend: {e}") from e
    return _check(r)


def discard_run(run_id: str, api_base: str = API_BASE, timeout: float = 10) -> None:
    """Cancel the run if it is still going and drop it on the backend.

    A run the backend no longer knows about counts as discarded.
    """
    try:
        r = requests.delete(f"{api_base}/api/v1/runs/{run_id}", timeout=timeout)
    except requests.exceptions.RequestException as e:
        raise BackendError(f"Could not reach backend: {e}") from e
    if r.status_code != 404:
        _check(r)
