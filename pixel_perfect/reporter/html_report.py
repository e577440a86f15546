"""HTML report generator: one card per device with baseline, current and diff images.

Image paths are written relative to the report's own directory so the whole
output folder can be moved or archived.
"""

from __future__ import annotations

import html
import logging
import os
from pathlib import Path

from pixel_perfect.diff.engine import baseline_path_for
from pixel_perfect.models.results import DiffRecord, ScreenshotRecord, TestReport

logger = logging.getLogger(__name__)


def _relative(path: str | Path, start: Path) -> str:
    return Path(os.path.relpath(Path(path).resolve(), start.resolve())).as_posix()


def _image_cell(label: str, src: str | None, device: str, empty_text: str) -> str:
    if src:
        body = (
            f'<img src="{html.escape(src)}" alt="{html.escape(label)} for {html.escape(device)}" '
            f'loading="lazy" onclick="this.classList.toggle(\'zoomed\')" '
            f'onerror="this.style.display=\'none\'"/>'
        )
    else:
        body = f'<span class="empty">{html.escape(empty_text)}</span>'
    return f'<div class="shot"><p>{html.escape(label)}</p>{body}</div>'


def _build_device_card(
    diff: DiffRecord, screenshot: ScreenshotRecord | None, report_dir: Path,
) -> str:
    current_src = baseline_src = diff_src = None
    if screenshot:
        current_src = _relative(screenshot.file_path, report_dir)
        baseline = baseline_path_for(screenshot.file_path)
        if baseline.exists():
            baseline_src = _relative(baseline, report_dir)
    if diff.diff_image_path:
        diff_src = _relative(diff.diff_image_path, report_dir)

    status = "fail" if diff.has_diff else "pass"
    title = diff.device_name if diff.engine_kind == "chromium" else f"{diff.device_name} · {diff.engine_kind}"
    viewport = ""
    if screenshot:
        viewport = f"{screenshot.viewport_width}&times;{screenshot.viewport_height}"

    return f'''
    <div class="device-card {status}">
      <div class="device-header">
        <span class="badge {status}">{"DIFF" if diff.has_diff else "OK"}</span>
        <strong>{html.escape(title)}</strong>
        <span class="meta">{viewport} &middot; {diff.diff_percentage:.2f}%</span>
      </div>
      <p class="message">{html.escape(diff.message)}</p>
      <div class="shots">
        {_image_cell("Baseline", baseline_src, diff.device_name, "No baseline")}
        {_image_cell("Current", current_src, diff.device_name, "No current screenshot")}
        {_image_cell("Diff", diff_src, diff.device_name, "No diff")}
      </div>
    </div>'''


def generate_html_report(report: TestReport, output_path: Path) -> None:
    """Write a human-readable HTML report next to its JSON sibling."""
    report_dir = output_path.parent
    by_target = {(s.device_name, s.engine_kind): s for s in report.screenshots}
    cards = [
        _build_device_card(d, by_target.get((d.device_name, d.engine_kind)), report_dir)
        for d in report.diffs
    ]
    summary = report.summary

    report_html = f'''<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>Pixel Perfect Report &mdash; {html.escape(report.timestamp)}</title>
<style>
  :root {{ --pass: #22c55e; --fail: #ef4444; --bg: #f8fafc; --card: white; --border: #e2e8f0; --text: #1e293b; --muted: #64748b; }}
  * {{ margin: 0; padding: 0; box-sizing: border-box; }}
  body {{ font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; background: var(--bg); color: var(--text); line-height: 1.6; padding: 1.5rem; }}
  .container {{ max-width: 1400px; margin: 0 auto; }}
  h1 {{ font-size: 1.8rem; margin-bottom: 0.3rem; }}
  .timestamp {{ color: var(--muted); margin-bottom: 1.5rem; font-size: 0.9rem; }}
  .summary {{ display: grid; grid-template-columns: repeat(auto-fit, minmax(150px, 1fr)); gap: 0.8rem; margin-bottom: 1.5rem; }}
  .stat {{ background: var(--card); border-radius: 8px; padding: 1rem; box-shadow: 0 1px 3px rgba(0,0,0,0.08); text-align: center; }}
  .stat .value {{ font-size: 1.8rem; font-weight: 700; }}
  .stat .label {{ font-size: 0.8rem; color: var(--muted); }}
  .stat.fail .value {{ color: var(--fail); }}
  .badge {{ display: inline-block; padding: 0.15rem 0.55rem; border-radius: 9999px; font-size: 0.7rem; font-weight: 600; }}
  .badge.pass {{ background: #dcfce7; color: #166534; }}
  .badge.fail {{ background: #fecaca; color: #991b1b; }}
  .device-grid {{ display: grid; grid-template-columns: repeat(auto-fit, minmax(380px, 1fr)); gap: 1rem; }}
  .device-card {{ background: var(--card); border-radius: 8px; padding: 1rem; box-shadow: 0 1px 3px rgba(0,0,0,0.08); border-left: 4px solid var(--pass); }}
  .device-card.fail {{ border-left-color: var(--fail); }}
  .device-header {{ display: flex; align-items: center; gap: 0.5rem; flex-wrap: wrap; }}
  .meta {{ font-size: 0.78rem; color: var(--muted); }}
  .message {{ font-size: 0.88rem; margin: 0.5rem 0; }}
  .device-card.fail .message {{ color: var(--fail); }}
  .shots {{ display: flex; gap: 0.6rem; flex-wrap: wrap; }}
  .shot {{ flex: 1 1 30%; min-width: 110px; text-align: center; }}
  .shot p {{ font-size: 0.75rem; color: var(--muted); text-transform: uppercase; letter-spacing: 0.05em; }}
  .shot img {{ width: 100%; border-radius: 6px; border: 1px solid var(--border); cursor: pointer; }}
  .shot img.zoomed {{ position: fixed; top: 5%; left: 5%; width: 90%; height: 90%; object-fit: contain; z-index: 1000; background: rgba(0,0,0,0.85); border: none; border-radius: 8px; padding: 1rem; }}
  .empty {{ font-size: 0.8rem; color: var(--muted); }}
</style>
</head>
<body>
<div class="container">
  <h1>Pixel Perfect Test Report</h1>
  <p class="timestamp">Generated at: {html.escape(report.timestamp)}</p>

  <div class="summary">
    <div class="stat"><div class="value">{summary.total_devices}</div><div class="label">Devices Tested</div></div>
    <div class="stat fail"><div class="value">{summary.devices_with_diffs}</div><div class="label">Devices with Differences</div></div>
    <div class="stat"><div class="value">{summary.total_diffs}</div><div class="label">Total Differences</div></div>
  </div>

  <div class="device-grid">
    {"".join(cards)}
  </div>
</div>
</body>
</html>'''

    with open(output_path, "w", encoding="utf-8") as f:
        f.write(report_html)
