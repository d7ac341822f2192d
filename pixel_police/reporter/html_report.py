"""HTML report generator: one card per page with before, after, and diff images."""

from __future__ import annotations

import html
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from pixel_police.models.config import VIEWPORTS
from pixel_police.models.page import PageDescriptor
from pixel_police.models.session import Session
from pixel_police.models.snapshot import (
    ComparisonRecord,
    DiffResult,
    ErroredComparison,
    Snapshot,
)

logger = logging.getLogger(__name__)

STATUS_COLORS = {
    "changed": "#ef4444",
    "unchanged": "#22c55e",
    "pending": "#eab308",
    "errored": "#f97316",
}

_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def page_status(
    comparison: Optional[ComparisonRecord], errored: Optional[list[ErroredComparison]],
) -> str:
    if comparison is not None:
        return "changed" if comparison.changed else "unchanged"
    if errored:
        return "errored"
    return "pending"


def format_duration(started_at: str, ended_at: Optional[str]) -> str:
    """Human-readable run length, e.g. ``"1h 02m 05s"``; empty if unknown."""
    if not ended_at:
        return ""
    try:
        seconds = int((datetime.strptime(ended_at, _TIMESTAMP_FORMAT)
                       - datetime.strptime(started_at, _TIMESTAMP_FORMAT)).total_seconds())
    except ValueError:
        return ""
    seconds = max(seconds, 0)
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}h {minutes:02d}m {secs:02d}s"
    if minutes:
        return f"{minutes}m {secs:02d}s"
    return f"{secs}s"


def image_href(path: str) -> str:
    """Relative file path as a URL: ``%`` and other reserved characters in slugs are encoded."""
    return html.escape(quote(path), quote=True)


def _image_cell(label: str, snap: Optional[Snapshot] = None, src: str = "") -> str:
    if snap is not None:
        if snap.error:
            return (f'<div class="shot"><h5>{label}</h5>'
                    f'<div class="shot-error">Capture failed: {html.escape(snap.error[:300])}</div></div>')
        src = snap.image_path
    if not src:
        return f'<div class="shot"><h5>{label}</h5><div class="shot-missing">Not captured yet</div></div>'
    href = image_href(src)
    return (f'<div class="shot"><h5>{label}</h5>'
            f'<img src="{href}" alt="{label}" loading="lazy" onclick="openLightbox(this.src)"/></div>')


def _diff_stats(result: DiffResult) -> str:
    text = f"{result.diff_pixels:,} px ({result.diff_percentage:.2f}%)"
    if result.dimensions_differ:
        text += (f' <span class="dim-warning" title="Comparison area was extended with white padding">'
                 f'&#9888; size {result.before_dimensions} &rarr; {result.after_dimensions}</span>')
    return text


def _build_page_card(
    anchor: str,
    descriptor: PageDescriptor,
    before: dict[str, Snapshot],
    after: dict[str, Snapshot],
    comparison: Optional[ComparisonRecord],
    errored: list[ErroredComparison],
) -> str:
    status = page_status(comparison, errored)
    card = f'''
    <div class="page-card" id="{anchor}" data-status="{status}">
      <div class="page-header" style="border-left: 4px solid {STATUS_COLORS[status]};">
        <span class="badge {status}">{status.upper()}</span>
        <strong>{html.escape(descriptor.title or descriptor.slug)}</strong>
        <a class="page-url" href="{html.escape(descriptor.url, quote=True)}" target="_blank">{html.escape(descriptor.url)}</a>
      </div>
      <div class="page-body">'''

    for failure in errored:
        where = f" ({failure.viewport})" if failure.viewport else ""
        card += (f'<div class="error-banner"><strong>Comparison failed{where}:</strong> '
                 f'{html.escape(failure.reason)}</div>')

    card += '<div class="tabs">'
    for i, name in enumerate(VIEWPORTS):
        active = " active" if i == 0 else ""
        card += (f'<button class="tab{active}" data-viewport="{name}" '
                 f'onclick="showViewport(this)">{name.capitalize()}</button>')
    card += '</div>'

    for i, name in enumerate(VIEWPORTS):
        diff_result = None
        if comparison is not None:
            diff_result = comparison.desktop_diff if name == "desktop" else comparison.mobile_diff
        stats = f'<span class="stats">{_diff_stats(diff_result)}</span>' if diff_result else ""
        hidden = "" if i == 0 else ' style="display:none"'
        card += (f'<div class="viewport" data-viewport="{name}"{hidden}>'
                 f'<h4>{name.capitalize()} {stats}</h4><div class="shots">')
        card += _image_cell("Before", before.get(name))
        card += _image_cell("After", after.get(name))
        if diff_result is not None:
            card += _image_cell("Diff", src=diff_result.diff_path)
        card += '</div></div>'

    card += '</div></div>'
    return card


def generate_html_report(session: Session, output_path: Path) -> None:
    """Write the report next to the run's image folders (image paths are relative)."""
    before: dict[tuple[str, str], dict[str, Snapshot]] = {}
    for snap in session.before_snapshots:
        before.setdefault(snap.key, {})[snap.viewport] = snap
    after: dict[tuple[str, str], dict[str, Snapshot]] = {}
    for snap in session.after_snapshots:
        after.setdefault(snap.key, {})[snap.viewport] = snap
    comparisons = {c.descriptor.key: c for c in session.comparisons}
    errored: dict[tuple[str, str], list[ErroredComparison]] = {}
    for failure in session.errored:
        errored.setdefault(failure.descriptor.key, []).append(failure)

    # Group by post type, keeping discovery order
    sections: dict[str, list[str]] = {}
    nav: dict[str, list[str]] = {}
    for index, descriptor in enumerate(session.descriptors):
        key = descriptor.key
        anchor = f"page-{index}"
        comparison = comparisons.get(key)
        failures = errored.get(key, [])
        status = page_status(comparison, failures)
        sections.setdefault(descriptor.post_type, []).append(_build_page_card(
            anchor, descriptor, before.get(key, {}), after.get(key, {}), comparison, failures,
        ))
        nav.setdefault(descriptor.post_type, []).append(
            f'<li><a href="#{anchor}"><span class="dot" style="background:{STATUS_COLORS[status]}"></span>'
            f'{html.escape(descriptor.title or descriptor.slug)}</a></li>'
        )

    body = ""
    for index, (post_type, cards) in enumerate(sections.items()):
        body += (f'<section id="type-{index}"><h2>{html.escape(post_type)} '
                 f'<span class="count">({len(cards)})</span></h2>{"".join(cards)}</section>')

    sidebar = ""
    for index, (post_type, items) in enumerate(nav.items()):
        sidebar += (f'<details open><summary><a href="#type-{index}">{html.escape(post_type)}</a> '
                    f'<span class="count">({len(items)})</span></summary><ul>{"".join(items)}</ul></details>')

    summary = session.summary()
    ended = html.escape(session.ended_at) if session.ended_at else "in progress"
    duration = format_duration(session.started_at, session.ended_at)
    duration_meta = f" &middot; Duration: {duration}" if duration else ""
    report_html = f'''<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>Screenshot Diff &mdash; {html.escape(session.site_url)}</title>
<style>
  :root {{ --changed: #ef4444; --unchanged: #22c55e; --pending: #eab308; --errored: #f97316; --bg: #f8fafc; --card: white; --border: #e2e8f0; --text: #1e293b; --muted: #64748b; }}
  * {{ margin: 0; padding: 0; box-sizing: border-box; }}
  body {{ font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; background: var(--bg); color: var(--text); line-height: 1.6; }}
  .layout {{ display: flex; min-height: 100vh; }}
  .sidebar {{ width: 260px; flex-shrink: 0; background: var(--card); border-right: 1px solid var(--border); padding: 1rem; position: sticky; top: 0; height: 100vh; overflow-y: auto; font-size: 0.85rem; }}
  .sidebar.collapsed {{ display: none; }}
  .sidebar summary {{ cursor: pointer; font-weight: 600; margin-top: 0.5rem; }}
  .sidebar ul {{ list-style: none; padding-left: 0.8rem; }}
  .sidebar a {{ color: var(--text); text-decoration: none; }}
  .dot {{ display: inline-block; width: 8px; height: 8px; border-radius: 50%; margin-right: 0.4rem; }}
  .container {{ flex: 1; max-width: 1600px; margin: 0 auto; padding: 1.5rem; }}
  .sidebar-toggle {{ position: fixed; bottom: 1rem; left: 1rem; z-index: 10; }}
  h1 {{ font-size: 1.8rem; margin-bottom: 0.3rem; }}
  h2 {{ font-size: 1.2rem; margin: 1.5rem 0 0.6rem; }}
  h2 .count, .sidebar .count {{ color: var(--muted); font-weight: normal; }}
  .meta {{ color: var(--muted); margin-bottom: 1.5rem; font-size: 0.9rem; }}
  .summary {{ display: grid; grid-template-columns: repeat(auto-fit, minmax(130px, 1fr)); gap: 0.8rem; margin-bottom: 1rem; }}
  .stat {{ background: var(--card); border-radius: 8px; padding: 1rem; box-shadow: 0 1px 3px rgba(0,0,0,0.08); text-align: center; }}
  .stat .value {{ font-size: 1.8rem; font-weight: 700; }}
  .stat .label {{ font-size: 0.8rem; color: var(--muted); }}
  .stat.changed .value {{ color: var(--changed); }}
  .stat.unchanged .value {{ color: var(--unchanged); }}
  .stat.pending .value {{ color: var(--pending); }}
  .stat.errored .value {{ color: var(--errored); }}
  .badge {{ display: inline-block; padding: 0.15rem 0.55rem; border-radius: 9999px; font-size: 0.7rem; font-weight: 600; white-space: nowrap; }}
  .badge.changed {{ background: #fecaca; color: #991b1b; }}
  .badge.unchanged {{ background: #dcfce7; color: #166534; }}
  .badge.pending {{ background: #fef9c3; color: #854d0e; }}
  .badge.errored {{ background: #fed7aa; color: #9a3412; }}
  .page-card {{ background: var(--card); border-radius: 8px; margin-bottom: 0.8rem; box-shadow: 0 1px 3px rgba(0,0,0,0.08); overflow: hidden; }}
  .page-header {{ display: flex; align-items: center; gap: 0.6rem; padding: 0.7rem 1rem; flex-wrap: wrap; }}
  .page-url {{ font-size: 0.8rem; color: var(--muted); }}
  .page-body {{ padding: 0 1rem 1rem 1rem; }}
  .tabs {{ display: flex; gap: 0.3rem; margin-top: 0.5rem; }}
  .tab {{ padding: 0.2rem 0.8rem; border: 1px solid var(--border); border-radius: 6px; background: var(--bg); cursor: pointer; font-size: 0.8rem; }}
  .tab.active {{ background: var(--text); color: white; }}
  .viewport h4 {{ font-size: 0.85rem; color: var(--muted); text-transform: uppercase; margin: 0.6rem 0 0.4rem; border-bottom: 1px solid var(--border); }}
  .stats {{ text-transform: none; color: var(--text); font-weight: normal; margin-left: 0.5rem; }}
  .dim-warning {{ color: var(--errored); margin-left: 0.4rem; }}
  .shots {{ display: grid; grid-template-columns: repeat(3, 1fr); gap: 0.6rem; }}
  .shot h5 {{ font-size: 0.75rem; color: var(--muted); }}
  .shot img {{ width: 100%; max-height: 600px; object-fit: cover; object-position: top; border: 1px solid var(--border); border-radius: 4px; cursor: zoom-in; }}
  .shot-error, .error-banner {{ background: #fef2f2; border: 1px solid #fecaca; color: #991b1b; border-radius: 6px; padding: 0.5rem; font-size: 0.82rem; }}
  .error-banner {{ margin-top: 0.5rem; }}
  .shot-missing {{ color: var(--muted); font-size: 0.82rem; padding: 0.5rem; border: 1px dashed var(--border); border-radius: 6px; }}
  .filter-bar {{ display: flex; gap: 0.5rem; margin-bottom: 1rem; flex-wrap: wrap; }}
  .filter-btn {{ padding: 0.3rem 0.8rem; border-radius: 6px; border: 1px solid var(--border); background: var(--card); cursor: pointer; font-size: 0.82rem; }}
  .lightbox {{ display: none; position: fixed; inset: 0; background: rgba(0,0,0,0.85); z-index: 100; overflow: auto; cursor: zoom-out; }}
  .lightbox.open {{ display: block; }}
  .lightbox img {{ display: block; max-width: 95vw; margin: 2rem auto; }}
</style>
</head>
<body>
<div class="layout">
<nav class="sidebar" id="sidebar">{sidebar}</nav>
<div class="container">
  <h1>Screenshot Comparison</h1>
  <p class="meta">Site: {html.escape(session.site_url)} &middot; Started: {html.escape(session.started_at)} &middot; Finished: {ended}{duration_meta}</p>

  <div class="summary">
    <div class="stat"><div class="value">{summary["pages"]}</div><div class="label">Pages</div></div>
    <div class="stat changed"><div class="value">{summary["changed"]}</div><div class="label">Changed</div></div>
    <div class="stat unchanged"><div class="value">{summary["unchanged"]}</div><div class="label">Unchanged</div></div>
    <div class="stat pending"><div class="value">{summary["pending"]}</div><div class="label">Pending</div></div>
    <div class="stat errored"><div class="value">{summary["errored"]}</div><div class="label">Errored</div></div>
  </div>
  <p class="meta">{html.escape(summary["message"])}</p>

  <div class="filter-bar">
    <button class="filter-btn" onclick="filterPages('all')">All</button>
    <button class="filter-btn" onclick="filterPages('changed')">Changed</button>
    <button class="filter-btn" onclick="filterPages('unchanged')">Unchanged</button>
    <button class="filter-btn" onclick="filterPages('pending')">Pending</button>
    <button class="filter-btn" onclick="filterPages('errored')">Errored</button>
  </div>

  {body}
</div>
</div>
<button class="filter-btn sidebar-toggle" onclick="document.getElementById('sidebar').classList.toggle('collapsed')">&#9776; Pages</button>
<div class="lightbox" id="lightbox" onclick="this.classList.remove('open')"><img id="lightbox-img" alt="Full size"/></div>

<script>
function filterPages(status) {{
  document.querySelectorAll('.page-card').forEach(card => {{
    card.style.display = (status === 'all' || card.dataset.status === status) ? '' : 'none';
  }});
}}
function showViewport(button) {{
  const card = button.closest('.page-card');
  card.querySelectorAll('.tab').forEach(tab => tab.classList.toggle('active', tab === button));
  card.querySelectorAll('.viewport').forEach(panel => {{
    panel.style.display = panel.dataset.viewport === button.dataset.viewport ? '' : 'none';
  }});
}}
function openLightbox(src) {{
  document.getElementById('lightbox-img').src = src;
  document.getElementById('lightbox').classList.add('open');
}}
document.addEventListener('keydown', e => {{
  if (e.key === 'Escape') document.getElementById('lightbox').classList.remove('open');
}});
</script>
</body>
</html>'''

    with open(output_path, "w", encoding="utf-8") as f:
        f.write(report_html)
