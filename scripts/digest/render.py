"""
HTML rendering for the daily digest email.

Produces a self-contained HTML document (inline <style>, no external assets)
from a DigestReport. Every interpolated value goes through _esc().
"""
from __future__ import annotations

import html
import re
from typing import Any, Dict, List

from models.digest_models import DigestReport, OwnerStat
from scripts.digest.identity import embedded_name, normalize_owner
from scripts.digest.aggregator import record_owner

BRAND = {
    "primary":    "#4f46e5",
    "dark":       "#1f2937",
    "white":      "#ffffff",
    "bg":         "#f5f5f5",
    "card_bg":    "#f9fafb",
    "border":     "#e5e7eb",
    "text":       "#374151",
    "text_muted": "#6b7280",
    "success":    "#059669",
    "danger":     "#dc2626",
    "warning":    "#f59e0b",
}

DETAIL_LIMIT = 15

_TAG_RE = re.compile(r"<[^>]+>")

TOTAL_CARDS = (
    ("calls_made", "Phone Calls", "blue"),
    ("notes_created", "Notes Created", "blue"),
    ("deal_movements", "Deal Movements", "blue"),
    ("activities_done", "Activities Done", "green"),
    ("deals_won", "Deals Won", "green"),
    ("deals_lost", "Deals Lost", "red"),
)

OWNER_COLUMNS = (
    ("calls_made", "Calls"),
    ("notes_created", "Notes"),
    ("deal_movements", "Movements"),
    ("activities_done", "Activities"),
    ("deals_won", "Won"),
    ("deals_lost", "Lost"),
)


def _esc(text: Any) -> str:
    """HTML-escape a value; converts None to empty string."""
    if text is None:
        return ""
    return html.escape(str(text))


def _plain(text: Any, limit: int = 140) -> str:
    """Strip markup from CRM rich text and shorten it."""
    if not text:
        return ""
    cleaned = " ".join(html.unescape(_TAG_RE.sub(" ", str(text))).split())
    if len(cleaned) > limit:
        cleaned = cleaned[: limit - 1].rstrip() + "…"
    return cleaned


def _fmt_currency(value: Any, currency: str = "CAD") -> str:
    try:
        v = float(value)
    except (TypeError, ValueError):
        return ""
    return f"{v:,.2f} {currency or ''}".strip()


def _owner_label(record: Any, names: Dict[Any, str]) -> str:
    ref = record_owner(record)
    owner_id = normalize_owner(ref)
    if owner_id in names:
        return names[owner_id]
    return embedded_name(ref) or "Unassigned"


def email_subject(report: DigestReport) -> str:
    return f"Daily Analytics Report - {report.date_label}"


def generate_html_report(report: DigestReport) -> str:
    """Generate the complete HTML email for one report."""
    names = {stat.owner_id: stat.name for stat in report.by_owner}
    date_label = _esc(report.date_label)
    generated = report.generated_at.strftime("%Y-%m-%d %H:%M UTC") if report.generated_at else ""

    totals_html = _render_totals(report)
    owners_html = _render_owners(report.by_owner)
    summary_html = _render_summary(report)
    degraded_html = _render_degraded(report.degraded_sources)
    details_html = _render_details(report, names)

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>Daily Analytics Report - {date_label}</title>
<style>
body {{
    font-family: Arial, Helvetica, sans-serif;
    margin: 0;
    padding: 20px;
    background: {BRAND['bg']};
    color: {BRAND['text']};
}}
.container {{
    max-width: 800px;
    margin: 0 auto;
    background: {BRAND['white']};
    border-radius: 10px;
    padding: 30px;
}}
.header {{
    text-align: center;
    border-bottom: 3px solid {BRAND['primary']};
    padding-bottom: 20px;
    margin-bottom: 30px;
}}
.header h1 {{ color: {BRAND['primary']}; margin: 0; font-size: 28px; }}
.header p {{ color: {BRAND['text_muted']}; margin: 10px 0 0; font-size: 16px; }}
.stats-grid {{
    display: grid;
    grid-template-columns: repeat(3, 1fr);
    gap: 16px;
    margin-bottom: 30px;
}}
.stat-card {{
    color: {BRAND['white']};
    padding: 18px;
    border-radius: 10px;
    text-align: center;
    background: {BRAND['primary']};
}}
.stat-card.green {{ background: {BRAND['success']}; }}
.stat-card.red {{ background: {BRAND['danger']}; }}
.stat-card h3 {{ margin: 0 0 8px; font-size: 14px; font-weight: 600; }}
.stat-card .number {{ font-size: 30px; font-weight: bold; margin: 0; }}
.section h2 {{
    color: {BRAND['primary']};
    border-bottom: 2px solid {BRAND['border']};
    padding-bottom: 8px;
}}
.owner-card {{
    background: {BRAND['card_bg']};
    border: 1px solid {BRAND['border']};
    border-radius: 8px;
    padding: 16px;
    margin-bottom: 12px;
}}
.owner-name {{ font-size: 18px; font-weight: bold; margin-bottom: 12px; }}
.owner-stats {{ width: 100%; border-collapse: separate; border-spacing: 6px; }}
.owner-stats td {{
    text-align: center;
    background: {BRAND['white']};
    border: 1px solid #d1d5db;
    border-radius: 6px;
    padding: 8px;
}}
.owner-stats .label {{ font-size: 11px; color: {BRAND['text_muted']}; text-transform: uppercase; }}
.owner-stats .value {{ font-size: 20px; font-weight: bold; }}
.summary {{
    background: #eff6ff;
    border: 1px solid #bfdbfe;
    border-radius: 8px;
    padding: 16px 20px;
    margin-top: 30px;
}}
.degraded {{
    background: #fffbeb;
    border: 1px solid {BRAND['warning']};
    border-radius: 8px;
    padding: 12px 16px;
    margin-top: 16px;
    font-size: 13px;
}}
.detail-list {{ padding-left: 18px; }}
.detail-list li {{ margin-bottom: 6px; }}
.muted {{ color: {BRAND['text_muted']}; font-size: 12px; }}
.footer {{
    text-align: center;
    margin-top: 30px;
    padding-top: 20px;
    border-top: 1px solid {BRAND['border']};
    color: {BRAND['text_muted']};
    font-size: 13px;
}}
</style>
</head>
<body>
<div class="container">
    <div class="header">
        <h1>Daily Analytics Report</h1>
        <p>{date_label}</p>
    </div>

    <div class="stats-grid">
        {totals_html}
    </div>

    {owners_html}

    <div class="summary">
        <h3 style="margin-top:0">Summary</h3>
        {summary_html}
    </div>
    {degraded_html}

    {details_html}

    <div class="footer">
        <p>Generated automatically by the Pipedrive Daily Digest</p>
        <p>Report generated at {_esc(generated)}</p>
    </div>
</div>
</body>
</html>
"""


def _render_totals(report: DigestReport) -> str:
    cards = []
    for field, label, color in TOTAL_CARDS:
        cards.append(f"""
        <div class="stat-card {color}">
            <h3>{_esc(label)}</h3>
            <p class="number">{getattr(report.totals, field)}</p>
        </div>""")
    return "\n".join(cards)


def _render_owners(by_owner: List[OwnerStat]) -> str:
    if not by_owner:
        return ""

    blocks = []
    for stat in by_owner:
        cells = "".join(
            f'<td><div class="label">{_esc(label)}</div>'
            f'<div class="value">{getattr(stat, field)}</div></td>'
            for field, label in OWNER_COLUMNS
        )
        blocks.append(f"""
        <div class="owner-card">
            <div class="owner-name">{_esc(stat.name)}</div>
            <table class="owner-stats"><tr>{cells}</tr></table>
        </div>""")

    blocks_html = "".join(blocks)
    return f"""
    <div class="section">
        <h2>Performance by Team Member</h2>
        {blocks_html}
    </div>"""


def _render_summary(report: DigestReport) -> str:
    t = report.totals
    text = (
        f"<p>On {_esc(report.date_label)}, your team made <strong>{t.calls_made} phone calls</strong> "
        f"and created <strong>{t.notes_created} notes</strong>. There were "
        f"<strong>{t.deal_movements} deal movements</strong> and "
        f"<strong>{t.activities_done} activities completed</strong>.</p>"
    )
    if t.deals_won or t.deals_lost:
        outcome = f'<strong style="color:{BRAND["success"]}">{t.deals_won} deals won</strong>'
        if t.deals_lost:
            outcome += f' and <strong style="color:{BRAND["danger"]}">{t.deals_lost} deals lost</strong>'
        text += f"<p>Deal outcomes: {outcome}.</p>"
    return text


def _render_degraded(degraded_sources: List[str]) -> str:
    if not degraded_sources:
        return ""
    sources = ", ".join(_esc(s) for s in degraded_sources)
    return (
        f'<div class="degraded"><strong>Partial data:</strong> could not load {sources}. '
        f"The related figures are shown as zero.</div>"
    )


def _detail_section(title: str, rows: List[str]) -> str:
    if not rows:
        return ""
    shown = rows[:DETAIL_LIMIT]
    more = ""
    if len(rows) > DETAIL_LIMIT:
        more = f'<p class="muted">+{len(rows) - DETAIL_LIMIT} more</p>'
    items = "\n".join(f"<li>{row}</li>" for row in shown)
    return f"""
    <div class="section">
        <h2>{_esc(title)}</h2>
        <ul class="detail-list">{items}</ul>
        {more}
    </div>"""


def _render_details(report: DigestReport, names: Dict[Any, str]) -> str:
    d = report.details

    won = [
        f"<strong>{_esc(deal.get('title'))}</strong> "
        f"<span class='muted'>{_esc(_owner_label(deal, names))} "
        f"{_esc(_fmt_currency(deal.get('value'), deal.get('currency')))}</span>"
        for deal in d.won_deals
    ]
    lost = [
        f"<strong>{_esc(deal.get('title'))}</strong> "
        f"<span class='muted'>{_esc(_owner_label(deal, names))}"
        f"{' - ' + _esc(deal.get('lost_reason')) if deal.get('lost_reason') else ''}</span>"
        for deal in d.lost_deals
    ]
    calls = [
        f"{_esc(call.get('subject') or 'Call')} "
        f"<span class='muted'>{_esc(_owner_label(call, names))}"
        f"{' - ' + _esc(call.get('deal_title')) if call.get('deal_title') else ''}</span>"
        for call in d.calls
    ]
    notes = [
        f"<strong>{_esc(note.deal_title)}</strong>: {_esc(_plain(note.content))} "
        f"<span class='muted'>{_esc(_owner_label(note, names))}</span>"
        for note in d.notes
    ]
    movements = [
        f"<strong>{_esc(m.deal_title)}</strong> "
        f"<span class='muted'>{_esc(m.pipeline_name)} - {_esc(_owner_label(m, names))}</span>"
        for m in d.movements
    ]

    return "\n".join(filter(None, [
        _detail_section("Deals Won", won),
        _detail_section("Deals Lost", lost),
        _detail_section("Calls", calls),
        _detail_section("Notes", notes),
        _detail_section("Deal Movements", movements),
    ]))
