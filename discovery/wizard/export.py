"""
Agreement document export.

Lays the agreement out on fixed-height pages: every block advances a
vertical offset by its line count times a font-dependent line height, and
a new page starts once the next block would cross PAGE_LIMIT. Output is
plain text (pages separated by form feeds) or Markdown.
"""

from __future__ import annotations

import re
import textwrap
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from .models import DiscoverySession

COMPANY_NAME = "11-8 AI"

MARGIN = 20
PAGE_LIMIT = 275
TEXT_WIDTH = 90  # characters per wrapped line

BODY = 11
SMALL = 9
HEADING = 14
TITLE = 18

NO_SIGNATURE = "___________________"


@dataclass
class Page:
    lines: list[str] = field(default_factory=list)


class AgreementDocument:
    """
    Paginated agreement document.

    Usage:
        doc = AgreementDocument(session)
        text = doc.to_text()
    """

    def __init__(self, session: DiscoverySession, today: Optional[date] = None):
        self.session = session
        self.today = today or date.today()
        self.pages: list[Page] = [Page()]
        self._y = MARGIN
        self._build()

    # ── Layout primitives ───────────────────────────────────────

    def _add_line(self, text: str, font_size: int = BODY, bold: bool = False):
        if bold:
            text = text.upper() if font_size >= HEADING else f"*{text}*"
        wrapped = textwrap.wrap(text, TEXT_WIDTH, subsequent_indent="  ") or [""]
        if self._y + len(wrapped) * (font_size * 0.5) > PAGE_LIMIT:
            self.pages.append(Page())
            self._y = MARGIN
        self.pages[-1].lines.extend(wrapped)
        self._y += len(wrapped) * (font_size * 0.45) + 4

    def _add_space(self, amount: float = 6):
        self._y += amount
        if self.pages[-1].lines and self.pages[-1].lines[-1] != "":
            self.pages[-1].lines.append("")

    # ── Content ─────────────────────────────────────────────────

    def _build(self):
        session = self.session
        snap = session.business_snapshot
        agreement = session.agreement
        date_text = self.today.strftime("%m/%d/%Y")

        self._add_line(f"{COMPANY_NAME} - Discovery Agreement", TITLE, bold=True)
        self._add_space(4)
        self._add_line(f"Prepared for: {snap.business_name}", 12)
        self._add_line(f"Date: {date_text}")
        self._add_line(f"Session ID: {session.id}", SMALL)
        if not session.is_agreed:
            self._add_line("DRAFT - not yet agreed", SMALL)
        self._add_space(8)

        self._add_line("Business Overview", HEADING, bold=True)
        self._add_line(f"Industry: {snap.industry}")
        self._add_line(f"Team size: {snap.team_size}")
        if snap.revenue_range and snap.revenue_range != "Prefer not to say":
            self._add_line(f"Revenue range: {snap.revenue_range}")
        self._add_space(8)

        self._add_line("What We'll Build", HEADING, bold=True)
        for i, opp in enumerate(session.automation_opportunities, 1):
            self._add_line(f"{i}. {opp.title}", BODY, bold=True)
            self._add_line(opp.description)
            self._add_space(4)
        self._add_space(4)

        self._add_line("Success Metrics", HEADING, bold=True)
        for metric in agreement.metrics:
            self._add_line(f"- {metric.name}", BODY, bold=True)
            self._add_line(f"  {metric.description}")
            self._add_line(f"  Data source: {metric.data_source}")
            self._add_line(f"  Target: {metric.target_improvement}")
            self._add_space(2)
        self._add_space(4)

        self._add_line("Agreement Terms", HEADING, bold=True)
        self._add_line(
            f"Value-share: {agreement.value_share_percent}% of measurable value created"
        )
        self._add_line(f"Baseline period: {agreement.baseline_days} days")
        self._add_line(f"Measurement period: {agreement.measurement_days} days")
        self._add_line(f"First invoice: Day {agreement.first_invoice_day}")
        self._add_space(4)
        self._add_line(
            "If no measurable value is created, no payment is due. "
            "Either party may exit at any time."
        )
        self._add_space(12)

        self._add_line("Agreed By", HEADING, bold=True)
        self._add_space(4)
        self._add_line(f"Client: {agreement.client_name or NO_SIGNATURE}")
        if agreement.agreed_at:
            self._add_line(f"Agreed at: {agreement.agreed_at}", SMALL)
        self._add_space(8)
        self._add_line(f"{COMPANY_NAME}: {NO_SIGNATURE}")
        self._add_space(8)
        self._add_line(f"Date: {date_text}")

    # ── Output ──────────────────────────────────────────────────

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def filename(self) -> str:
        name = re.sub(r"\s+", "-", self.session.business_snapshot.business_name.strip()) or "Session"
        return f"11-8-AI-Agreement-{name}.txt"

    def to_text(self) -> str:
        rendered = []
        for number, page in enumerate(self.pages, 1):
            body = "\n".join(page.lines).rstrip()
            rendered.append(f"{body}\n\n[Page {number} of {self.page_count}]\n")
        return "\f".join(rendered)

    def to_markdown(self) -> str:
        """Render the same content as a single Markdown document."""
        session = self.session
        snap = session.business_snapshot
        agreement = session.agreement
        lines = [
            f"# {COMPANY_NAME} - Discovery Agreement",
            "",
            f"- **Prepared for:** {snap.business_name}",
            f"- **Date:** {self.today.isoformat()}",
            f"- **Session ID:** {session.id}",
            f"- **Status:** {'Agreed ' + agreement.agreed_at if agreement.agreed_at else 'Draft'}",
            "",
            "## Business Overview",
            "",
            f"- **Industry:** {snap.industry}",
            f"- **Team size:** {snap.team_size}",
        ]
        if snap.revenue_range and snap.revenue_range != "Prefer not to say":
            lines.append(f"- **Revenue range:** {snap.revenue_range}")
        lines += ["", "## What We'll Build", ""]
        for i, opp in enumerate(session.automation_opportunities, 1):
            lines.append(f"### {i}. {opp.title}")
            lines.append("")
            lines.append(opp.description)
            lines.append("")
            lines.extend(f"- {step}" for step in opp.what_agent_does)
            lines.append("")
        lines += ["## Success Metrics", ""]
        lines.append("| Metric | Description | Data source | Target |")
        lines.append("|--------|-------------|-------------|--------|")
        for m in agreement.metrics:
            lines.append(f"| {m.name} | {m.description} | {m.data_source} | {m.target_improvement} |")
        lines += [
            "",
            "## Agreement Terms",
            "",
            f"- **Value-share:** {agreement.value_share_percent}% of measurable value created",
            f"- **Baseline period:** {agreement.baseline_days} days",
            f"- **Measurement period:** {agreement.measurement_days} days",
            f"- **First invoice:** Day {agreement.first_invoice_day}",
            "",
            "If no measurable value is created, no payment is due. Either party may exit at any time.",
            "",
            "## Agreed By",
            "",
            f"- **Client:** {agreement.client_name or NO_SIGNATURE}",
            f"- **{COMPANY_NAME}:** {NO_SIGNATURE}",
            "",
        ]
        return "\n".join(lines)
