"""Report generation orchestration."""

from __future__ import annotations

import logging
from pathlib import Path

from pixel_police.models.config import ToolConfig
from pixel_police.models.session import Session

from .html_report import generate_html_report
from .json_report import generate_json_report

logger = logging.getLogger(__name__)


class Reporter:
    """Renders a session into the run folder. Never mutates the session."""

    def __init__(self, config: ToolConfig):
        self.config = config

    def generate_reports(self, session: Session, output_dir: Path | None = None) -> dict[str, str]:
        """Generate all configured report formats. Returns format -> file path."""
        out_dir = output_dir or Path(session.run_root)
        out_dir.mkdir(parents=True, exist_ok=True)
        generated = {}

        if "html" in self.config.report_formats:
            path = out_dir / "report.html"
            logger.debug("Generating HTML report...")
            generate_html_report(session, path)
            generated["html"] = str(path)
            logger.info("HTML report: %s", path)

        if "json" in self.config.report_formats:
            path = out_dir / "report.json"
            logger.debug("Generating JSON report...")
            generate_json_report(session, path)
            generated["json"] = str(path)
            logger.info("JSON report: %s", path)

        return generated
