"""JSON report output."""

from __future__ import annotations

import json
from pathlib import Path

from pixel_police.models.session import Session


def generate_json_report(session: Session, output_path: Path) -> None:
    """Write a machine-readable JSON report."""
    report = session.model_dump(mode="json")
    report["summary"] = session.summary()
    report["pending"] = [d.model_dump() for d in session.pending]

    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(report, f, indent=2, ensure_ascii=False)
