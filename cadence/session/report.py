"""Session reports: JSON summary or per-word CSV."""

from __future__ import annotations

import csv
import json
from io import StringIO
from pathlib import Path

from cadence.session.models import SessionResult

REPORT_FORMATS = ("json", "csv")


def generate_report(result: SessionResult, fmt: str = "json") -> str:
    if fmt == "json":
        data = {
            "summary": {
                "score": result.score.total,
                "insight": result.insight[0],
                "advice": result.insight[1],
            },
            **result.to_dict(),
        }
        return json.dumps(data, indent=2, ensure_ascii=False)

    elif fmt == "csv":
        output = StringIO()
        writer = csv.writer(output)
        writer.writerow(["index", "text", "normalized", "state", "recognized_as"])
        for w in result.words:
            writer.writerow([
                w.token.index, w.token.text, w.token.normalized, w.state.value, w.recognized_as or ""
            ])
        return output.getvalue()

    raise ValueError(f"Unknown report format: {fmt} (expected one of {', '.join(REPORT_FORMATS)})")


def save_report(result: SessionResult, output_path: Path, fmt: str = "json") -> Path:
    output_path = Path(output_path)
    report_path = output_path if output_path.suffix == f".{fmt}" else output_path.with_suffix(f".{fmt}")
    report_path.parent.mkdir(parents=True, exist_ok=True)
    report_path.write_text(generate_report(result, fmt), encoding="utf-8")
    return report_path
