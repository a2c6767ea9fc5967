"""Reporting: CSV tables and a plain-text summary of one analyzer run."""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import asdict, fields
from pathlib import Path

import pandas as pd

from src.contracts.detection import DETECTION_CSV_COLUMNS, DetectionResult
from src.contracts.event import PQEvent
from src.contracts.grouping import GroupingResult, GroupingStatistics
from src.contracts.rule import AnnotatedEvent, RuleStat

log = logging.getLogger(__name__)

ACTION_ORDER = ["auto-remove", "flag", "review", "ignore"]


def _atomic_write(path: str, content: str) -> None:
    """Write *content* to a temp file in the same directory, then rename."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(
        dir=str(target.parent),
        prefix=f".{target.name}.",
        suffix=".tmp",
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(content)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise


# ═══════════════════════════════════════════════════════════════════════════
#  DataFrames
# ═══════════════════════════════════════════════════════════════════════════


def detections_frame(detections: list[tuple[PQEvent, DetectionResult]]) -> pd.DataFrame:
    rows = [result.to_row(event) for event, result in detections]
    return pd.DataFrame(rows, columns=DETECTION_CSV_COLUMNS)


def annotations_frame(annotated: list[AnnotatedEvent]) -> pd.DataFrame:
    rows = [
        {
            "event_id": a.event.id,
            "matched_rules": ";".join(r.id for r in a.false_event_rules),
            "is_flagged_as_false": a.is_flagged_as_false,
            "should_be_hidden": a.should_be_hidden,
            "requires_review": a.requires_review,
        }
        for a in annotated
    ]
    return pd.DataFrame(
        rows,
        columns=[
            "event_id",
            "matched_rules",
            "is_flagged_as_false",
            "should_be_hidden",
            "requires_review",
        ],
    )


def rule_performance_frame(stats: list[RuleStat]) -> pd.DataFrame:
    columns = [f.name for f in fields(RuleStat)]
    df = pd.DataFrame([asdict(s) for s in stats], columns=columns)
    df[["accuracy", "efficiency"]] = df[["accuracy", "efficiency"]].astype(float).round(2)
    return df.sort_values("accuracy", ascending=False, kind="stable").reset_index(drop=True)


def action_counts(df: pd.DataFrame) -> dict[str, int]:
    """Number of events per recommended action, in severity order."""
    if df.empty:
        return dict.fromkeys(ACTION_ORDER, 0)
    counts = df["recommended_action"].value_counts()
    return {a: int(counts.get(a, 0)) for a in ACTION_ORDER}


# ═══════════════════════════════════════════════════════════════════════════
#  Writers
# ═══════════════════════════════════════════════════════════════════════════


def write_frame_csv(df: pd.DataFrame, path: str) -> None:
    _atomic_write(path, df.to_csv(index=False))
    log.info("Wrote %s (%d rows)", path, len(df))


def write_events_csv(events: list[PQEvent], path: str) -> None:
    lines = [PQEvent.csv_header()]
    for e in events:
        lines.append(e.to_csv_row())
    _atomic_write(path, "\n".join(lines) + "\n")
    log.info("Wrote events → %s (%d rows)", path, len(events))


def write_groups_csv(groups: list[GroupingResult], path: str) -> None:
    lines = [GroupingResult.csv_header()]
    for g in groups:
        lines.append(g.to_csv_row())
    _atomic_write(path, "\n".join(lines) + "\n")
    log.info("Wrote groups → %s (%d groups)", path, len(groups))


def write_report_txt(
    detections: pd.DataFrame,
    annotations: pd.DataFrame,
    rule_stats: pd.DataFrame,
    statistics: GroupingStatistics,
    path: str,
) -> None:
    """Human-readable summary of grouping, detection and rule results."""
    lines: list[str] = []

    lines.append("=" * 60)
    lines.append("  PQ Event Correlation & False-Event Report")
    lines.append("=" * 60)
    lines.append("")

    lines.append("--- Grouping ---")
    lines.append(f"  Groups total:       {statistics.total_groups}")
    lines.append(f"  Automatic groups:   {statistics.automatic_groups}")
    lines.append(f"  Manual groups:      {statistics.manual_groups}")
    lines.append(f"  Grouped events:     {statistics.total_grouped_events}")
    lines.append("")

    lines.append("--- Detector ---")
    lines.append(f"  Events scored:      {len(detections)}")
    for action, n in action_counts(detections).items():
        lines.append(f"  {action + ':':<20}{n}")
    if not detections.empty:
        lines.append(f"  Mean confidence:    {detections['confidence'].mean():.2f}%")
    lines.append("")

    lines.append("--- Configured rules ---")
    if not annotations.empty:
        lines.append(f"  Flagged as false:   {int(annotations['is_flagged_as_false'].sum())}")
        lines.append(f"  Hidden:             {int(annotations['should_be_hidden'].sum())}")
        lines.append(f"  Require review:     {int(annotations['requires_review'].sum())}")
    if rule_stats.empty:
        lines.append("  (no rules configured)")
    else:
        lines.append("")
        lines.append(
            rule_stats[["rule_id", "total_matched", "true_positives", "accuracy", "efficiency"]]
            .to_string(index=False)
        )
    lines.append("")

    _atomic_write(path, "\n".join(lines) + "\n")
    log.info("Wrote report → %s", path)
