"""Pipeline — orchestrator: load events -> rules -> detect -> group -> report.

Supports CSV and JSONL input.  Events are loaded into an in-memory store so
that automatic grouping runs through the same gateway contract as any
other caller; the post-grouping state is written back out as events.csv.
"""

from __future__ import annotations

import csv
import json
import logging
from pathlib import Path
from typing import Any

from src.analyzer.reporter import (
    annotations_frame,
    detections_frame,
    rule_performance_frame,
    write_events_csv,
    write_frame_csv,
    write_groups_csv,
    write_report_txt,
)
from src.contracts.detection import DetectionContext, MaintenanceWindow
from src.contracts.event import PQEvent
from src.detector.rules import (
    analyze_rule_performance,
    apply_configured_rules,
    rules_from_config,
)
from src.detector.scoring import FalseEventDetector
from src.grouping.engine import (
    DEFAULT_WINDOW_SEC,
    get_grouping_statistics,
    perform_automatic_grouping,
)
from src.shared.config_loader import load_optional_yaml
from src.store.memory import InMemoryEventStore

log = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
#  Event loaders
# ═══════════════════════════════════════════════════════════════════════════


def load_events_csv(path: str) -> list[PQEvent]:
    """Load events from a CSV file with the events.csv columns."""
    events: list[PQEvent] = []
    with open(path, encoding="utf-8", newline="") as fh:
        reader = csv.DictReader(fh)
        for row_no, row in enumerate(reader, 2):
            try:
                events.append(PQEvent.from_dict(row))
            except (ValueError, json.JSONDecodeError) as exc:
                log.warning("Skipping CSV row %d: %s", row_no, exc)
    log.info("Loaded %d events from CSV: %s", len(events), path)
    return events


def load_events_jsonl(path: str) -> list[PQEvent]:
    """Load events from a JSONL (one JSON object per line) file."""
    events: list[PQEvent] = []
    with open(path, encoding="utf-8") as fh:
        for line_no, line in enumerate(fh, 1):
            line = line.strip()
            if not line:
                continue
            try:
                events.append(PQEvent.from_dict(json.loads(line)))
            except (json.JSONDecodeError, ValueError) as exc:
                log.warning("Skipping JSONL line %d: %s", line_no, exc)
    log.info("Loaded %d events from JSONL: %s", len(events), path)
    return events


def load_events(path: str) -> list[PQEvent]:
    """Auto-detect format by file extension and load events."""
    p = Path(path)
    if p.suffix in (".jsonl", ".ndjson"):
        return load_events_jsonl(path)
    return load_events_csv(path)


def drop_duplicate_ids(events: list[PQEvent]) -> list[PQEvent]:
    """Keep the first event for each id; later duplicates are logged and dropped."""
    seen: set[str] = set()
    unique: list[PQEvent] = []
    for e in events:
        if e.id in seen:
            log.warning("Skipping duplicate event id %s (timestamp %s)", e.id, e.timestamp)
            continue
        seen.add(e.id)
        unique.append(e)
    return unique


def build_context(detector_cfg: dict[str, Any], events: list[PQEvent]) -> DetectionContext:
    """Detection context for a batch: every loaded event counts as recent."""
    windows = [MaintenanceWindow.from_dict(w) for w in detector_cfg.get("maintenance_windows", [])]
    return DetectionContext(
        recent_events=events,
        historical_data=events,
        maintenance_windows=windows,
        system_status=detector_cfg.get("system_status", "normal"),
    )


# ═══════════════════════════════════════════════════════════════════════════
#  Pipeline core
# ═══════════════════════════════════════════════════════════════════════════


def run_pipeline(
    input_path: str,
    out_dir: str = "out",
    config_dir: str = "config",
    grouping: bool = True,
) -> dict[str, Any]:
    """Execute the full analysis and write outputs.

    Returns
    -------
    dict with keys: events (post-grouping), annotated, detections, groups,
    rule_stats, statistics.
    """
    events = drop_duplicate_ids(load_events(input_path))
    results: dict[str, Any] = {
        "events": events,
        "annotated": [],
        "detections": [],
        "groups": [],
        "rule_stats": [],
        "statistics": None,
    }
    if not events:
        log.warning("No events loaded from %s — nothing to analyse.", input_path)
        return results

    rules = rules_from_config(load_optional_yaml(f"{config_dir}/rules.yaml"))
    detector_cfg = load_optional_yaml(f"{config_dir}/detector.yaml")
    window_sec = detector_cfg.get("grouping", {}).get("window_sec", DEFAULT_WINDOW_SEC)

    # rules and detector see the events as loaded, before any regrouping
    annotated = apply_configured_rules(events, rules)
    rule_stats = analyze_rule_performance(events, rules)
    detector = FalseEventDetector()
    detections = detector.detect_many(events, build_context(detector_cfg, events))

    store = InMemoryEventStore(events)
    groups = perform_automatic_grouping(store, events, window_sec=window_sec) if grouping else []
    statistics = get_grouping_statistics(store)

    results.update(
        events=store.all_events(),
        annotated=annotated,
        detections=detections,
        groups=groups,
        rule_stats=rule_stats,
        statistics=statistics,
    )

    # ── write outputs ────────────────────────────────────────────────────
    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)

    det_df = detections_frame(detections)
    ann_df = annotations_frame(annotated)
    rule_df = rule_performance_frame(rule_stats)

    write_events_csv(results["events"], str(out / "events.csv"))
    write_groups_csv(groups, str(out / "groups.csv"))
    write_frame_csv(det_df, str(out / "detections.csv"))
    write_frame_csv(ann_df, str(out / "annotations.csv"))
    write_frame_csv(rule_df, str(out / "rule_performance.csv"))
    write_report_txt(det_df, ann_df, rule_df, statistics, str(out / "report.txt"))

    log.info("Pipeline complete. Outputs in %s/", out_dir)
    return results
