"""Canonical PQEvent data-class — the single source of truth for all modules."""

from __future__ import annotations

import csv
import io
import json
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from typing import Any

# CSV column order for events.csv input and output
CSV_COLUMNS: list[str] = [
    "id",
    "event_type",
    "substation_id",
    "meter_id",
    "timestamp",
    "duration_ms",
    "magnitude",
    "remaining_voltage",
    "affected_phases",
    "customer_count",
    "severity",
    "validated_by_adms",
    "is_mother_event",
    "is_child_event",
    "parent_event_id",
    "grouping_type",
    "grouped_at",
    "false_event",
    "is_false_positive",
    "remarks",
    "waveform_data",
]

REQUIRED_FIELDS: tuple[str, ...] = ("id", "event_type", "timestamp")

# Fields the grouping engine is allowed to write.
RELATIONSHIP_FIELDS: frozenset[str] = frozenset(
    {"is_mother_event", "is_child_event", "parent_event_id", "grouping_type", "grouped_at"}
)


def _opt_str(v: Any) -> str | None:
    if v is None:
        return None
    s = str(v).strip()
    return s or None


def _opt_float(v: Any) -> float | None:
    if v is None or (isinstance(v, str) and not v.strip()):
        return None
    return float(v)


def _opt_int(v: Any) -> int | None:
    if v is None or (isinstance(v, str) and not v.strip()):
        return None
    return int(float(v))


def _bool(v: Any) -> bool:
    if isinstance(v, str):
        return v.strip().lower() in ("1", "true", "yes", "y", "t")
    return bool(v)


def _phases(v: Any) -> list[str]:
    if not v:
        return []
    if isinstance(v, str):
        return [p.strip() for p in v.split(";") if p.strip()]
    return [str(p) for p in v]


def _timestamp(v: Any) -> str:
    """Return the stripped ISO-8601 string; it must carry a UTC offset."""
    s = str(v).strip()
    try:
        parsed = datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValueError(f"Invalid timestamp: {s!r}") from exc
    if parsed.tzinfo is None:
        raise ValueError(f"Timestamp without UTC offset: {s!r}")
    return s


def _waveform(v: Any) -> dict[str, Any] | None:
    if v is None or v == "":
        return None
    if isinstance(v, str):
        return json.loads(v)
    return dict(v)


@dataclass(slots=True)
class PQEvent:
    """One power-quality event captured by a grid meter."""

    # ── identity ──
    id: str
    event_type: str         # voltage_dip | voltage_swell | interruption | harmonic | transient | flicker
    timestamp: str          # ISO-8601  e.g. "2026-02-26T10:00:00Z"
    substation_id: str | None = None
    meter_id: str | None = None

    # ── measurements ──
    duration_ms: float | None = None
    magnitude: float | None = None           # %
    remaining_voltage: float | None = None   # % of nominal
    affected_phases: list[str] = field(default_factory=list)
    customer_count: int | None = None
    severity: str = "low"
    waveform_data: dict[str, Any] | None = None  # {"voltage": [{"timestamp", "value"}], ...}
    validated_by_adms: bool = False

    # ── grouping ──
    is_mother_event: bool = False
    is_child_event: bool = False
    parent_event_id: str | None = None
    grouping_type: str | None = None         # automatic | manual | None
    grouped_at: str | None = None

    # ── verdicts ──
    false_event: bool = False
    is_false_positive: bool = False          # historical ground-truth label
    remarks: str = ""

    # ── helpers ───────────────────────────────────────────────────────────

    @property
    def is_grouped(self) -> bool:
        return bool(self.parent_event_id) or self.is_mother_event

    def voltage_values(self) -> list[float]:
        """Return the voltage waveform samples, or an empty list."""
        if not self.waveform_data:
            return []
        points = self.waveform_data.get("voltage") or []
        return [float(p["value"]) if isinstance(p, dict) else float(p) for p in points]

    # ── serialisation ─────────────────────────────────────────────────────

    @classmethod
    def from_dict(cls, row: dict[str, Any]) -> PQEvent:
        """Build a PQEvent from a dict (CSV DictReader row or JSON object).

        Raises:
            ValueError: If a required field is missing or a value is malformed.
        """
        missing = [k for k in REQUIRED_FIELDS if not _opt_str(row.get(k))]
        if missing:
            raise ValueError(f"Event missing required field(s): {', '.join(missing)}")
        return cls(
            id=str(row["id"]).strip(),
            event_type=str(row["event_type"]).strip(),
            timestamp=_timestamp(row["timestamp"]),
            substation_id=_opt_str(row.get("substation_id")),
            meter_id=_opt_str(row.get("meter_id")),
            duration_ms=_opt_float(row.get("duration_ms")),
            magnitude=_opt_float(row.get("magnitude")),
            remaining_voltage=_opt_float(row.get("remaining_voltage")),
            affected_phases=_phases(row.get("affected_phases")),
            customer_count=_opt_int(row.get("customer_count")),
            severity=_opt_str(row.get("severity")) or "low",
            waveform_data=_waveform(row.get("waveform_data")),
            validated_by_adms=_bool(row.get("validated_by_adms", False)),
            is_mother_event=_bool(row.get("is_mother_event", False)),
            is_child_event=_bool(row.get("is_child_event", False)),
            parent_event_id=_opt_str(row.get("parent_event_id")),
            grouping_type=_opt_str(row.get("grouping_type")),
            grouped_at=_opt_str(row.get("grouped_at")),
            false_event=_bool(row.get("false_event", False)),
            is_false_positive=_bool(row.get("is_false_positive", False)),
            remarks=str(row.get("remarks") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def to_json(self) -> str:
        """Return compact JSON string."""
        return json.dumps(self.to_dict(), ensure_ascii=False, separators=(",", ":"))

    def to_csv_row(self) -> str:
        """Return a single CSV line (no trailing newline)."""
        values: list[Any] = []
        for c in CSV_COLUMNS:
            v = getattr(self, c)
            if c == "affected_phases":
                v = ";".join(v)
            elif c == "waveform_data":
                v = json.dumps(v, separators=(",", ":")) if v else ""
            elif isinstance(v, bool):
                v = "true" if v else "false"
            elif v is None:
                v = ""
            values.append(v)
        buf = io.StringIO()
        writer = csv.writer(buf)
        writer.writerow(values)
        return buf.getvalue().rstrip("\r\n")

    @staticmethod
    def csv_header() -> str:
        return ",".join(CSV_COLUMNS)

    @staticmethod
    def field_names() -> frozenset[str]:
        return frozenset(f.name for f in fields(PQEvent))


def append_remark(remarks: str, note: str) -> str:
    """Append *note* to an existing remarks trail without overwriting it."""
    if not remarks:
        return note
    return f"{remarks}\n{note}"
