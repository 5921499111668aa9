"""ClimaRisk QA checks.

Usage:
  python -m climarisk.checks [DIRECTORY]

Runs basic validations over the risk JSON written by ``run_point`` (default:
``CLIMARISK_OUTPUT_DIR``) and exits non-zero when fatal issues are detected.
Warnings flag results that are valid but built on thin data.
"""

from __future__ import annotations

import json
import math
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import Settings
from .drought_risk import DROUGHT_SEVERITY
from .flood_risk import FLOOD_SEVERITY
from .landslide_risk import LANDSLIDE_SEVERITY
from .predict.flood_prediction import PREDICTION_SEVERITY

ALLOWED_SEVERITY = {
    "flood": set(FLOOD_SEVERITY.labels),
    "drought": set(DROUGHT_SEVERITY.labels),
    "prediction": set(PREDICTION_SEVERITY.labels),
    "landslide": set(LANDSLIDE_SEVERITY.labels),
}
REQUIRED_TOP_LEVEL = {
    "riskType",
    "overallScore",
    "severity",
    "confidence",
    "components",
    "recommendations",
    "location",
    "window",
    "timestamp",
}
REQUIRED_COMPONENT_KEYS = {"name", "score", "absent", "details"}
HORIZON_ORDER = ("next24h", "next3days", "next7days")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and not math.isnan(value)


def _in_unit_range(value: Any) -> bool:
    return _is_number(value) and 0.0 <= float(value) <= 1.0


def _validate_iso8601(value: str) -> Optional[str]:
    try:
        datetime.fromisoformat(value.replace("Z", "+00:00"))
        return None
    except ValueError as exc:
        return f"Invalid ISO8601 timestamp: {exc}"


def validate_result(payload: Dict[str, Any]) -> tuple[List[str], List[str]]:
    errors: List[str] = []
    warnings: List[str] = []

    missing = sorted(REQUIRED_TOP_LEVEL - payload.keys())
    if missing:
        errors.append(f"Missing top-level keys: {', '.join(missing)}")
        return errors, warnings

    iso_error = _validate_iso8601(str(payload["timestamp"]))
    if iso_error:
        errors.append(iso_error)

    risk_type = payload["riskType"]
    if risk_type not in ALLOWED_SEVERITY:
        errors.append(f"riskType invalid: {risk_type}")
        return errors, warnings

    if not _in_unit_range(payload["overallScore"]):
        errors.append(f"overallScore out of range (0-1): {payload['overallScore']}")
    if not _in_unit_range(payload["confidence"]):
        errors.append(f"confidence out of range (0-1): {payload['confidence']}")
    elif float(payload["confidence"]) < 0.5:
        warnings.append(f"confidence = {payload['confidence']} (<0.5)")

    if payload["severity"] not in ALLOWED_SEVERITY[risk_type]:
        errors.append(f"severity invalid for {risk_type}: {payload['severity']}")

    components = payload["components"]
    if not isinstance(components, dict) or not components:
        errors.append("components must be a non-empty object")
    else:
        for name, component in components.items():
            missing_keys = sorted(REQUIRED_COMPONENT_KEYS - set(component))
            if missing_keys:
                errors.append(f"components.{name} missing: {', '.join(missing_keys)}")
                continue
            if not _in_unit_range(component["score"]):
                errors.append(f"components.{name}.score out of range (0-1): {component['score']}")
            if component["absent"]:
                reason = component["details"].get("reason", "unknown")
                warnings.append(f"components.{name} scored without data ({reason})")

    if not isinstance(payload["recommendations"], list) or not payload["recommendations"]:
        warnings.append("recommendations empty")

    window = payload["window"]
    if isinstance(window, dict) and window.get("start", "") > window.get("end", ""):
        errors.append(f"window start after end: {window}")

    horizons = payload.get("horizons")
    if horizons is not None:
        values = [horizons.get(key) for key in HORIZON_ORDER]
        if not all(_in_unit_range(value) for value in values):
            errors.append(f"horizons out of range (0-1): {horizons}")
        elif any(later > earlier for earlier, later in zip(values, values[1:])):
            errors.append(f"horizons must not grow with lead time: {horizons}")

    return errors, warnings


def main(argv: Optional[List[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    output_dir = Path(argv[0]) if argv else Settings.from_env().output_dir
    if not output_dir.exists():
        print(f"[ERROR] Output directory not found: {output_dir}")
        return 1

    files = sorted(output_dir.glob("*.json"))
    if not files:
        print("[ERROR] No risk JSON files found.")
        return 1

    total_errors = 0
    total_warnings = 0

    for path in files:
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            print(f"[ERROR] {path.name}: failed to parse JSON ({exc})")
            total_errors += 1
            continue

        if "points" in payload:
            # Grid maps only carry per-point scores.
            bad = [p for p in payload["points"] if not _in_unit_range(p.get("score"))]
            errors = [f"{len(bad)} grid point score(s) out of range"] if bad else []
            failed = sum(1 for p in payload["points"] if p.get("failed"))
            warnings = [f"{failed} grid point(s) failed"] if failed else []
        else:
            errors, warnings = validate_result(payload)
        for err in errors:
            print(f"[ERROR] {path.name}: {err}")
        for warn in warnings:
            print(f"[WARN] {path.name}: {warn}")

        total_errors += len(errors)
        total_warnings += len(warnings)

    print(f"Complete: {len(files)} file(s) checked, {total_errors} error(s), {total_warnings} warning(s).")
    return 1 if total_errors else 0


if __name__ == "__main__":
    sys.exit(main())
