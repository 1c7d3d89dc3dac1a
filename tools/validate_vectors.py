#!/usr/bin/env python3
"""
validate_vectors.py - Run reference frames through the decoder

Usage:
    python tools/validate_vectors.py vectors/frame_vectors.yaml
    python tools/validate_vectors.py vectors/frame_vectors.yaml --json

Vector file format:

    vectors:
      - name: v1_basic
        layout: v1
        payload: "00 0A 03 0C 1C"       # hex string or list of ints
        expected:                       # subset of decoded fields
          tx_reason: Timer Event
          supply_voltage: 3.1
        warnings: 0                     # optional, expected warning count
        errors: 0                       # optional, expected error count (default 0)

Floats are compared to 0.001, the voltage resolution.
"""

import argparse
import json
import sys
import yaml
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, List, Optional

sys.path.insert(0, str(Path(__file__).parent))
from frame_decoder import FrameDecoder

FLOAT_TOLERANCE = 0.001


@dataclass
class VectorResult:
    """One reference frame and what the decoder made of it."""
    name: str
    layout: str
    payload_hex: str = ""
    data: Dict[str, Any] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    failures: List[str] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.failures

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'layout': self.layout,
            'payload': self.payload_hex,
            'passed': self.passed,
            'data': self.data,
            'warnings': self.warnings,
            'errors': self.errors,
            'failures': self.failures,
        }


@dataclass
class VectorReport:
    """All vectors of one file."""
    vectors: List[VectorResult] = field(default_factory=list)
    file_errors: List[str] = field(default_factory=list)

    @property
    def file_valid(self) -> bool:
        return not self.file_errors

    @property
    def passed(self) -> int:
        return sum(1 for v in self.vectors if v.passed)

    @property
    def failed(self) -> int:
        return len(self.vectors) - self.passed

    @property
    def all_passed(self) -> bool:
        return self.file_valid and self.failed == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'file_errors': self.file_errors,
            'passed': self.passed,
            'failed': self.failed,
            'all_passed': self.all_passed,
            'vectors': [v.to_dict() for v in self.vectors],
        }


def parse_payload(payload: Any) -> bytes:
    """Hex string ("00 0A 03" or "0x00,0x0A") or list of ints."""
    if isinstance(payload, list):
        return bytes(payload)
    if isinstance(payload, str):
        clean = payload.replace('0x', '').replace(' ', '').replace(',', '')
        return bytes.fromhex(clean)
    raise ValueError(f"payload must be a hex string or list of ints, got {type(payload).__name__}")


def check_field(expected: Any, actual: Any) -> Optional[str]:
    """Return a mismatch description, or None when the decoded value matches."""
    numeric = (int, float)
    if (isinstance(expected, numeric) and isinstance(actual, numeric)
            and not isinstance(expected, bool) and not isinstance(actual, bool)):
        if abs(expected - actual) > FLOAT_TOLERANCE:
            return f"expected {expected}, got {actual}"
        return None

    if type(expected) != type(actual):
        return f"expected {expected!r} ({type(expected).__name__}), got {actual!r} ({type(actual).__name__})"

    if expected != actual:
        return f"expected {expected!r}, got {actual!r}"

    return None


def run_vector(tv: Dict[str, Any]) -> VectorResult:
    """Decode one vector and compare it against its expectations."""
    result = VectorResult(name=str(tv.get('name', 'unnamed')), layout=str(tv.get('layout', '')))

    expected = tv.get('expected') or {}
    if not isinstance(expected, dict):
        result.failures.append(f"'expected' must be a mapping of field: value, got {type(expected).__name__}")
        return result

    try:
        decoder = FrameDecoder(tv.get('layout'))
    except ValueError as e:
        result.failures.append(str(e))
        return result

    try:
        payload = parse_payload(tv.get('payload', ''))
    except (TypeError, ValueError) as e:
        result.failures.append(f"Bad payload: {e}")
        return result
    result.payload_hex = payload.hex().upper()

    decoded = decoder.decode(payload)
    result.data = decoded.data
    result.warnings = decoded.warnings
    result.errors = decoded.errors

    expected_errors = tv.get('errors', 0)
    if len(decoded.errors) != expected_errors:
        result.failures.append(f"{len(decoded.errors)} decode error(s), expected {expected_errors}")

    if 'warnings' in tv and len(decoded.warnings) != tv['warnings']:
        result.failures.append(f"{len(decoded.warnings)} warning(s), expected {tv['warnings']}")

    for name, value in expected.items():
        if name not in decoded.data:
            result.failures.append(f"{name}: not decoded")
            continue
        mismatch = check_field(value, decoded.data[name])
        if mismatch:
            result.failures.append(f"{name}: {mismatch}")

    return result


def run_vectors(doc: Any) -> VectorReport:
    """Run every vector of a loaded vector file."""
    report = VectorReport()

    if not isinstance(doc, dict) or not isinstance(doc.get('vectors'), list):
        report.file_errors.append("Vector file must contain a 'vectors' list")
        return report

    for i, tv in enumerate(doc['vectors']):
        if isinstance(tv, dict):
            report.vectors.append(run_vector(tv))
        else:
            report.file_errors.append(f"vectors[{i}]: expected a mapping")

    return report


def print_report(report: VectorReport) -> None:
    for error in report.file_errors:
        print(f"FILE ERROR: {error}")

    for v in report.vectors:
        status = "PASS" if v.passed else "FAIL"
        outcome = "rejected" if v.errors else f"{len(v.data)} fields"
        print(f"{status} {v.name:<28} {v.layout:<3} {v.payload_hex or '-':<22} {outcome}")
        for w in v.warnings:
            print(f"       warning: {w}")
        for f in v.failures:
            print(f"       {f}")

    print("-" * 60)
    total = len(report.vectors)
    if report.all_passed:
        print(f"PASSED: {total} frames decoded as expected")
    else:
        print(f"FAILED: {report.failed} of {total} frames, {len(report.file_errors)} file error(s)")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description='Run reference uplink frames through the decoder'
    )
    parser.add_argument('vectors', help='Path to vector YAML file')
    parser.add_argument('--json', action='store_true',
                        help='Output results as JSON')
    args = parser.parse_args(argv)

    try:
        with open(args.vectors) as f:
            doc = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        print(f"Error loading vectors: {e}", file=sys.stderr)
        return 1

    report = run_vectors(doc)

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        print_report(report)

    return 0 if report.all_passed else 1


if __name__ == '__main__':
    sys.exit(main())
