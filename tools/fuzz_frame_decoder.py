#!/usr/bin/env python3
"""
fuzz_frame_decoder.py - Fuzz test the uplink frame decoder

Feeds random and damaged frames to the decoder. A frame fails when
decode() raises, or when the result breaks the contract that a rejected
frame has exactly one error and no fields.

Usage:
    python tools/fuzz_frame_decoder.py                       # both layouts, 10 s each
    python tools/fuzz_frame_decoder.py --layout v2 -d 60     # 1 minute on V2
    python tools/fuzz_frame_decoder.py --seed 12345          # Reproducible
"""

import argparse
import random
import sys
import time
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple, Union

sys.path.insert(0, str(Path(__file__).parent))
from frame_decoder import FrameDecoder, LayoutVersion, V1_SENSOR_BLOCK_SIZE


@dataclass
class FuzzReport:
    """Outcome counts for one layout."""
    layout: LayoutVersion
    seed: int
    duration_sec: float = 0.0
    decoded: int = 0
    rejected: int = 0
    warned: int = 0
    by_generator: Counter = field(default_factory=Counter)
    failures: List[Tuple[str, bytes, str]] = field(default_factory=list)

    @property
    def frames(self) -> int:
        return self.decoded + self.rejected + len(self.failures)

    @property
    def frames_per_sec(self) -> float:
        if self.duration_sec > 0:
            return self.frames / self.duration_sec
        return 0.0


class DecoderFuzzer:
    """Fuzz tester for one frame layout."""

    def __init__(self, layout: Union[LayoutVersion, str] = LayoutVersion.V1,
                 seed: Optional[int] = None):
        self.decoder = FrameDecoder(layout)
        self.layout = self.decoder.layout
        seed = seed if seed is not None else random.randint(0, 2**32)
        self.rng = random.Random(seed)
        self.report = FuzzReport(layout=self.layout, seed=seed)
        self.generators = {
            'random': lambda: self.random_bytes(0, 64),
            'short': lambda: self.random_bytes(0, self.layout.min_length - 1),
            'full_frame': self.full_frame,
            'sensor_fault': self.sensor_fault_frame,
            'truncated': lambda: self.full_frame()[:self.rng.randint(0, self.frame_length - 1)],
            'extended': lambda: self.full_frame() + self.random_bytes(1, 32),
            'bitflip': self.bitflip_frame,
            'zeros': lambda: bytes(self.rng.randint(1, 20)),
            'ones': lambda: b'\xff' * self.rng.randint(1, 20),
            'empty': lambda: b'',
        }

    @property
    def frame_length(self) -> int:
        """Length of a complete frame, V1 sensor block included."""
        if self.layout == LayoutVersion.V1:
            return self.layout.min_length + V1_SENSOR_BLOCK_SIZE
        return self.layout.min_length

    def random_bytes(self, min_len: int, max_len: int) -> bytes:
        length = self.rng.randint(min_len, max_len)
        return bytes(self.rng.randint(0, 255) for _ in range(length))

    def full_frame(self) -> bytes:
        return self.random_bytes(self.frame_length, self.frame_length)

    def sensor_fault_frame(self) -> bytes:
        """Full frame with a temperature fault code at offset 5."""
        frame = bytearray(self.full_frame())
        code = self.rng.choice([0x8000, 0x8001, 0x8002])
        frame[5:7] = code.to_bytes(2, 'big')
        return bytes(frame)

    def bitflip_frame(self) -> bytes:
        frame = bytearray(self.full_frame())
        for _ in range(self.rng.randint(1, len(frame))):
            frame[self.rng.randrange(len(frame))] ^= 1 << self.rng.randint(0, 7)
        return bytes(frame)

    def check_frame(self, payload: bytes) -> Optional[str]:
        """Decode one frame; return a failure description or None."""
        try:
            result = self.decoder.decode(payload)
        except Exception as e:
            return f"raised {type(e).__name__}: {e}"

        if result.errors:
            if result.data or result.warnings or len(result.errors) != 1:
                return f"rejected frame carries output: {result.to_dict()}"
            self.report.rejected += 1
        else:
            if not result.data:
                return "accepted frame has no fields"
            self.report.decoded += 1
            if result.warnings:
                self.report.warned += 1
        return None

    def fuzz_one(self, name: str, payload: bytes) -> bool:
        self.report.by_generator[name] += 1
        failure = self.check_frame(payload)
        if failure:
            self.report.failures.append((name, payload, failure))
            return False
        return True

    def run(self, duration_sec: float = 10.0) -> FuzzReport:
        names = list(self.generators)
        start_time = time.time()
        end_time = start_time + duration_sec

        while time.time() < end_time:
            name = self.rng.choice(names)
            self.fuzz_one(name, self.generators[name]())

        self.report.duration_sec = time.time() - start_time
        return self.report


def print_report(report: FuzzReport) -> None:
    print(f"\nLayout {report.layout.value} (seed {report.seed})")
    print("=" * 50)
    print(f"Frames: {report.frames} in {report.duration_sec:.1f}s "
          f"({report.frames_per_sec:.0f}/s)")
    print(f"Decoded: {report.decoded} ({report.warned} with warnings)")
    print(f"Rejected as too short: {report.rejected}")
    print("Generators: " + ", ".join(f"{k}={v}" for k, v in sorted(report.by_generator.items())))

    if report.failures:
        print(f"\nFAILED: {len(report.failures)} frame(s) broke the decoder")
        for name, payload, failure in report.failures[:5]:
            print(f"  [{name}] {payload.hex().upper() or '<empty>'}: {failure}")
    else:
        print("\nPASSED: every frame decoded or rejected cleanly")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description='Fuzz test the uplink frame decoder'
    )
    parser.add_argument('-l', '--layout', choices=[v.value for v in LayoutVersion],
                        help='Layout to fuzz (default: all)')
    parser.add_argument('-d', '--duration', type=float, default=10.0,
                        help='Fuzz duration per layout in seconds (default: 10)')
    parser.add_argument('-s', '--seed', type=int,
                        help='Random seed for reproducibility')
    args = parser.parse_args(argv)

    layouts = [LayoutVersion(args.layout)] if args.layout else list(LayoutVersion)

    exit_code = 0
    for layout in layouts:
        report = DecoderFuzzer(layout, seed=args.seed).run(args.duration)
        print_report(report)
        if report.failures:
            exit_code = 1

    return exit_code


if __name__ == '__main__':
    sys.exit(main())
