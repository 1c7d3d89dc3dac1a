#!/usr/bin/env python3
"""
decode_frame.py - Decode an uplink frame from the command line

Usage:
    python tools/decode_frame.py 000A030C1C --layout v1
    python tools/decode_frame.py "01 C8 05 07 0A 28" --layout v2 --json
    python tools/decode_frame.py AQAFBwoo --format base64 --layout v2
    python tools/decode_frame.py 1,200,5,7,10,40 --format list --layout v2
    python tools/decode_frame.py 000A030C1C --profiles profiles.yaml --dev-eui 70B3D57ED0000001

Exit codes:
    0  decoded without errors
    1  decoder reported errors
    2  bad arguments, payload text or profile file
"""

import argparse
import base64
import binascii
import json
import re
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))
from frame_decoder import FrameDecoder, LayoutVersion, DecodeResult
from device_profiles import load_profiles

PAYLOAD_FORMATS = ('hex', 'base64', 'list')


def log_info(msg: str) -> None:
    print(f"[INFO] {msg}", file=sys.stderr)


def log_warn(msg: str) -> None:
    print(f"[WARN] {msg}", file=sys.stderr)


def parse_payload(text: str, fmt: str = 'hex') -> bytes:
    """
    Convert payload text to bytes.

    hex:    "000A030C1C", "00 0A 03 0C 1C", "0x00 0x0A ..."
    base64: "AAoDDBw="
    list:   "0,10,3,12,28" or "0 10 3 12 28"

    Raises ValueError on malformed text.
    """
    text = text.strip()
    if fmt == 'hex':
        clean = re.sub(r'0x', '', text, flags=re.IGNORECASE)
        clean = re.sub(r'[\s,:]', '', clean)
        try:
            return bytes.fromhex(clean)
        except ValueError:
            raise ValueError(f"Invalid hex payload: {text!r}") from None
    if fmt == 'base64':
        try:
            return base64.b64decode(text, validate=True)
        except (binascii.Error, ValueError):
            raise ValueError(f"Invalid base64 payload: {text!r}") from None
    if fmt == 'list':
        parts = [p for p in re.split(r'[\s,]+', text.strip('[]')) if p]
        try:
            return bytes(int(p, 0) for p in parts)
        except ValueError:
            raise ValueError(f"Invalid byte list: {text!r}") from None
    raise ValueError(f"Unknown payload format: {fmt}")


def print_result(result: DecodeResult, layout: LayoutVersion, payload: bytes) -> None:
    print(f"Layout: {layout.value}")
    print(f"Payload: {payload.hex().upper()} ({len(payload)} bytes)")
    print("=" * 50)

    for k, v in result.data.items():
        print(f"  {k}: {v}")

    if result.warnings:
        print("\nWarnings:")
        for w in result.warnings:
            print(f"  - {w}")

    if result.errors:
        print("\nErrors:")
        for e in result.errors:
            print(f"  - {e}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Decode a LoRaWAN test device uplink frame'
    )
    parser.add_argument('payload', help='Payload text (see --format)')
    parser.add_argument('-f', '--format', choices=PAYLOAD_FORMATS, default='hex',
                        help='Payload text format (default: hex)')
    parser.add_argument('-l', '--layout',
                        help='Frame layout: v1 or v2 (overrides --profiles)')
    parser.add_argument('-p', '--profiles',
                        help='Device profile YAML used to pick the layout')
    parser.add_argument('--dev-eui', help='DevEUI for profile lookup')
    parser.add_argument('--fport', type=int, help='fPort for profile lookup')
    parser.add_argument('--json', action='store_true',
                        help='Output result as JSON')
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        payload = parse_payload(args.payload, args.format)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    try:
        if args.layout:
            layout = LayoutVersion.parse(args.layout)
        elif args.profiles:
            profiles = load_profiles(args.profiles)
            layout = profiles.resolve(dev_eui=args.dev_eui, fport=args.fport)
            log_info(f"Layout {layout.value} from {args.profiles}")
        else:
            print("Error: either --layout or --profiles is required", file=sys.stderr)
            return 2
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    result = FrameDecoder(layout).decode(payload)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print_result(result, layout, payload)

    for w in result.warnings:
        log_warn(w)

    return 0 if result.success else 1


if __name__ == '__main__':
    sys.exit(main())
