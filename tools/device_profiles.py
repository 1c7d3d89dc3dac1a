#!/usr/bin/env python3
"""
device_profiles.py - Per-device frame layout configuration

The uplink frame has no version tag, so each deployment records which
layout its devices send. Profiles are plain YAML:

    default_layout: v1
    ports:
      10: v1
      11: v2
    devices:
      "70B3D57ED0000001": v2      # quote DevEUIs

Lookup order is DevEUI, then fPort, then default_layout.

Usage:
    from device_profiles import load_profiles

    profiles = load_profiles('profiles/example_profiles.yaml')
    layout = profiles.resolve(dev_eui='70b3d57ed0000001', fport=10)
"""

import re
import yaml
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, Optional, Union

from frame_decoder import LayoutVersion


class ProfileError(ValueError):
    """Invalid or unresolvable device profile configuration."""


def _normalize_eui(dev_eui: Any) -> str:
    return str(dev_eui).replace(':', '').replace('-', '').strip().upper()


DEV_EUI_RE = re.compile(r"[0-9A-F]{16}")


def _parse_dev_eui(key: Any) -> str:
    """Validate a DevEUI key from the devices section."""
    # Unquoted digit-only keys arrive as int (or octal) from YAML
    if not isinstance(key, str):
        raise ProfileError(
            f"devices: DevEUI {key!r} must be a quoted string, got {type(key).__name__}"
        )
    dev_eui = _normalize_eui(key)
    if not DEV_EUI_RE.fullmatch(dev_eui):
        raise ProfileError(f"devices: DevEUI {key!r} is not 16 hex digits")
    return dev_eui


def _parse_layout(value: Any, where: str) -> LayoutVersion:
    try:
        return LayoutVersion.parse(value)
    except ValueError as e:
        raise ProfileError(f"{where}: {e}") from None


@dataclass
class DeviceProfiles:
    """Layout assignments by device and by fPort."""
    default_layout: Optional[LayoutVersion] = None
    ports: Dict[int, LayoutVersion] = field(default_factory=dict)
    devices: Dict[str, LayoutVersion] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, doc: Any) -> 'DeviceProfiles':
        if doc is None:
            doc = {}
        if not isinstance(doc, dict):
            raise ProfileError(f"Profile document must be a mapping, got {type(doc).__name__}")

        default_layout = None
        if doc.get('default_layout') is not None:
            default_layout = _parse_layout(doc['default_layout'], 'default_layout')

        ports = {}
        for port, layout in (doc.get('ports') or {}).items():
            try:
                port_num = int(port)
            except (TypeError, ValueError):
                raise ProfileError(f"ports: invalid fPort {port!r}") from None
            if not 1 <= port_num <= 255:
                raise ProfileError(f"ports: fPort {port_num} out of range 1..255")
            ports[port_num] = _parse_layout(layout, f"ports.{port_num}")

        devices = {}
        for dev_eui, layout in (doc.get('devices') or {}).items():
            devices[_parse_dev_eui(dev_eui)] = _parse_layout(layout, f"devices.{dev_eui}")

        return cls(default_layout=default_layout, ports=ports, devices=devices)

    def resolve(self, dev_eui: Optional[str] = None,
                fport: Optional[int] = None) -> LayoutVersion:
        """Pick the layout for an uplink."""
        if dev_eui is not None:
            layout = self.devices.get(_normalize_eui(dev_eui))
            if layout is not None:
                return layout

        if fport is not None and int(fport) in self.ports:
            return self.ports[int(fport)]

        if self.default_layout is not None:
            return self.default_layout

        raise ProfileError(
            f"No layout for device {dev_eui} on fPort {fport} and no default_layout"
        )


def load_profiles(path: Union[str, Path]) -> DeviceProfiles:
    """Load device profiles from a YAML file."""
    path = Path(path)
    try:
        with open(path) as f:
            doc = yaml.safe_load(f)
    except OSError as e:
        raise ProfileError(f"Cannot read {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ProfileError(f"Invalid YAML in {path}: {e}") from e

    return DeviceProfiles.from_dict(doc)
