"""
Tests for device profile configuration.
"""

import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / 'tools'))

from device_profiles import DeviceProfiles, ProfileError, load_profiles
from frame_decoder import LayoutVersion


class TestDeviceProfiles:

    @pytest.fixture
    def profiles(self):
        return DeviceProfiles.from_dict({
            'default_layout': 'v1',
            'ports': {10: 'v1', '11': 'v2'},
            'devices': {'70B3D57ED0000001': 'v2', '70b3d57ed0000002': 'v1'},
        })

    def test_device_wins_over_port(self, profiles):
        assert profiles.resolve(dev_eui='70B3D57ED0000001', fport=10) is LayoutVersion.V2
        assert profiles.resolve(dev_eui='70B3D57ED0000002', fport=11) is LayoutVersion.V1

    def test_dev_eui_normalized(self, profiles):
        assert profiles.resolve(dev_eui='70:b3:d5:7e:d0:00:00:01') is LayoutVersion.V2
        assert profiles.resolve(dev_eui='70-B3-D5-7E-D0-00-00-01') is LayoutVersion.V2

    def test_port_lookup(self, profiles):
        assert profiles.resolve(fport=11) is LayoutVersion.V2
        assert profiles.resolve(dev_eui='0000000000000000', fport=11) is LayoutVersion.V2

    def test_default(self, profiles):
        assert profiles.resolve() is LayoutVersion.V1
        assert profiles.resolve(fport=99) is LayoutVersion.V1

    def test_no_match_without_default(self):
        profiles = DeviceProfiles.from_dict({'ports': {10: 'v2'}})

        with pytest.raises(ProfileError, match='no default_layout'):
            profiles.resolve(fport=12)

    def test_empty_document(self):
        profiles = DeviceProfiles.from_dict(None)

        assert profiles.default_layout is None
        assert profiles.ports == {}
        assert profiles.devices == {}

    @pytest.mark.parametrize('doc,message', [
        ([], 'must be a mapping'),
        ({'default_layout': 'v7'}, 'default_layout'),
        ({'ports': {'abc': 'v1'}}, 'invalid fPort'),
        ({'ports': {0: 'v1'}}, 'out of range'),
        ({'ports': {10: 'v3'}}, 'ports.10'),
        ({'devices': {'70B3D57ED0000001': 'x'}}, 'devices.70B3D57ED0000001'),
    ])
    def test_invalid_documents(self, doc, message):
        with pytest.raises(ProfileError, match=message):
            DeviceProfiles.from_dict(doc)

    @pytest.mark.parametrize('dev_eui', [12, 10, 0x70B3D57ED0000001])
    def test_non_string_dev_eui_rejected(self, dev_eui):
        with pytest.raises(ProfileError, match='must be a quoted string'):
            DeviceProfiles.from_dict({'devices': {dev_eui: 'v2'}})

    @pytest.mark.parametrize('dev_eui', ['ABC', '70B3D57ED000000G', '70B3D57ED000000100', ''])
    def test_malformed_dev_eui_rejected(self, dev_eui):
        with pytest.raises(ProfileError, match='not 16 hex digits'):
            DeviceProfiles.from_dict({'devices': {dev_eui: 'v2'}})

    def test_profile_error_is_value_error(self):
        assert issubclass(ProfileError, ValueError)


class TestLoadProfiles:

    def test_example_file(self, profiles_path):
        profiles = load_profiles(profiles_path)

        assert profiles.default_layout is LayoutVersion.V1
        assert profiles.resolve(fport=11) is LayoutVersion.V2
        assert profiles.resolve(dev_eui='70B3D57ED0000001') is LayoutVersion.V2

    def test_missing_file(self, tmp_path):
        with pytest.raises(ProfileError, match='Cannot read'):
            load_profiles(tmp_path / 'missing.yaml')

    def test_bad_yaml(self, tmp_path):
        path = tmp_path / 'bad.yaml'
        path.write_text("ports: [\n")

        with pytest.raises(ProfileError, match='Invalid YAML'):
            load_profiles(path)

    def test_unquoted_numeric_dev_eui(self, tmp_path):
        # YAML reads this key as the octal int 10
        path = tmp_path / 'profiles.yaml'
        path.write_text("default_layout: v1\ndevices:\n  0000000000000012: v2\n")

        with pytest.raises(ProfileError, match='must be a quoted string'):
            load_profiles(path)

    def test_quoted_numeric_dev_eui(self, tmp_path):
        path = tmp_path / 'profiles.yaml'
        path.write_text("default_layout: v1\ndevices:\n  \"0000000000000012\": v2\n")

        profiles = load_profiles(path)

        assert profiles.resolve(dev_eui='0000000000000012') is LayoutVersion.V2

    def test_round_trip_from_file(self, tmp_path):
        path = tmp_path / 'profiles.yaml'
        path.write_text("default_layout: v2\nports:\n  5: v1\n")

        profiles = load_profiles(str(path))

        assert profiles.resolve(fport=5) is LayoutVersion.V1
        assert profiles.resolve(fport=6) is LayoutVersion.V2
