"""Tests for adapter profile persistence."""

import json

import pytest
from pydantic import ValidationError

from pyobdcore.configs import AdapterProfile, ProfileError, ProfileNotFoundError, ProfileService
from pyobdcore.protocol.constants import DEFAULT_COMMAND_TIMEOUT, DEFAULT_RETRIES


@pytest.fixture
def service(tmp_path):
    return ProfileService(tmp_path / "profiles")


class TestAdapterProfile:
    def test_defaults(self):
        profile = AdapterProfile(name="Civic", adapter_port="/dev/rfcomm0")
        assert profile.baudrate == 38400
        assert profile.command_timeout == DEFAULT_COMMAND_TIMEOUT
        assert profile.max_retries == DEFAULT_RETRIES
        assert profile.initialize is True

    @pytest.mark.parametrize(
        "field, value",
        [("command_timeout", 0.0), ("max_retries", -1), ("polling_interval", 0.01), ("baudrate", 0)],
    )
    def test_rejects_invalid_values(self, field, value):
        with pytest.raises(ValidationError):
            AdapterProfile(name="Civic", adapter_port="/dev/rfcomm0", **{field: value})


class TestProfileService:
    def test_create_and_load(self, service):
        created = service.create_profile(
            name="Family Wagon",
            adapter_port="/dev/ttyUSB0",
            command_timeout=4.5,
            metadata={"make": "Volvo"},
        )
        loaded = service.load_profile("Family Wagon")

        assert loaded == created
        assert loaded.command_timeout == 4.5
        assert loaded.metadata == {"make": "Volvo"}
        assert loaded.created_at is not None

    def test_file_name_is_slugified(self, service, tmp_path):
        path = service.save_profile(AdapterProfile(name="  My Car #2 ", adapter_port="COM3"))
        assert path == tmp_path / "profiles" / "my-car-2.json"
        assert json.loads(path.read_text())["adapter_port"] == "COM3"

    def test_list_profiles_sorted_by_name(self, service):
        service.save_profile(AdapterProfile(name="zeta", adapter_port="a"))
        service.save_profile(AdapterProfile(name="Alpha", adapter_port="b"))
        assert service.list_profile_names() == ["Alpha", "zeta"]

    def test_invalid_files_are_skipped(self, service, tmp_path):
        service.save_profile(AdapterProfile(name="good", adapter_port="a"))
        (tmp_path / "profiles" / "broken.json").write_text('{"name": "broken"}')
        assert service.list_profile_names() == ["good"]

    def test_load_missing_profile(self, service):
        with pytest.raises(ProfileNotFoundError):
            service.load_profile("nope")

    def test_load_invalid_profile(self, service, tmp_path):
        (tmp_path / "profiles" / "broken.json").write_text('{"name": "broken"}')
        with pytest.raises(ProfileError):
            service.load_profile("broken")

    def test_create_invalid_profile(self, service):
        with pytest.raises(ProfileError):
            service.create_profile(name="bad", command_timeout=-1)

    def test_delete(self, service):
        service.create_profile(name="temp")
        service.delete_profile("temp")
        service.delete_profile("temp")
        assert service.list_profiles() == []

    def test_default_profile_is_not_saved(self, service):
        profile = service.default_profile("/dev/rfcomm1")
        assert profile.adapter_port == "/dev/rfcomm1"
        assert service.list_profiles() == []
