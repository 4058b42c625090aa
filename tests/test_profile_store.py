"""test suite for ProfileStore."""
import io
import json
import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from skillsync.domain.errors import ProfileImageError, StorageError, ValidationError
from skillsync.profiles.store import (
    PLACEHOLDER_IMAGE_REF,
    PROFILE_NAMESPACE,
    ProfileField,
    ProfileStore,
)


class _BrokenStream(io.RawIOBase):
    """yields some bytes, then fails mid-copy."""

    def __init__(self):
        self._sent = False

    def readable(self):
        return True

    def readinto(self, buffer):
        if not self._sent:
            self._sent = True
            buffer[:4] = b"abcd"
            return 4
        raise OSError("device disconnected")


class TestFields:
    def test_empty_store(self, profiles):
        details = profiles.details
        assert details.name is None
        assert details.age is None
        assert details.profile_image_ref == PLACEHOLDER_IMAGE_REF
        assert not profiles.has_profile()

    def test_set_then_get(self, profiles):
        profiles.set_field(ProfileField.SKILLS, "Kotlin, Python")
        assert profiles.get(ProfileField.SKILLS) == "Kotlin, Python"

    def test_accepts_field_names(self, profiles):
        profiles.set_field("location", "Lagos")
        assert profiles.get("location") == "Lagos"

    def test_values_survive_restart(self, profiles, temp_dir):
        profiles.set_field(ProfileField.NAME, "Ada")
        profiles.set_field(ProfileField.AGE, "36")

        reopened = ProfileStore.open(temp_dir)

        assert reopened.get(ProfileField.NAME) == "Ada"
        assert reopened.get(ProfileField.AGE) == "36"

    def test_uses_storage_keys(self, profiles, temp_dir):
        profiles.save_all("Ada", "36", "Python", "London")

        stored = json.loads((temp_dir / f"{PROFILE_NAMESPACE}.json").read_text())

        assert stored == {
            "user_name_detail": "Ada",
            "user_age_detail": "36",
            "user_skills_detail": "Python",
            "user_location_detail": "London",
        }

    def test_failed_write_leaves_memory_unchanged(self, profiles, monkeypatch):
        profiles.set_field(ProfileField.NAME, "Ada")
        seen = []
        profiles.changes.subscribe(seen.append)

        def refuse(key, value):
            raise StorageError("read-only disk")

        monkeypatch.setattr(profiles.kv, "put", refuse)

        with pytest.raises(StorageError):
            profiles.set_field(ProfileField.NAME, "Grace")

        assert profiles.get(ProfileField.NAME) == "Ada"
        assert seen == []

    def test_changes_are_published(self, profiles):
        seen = []
        profiles.changes.subscribe(seen.append)

        profiles.save_all("Ada", "36", "Python", "London")

        assert len(seen) == 4
        assert seen[-1].location == "London"
        assert seen[0].age is None


class TestDefaults:
    def test_ensure_default_profile(self, profiles):
        assert profiles.ensure_default_profile()

        details = profiles.details
        assert (details.name, details.age, details.skills, details.location) == (
            "User", "N/A", "Beginner", "Unknown"
        )

    def test_ensure_default_profile_with_name(self, profiles):
        profiles.ensure_default_profile("a@b.com")
        assert profiles.get(ProfileField.NAME) == "a@b.com"

    def test_existing_profile_is_kept(self, profiles):
        profiles.save_all("Ada", "36", "Python", "London")

        assert not profiles.ensure_default_profile()
        assert profiles.get(ProfileField.NAME) == "Ada"

    def test_blank_name_counts_as_missing(self, profiles):
        profiles.set_field(ProfileField.NAME, "  ")
        assert profiles.ensure_default_profile()

    def test_blank_image_reads_as_placeholder(self, profiles):
        profiles.set_field(ProfileField.PROFILE_IMAGE, " ")
        assert profiles.get(ProfileField.PROFILE_IMAGE) == PLACEHOLDER_IMAGE_REF


class TestUpdateDetails:
    @pytest.mark.parametrize("age", ["36", "", " 7 "])
    def test_valid_ages(self, profiles, age):
        profiles.update_details("Ada", age, "Python", "London")
        assert profiles.get(ProfileField.AGE) == age

    @pytest.mark.parametrize("age", ["thirty", "3.5", "-1"])
    def test_invalid_ages(self, profiles, age):
        with pytest.raises(ValidationError, match="Age must be a valid number"):
            profiles.update_details("Ada", age, "Python", "London")
        assert not profiles.has_profile()


class TestProfileImage:
    def test_copy_from_path(self, profiles, temp_dir):
        source = temp_dir / "photo.jpg"
        source.write_bytes(b"\xff\xd8image-bytes")

        ref = profiles.save_profile_image(source)

        assert ref.startswith("file://")
        assert profiles.get(ProfileField.PROFILE_IMAGE) == ref
        copies = list(profiles.images_dir.glob("profile_image_*.jpg"))
        assert len(copies) == 1
        assert copies[0].read_bytes() == b"\xff\xd8image-bytes"

    def test_copy_from_stream(self, profiles):
        profiles.save_profile_image(io.BytesIO(b"stream-bytes"))

        copies = list(profiles.images_dir.glob("profile_image_*.jpg"))
        assert copies[0].read_bytes() == b"stream-bytes"

    def test_each_save_gets_a_new_file(self, profiles):
        first = profiles.save_profile_image(io.BytesIO(b"one"))
        second = profiles.save_profile_image(io.BytesIO(b"two"))

        assert first != second
        assert profiles.profile_image_ref == second
        assert len(list(profiles.images_dir.iterdir())) == 2

    def test_reference_survives_restart(self, profiles, temp_dir):
        ref = profiles.save_profile_image(io.BytesIO(b"one"))
        assert ProfileStore.open(temp_dir).profile_image_ref == ref

    def test_missing_source(self, profiles, temp_dir):
        with pytest.raises(ProfileImageError):
            profiles.save_profile_image(temp_dir / "missing.jpg")
        assert profiles.profile_image_ref == PLACEHOLDER_IMAGE_REF

    def test_failed_copy_keeps_previous_image(self, profiles):
        previous = profiles.save_profile_image(io.BytesIO(b"good"))

        with pytest.raises(ProfileImageError):
            profiles.save_profile_image(_BrokenStream())

        assert profiles.profile_image_ref == previous
        # the partial copy is removed
        assert len(list(profiles.images_dir.iterdir())) == 1

    def test_image_error_is_an_os_error(self, profiles, temp_dir):
        with pytest.raises(OSError):
            profiles.save_profile_image(temp_dir / "missing.jpg")

    def test_images_dir_cannot_be_created(self, profiles, temp_dir):
        blocker = temp_dir / "not_a_dir"
        blocker.write_text("")
        profiles.images_dir = blocker / "images"

        with pytest.raises(ProfileImageError):
            profiles.save_profile_image(io.BytesIO(b"bytes"))

        assert profiles.profile_image_ref == PLACEHOLDER_IMAGE_REF

    def test_failed_reference_write_removes_copy(self, profiles, monkeypatch):
        previous = profiles.save_profile_image(io.BytesIO(b"good"))

        def refuse(key, value):
            raise StorageError("read-only disk")

        monkeypatch.setattr(profiles.kv, "put", refuse)

        with pytest.raises(ProfileImageError):
            profiles.save_profile_image(io.BytesIO(b"new"))

        assert profiles.profile_image_ref == previous
        assert [p.resolve().as_uri() for p in profiles.images_dir.iterdir()] == [previous]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
