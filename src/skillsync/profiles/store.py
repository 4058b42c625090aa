import logging
import shutil
import time
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Dict, Optional, Union

from ..domain.errors import ProfileImageError, ValidationError
from ..domain.models import ProfileDetails
from ..observers import Observable
from ..storage.kv import KeyValueStore

logger = logging.getLogger(__name__)

PROFILE_NAMESPACE = "local_user_data"
PLACEHOLDER_IMAGE_REF = "asset://profile_placeholder.png"

DEFAULT_NAME = "User"
DEFAULT_AGE = "N/A"
DEFAULT_SKILLS = "Beginner"
DEFAULT_LOCATION = "Unknown"


class ProfileField(str, Enum):
    NAME = "name"
    AGE = "age"
    SKILLS = "skills"
    LOCATION = "location"
    PROFILE_IMAGE = "profile_image_ref"


# storage keys are shared with existing installs, do not rename
STORAGE_KEYS: Dict[ProfileField, str] = {
    ProfileField.NAME: "user_name_detail",
    ProfileField.AGE: "user_age_detail",
    ProfileField.SKILLS: "user_skills_detail",
    ProfileField.LOCATION: "user_location_detail",
    ProfileField.PROFILE_IMAGE: "profile_image_uri",
}


def validate_age(age: Optional[str]) -> None:
    """
    check an age entered by the user.

    raises:
        ValidationError: if age is neither blank nor a whole number
    """
    if age and age.strip() and not age.strip().isdigit():
        raise ValidationError("Age must be a valid number.")


class ProfileStore:
    """durable, observable profile attributes and profile image."""

    def __init__(self, kv: KeyValueStore, images_dir: Path):
        self.kv = kv
        self.images_dir = images_dir
        self.changes: Observable[ProfileDetails] = Observable()
        self._last_image_stamp = 0

        stored = kv.load()
        self._details = ProfileDetails(
            **{field.value: stored.get(key) for field, key in STORAGE_KEYS.items()}
        )

    @classmethod
    def open(cls, data_dir: Path) -> "ProfileStore":
        """open the store kept under data_dir."""
        return cls(KeyValueStore(data_dir, PROFILE_NAMESPACE), data_dir / "images")

    @property
    def details(self) -> ProfileDetails:
        details = self._details.model_copy()
        details.profile_image_ref = self.profile_image_ref
        return details

    @property
    def profile_image_ref(self) -> str:
        ref = self._details.profile_image_ref
        if not ref or not ref.strip():
            return PLACEHOLDER_IMAGE_REF
        return ref

    def get(self, field: ProfileField) -> Optional[str]:
        field = ProfileField(field)
        if field == ProfileField.PROFILE_IMAGE:
            return self.profile_image_ref
        return getattr(self._details, field.value)

    def set_field(self, field: ProfileField, value: Optional[str]) -> None:
        """
        persist one field, update it in memory, then notify observers.

        raises:
            StorageError: if the value cannot be written. memory is left unchanged.
        """
        field = ProfileField(field)
        self.kv.put(STORAGE_KEYS[field], value)
        setattr(self._details, field.value, value)
        self.changes.publish(self.details)

    def save_all(self, name: Optional[str], age: str, skills: str, location: str) -> None:
        """write the four text fields one after another."""
        self.set_field(ProfileField.NAME, name)
        self.set_field(ProfileField.AGE, age)
        self.set_field(ProfileField.SKILLS, skills)
        self.set_field(ProfileField.LOCATION, location)
        logger.debug("local user details saved")

    def update_details(self, name: str, age: str, skills: str, location: str) -> None:
        """
        save edits made on the profile screen.

        raises:
            ValidationError: if age is not a number
        """
        validate_age(age)
        self.save_all(name, age, skills, location)

    def has_profile(self) -> bool:
        name = self._details.name
        return bool(name and name.strip())

    def ensure_default_profile(self, name: Optional[str] = None) -> bool:
        """
        write default details if no profile exists yet.

        returns:
            True if defaults were written
        """
        if self.has_profile():
            return False
        self.save_all(name or DEFAULT_NAME, DEFAULT_AGE, DEFAULT_SKILLS, DEFAULT_LOCATION)
        return True

    def save_profile_image(self, source: Union[str, Path, BinaryIO]) -> str:
        """
        copy an image into local storage and remember it as the profile image.

        args:
            source: path to the image, or a readable binary stream

        returns:
            file URI of the stored copy

        raises:
            ProfileImageError: if the source cannot be read, or the copy or
                the stored reference cannot be written
        """
        destination = None
        try:
            self.images_dir.mkdir(parents=True, exist_ok=True)
            destination = self.images_dir / f"profile_image_{self._next_image_stamp()}.jpg"
            while destination.exists():
                destination = self.images_dir / f"profile_image_{self._next_image_stamp()}.jpg"

            if isinstance(source, (str, Path)):
                with open(source, "rb") as src, open(destination, "wb") as dst:
                    shutil.copyfileobj(src, dst)
            else:
                with open(destination, "wb") as dst:
                    shutil.copyfileobj(source, dst)

            ref = destination.resolve().as_uri()
            self.set_field(ProfileField.PROFILE_IMAGE, ref)
        except Exception as e:
            logger.error(f"image save failed for {destination or self.images_dir}: {e}")
            if destination is not None:
                destination.unlink(missing_ok=True)
            raise ProfileImageError(f"could not save profile image: {e}") from e

        logger.debug(f"image saved to {ref}")
        return ref

    def _next_image_stamp(self) -> int:
        # millisecond timestamps, bumped when two saves land in the same millisecond
        stamp = max(int(time.time() * 1000), self._last_image_stamp + 1)
        self._last_image_stamp = stamp
        return stamp
