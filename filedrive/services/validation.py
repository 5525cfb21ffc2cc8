import re

from filedrive.core.errors import ValidationError

FOLDER_NAME_PATTERN = re.compile(r"^[A-Za-z0-9 _-]+$")
FILENAME_PATTERN = re.compile(r"^[A-Za-z0-9 ._-]+$")
MAX_NAME_LENGTH = 255


def require_id(value: object, label: str) -> str:
    if not value or not isinstance(value, str):
        raise ValidationError(f"A valid {label} is required.")
    return value


def require_optional_id(value: object, label: str) -> str | None:
    if value is None:
        return None
    return require_id(value, label)


def require_name(value: object, label: str) -> str:
    if not value or not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{label} must be a non-empty string.")
    return value


def clean_folder_name(value: object) -> str:
    name = require_name(value, "Folder name").strip()
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError(f"Folder name must be at most {MAX_NAME_LENGTH} characters.")
    if not FOLDER_NAME_PATTERN.match(name):
        raise ValidationError(
            "Folder name contains invalid characters. "
            "Only letters, numbers, spaces, dashes, and underscores are allowed."
        )
    return name


def clean_filename(value: object) -> str:
    name = require_name(value, "Filename").strip()
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError(f"Filename must be at most {MAX_NAME_LENGTH} characters.")
    if not FILENAME_PATTERN.match(name):
        raise ValidationError(
            "Filename contains invalid characters. "
            "Only letters, numbers, spaces, dashes, underscores, and dots are allowed."
        )
    return name
