"""Profile catalog - bundled defaults merged with the user's profile directory.

Bundled profiles ship as YAML inside the proman.profiles package and must
parse; a broken bundled profile is a ConfigError. User profiles are read from
the profiles directory in sorted file-name order; malformed ones are skipped
with a warning.

Profiles are deduplicated by language: user profiles replace bundled ones,
and among user files the last one in file-name order wins. The result is
sorted by language, so two loads of the same sources are always identical.
"""

from __future__ import annotations

from importlib import resources
from pathlib import Path

import yaml

from proman.core.errors import CatalogEmptyError, ConfigError, ProfileError
from proman.core.logging import get_logger
from proman.core.profile import Profile

log = get_logger(__name__)

PROFILE_SUFFIXES = (".yaml", ".yml")


def ensure_profiles_dir(path: Path) -> Path:
    """Create the user profile directory if it does not exist yet."""
    path = path.expanduser()
    if not path.exists():
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigError(
                f"Could not create the profile directory {path}: {e}",
                "Set profiles_dir to a writable location",
            ) from e
        log.verbose(f"Created profile directory: {path}")
    return path


def load_default_profiles() -> list[Profile]:
    """Parse the profiles bundled with proman.

    Raises:
        ConfigError: If a bundled profile is malformed
    """
    profiles: list[Profile] = []
    root = resources.files("proman.profiles")
    for entry in sorted(root.iterdir(), key=lambda e: e.name):
        if not entry.name.endswith(PROFILE_SUFFIXES):
            continue
        source = f"<bundled>/{entry.name}"
        try:
            data = yaml.safe_load(entry.read_text(encoding="utf-8"))
            profiles.append(Profile.from_mapping(data, source))
        except (yaml.YAMLError, ProfileError) as e:
            raise ConfigError(f"Could not parse default profiles: {e}") from e
    return profiles


def load_profile_file(path: Path) -> Profile:
    """Parse a single profile YAML file.

    Raises:
        ProfileError: If the file is unreadable or malformed
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, UnicodeDecodeError) as e:
        raise ProfileError(str(path), f"cannot read file: {e}") from e
    except yaml.YAMLError as e:
        raise ProfileError(str(path), f"invalid YAML: {e}") from e
    return Profile.from_mapping(data, str(path))


def load_user_profiles(profiles_dir: Path) -> list[Profile]:
    """Parse every profile file in profiles_dir, skipping malformed ones."""
    if not profiles_dir.is_dir():
        return []

    profiles: list[Profile] = []
    for path in sorted(profiles_dir.iterdir(), key=lambda p: p.name):
        if path.is_dir() or path.suffix.lower() not in PROFILE_SUFFIXES:
            continue
        try:
            profiles.append(load_profile_file(path))
        except ProfileError as e:
            log.warning(f"Skipping profile {path.name}: {e.problem}")
    return profiles


def load_catalog(
    profiles_dir: Path | None = None,
    *,
    include_defaults: bool = True,
) -> list[Profile]:
    """Load, merge and sort all profiles.

    Args:
        profiles_dir: User profile directory (created if missing); None skips it
        include_defaults: Whether to include the bundled profiles

    Returns:
        Profiles sorted by language, one per language

    Raises:
        ConfigError: If a bundled profile is broken
        CatalogEmptyError: If no profile could be loaded from any source
    """
    by_language: dict[str, Profile] = {}

    if include_defaults:
        for profile in load_default_profiles():
            by_language[profile.language] = profile

    if profiles_dir is not None:
        user_dir = ensure_profiles_dir(profiles_dir)
        for profile in load_user_profiles(user_dir):
            if profile.language in by_language:
                log.debug(f"User profile overrides '{profile.language}'")
            by_language[profile.language] = profile

    if not by_language:
        raise CatalogEmptyError(str(profiles_dir) if profiles_dir else "the profile directory")

    catalog = sorted(by_language.values())
    log.debug(f"Catalog: {', '.join(p.language for p in catalog)}")
    return catalog


def find_profile(catalog: list[Profile], language: str) -> Profile | None:
    wanted = language.strip().lower()
    for profile in catalog:
        if profile.language.lower() == wanted:
            return profile
    return None
