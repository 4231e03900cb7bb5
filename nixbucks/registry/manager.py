"""
Profile Registry

Knows which profiles exist and where their files live. It holds paths only;
profiles are loaded on demand by whoever asks for them.

DESIGN DECISION: The registry is an ordinary object constructed at start-up
and handed to the session, not a module-level singleton. Tests build one
per temporary directory.

Layout of the data directory:
    profiles.json       index: {"profiles": {name: file_name}}
    <file_name>.json    one document per profile
    audit.jsonl         audit trail (see nixbucks.audit)

The index is derived data. When it is missing or unreadable, scanning the
directory rebuilds it from the profile files themselves.
"""

import json
import os
import re
from pathlib import Path
from typing import Optional, Union

import structlog
from pydantic import BaseModel, Field, ValidationError

from nixbucks.audit import AuditLogger
from nixbucks.config import StorageSettings, get_settings
from nixbucks.errors import (
    DuplicateProfileError,
    InvalidProfileNameError,
    ProfileNotFoundError,
    StorageIOError,
)
from nixbucks.models.amount import Amount
from nixbucks.models.profile import LoadedProfile, Profile
from nixbucks.services.storage import (
    JsonProfileStorage,
    ProfileStorageInterface,
    scoped_temp_file,
)


logger = structlog.get_logger(__name__)

_UNSAFE_FILE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def _is_bare_file_name(file_name: str) -> bool:
    """True for a plain file name with no directory part."""
    return (
        file_name not in ("", ".", "..")
        and "/" not in file_name
        and "\\" not in file_name
        and Path(file_name).name == file_name
    )


def _invalid_name(name: str, error: ValidationError) -> InvalidProfileNameError:
    reasons = "; ".join(err["msg"] for err in error.errors())
    return InvalidProfileNameError(f"Invalid profile name {name!r}: {reasons}")


class RegistryIndex(BaseModel):
    """On-disk shape of the index file."""

    profiles: dict[str, str] = Field(default_factory=dict)


class ProfileRegistry:
    """
    Mapping from profile name to profile file.

    Call scan() once at start-up; create/rename/delete keep the mapping
    and the index file current afterwards.
    """

    def __init__(
        self,
        directory: Optional[Union[str, Path]] = None,
        storage: Optional[ProfileStorageInterface] = None,
        settings: Optional[StorageSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
        default_profile_name: Optional[str] = None,
    ):
        """
        Args:
            directory: Data directory. Defaults to the configured or
                per-user platform directory.
            storage: Profile storage. Defaults to JSON files.
            settings: Storage settings. Defaults to the cached settings.
            audit_logger: Optional audit trail for lifecycle events.
            default_profile_name: Name opened when none is chosen.
        """
        self._settings = settings or get_settings().storage
        self._directory = (
            Path(directory) if directory is not None
            else self._settings.resolved_data_dir
        )
        self._storage = storage or JsonProfileStorage(
            save_attempts=self._settings.save_attempts
        )
        self._audit = audit_logger
        self._default_name = default_profile_name or get_settings().app.default_profile_name
        self._paths: dict[str, Path] = {}

    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def index_path(self) -> Path:
        return self._directory / self._settings.index_file_name

    @property
    def storage(self) -> ProfileStorageInterface:
        return self._storage

    # -------------------------------------------------------------------------
    # Discovery
    # -------------------------------------------------------------------------

    def scan(self) -> set[str]:
        """
        Rebuild the name -> path mapping from the index and the directory.

        Index entries whose file has vanished are dropped. Profile files the
        index does not know about are registered under their file stem.

        Returns:
            The names now registered
        """
        paths: dict[str, Path] = {}

        for name, file_name in self._read_index().items():
            if not _is_bare_file_name(file_name):
                logger.warning("profile_path_rejected", profile=name, file_name=file_name)
                continue
            path = self._directory / file_name
            if path.is_file():
                paths[name] = path
            else:
                logger.warning("profile_file_missing", profile=name, path=str(path))

        known = set(paths.values())
        if self._directory.is_dir():
            for path in sorted(self._directory.glob(f"*{self._settings.profile_suffix}")):
                if path == self.index_path or path in known or not path.is_file():
                    continue
                if path.stem in paths:
                    logger.warning(
                        "profile_name_conflict",
                        profile=path.stem,
                        path=str(path),
                    )
                    continue
                paths[path.stem] = path

        self._paths = paths
        logger.info("registry_scanned", directory=str(self._directory), count=len(paths))
        return set(paths)

    def list_profiles(self) -> set[str]:
        return set(self._paths)

    def __contains__(self, name: str) -> bool:
        return name in self._paths

    def path_for(self, name: str) -> Path:
        """
        Raises:
            ProfileNotFoundError: If no profile is registered under ``name``
        """
        try:
            return self._paths[name]
        except KeyError:
            raise ProfileNotFoundError(f"Unknown profile: {name}")

    def default_profile_path(self) -> Path:
        """
        File of the default profile inside the per-user data directory.

        The path is returned whether or not the profile exists yet.
        """
        if self._default_name in self._paths:
            return self._paths[self._default_name]
        return self._directory / self._file_name_for(self._default_name)

    @property
    def default_profile_name(self) -> str:
        return self._default_name

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def open_profile(self, name: str) -> LoadedProfile:
        return self._storage.load(self.path_for(name))

    def create_profile(
        self,
        name: str,
        initial_balance: Optional[Amount] = None,
    ) -> Profile:
        """
        Create, persist and register an empty profile.

        Raises:
            DuplicateProfileError: If the name is already registered
            StorageIOError: If the file cannot be written
        """
        try:
            profile = Profile(
                name=name,
                initial_balance=initial_balance or Amount.zero(),
            )
        except ValidationError as e:
            raise _invalid_name(name, e) from e
        if profile.name in self._paths:
            raise DuplicateProfileError(f"Profile already exists: {profile.name}")

        path = self._directory / self._file_name_for(profile.name)
        self._storage.save(profile, path)
        self._paths[profile.name] = path
        self._write_index()

        if self._audit:
            self._audit.log_profile_created(profile.name, str(path))
        return profile

    def rename_profile(self, old_name: str, new_name: str) -> Profile:
        """
        Change a profile's display name. The file keeps its location.

        Entries skipped while loading are not written back.

        Raises:
            ProfileNotFoundError: If ``old_name`` is not registered
            DuplicateProfileError: If ``new_name`` is taken
        """
        path = self.path_for(old_name)
        loaded = self._storage.load(path)
        try:
            renamed = Profile.model_validate({**loaded.profile.model_dump(), "name": new_name})
        except ValidationError as e:
            raise _invalid_name(new_name, e) from e
        if renamed.name in self._paths and renamed.name != old_name:
            raise DuplicateProfileError(f"Profile already exists: {renamed.name}")

        self._storage.save(renamed, path)
        del self._paths[old_name]
        self._paths[renamed.name] = path
        self._write_index()

        if self._audit:
            self._audit.log_profile_renamed(old_name, renamed.name)
        return renamed

    def delete_profile(self, name: str) -> None:
        """
        Remove a profile file and forget it.

        Raises:
            ProfileNotFoundError: If ``name`` is not registered
        """
        path = self.path_for(name)
        try:
            self._storage.delete(path)
        except ProfileNotFoundError:
            logger.warning("profile_already_gone", profile=name, path=str(path))
        del self._paths[name]
        self._write_index()

        if self._audit:
            self._audit.log_profile_deleted(name)

    # -------------------------------------------------------------------------
    # Index file
    # -------------------------------------------------------------------------

    def _file_name_for(self, name: str) -> str:
        stem = _UNSAFE_FILE_CHARS.sub("-", name).strip("-.") or "profile"
        suffix = self._settings.profile_suffix
        taken = {path.name for path in self._paths.values()}
        taken.add(self._settings.index_file_name)

        candidate = f"{stem}{suffix}"
        counter = 2
        while candidate in taken or (self._directory / candidate).exists():
            candidate = f"{stem}-{counter}{suffix}"
            counter += 1
        return candidate

    def _read_index(self) -> dict[str, str]:
        try:
            text = self.index_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            raise StorageIOError(f"Could not read {self.index_path}: {e}") from e

        try:
            return RegistryIndex.model_validate(json.loads(text)).profiles
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning(
                "registry_index_unreadable",
                path=str(self.index_path),
                error=str(e),
            )
            return {}

    def _write_index(self) -> None:
        index = RegistryIndex(
            profiles={name: path.name for name, path in sorted(self._paths.items())}
        )
        payload = json.dumps(index.model_dump(), indent=2, ensure_ascii=False) + "\n"
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            with scoped_temp_file(self.index_path) as (handle, temp_path):
                handle.write(payload)
                handle.close()
                os.replace(temp_path, self.index_path)
        except OSError as e:
            raise StorageIOError(f"Could not write {self.index_path}: {e}") from e
