"""
JSON File Storage Implementation

DESIGN DECISION: Profiles are plain JSON documents because:
1. Users can open and fix them in any text editor
2. No database setup required
3. Amounts stored as decimal strings stay exact
4. Diffs between backups are readable

TRADEOFFS:
- The whole profile is rewritten on every save (fine for personal budgets)
- No locking: two processes saving the same file is last-writer-wins

Saves are atomic: the document is written to a temporary file in the same
directory, flushed to disk, and then renamed over the target. A crash at
any point leaves either the old or the new file, never a torn one.

Loads are forgiving: an entry that fails validation is skipped and reported
as a LoadIssue rather than making the whole profile unreadable.
"""

import json
import os
import tempfile
from contextlib import contextmanager
from decimal import Decimal
from pathlib import Path
from typing import IO, Any, Iterator, Optional, Union

import structlog
from pydantic import ValidationError
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from nixbucks.config import get_settings
from nixbucks.errors import (
    CorruptProfileError,
    InvalidAmountError,
    InvalidDateRangeError,
    ProfileNotFoundError,
    StorageIOError,
)
from nixbucks.models.audit import AuditEvent
from nixbucks.models.entry import Entry
from nixbucks.models.profile import LoadedProfile, LoadIssue, Profile
from nixbucks.services.storage.interface import (
    AuditStorageInterface,
    ProfileStorageInterface,
)


logger = structlog.get_logger(__name__)

# Everything model construction can raise for bad input
MODEL_ERRORS = (ValidationError, InvalidAmountError, InvalidDateRangeError)


def describe_model_error(error: Exception) -> str:
    """Flatten a validation failure into one readable line."""
    if isinstance(error, ValidationError):
        return "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'entry'}: {err['msg']}"
            for err in error.errors()
        )
    return str(error)


@contextmanager
def scoped_temp_file(target: Path) -> Iterator[tuple[IO[str], Path]]:
    """
    Open a temporary file next to ``target``.

    The file lives in the target's directory so the final rename never
    crosses filesystems. It is removed on every exit path; after a
    successful rename there is nothing left to remove.
    """
    fd, name = tempfile.mkstemp(
        prefix=f".{target.name}.",
        suffix=".tmp",
        dir=target.parent,
    )
    temp_path = Path(name)
    try:
        handle = os.fdopen(fd, "w", encoding="utf-8", newline="\n")
    except BaseException:
        os.close(fd)
        temp_path.unlink(missing_ok=True)
        raise
    try:
        yield handle, temp_path
    finally:
        handle.close()
        temp_path.unlink(missing_ok=True)


class JsonProfileStorage(ProfileStorageInterface):
    """Profile storage backed by one JSON document per profile."""

    def __init__(self, save_attempts: Optional[int] = None):
        """
        Args:
            save_attempts: How often to try the final rename when the
                target is locked (Windows virus scanners and editors
                briefly hold files open). Defaults to configuration.
        """
        self._save_attempts = save_attempts or get_settings().storage.save_attempts

    # -------------------------------------------------------------------------
    # Reading
    # -------------------------------------------------------------------------

    def load(self, path: Union[str, Path]) -> LoadedProfile:
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise ProfileNotFoundError(f"No profile at {path}")
        except UnicodeDecodeError as e:
            raise CorruptProfileError(f"{path} is not UTF-8 text: {e}") from e
        except OSError as e:
            raise StorageIOError(f"Could not read {path}: {e}") from e

        try:
            # Decimal keeps hand-typed numbers like 9.99 exact
            document = json.loads(text, parse_float=Decimal)
        except json.JSONDecodeError as e:
            raise CorruptProfileError(f"{path} is not valid JSON: {e}") from e
        except RecursionError as e:
            raise CorruptProfileError(f"{path} is nested too deeply to read") from e

        loaded = self.from_document(document, default_name=path.stem)

        for issue in loaded.issues:
            logger.warning(
                "profile_entry_skipped",
                path=str(path),
                index=issue.index,
                entry_id=issue.entry_id,
                reason=issue.message,
            )
        logger.info(
            "profile_loaded",
            path=str(path),
            entry_count=len(loaded.profile.entries),
            skipped_count=len(loaded.issues),
        )
        return loaded

    def from_document(self, document: Any, default_name: str) -> LoadedProfile:
        """
        Build a profile from an already parsed JSON document.

        Raises:
            CorruptProfileError: If the document or its metadata is unusable
        """
        if not isinstance(document, dict):
            raise CorruptProfileError("Profile document must be a JSON object")

        raw_entries = document.get("entries", [])
        if raw_entries is None:
            raw_entries = []
        if not isinstance(raw_entries, list):
            raise CorruptProfileError("'entries' must be a list")

        header = {key: value for key, value in document.items() if key != "entries"}
        if not header.get("name"):
            header["name"] = default_name

        try:
            profile = Profile.model_validate(header)
        except MODEL_ERRORS as e:
            raise CorruptProfileError(
                f"Invalid profile metadata: {describe_model_error(e)}"
            ) from e

        issues = []
        for index, raw in enumerate(raw_entries):
            raw_id = raw.get("id") if isinstance(raw, dict) else None
            raw_id = None if raw_id is None else str(raw_id)

            try:
                entry = Entry.model_validate(raw)
            except MODEL_ERRORS as e:
                issues.append(LoadIssue(
                    index=index,
                    entry_id=raw_id,
                    message=describe_model_error(e),
                ))
                continue

            if profile.has_entry(entry.id):
                issues.append(LoadIssue(
                    index=index,
                    entry_id=raw_id,
                    message=f"Duplicate entry id {entry.id}",
                ))
                continue

            profile.entries.append(entry)

        return LoadedProfile(profile=profile, issues=issues)

    # -------------------------------------------------------------------------
    # Writing
    # -------------------------------------------------------------------------

    @staticmethod
    def dumps(profile: Profile) -> str:
        """Serialize to the on-disk text form."""
        return json.dumps(
            profile.model_dump(mode="json"),
            indent=2,
            ensure_ascii=False,
        ) + "\n"

    def save(self, profile: Profile, path: Union[str, Path]) -> None:
        path = Path(path)
        payload = self.dumps(profile)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with scoped_temp_file(path) as (handle, temp_path):
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
                handle.close()
                self._replace(temp_path, path)
        except OSError as e:
            logger.error("profile_save_failed", path=str(path), error=str(e))
            raise StorageIOError(f"Could not save profile to {path}: {e}") from e

        logger.info(
            "profile_saved",
            path=str(path),
            entry_count=len(profile.entries),
        )

    def _replace(self, source: Path, target: Path) -> None:
        for attempt in Retrying(
            stop=stop_after_attempt(self._save_attempts),
            wait=wait_exponential(multiplier=0.05, max=1),
            retry=retry_if_exception_type(PermissionError),
            reraise=True,
        ):
            with attempt:
                os.replace(source, target)

    # -------------------------------------------------------------------------
    # Housekeeping
    # -------------------------------------------------------------------------

    def exists(self, path: Union[str, Path]) -> bool:
        return Path(path).is_file()

    def delete(self, path: Union[str, Path]) -> None:
        path = Path(path)
        try:
            path.unlink()
        except FileNotFoundError:
            raise ProfileNotFoundError(f"No profile at {path}")
        except OSError as e:
            raise StorageIOError(f"Could not delete {path}: {e}") from e
        logger.info("profile_deleted", path=str(path))


class JsonLinesAuditStorage(AuditStorageInterface):
    """
    Audit trail stored as one JSON object per line.

    Appending a line is cheap and never rewrites earlier events.
    """

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def append_event(self, event: AuditEvent) -> bool:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8", newline="\n") as handle:
                handle.write(event.to_json_line() + "\n")
        except OSError as e:
            raise StorageIOError(f"Could not append to {self._path}: {e}") from e
        return True

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        try:
            lines = self._path.read_text(encoding="utf-8").splitlines()
        except FileNotFoundError:
            return []
        except OSError as e:
            raise StorageIOError(f"Could not read {self._path}: {e}") from e

        events = []
        for line in reversed(lines):
            if len(events) >= limit:
                break
            if not line.strip():
                continue
            try:
                events.append(AuditEvent.model_validate(json.loads(line)))
            except (json.JSONDecodeError, ValidationError) as e:
                logger.warning(
                    "audit_line_unreadable",
                    path=str(self._path),
                    error=str(e),
                )
        return events
