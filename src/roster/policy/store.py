"""On-disk persistence for the certificate-policy document.

Reads are validated; writes are atomic (temp file in the same
directory, ``fsync``, ``os.replace``).  Writers serialise through an
exclusive ``fcntl`` lock on a sibling ``.lock`` file so several Roster
processes can share one document.
"""

from __future__ import annotations

import contextlib
import fcntl
import json
import logging
import os
import stat
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Any

from jsonschema import ValidationError, validate

from roster.core.errors import PersistenceError, PolicyCorruptError
from roster.policy.models import DOCUMENT_SCHEMA

if TYPE_CHECKING:
    from collections.abc import Iterator

log = logging.getLogger(__name__)


class PolicyStore:
    """File-backed store for one policy document.

    Parameters
    ----------
    path:
        Location of the JSON document (e.g. ``greenlock.d/config.json``).

    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    @property
    def lock_path(self) -> Path:
        return self.path.with_name(self.path.name + ".lock")

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> dict[str, Any] | None:
        """Return the parsed document, or ``None`` when there is none yet.

        Raises
        ------
        PolicyCorruptError
            If the file is not UTF-8, not JSON, or not shaped like a
            policy document.

        """
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise PolicyCorruptError(self.path, exc.strerror or str(exc)) from exc

        def _reject_constant(name: str) -> Any:  # noqa: ANN401
            raise PolicyCorruptError(self.path, f"non-standard JSON constant {name}")

        try:
            data = json.loads(raw.decode("utf-8"), parse_constant=_reject_constant)
        except UnicodeDecodeError as exc:
            raise PolicyCorruptError(self.path, "not valid UTF-8") from exc
        except json.JSONDecodeError as exc:
            raise PolicyCorruptError(
                self.path,
                f"invalid JSON at line {exc.lineno} column {exc.colno}: {exc.msg}",
            ) from exc

        try:
            validate(instance=data, schema=DOCUMENT_SCHEMA)
        except ValidationError as exc:
            location = "/".join(str(p) for p in exc.absolute_path) or "<root>"
            raise PolicyCorruptError(
                self.path,
                f"{location}: {exc.message}",
            ) from exc
        return data

    def write(self, text: str) -> None:
        """Atomically replace the document with *text*.

        Raises
        ------
        PersistenceError
            If the directory cannot be created or the file written.

        """
        directory = self.path.parent
        tmp_path: str | None = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            mode = self._file_mode()
            fd, tmp_path = tempfile.mkstemp(
                dir=str(directory),
                prefix=f".{self.path.name}.",
                suffix=".tmp",
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                # mkstemp creates 0600
                os.fchmod(f.fileno(), mode)
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
            tmp_path = None
        except OSError as exc:
            raise PersistenceError(self.path, exc.strerror or str(exc)) from exc
        finally:
            if tmp_path is not None:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_path)

    def _file_mode(self) -> int:
        """Mode of the current document, or the umask default for a new one."""
        try:
            return stat.S_IMODE(self.path.stat().st_mode)
        except FileNotFoundError:
            umask = os.umask(0)
            os.umask(umask)
            return 0o666 & ~umask

    @contextlib.contextmanager
    def lock(self) -> Iterator[None]:
        """Hold an exclusive inter-process lock for a read-modify-write.

        Blocks until the lock is available.

        Raises
        ------
        PersistenceError
            If the lock file cannot be created.

        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fh = open(self.lock_path, "a")  # noqa: PTH123, SIM115
        except OSError as exc:
            raise PersistenceError(self.lock_path, exc.strerror or str(exc)) from exc
        try:
            fcntl.flock(fh.fileno(), fcntl.LOCK_EX)
            log.debug("Acquired policy lock %s", self.lock_path)
            yield
        finally:
            fcntl.flock(fh.fileno(), fcntl.LOCK_UN)
            fh.close()

    def __repr__(self) -> str:
        return f"<PolicyStore path={self.path}>"
