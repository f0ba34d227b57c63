"""
Ownership strategies — file owner/group/mode handling per platform.

Selected once at startup by select_ownership_strategy(): POSIX hosts get
PosixOwnership (pwd/grp lookups, chown, chmod); everything else gets
NullOwnership, whose operations succeed without touching the file.
"""

from __future__ import annotations

import os
from pathlib import Path

from railway import ErrorCode, ResultFailures
from railway.result import Result


class PosixOwnership:
    """Resolve names with pwd/grp and apply them with os.chown/os.chmod."""

    def resolve_ids(self, owner: str, group: str) -> Result[tuple[int | None, int | None]]:
        """
        Map owner/group names to numeric ids.

        Unspecified names fall back to the running process's uid/gid.
        Unknown names are PREPARATION_ERROR.
        """
        import grp
        import pwd

        if owner:
            try:
                uid = pwd.getpwnam(owner).pw_uid
            except KeyError as e:
                return ResultFailures.preparation_error(f"user lookup failed: {owner!r}", e)
        else:
            uid = os.getuid()

        if group:
            try:
                gid = grp.getgrnam(group).gr_gid
            except KeyError as e:
                return ResultFailures.preparation_error(f"group lookup failed: {group!r}", e)
        else:
            gid = os.getgid()

        return Result.success((uid, gid))

    def apply_ownership(self, path: Path, uid: int | None, gid: int | None) -> Result[Path]:
        return Result.from_computation(
            lambda: _chown(path, uid, gid),
            ErrorCode.REPLACE_ERROR,
            "temporary file chown failed",
        )

    def apply_mode(self, path: Path, mode: int) -> Result[Path]:
        return Result.from_computation(
            lambda: _chmod(path, mode),
            ErrorCode.REPLACE_ERROR,
            "temporary file chmod failed",
        )


class NullOwnership:
    """Platforms without POSIX ownership: ids stay None, files are left as created."""

    def resolve_ids(self, owner: str, group: str) -> Result[tuple[int | None, int | None]]:
        return Result.success((None, None))

    def apply_ownership(self, path: Path, uid: int | None, gid: int | None) -> Result[Path]:
        return Result.success(path)

    def apply_mode(self, path: Path, mode: int) -> Result[Path]:
        return Result.success(path)


def select_ownership_strategy() -> PosixOwnership | NullOwnership:
    if os.name == "posix" and hasattr(os, "chown"):
        return PosixOwnership()
    return NullOwnership()


def _chown(path: Path, uid: int | None, gid: int | None) -> Path:
    # -1 leaves the id unchanged
    os.chown(path, -1 if uid is None else uid, -1 if gid is None else gid)
    return path


def _chmod(path: Path, mode: int) -> Path:
    os.chmod(path, mode)
    return path
