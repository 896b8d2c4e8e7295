# order_files/services/copy_engine.py

import os
import shutil
from typing import Callable, Iterable, List, Optional

from logger import get_logger
from services.name_normalizer import sanitize_file_name

log = get_logger("copy_engine")


def free_destination_path(desired: str) -> str:
    """
    Reserve desired, else name_1.ext, name_2.ext, ... (first free one).

    The name is claimed with an exclusive create, so a file that appears
    between picking a name and copying into it is never overwritten. The
    returned path exists as an empty file owned by the caller.
    """
    directory, leaf = os.path.split(desired)
    stem, ext = os.path.splitext(leaf)
    candidate = desired
    n = 0
    while True:
        try:
            with open(candidate, "xb"):
                pass
            return candidate
        except FileExistsError:
            n += 1
            candidate = os.path.join(directory, f"{stem}_{n}{ext}")


def copy_files(
    source_files: Iterable[str],
    destination_folder: str,
    warn: Optional[Callable[[str], None]] = None,
) -> List[str]:
    """
    Copy each source into destination_folder without ever overwriting.
    Failures are per file: logged, reported through warn, and skipped.
    Returns the destination paths actually written.
    """
    def _warn(msg: str) -> None:
        log.warning(msg)
        if warn:
            warn(msg)

    copied: List[str] = []
    for src in source_files or []:
        try:
            if not os.path.isfile(src):
                _warn(f"Source file no longer exists: {src}")
                continue

            desired = os.path.join(destination_folder, sanitize_file_name(os.path.basename(src)))
            final = free_destination_path(desired)
            if final != desired:
                _warn(f"{os.path.basename(desired)} already in {destination_folder}, copied as {os.path.basename(final)}")

            try:
                shutil.copy2(src, final)
            except OSError:
                # drop the empty placeholder claimed above
                os.remove(final)
                raise
            log.info(f"Copied {src} -> {final}")
            copied.append(final)

        except PermissionError as e:
            log.error(f"Permission denied copying {src}: {e}")
            _warn(f"Copy failed (permission) for {src}")
        except FileNotFoundError as e:
            log.error(f"Invalid destination {destination_folder} for {src}: {e}")
            _warn(f"Copy failed (destination missing) for {src}")
        except OSError as e:
            log.error(f"I/O error copying {src}: {e}")
            _warn(f"Copy failed (I/O) for {src}: {e}")

    return copied
