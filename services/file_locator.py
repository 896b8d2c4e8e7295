# order_files/services/file_locator.py

import os
import re
import threading
import time
from typing import Callable, Iterable, Iterator, List, Optional, Set

from logger import get_logger
from models import CandidateFile
from services.name_normalizer import sanitize_file_name, sanitize_pattern

log = get_logger("file_locator")

PLACEHOLDER = "{ItemCode}"
DEFAULT_PATTERN = PLACEHOLDER + "*.*"

Warn = Optional[Callable[[str], None]]


def _warn(warn: Warn, msg: str) -> None:
    log.warning(msg)
    if warn:
        warn(msg)


def build_matcher(search_key: str, pattern_template: str = DEFAULT_PATTERN) -> "re.Pattern[str]":
    """
    Case-insensitive, anchored regex for a wildcard template.
    Only * and ? are wildcards; everything else is literal.
    """
    template = pattern_template or DEFAULT_PATTERN
    pattern = template.replace(PLACEHOLDER, sanitize_pattern(search_key))
    escaped = re.escape(pattern).replace(r"\*", ".*").replace(r"\?", ".")
    return re.compile(f"^{escaped}$", re.IGNORECASE)


def iter_files(root: str, stop_event: Optional[threading.Event] = None) -> Iterator[str]:
    """Lazily walks root in sorted order. Unreadable directories raise OSError."""
    def _raise(err: OSError):
        raise err

    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
        if stop_event is not None and stop_event.is_set():
            return
        dirnames.sort()
        for name in sorted(filenames):
            yield os.path.join(dirpath, name)


def _scan_root(root: str, match: Callable[[str], bool], stop_event: threading.Event) -> List[CandidateFile]:
    out = []
    for path in iter_files(root, stop_event):
        if match(os.path.basename(path)):
            out.append(CandidateFile.from_path(path))
    return out


class _RootScan(threading.Thread):
    """Scans one root. Daemon, so a root stuck in an OS call never holds up exit."""

    def __init__(self, root: str, match: Callable[[str], bool]):
        super().__init__(name=f"scan:{root}", daemon=True)
        self.root = root
        self.match = match
        self.stop_event = threading.Event()
        self.found: List[CandidateFile] = []
        self.error: Optional[OSError] = None

    def run(self) -> None:
        try:
            self.found = _scan_root(self.root, self.match, self.stop_event)
        except OSError as e:
            self.error = e


def _scan_roots(
    search_roots: Iterable[str],
    match: Callable[[str], bool],
    label: str,
    warn: Warn = None,
    timeout: Optional[float] = None,
    unresponsive: Optional[Set[str]] = None,
) -> List[CandidateFile]:
    """
    unresponsive collects roots that timed out. Pass the same set to every
    lookup of a run and those roots are skipped instead of waited on again.
    """
    roots = []
    for root in search_roots or []:
        if not root or not str(root).strip():
            _warn(warn, "Empty search folder ignored")
            continue
        if unresponsive is not None and root in unresponsive:
            _warn(warn, f"Search folder skipped, timed out earlier in this run: {root}")
            continue
        if not os.path.isdir(root):
            _warn(warn, f"Search folder not found: {root}")
            continue
        roots.append(root)

    if not roots:
        return []

    scans = [_RootScan(root, match) for root in roots]
    for scan in scans:
        scan.start()
    deadline = time.monotonic() + timeout if timeout else None

    matches: List[CandidateFile] = []
    for scan in scans:
        remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
        scan.join(remaining)

        if scan.is_alive():
            scan.stop_event.set()
            if unresponsive is not None:
                unresponsive.add(scan.root)
            _warn(warn, f"Search folder timed out after {timeout}s, skipped: {scan.root}")
            continue
        if isinstance(scan.error, PermissionError):
            log.error(f"Permission denied on search folder {scan.root}: {scan.error}")
            _warn(warn, f"Search folder not readable, skipped: {scan.root}")
            continue
        if scan.error is not None:
            log.error(f"I/O error reading search folder {scan.root}: {scan.error}")
            _warn(warn, f"Search folder I/O error, skipped: {scan.root}")
            continue

        log.info(f"{label}: scanned {scan.root} ({len(scan.found)} matches)")
        matches.extend(scan.found)

    return matches


def locate(
    search_key: str,
    search_roots: Iterable[str],
    pattern_template: str = DEFAULT_PATTERN,
    warn: Warn = None,
    timeout: Optional[float] = None,
    unresponsive: Optional[Set[str]] = None,
) -> List[CandidateFile]:
    """
    Every file under every root whose leaf name matches the template with
    search_key substituted. Same-named files from different roots are all
    returned; picking one is the duplicate resolver's job.
    """
    if not search_key:
        log.warning("Empty search key, nothing to locate")
        return []

    regex = build_matcher(search_key, pattern_template)
    label = f"pattern '{regex.pattern}'"
    return _scan_roots(search_roots, lambda name: bool(regex.match(name)), label, warn, timeout, unresponsive)


def locate_exact(
    file_names: Iterable[str],
    search_roots: Iterable[str],
    warn: Warn = None,
    timeout: Optional[float] = None,
    unresponsive: Optional[Set[str]] = None,
) -> List[CandidateFile]:
    """Files whose leaf name equals one of file_names (case-insensitive)."""
    wanted = {}
    for n in file_names or []:
        if n and n.strip():
            wanted[sanitize_file_name(n.strip()).lower()] = n.strip()
    if not wanted:
        return []

    found = _scan_roots(
        search_roots,
        lambda name: name.lower() in wanted,
        f"exact names {sorted(wanted.values())}",
        warn,
        timeout,
        unresponsive,
    )

    seen = {c.name.lower() for c in found}
    for key, original in wanted.items():
        if key not in seen:
            _warn(warn, f"Extra file '{original}' not found in search folders")
    return found


def validate_search_roots(search_roots: Iterable[str]) -> List[str]:
    roots = list(search_roots or [])
    if not roots:
        return ["No search folders configured"]

    problems = []
    for root in roots:
        if not root or not str(root).strip():
            problems.append("Empty search folder configured")
        elif not os.path.isdir(root):
            problems.append(f"Search folder not found: {root}")
    return problems
