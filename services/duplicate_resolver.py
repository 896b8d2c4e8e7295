# order_files/services/duplicate_resolver.py

from typing import Callable, Dict, Iterable, List, Optional

from logger import get_logger
from models import CandidateFile, ResolvedFileSet

log = get_logger("duplicate_resolver")


def group_by_name(candidates: Iterable[CandidateFile]) -> Dict[str, List[CandidateFile]]:
    # insertion order == first time a leaf name was seen
    groups: Dict[str, List[CandidateFile]] = {}
    for c in candidates:
        groups.setdefault(c.name.lower(), []).append(c)
    return groups


def select_by_folder(
    duplicates: List[CandidateFile],
    group_key: str,
    warn: Optional[Callable[[str], None]] = None,
) -> CandidateFile:
    """
    Pick one of several same-named files by how well its parent folder
    matches the item's group key: exact, contains, starts-with, else first.
    """
    key = (group_key or "").lower()

    if key:
        tiers = (
            ("exact", lambda folder: folder == key),
            ("partial", lambda folder: key in folder),
            ("leading", lambda folder: folder.startswith(key)),
        )
        for tier, test in tiers:
            for c in duplicates:
                folder = (c.folder or "").lower()
                if folder and test(folder):
                    log.info(f"Selected {c.path} by {tier} folder match on '{group_key}'")
                    return c

    chosen = duplicates[0]
    msg = (
        f"No folder matches prefix '{group_key}' for '{chosen.name}' "
        f"({len(duplicates)} copies), using {chosen.path}"
    )
    log.warning(msg)
    if warn:
        warn(msg)
    return chosen


def resolve(
    candidates: Iterable[CandidateFile],
    group_key: str,
    warn: Optional[Callable[[str], None]] = None,
) -> ResolvedFileSet:
    selected = []
    for name, group in group_by_name(candidates).items():
        if len(group) == 1:
            selected.append(group[0])
            continue
        winner = select_by_folder(group, group_key, warn)
        log.info(f"Duplicates for '{name}': {len(group)} found, selected {winner.path}")
        selected.append(winner)
    return ResolvedFileSet(tuple(selected))
