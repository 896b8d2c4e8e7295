#models.py
import os
import threading
from dataclasses import dataclass, field, asdict
from typing import Optional, List, Dict, Tuple, Iterator


@dataclass(frozen=True)
class SapSession:
    session_id: str
    route_id: Optional[str] = None

    def cookie(self) -> str:
        if self.route_id:
            return f"B1SESSION={self.session_id}; ROUTEID={self.route_id}"
        return f"B1SESSION={self.session_id}"


@dataclass(frozen=True)
class OrderLine:
    item_code: str
    quantity: float = 0.0
    line_num: int = 0
    item_name: str = ""
    warehouse_code: Optional[str] = None
    extra_file_names: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Order:
    doc_entry: int
    number: int                # DocNum
    customer_code: str         # CardCode
    customer_name: str = ""
    project: Optional[str] = None
    lines: Tuple[OrderLine, ...] = ()


@dataclass(frozen=True)
class Component:
    item_code: str
    name: str = ""
    quantity: float = 0.0
    line_num: int = 0

    @classmethod
    def from_line(cls, line: OrderLine) -> "Component":
        return cls(line.item_code, line.item_name, line.quantity, line.line_num)


@dataclass(frozen=True)
class CandidateFile:
    path: str
    name: str      # leaf name, the dedupe key
    folder: str    # immediate parent folder name

    @classmethod
    def from_path(cls, path: str) -> "CandidateFile":
        full = os.path.abspath(path)
        return cls(
            path=full,
            name=os.path.basename(full),
            folder=os.path.basename(os.path.dirname(full)),
        )


@dataclass(frozen=True)
class ResolvedFileSet:
    files: Tuple[CandidateFile, ...] = ()

    def __post_init__(self):
        seen = set()
        for f in self.files:
            key = f.name.lower()
            if key in seen:
                raise ValueError(f"Duplicate leaf name in resolved set: {f.name}")
            seen.add(key)

    @property
    def paths(self) -> List[str]:
        return [f.path for f in self.files]

    def __iter__(self) -> Iterator[CandidateFile]:
        return iter(self.files)

    def __len__(self) -> int:
        return len(self.files)


@dataclass
class FileSettings:
    search_roots: List[str] = field(default_factory=list)
    pattern_template: str = "{ItemCode}*.*"
    destination_base_folder: str = ""
    client_folder_mappings: Dict[str, str] = field(default_factory=dict)
    default_client_folder: str = "Adotta Italia Srl"
    warehouse_prefix_mappings: Dict[str, str] = field(default_factory=dict)
    default_warehouse_prefix: str = "NA"
    search_root_timeout: Optional[float] = 120.0


@dataclass(frozen=True)
class ProcessingResult:
    success: bool
    order_number: int
    project: Optional[str]
    processed_lines: int
    processed_components: int
    copied_files: int
    errors: Tuple[str, ...]
    warning_messages: Tuple[str, ...]
    created_destination_folders: Tuple[str, ...]
    missing_component_item_codes: Tuple[str, ...]
    elapsed_ms: int

    def to_dict(self) -> dict:
        out = asdict(self)
        for k, v in out.items():
            if isinstance(v, tuple):
                out[k] = list(v)
        return out


class RunAccumulator:
    """
    Mutable result of one order run. Owned by a single OrderRun; the lock
    only guards appenders running on scan/copy worker threads.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.order_number = 0
        self.project: Optional[str] = None
        self.processed_lines = 0
        self.processed_components = 0
        self.copied_files = 0
        self.errors: List[str] = []
        self.warnings: List[str] = []
        self.folders: List[str] = []
        self.missing: List[str] = []

    def add_error(self, msg: str) -> None:
        with self._lock:
            self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        with self._lock:
            self.warnings.append(msg)

    def add_missing(self, item_code: str) -> None:
        with self._lock:
            self.missing.append(item_code)

    def add_folder(self, path: str) -> None:
        with self._lock:
            if path not in self.folders:
                self.folders.append(path)

    def add_copied(self, count: int) -> None:
        with self._lock:
            self.copied_files += count

    def snapshot(self, elapsed_ms: int) -> ProcessingResult:
        with self._lock:
            return ProcessingResult(
                success=not self.errors,
                order_number=self.order_number,
                project=self.project,
                processed_lines=self.processed_lines,
                processed_components=self.processed_components,
                copied_files=self.copied_files,
                errors=tuple(self.errors),
                warning_messages=tuple(self.warnings),
                created_destination_folders=tuple(self.folders),
                missing_component_item_codes=tuple(self.missing),
                elapsed_ms=int(elapsed_ms),
            )
