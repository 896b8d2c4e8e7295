# order_files/app.py

import sys
import threading
import time
from enum import Enum
from typing import List, Optional, Set

import api
from config import ADMIN_EMAILS, file_settings
from emailer import send_email, result_summary_html
from exceptions import FatalRunError, ComponentError, NotFoundError
from logger import get_logger
from models import (
    Component,
    FileSettings,
    Order,
    OrderLine,
    ProcessingResult,
    RunAccumulator,
    SapSession,
)
from services.copy_engine import copy_files
from services.duplicate_resolver import resolve
from services.file_locator import locate, locate_exact, validate_search_roots
from services.folder_allocator import allocate
from services.name_normalizer import normalize, prefix

log = get_logger("app")


class RunState(str, Enum):
    IDLE = "IDLE"
    SESSION_OPEN = "SESSION_OPEN"
    ORDER_FETCHED = "ORDER_FETCHED"
    PER_LINE_PROCESSING = "PER_LINE_PROCESSING"
    FINALIZING = "FINALIZING"
    DONE = "DONE"


class OrderRun:
    """
    One end-to-end pass over one sales order.

    erp is anything exposing open_session / fetch_order / fetch_components /
    close_session (the api module by default). The session it returns lives
    on this run only and is passed explicitly to every call.

    Only a failed login, unusable search folders or a failed order fetch stop
    the run. Everything below that (folder, BOM, component, copy) is recorded
    on the result and the run moves on.
    """

    def __init__(
        self,
        doc_entry: int,
        erp=api,
        settings: Optional[FileSettings] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        self.doc_entry = doc_entry
        self.erp = erp
        self.settings = settings or file_settings()
        self.cancel_event = cancel_event
        self.result = RunAccumulator()
        self.session: Optional[SapSession] = None
        self.order: Optional[Order] = None
        self.state = RunState.IDLE
        self.history: List[RunState] = [RunState.IDLE]
        # roots that timed out once are not waited on again this run
        self.unresponsive_roots: Set[str] = set()

    def _enter(self, state: RunState) -> None:
        log.debug(f"DocEntry {self.doc_entry}: {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    # ------------------------------------------------------------
    # RUN
    # ------------------------------------------------------------
    def run(self) -> ProcessingResult:
        started = time.monotonic()
        log.info(f"===== ORDER START: DocEntry {self.doc_entry} =====")

        try:
            self._open_session()
            self._fetch_order()
            self._process_lines()
        except FatalRunError as e:
            log.error(f"DocEntry {self.doc_entry} aborted at {self.state.value}: {e}")
            self.result.add_error(str(e))
        except Exception as e:
            log.exception(f"Unexpected error processing DocEntry {self.doc_entry}")
            self.result.add_error(f"Unexpected error processing DocEntry {self.doc_entry}: {e}")
        finally:
            self._enter(RunState.FINALIZING)
            self._close_session()

        elapsed_ms = int((time.monotonic() - started) * 1000)
        snapshot = self.result.snapshot(elapsed_ms)
        self._enter(RunState.DONE)

        log.info(
            f"===== ORDER END: DocEntry {self.doc_entry} | success={snapshot.success} "
            f"lines={snapshot.processed_lines} components={snapshot.processed_components} "
            f"files={snapshot.copied_files} errors={len(snapshot.errors)} "
            f"warnings={len(snapshot.warning_messages)} ({elapsed_ms} ms) ====="
        )
        return snapshot

    # ------------------------------------------------------------
    # IDLE -> SESSION_OPEN
    # ------------------------------------------------------------
    def _open_session(self) -> None:
        if isinstance(self.doc_entry, bool) or not isinstance(self.doc_entry, int) or self.doc_entry <= 0:
            raise FatalRunError(f"Invalid DocEntry: {self.doc_entry!r}")

        try:
            self.session = self.erp.open_session()
        except Exception as e:
            raise FatalRunError(f"Service Layer login failed: {e}") from e

        self._enter(RunState.SESSION_OPEN)

    # ------------------------------------------------------------
    # SESSION_OPEN -> ORDER_FETCHED
    # ------------------------------------------------------------
    def _fetch_order(self) -> None:
        problems = validate_search_roots(self.settings.search_roots)
        if problems:
            raise FatalRunError("Search folders not accessible: " + "; ".join(problems))

        try:
            order = self.erp.fetch_order(self.doc_entry, self.session)
        except NotFoundError as e:
            raise FatalRunError(f"Order DocEntry={self.doc_entry} not found") from e
        except Exception as e:
            raise FatalRunError(f"Failed fetching order DocEntry={self.doc_entry}: {e}") from e

        self.order = order
        self.result.order_number = order.number
        self.result.project = order.project
        self._enter(RunState.ORDER_FETCHED)

    # ------------------------------------------------------------
    # ORDER_FETCHED -> PER_LINE_PROCESSING
    # ------------------------------------------------------------
    def _process_lines(self) -> None:
        self._enter(RunState.PER_LINE_PROCESSING)
        lines = self.order.lines

        for idx, line in enumerate(lines):
            if self.cancel_event is not None and self.cancel_event.is_set():
                msg = f"Cancelled after {idx} of {len(lines)} order lines"
                log.warning(f"DocEntry {self.doc_entry}: {msg}")
                self.result.add_error(msg)
                break
            self._process_line(line)

    def _process_line(self, line: OrderLine) -> None:
        order = self.order
        log.info(f"DocNum {order.number} line {line.line_num}: {line.item_code} x {line.quantity}")

        try:
            folder = allocate(order.number, order.customer_code, order.project, line.warehouse_code, self.settings)
        except Exception as e:
            msg = f"Line {line.line_num} ({line.item_code}): destination folder not available: {e}"
            log.error(msg)
            self.result.add_error(msg)
            return

        self.result.add_folder(folder)

        if line.extra_file_names:
            self._copy_extra_files(line, folder)

        components = self._components_for(line)
        if components:
            log.info(f"Item {line.item_code}: {len(components)} BOM components")
            for component in components:
                self._process_component(component, folder)
        else:
            log.info(f"Item {line.item_code}: no BOM, processing the item itself")
            self._process_component(Component.from_line(line), folder)

        self.result.processed_lines += 1

    def _copy_extra_files(self, line: OrderLine, folder: str) -> None:
        warn = self.result.add_warning
        try:
            found = locate_exact(
                line.extra_file_names,
                self.settings.search_roots,
                warn=warn,
                timeout=self.settings.search_root_timeout,
                unresponsive=self.unresponsive_roots,
            )
            resolved = resolve(found, prefix(line.item_code), warn=warn)
            copied = copy_files(resolved.paths, folder, warn=warn)
            self.result.add_copied(len(copied))
        except Exception as e:
            msg = f"Line {line.line_num} ({line.item_code}): extra files copy failed: {e}"
            log.error(msg)
            self.result.add_error(msg)

    def _components_for(self, line: OrderLine) -> List[Component]:
        try:
            return list(self.erp.fetch_components(line.item_code, self.session))
        except Exception as e:
            err = ComponentError(f"BOM lookup failed for {line.item_code}: {e}", line.item_code)
            log.error(str(err))
            self.result.add_error(str(err))
            return []

    def _process_component(self, component: Component, folder: str) -> int:
        code = component.item_code
        warn = self.result.add_warning
        self.result.processed_components += 1

        try:
            key = normalize(code)
            candidates = locate(
                key,
                self.settings.search_roots,
                self.settings.pattern_template,
                warn=warn,
                timeout=self.settings.search_root_timeout,
                unresponsive=self.unresponsive_roots,
            )
            resolved = resolve(candidates, prefix(code), warn=warn)

            if not resolved:
                msg = f"Component {code}: no file found in search folders (key '{key}')"
                log.warning(msg)
                self.result.add_warning(msg)
                self.result.add_missing(code)
                return 0

            copied = copy_files(resolved.paths, folder, warn=warn)
            self.result.add_copied(len(copied))
            if not copied:
                raise ComponentError(f"Component {code}: none of {len(resolved)} files could be copied", code)

            log.info(f"Component {code}: {len(copied)}/{len(resolved)} files copied to {folder}")
            return len(copied)

        except ComponentError as e:
            log.error(str(e))
            self.result.add_error(str(e))
        except Exception as e:
            log.error(f"Component {code} failed: {e}")
            self.result.add_error(f"Component {code} failed: {e}")
        return 0

    # ------------------------------------------------------------
    # FINALIZING
    # ------------------------------------------------------------
    def _close_session(self) -> None:
        if self.session is None:
            return
        try:
            self.erp.close_session(self.session)
        except Exception as e:
            msg = f"Logout failed: {e}"
            log.warning(msg)
            self.result.add_warning(msg)
        finally:
            self.session = None


def process_order(
    doc_entry: int,
    erp=api,
    settings: Optional[FileSettings] = None,
    cancel_event: Optional[threading.Event] = None,
) -> ProcessingResult:
    return OrderRun(doc_entry, erp=erp, settings=settings, cancel_event=cancel_event).run()


def notify_failure(doc_entry: int, result: ProcessingResult) -> None:
    send_email(
        ADMIN_EMAILS,
        f"Order files FAILED - DocEntry {doc_entry} (DocNum {result.order_number or 'n/a'})",
        result_summary_html(doc_entry, result),
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if not args:
        print("Usage: python app.py <DocEntry>")
        return 2

    try:
        doc_entry = int(args[0])
    except ValueError:
        doc_entry = 0
    if doc_entry <= 0:
        print("Invalid DocEntry: enter an integer > 0.")
        return 2

    result = process_order(doc_entry)
    if not result.success:
        notify_failure(doc_entry, result)

    print("Success" if result.success else "Failed")
    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
