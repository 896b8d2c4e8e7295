# order_files/services/folder_allocator.py

import os
from typing import Optional

from config import file_settings
from logger import get_logger
from models import FileSettings
from services.name_normalizer import sanitize_file_name

log = get_logger("folder_allocator")


def client_folder(customer_code: str, settings: FileSettings) -> str:
    mapped = settings.client_folder_mappings.get(customer_code)
    return mapped or settings.default_client_folder


def warehouse_prefix(warehouse_code: str, settings: FileSettings) -> str:
    mapped = settings.warehouse_prefix_mappings.get(warehouse_code)
    return mapped if mapped is not None else settings.default_warehouse_prefix


def folder_name(order_number: int, warehouse_code: Optional[str], settings: FileSettings) -> str:
    num = sanitize_file_name(str(order_number))
    if warehouse_code and warehouse_code.strip():
        pfx = warehouse_prefix(warehouse_code.strip(), settings)
        if pfx and pfx.strip():
            return sanitize_file_name(f"{pfx} {num}")
    return f"Order_{num}"


def build_path(
    order_number: int,
    customer_code: str,
    settings: FileSettings,
    project: Optional[str] = None,
    warehouse_code: Optional[str] = None,
) -> str:
    if not isinstance(order_number, int) or order_number <= 0:
        raise ValueError(f"Invalid order number: {order_number!r}")
    if not customer_code or not customer_code.strip():
        raise ValueError("Customer code must not be empty")

    base = settings.destination_base_folder
    if not base or not base.strip():
        raise FileNotFoundError("Destination base folder not configured")

    parts = [base, sanitize_file_name(client_folder(customer_code, settings))]
    if project and project.strip():
        parts.append(sanitize_file_name(project.strip()))
    parts.append(folder_name(order_number, warehouse_code, settings))
    return os.path.join(*parts)


def allocate(
    order_number: int,
    customer_code: str,
    project: Optional[str] = None,
    warehouse_code: Optional[str] = None,
    settings: Optional[FileSettings] = None,
) -> str:
    """
    Destination folder for an order line, created if missing.

    Existing folders are reused as-is, so re-running an order adds files next
    to the ones left by earlier runs. OSError from makedirs propagates.
    """
    if settings is None:
        settings = file_settings()

    destination = build_path(order_number, customer_code, settings, project, warehouse_code)

    try:
        os.makedirs(destination, exist_ok=True)
    except OSError as e:
        log.error(f"Failed creating folder {destination}: {e}")
        raise

    log.info(
        f"Folder ready: {destination} (customer {customer_code}, "
        f"project {project or 'N/A'}, warehouse {warehouse_code or 'N/A'})"
    )
    return destination
