"""Logging setup for Azure Migrate VM Inventory"""

import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

ROOT_LOGGER_NAME = "azure_migrate_inventory"
LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(vm_tag)s%(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_PREFIX = "azure_migrate_vm_inventory"

# Name of the VM whose row the current thread is building
_current_vm: ContextVar[Optional[str]] = ContextVar("current_vm", default=None)


class VMContextFilter(logging.Filter):
    """Stamp each record with the VM being processed by the emitting thread"""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "vm_name", None) is None:
            record.vm_name = _current_vm.get()
        return True


@contextmanager
def vm_log_context(vm_name: Optional[str]):
    """Tag every record logged inside the block with `vm_name`"""
    token = _current_vm.set(vm_name)
    try:
        yield
    finally:
        _current_vm.reset(token)


class InventoryLogFormatter(logging.Formatter):
    """Formatter emitting `[timestamp] [LEVEL] [vm] message` lines with WARN instead of WARNING.

    The `[vm]` tag only appears for records logged inside `vm_log_context`.
    """

    LEVEL_NAMES = {
        "WARNING": "WARN",
        "CRITICAL": "ERROR",
    }

    def __init__(self):
        super().__init__(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        original_level = record.levelname
        record.levelname = self.LEVEL_NAMES.get(original_level, original_level)
        vm_name = getattr(record, "vm_name", None)
        record.vm_tag = f"[{vm_name}] " if vm_name else ""
        try:
            return super().format(record)
        finally:
            record.levelname = original_level


def _resolve_level(level: Optional[Union[str, int]]) -> Optional[int]:
    if level is None:
        return None
    if isinstance(level, int):
        return level
    return getattr(logging, str(level).upper(), logging.INFO)


def setup_logger(name: str, level: Optional[Union[str, int]] = None) -> logging.Logger:
    """Return a logger in the package namespace"""
    logger_name = name if name.startswith(ROOT_LOGGER_NAME) else f"{ROOT_LOGGER_NAME}.{name}"
    logger = logging.getLogger(logger_name)

    resolved = _resolve_level(level)
    if resolved is not None:
        logging.getLogger(ROOT_LOGGER_NAME).setLevel(resolved)

    return logger


def build_log_file_path(log_dir: Union[str, Path] = ".", timestamp: Optional[datetime] = None) -> Path:
    """Timestamped log file path, e.g. azure_migrate_vm_inventory_20240101_120000.log"""
    stamp = (timestamp or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return Path(log_dir) / f"{LOG_FILE_PREFIX}_{stamp}.log"


def configure_logging(
    level: Union[str, int] = "INFO",
    log_dir: Optional[Union[str, Path]] = ".",
    console: bool = True
) -> Optional[Path]:
    """Attach file and console handlers to the package logger.

    The log file records everything down to DEBUG; `level` applies to the console only.
    Returns the path of the log file, or None when file logging is disabled.
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(logging.DEBUG)
    root.propagate = False

    # Clear any existing handlers
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()

    formatter = InventoryLogFormatter()
    vm_filter = VMContextFilter()
    log_file = None

    if log_dir is not None:
        log_file = build_log_file_path(log_dir)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        file_handler.addFilter(vm_filter)
        root.addHandler(file_handler)

    if console:
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setLevel(_resolve_level(level) or logging.INFO)
        stream_handler.setFormatter(formatter)
        stream_handler.addFilter(vm_filter)
        root.addHandler(stream_handler)

    # Azure SDK HTTP logging is noisy at INFO
    logging.getLogger("azure").setLevel(logging.WARNING)

    return log_file
