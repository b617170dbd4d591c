from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """
    Назначение:
        Единая таксономия кодов ошибок пайплайна.
    """

    CONFIG_ERROR = "CONFIG_ERROR"
    CSV_STRUCTURE = "CSV_STRUCTURE"
    CSV_HEADER = "CSV_HEADER"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    MAPPING_FAILED = "MAPPING_FAILED"
    EXPORT_FAILED = "EXPORT_FAILED"
    SCAN_FAILED = "SCAN_FAILED"
    PIPELINE_STATE = "PIPELINE_STATE"
    IO_ERROR = "IO_ERROR"
    UNEXPECTED_ERROR = "UNEXPECTED_ERROR"

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ErrorCode":
        """
        Назначение:
            Подбор кода по исключению (для отчётов и логов).
        """
        code = getattr(exc, "code", None)
        if isinstance(code, ErrorCode):
            return code
        if isinstance(exc, OSError):
            return cls.IO_ERROR
        return cls.UNEXPECTED_ERROR
