"""
Иерархия ошибок пайплайна конвертации.

Каждая ошибка знает свой код и HTTP статус, чтобы API слой
мог превратить её в HTTPException без отдельной таблицы соответствий.
Вывод внешних утилит хранится в атрибуте output и пишется в лог,
но клиенту не отдаётся.
"""

from pathlib import Path
from typing import Optional


class ConversionError(Exception):
    """Базовая ошибка конвертации."""

    error_code = "conversion_error"
    http_status = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        """
        Тело ошибки для ответа API.

        Returns:
            dict: {"error": код, "message": текст}
        """
        return {
            "error": self.error_code,
            "message": self.message,
        }


class ValidationError(ConversionError):
    """Пустой или некорректный вход."""

    error_code = "invalid_input"
    http_status = 400


class ResourceError(ConversionError):
    """Не удалось создать рабочую папку или записать в неё файл."""

    error_code = "workspace_error"
    http_status = 500


class ToolExecutionError(ConversionError):
    """
    Внешняя утилита завершилась с ненулевым кодом.

    Attributes:
        tool: имя утилиты (ocrmypdf, pdf2htmlEX, ...)
        exit_code: код выхода, None если процесс не удалось запустить
        output: объединённый stdout/stderr процесса
    """

    error_code = "tool_failed"
    http_status = 502

    def __init__(self, tool: str, exit_code: Optional[int], output: str = ""):
        if exit_code is None:
            message = f"Не удалось запустить {tool}"
        else:
            message = f"{tool} завершился с кодом {exit_code}"
        super().__init__(message)
        self.tool = tool
        self.exit_code = exit_code
        self.output = output


class ToolTimeoutError(ConversionError):
    """Внешняя утилита не уложилась в дедлайн и была принудительно остановлена."""

    error_code = "tool_timeout"
    http_status = 504

    def __init__(self, tool: str, timeout_ms: int, output: str = ""):
        super().__init__(f"Таймаут выполнения {tool} ({timeout_ms} ms)")
        self.tool = tool
        self.timeout_ms = timeout_ms
        self.output = output


class MissingOutputError(ConversionError):
    """Утилита вернула 0, но заявленный выходной файл не появился."""

    error_code = "missing_output"
    http_status = 502

    def __init__(self, tool: str, output_file: Path, output: str = ""):
        super().__init__(f"{tool} не создал {output_file.name}")
        self.tool = tool
        self.output_file = output_file
        self.output = output


class ArchiveError(ConversionError):
    """Сбой упаковки результата в ZIP."""

    error_code = "archive_error"
    http_status = 500
