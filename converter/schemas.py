"""
Схемы данных сервиса конвертации.

Включает:
    - Внутренние dataclass'ы пайплайна (конфигурация запроса, вызов утилиты, результат)
    - Состояния пайплайна
    - Pydantic модели для ответов API
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field


# =============================================================================
# Внутренние структуры пайплайна
# =============================================================================


@dataclass(frozen=True)
class RequestConfig:
    """
    Эффективная конфигурация одного запроса.

    Собирается из дефолтов сервиса и переопределений запроса
    до запуска первой утилиты и дальше не меняется.

    Attributes:
        zoom: коэффициент масштаба для pdf2htmlEX
        ocr_enabled: запускать ли OCR перед рендером
        ocr_languages: языки ocrmypdf в формате "spa+eng"
        ocr_force: --force-ocr (True) или --skip-text (False)
    """

    zoom: float
    ocr_enabled: bool
    ocr_languages: str
    ocr_force: bool


@dataclass(frozen=True)
class ToolInvocation:
    """
    Один запуск внешней утилиты.

    Attributes:
        executable: исполняемый файл (обычно docker)
        arguments: аргументы в порядке передачи
        working_directory: рабочая папка процесса
        timeout_ms: дедлайн в миллисекундах
    """

    executable: str
    arguments: tuple[str, ...]
    working_directory: Path
    timeout_ms: int

    @property
    def command(self) -> list[str]:
        return [self.executable, *self.arguments]


@dataclass(frozen=True)
class ToolResult:
    """Результат запуска: код выхода, флаг таймаута и объединённый вывод."""

    exit_code: Optional[int]
    timed_out: bool
    combined_output: str


class PipelineState(str, Enum):
    """Состояния пайплайна одного запроса."""

    CREATED = "created"
    OCR_RUNNING = "ocr_running"
    RENDERING = "rendering"
    PACKING = "packing"
    DONE = "done"
    FAILED = "failed"


# =============================================================================
# Pydantic модели для API
# =============================================================================


class ImageStatus(BaseModel):
    """
    Наличие docker образа локально.

    Attributes:
        image: идентификатор образа
        present_locally: найден ли образ через docker image inspect
        hint: подсказка, как получить образ
    """

    image: str
    present_locally: bool
    hint: Optional[str] = None


class SelfCheckReport(BaseModel):
    """Результат самопроверки окружения docker."""

    docker_bin: str
    docker_available: bool
    docker_version: str = ""
    images: list[ImageStatus] = Field(default_factory=list)
