"""
Стадия OCR — ocrmypdf в docker.

Добавляет текстовый слой в PDF, чтобы pdf2htmlEX выдал
выделяемый текст даже для сканов.
"""

import logging
import time
from pathlib import Path

from converter.config import Settings
from converter.schemas import ToolInvocation
from converter.services.tool_runner import (
    ToolRunner,
    build_container_command,
    check_tool_result,
    run_in_container,
    run_tool,
)

logger = logging.getLogger(__name__)

OCR_TOOL = "ocrmypdf"
OCR_OUTPUT_FILENAME = "ocr.pdf"


def build_ocr_invocation(
    settings: Settings,
    workspace: Path,
    input_file: Path,
    output_file: Path,
    languages: str,
    force: bool,
) -> ToolInvocation:
    """
    Собирает вызов ocrmypdf.

    Флаги:
        --force-ocr — OCR всех страниц, даже с текстом (force=True)
        --skip-text — пропуск страниц, где текст уже есть (force=False)
        -l <languages> — языки как есть, например "spa+eng"

    Файлы передаются по именам: рабочая папка — это /work контейнера.
    """
    tool_args = [
        "--force-ocr" if force else "--skip-text",
        "-l", languages,
        input_file.name,
        output_file.name,
    ]
    return build_container_command(
        settings.docker_bin,
        workspace,
        settings.ocr_image,
        tool_args,
        settings.ocr_timeout_seconds,
    )


def run_ocr(
    settings: Settings,
    workspace: Path,
    input_file: Path,
    languages: str,
    force: bool,
    runner: ToolRunner = run_tool,
) -> Path:
    """
    Выполняет OCR входного PDF.

    Args:
        settings: настройки сервиса (docker, образ, таймаут)
        workspace: рабочая папка запроса
        input_file: PDF внутри рабочей папки
        languages: языки ocrmypdf
        force: --force-ocr или --skip-text
        runner: запуск процесса (подменяется в тестах)

    Returns:
        Path: путь к PDF с текстовым слоем (ocr.pdf)

    Raises:
        ToolTimeoutError, ToolExecutionError, MissingOutputError
    """
    output_file = workspace / OCR_OUTPUT_FILENAME
    invocation = build_ocr_invocation(
        settings, workspace, input_file, output_file, languages, force
    )

    start = time.perf_counter()
    result = run_in_container(invocation, runner)
    check_tool_result(OCR_TOOL, invocation, result, output_file, "[OCR]")

    duration = int((time.perf_counter() - start) * 1000)
    logger.info(f"   OCR: {duration}ms (языки {languages}, force={force})")
    return output_file
