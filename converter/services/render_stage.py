"""
Стадия рендера — pdf2htmlEX в docker.

Набор флагов фиксированный: одна HTML страница, CSS/шрифты/картинки
отдельными файлами рядом с HTML, fallback режим, без outline.
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

RENDER_TOOL = "pdf2htmlEX"
HTML_OUTPUT_FILENAME = "output.html"

# Флаги после --zoom, порядок важен для совместимости с образом
RENDER_FLAGS = (
    "--split-pages", "0",
    "--embed-css", "0",
    "--embed-font", "0",
    "--embed-image", "0",
    "--fallback", "1",
    "--process-outline", "0",
)


def format_zoom(zoom: float) -> str:
    """Строковое представление zoom: 2 -> "2.0", 1.3 -> "1.3"."""
    return str(float(zoom))


def build_render_invocation(
    settings: Settings,
    workspace: Path,
    input_file: Path,
    output_file: Path,
    zoom: float,
) -> ToolInvocation:
    """Собирает вызов pdf2htmlEX (ENTRYPOINT образа, имя утилиты не передаётся)."""
    tool_args = [
        "--zoom", format_zoom(zoom),
        *RENDER_FLAGS,
        input_file.name,
        output_file.name,
    ]
    return build_container_command(
        settings.docker_bin,
        workspace,
        settings.pdf2htmlex_image,
        tool_args,
        settings.render_timeout_seconds,
    )


def run_render(
    settings: Settings,
    workspace: Path,
    input_file: Path,
    output_file: Path,
    zoom: float,
    runner: ToolRunner = run_tool,
) -> None:
    """
    Конвертирует PDF в HTML + ассеты внутри рабочей папки.

    Args:
        settings: настройки сервиса (docker, образ, таймаут)
        workspace: рабочая папка запроса
        input_file: исходный PDF или результат OCR
        output_file: HTML файл в рабочей папке
        zoom: коэффициент масштаба
        runner: запуск процесса (подменяется в тестах)

    Raises:
        ToolTimeoutError, ToolExecutionError, MissingOutputError
    """
    invocation = build_render_invocation(
        settings, workspace, input_file, output_file, zoom
    )

    start = time.perf_counter()
    result = run_in_container(invocation, runner)
    check_tool_result(RENDER_TOOL, invocation, result, output_file, "[P2H]")

    duration = int((time.perf_counter() - start) * 1000)
    logger.info(f"   Render: {duration}ms (zoom {format_zoom(zoom)})")
