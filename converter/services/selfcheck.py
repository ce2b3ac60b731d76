"""
Самопроверка окружения: доступен ли docker и скачаны ли образы утилит.

Помогает диагностировать "не найден docker" или "нет образа"
до первой реальной конвертации.
"""

import logging
from pathlib import Path

from converter.config import Settings
from converter.errors import ToolExecutionError
from converter.schemas import ImageStatus, SelfCheckReport, ToolInvocation
from converter.services.tool_runner import ToolRunner, run_tool

logger = logging.getLogger(__name__)


def run_selfcheck(settings: Settings, runner: ToolRunner = run_tool) -> SelfCheckReport:
    """
    Проверяет docker --version и docker image inspect для образов OCR и рендера.

    Ошибки проб не пробрасываются, а попадают в отчёт.

    Returns:
        SelfCheckReport: результат проверки
    """
    report = SelfCheckReport(docker_bin=settings.docker_bin, docker_available=False)

    ok, output = _probe(settings, runner, ("--version",))
    report.docker_available = ok
    report.docker_version = output.strip()

    for image in (settings.ocr_image, settings.pdf2htmlex_image):
        present, _ = _probe(settings, runner, ("image", "inspect", image))
        report.images.append(
            ImageStatus(
                image=image,
                present_locally=present,
                hint=None if present else f"Выполните: docker pull {image}",
            )
        )

    logger.info(
        f"Самопроверка: docker={report.docker_available}, "
        f"образы={[(i.image, i.present_locally) for i in report.images]}"
    )
    return report


def _probe(settings: Settings, runner: ToolRunner, arguments: tuple[str, ...]) -> tuple[bool, str]:
    invocation = ToolInvocation(
        executable=settings.docker_bin,
        arguments=arguments,
        working_directory=Path.cwd(),
        timeout_ms=int(settings.selfcheck_timeout_seconds * 1000),
    )
    try:
        result = runner(invocation)
    except ToolExecutionError as e:
        return False, e.output or e.message

    if result.timed_out:
        return False, "timeout"
    return result.exit_code == 0, result.combined_output
