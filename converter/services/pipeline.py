"""
Координатор пайплайна конвертации PDF -> HTML.

Последовательность одного запроса:
    1. RequestConfig: дефолты сервиса + переопределения запроса
    2. Рабочая папка + input.pdf
    3. OCR (если включён): input.pdf -> ocr.pdf
    4. Рендер: pdf -> output.html + ассеты
    5. Удаление input.pdf
    6. Упаковка папки в ZIP
    7. Удаление рабочей папки при любом исходе

Общего изменяемого состояния нет: конфигурация вычисляется на каждый вызов,
папка у каждого запроса своя.
"""

import logging
import time
from pathlib import Path
from typing import Optional

from converter.config import Settings, settings as default_settings
from converter.errors import ConversionError, ResourceError, ValidationError
from converter.schemas import PipelineState, RequestConfig
from converter.services.archiver import pack_workspace
from converter.services.ocr_stage import run_ocr
from converter.services.render_stage import HTML_OUTPUT_FILENAME, run_render
from converter.services.tool_runner import ToolRunner, run_tool
from converter.services.workspace import workspace_scope

logger = logging.getLogger(__name__)

INPUT_FILENAME = "input.pdf"


def resolve_request_config(
    settings: Settings,
    zoom_override: Optional[float] = None,
    ocr_override: Optional[bool] = None,
    lang_override: Optional[str] = None,
) -> RequestConfig:
    """
    Накладывает переопределения запроса на дефолты сервиса.

    Пустая или пробельная строка языков игнорируется.
    force-политика OCR из запроса не меняется.
    """
    languages = settings.ocr_lang
    if lang_override is not None and lang_override.strip():
        languages = lang_override

    return RequestConfig(
        zoom=settings.zoom if zoom_override is None else float(zoom_override),
        ocr_enabled=settings.ocr_enabled if ocr_override is None else ocr_override,
        ocr_languages=languages,
        ocr_force=settings.ocr_force,
    )


def convert(
    pdf_bytes: bytes,
    zoom_override: Optional[float] = None,
    ocr_override: Optional[bool] = None,
    lang_override: Optional[str] = None,
    service_settings: Optional[Settings] = None,
    runner: ToolRunner = run_tool,
) -> bytes:
    """
    Конвертирует PDF в ZIP с HTML и ассетами.

    Блокирующий вызов: занимает поток на всё время работы утилит.

    Args:
        pdf_bytes: содержимое PDF
        zoom_override: zoom запроса (None -> дефолт сервиса)
        ocr_override: включить/выключить OCR (None -> дефолт)
        lang_override: языки OCR (None/пусто -> дефолт)
        service_settings: настройки сервиса (None -> глобальные)
        runner: запуск внешних процессов (подменяется в тестах)

    Returns:
        bytes: ZIP архив (output.html + ассеты, без входного PDF)

    Raises:
        ConversionError: любая ошибка стадии; частичный результат не возвращается
    """
    service_settings = service_settings or default_settings

    if not pdf_bytes:
        raise ValidationError("Пустой PDF")

    config = resolve_request_config(
        service_settings, zoom_override, ocr_override, lang_override
    )

    total_start = time.perf_counter()
    state = PipelineState.CREATED

    logger.info("=" * 60)
    logger.info("НОВЫЙ ЗАПРОС PDF -> HTML")
    logger.info(f"   Размер: {len(pdf_bytes) / (1024 * 1024):.2f} MB")
    logger.info(f"   Zoom: {config.zoom}")
    logger.info(
        f"   OCR: {'да' if config.ocr_enabled else 'нет'}"
        + (f" ({config.ocr_languages}, force={config.ocr_force})" if config.ocr_enabled else "")
    )
    logger.info("=" * 60)

    try:
        with workspace_scope(service_settings.workspace_dir) as workspace:
            input_pdf = _write_input(workspace, pdf_bytes)
            html_out = workspace / HTML_OUTPUT_FILENAME

            # 1. OCR
            pdf_for_html = input_pdf
            if config.ocr_enabled:
                state = PipelineState.OCR_RUNNING
                pdf_for_html = run_ocr(
                    service_settings,
                    workspace,
                    input_pdf,
                    config.ocr_languages,
                    config.ocr_force,
                    runner=runner,
                )

            # 2. Рендер
            state = PipelineState.RENDERING
            run_render(
                service_settings,
                workspace,
                pdf_for_html,
                html_out,
                config.zoom,
                runner=runner,
            )

            # 3. Входной PDF в результат не входит
            state = PipelineState.PACKING
            input_pdf.unlink(missing_ok=True)
            archive = pack_workspace(workspace)

        state = PipelineState.DONE

    except ConversionError as e:
        logger.error(
            f"{state.value} -> {PipelineState.FAILED.value}: {e.message}"
        )
        raise
    except Exception:
        logger.exception(
            f"{state.value} -> {PipelineState.FAILED.value}: непредвиденная ошибка"
        )
        raise

    total_duration = int((time.perf_counter() - total_start) * 1000)
    logger.info("=" * 60)
    logger.info(f"КОНВЕРТАЦИЯ ЗАВЕРШЕНА ({state.value}): {len(archive)} байт за {total_duration}ms")
    logger.info("=" * 60)
    return archive


def _write_input(workspace: Path, pdf_bytes: bytes) -> Path:
    input_pdf = workspace / INPUT_FILENAME
    try:
        input_pdf.write_bytes(pdf_bytes)
    except OSError as e:
        raise ResourceError(f"Не удалось записать входной PDF: {e}") from e
    return input_pdf
