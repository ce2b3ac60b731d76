"""
Сервис конвертации PDF -> HTML — FastAPI приложение.

Эндпоинты:
    POST /convert/pdf-to-html — загрузка PDF, ответ ZIP (output.html + ассеты)
    GET  /convert/health — проверка работоспособности и текущие дефолты
    GET  /convert/selfcheck — доступность docker и образов утилит

Запуск:
    uvicorn converter.main:app --host 0.0.0.0 --port 8000
"""

import logging
import time
from typing import Optional

from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.responses import Response
from starlette.concurrency import run_in_threadpool

from converter.config import settings
from converter.errors import ConversionError
from converter.schemas import SelfCheckReport
from converter.services.pipeline import convert
from converter.services.selfcheck import run_selfcheck

# Настройка логгера
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [PDF2HTML] %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)

ARCHIVE_FILENAME = "html_export.zip"

# FastAPI приложение
app = FastAPI(
    title="PDF to HTML Service",
    description="Конвертация PDF в HTML (ocrmypdf + pdf2htmlEX в docker)",
    version="1.0.0",
)


@app.post("/convert/pdf-to-html")
async def pdf_to_html(
    file: Optional[UploadFile] = File(default=None, description="PDF файл"),
    zoom: Optional[float] = Form(
        default=None,
        gt=0,
        allow_inf_nan=False,
        description="Масштаб pdf2htmlEX (обычно 1.0–2.0), по умолчанию из настроек",
    ),
    ocr: Optional[bool] = Form(default=None, description="Включить/выключить OCR"),
    lang: Optional[str] = Form(default=None, description="Языки OCR: 'spa+eng'"),
) -> Response:
    """
    Конвертирует PDF в ZIP архив с HTML и ассетами.

    Args:
        file: PDF файл (multipart/form-data, поле "file")
        zoom: масштаб рендера
        ocr: переопределение OCR
        lang: языки OCR

    Returns:
        Response: application/zip, attachment html_export.zip

    Raises:
        HTTPException: при ошибках валидации или конвертации
    """
    start_time = time.time()

    # 1. Читаем и валидируем файл
    file_bytes = await _validate_and_read_file(file)
    logger.info(
        f"Получен файл: {file.filename} ({len(file_bytes)} байт), "
        f"zoom={zoom}, ocr={ocr}, lang={lang}"
    )

    # 2. Конвертация — блокирующий пайплайн в отдельном потоке
    try:
        archive = await run_in_threadpool(convert, file_bytes, zoom, ocr, lang)
    except ConversionError as e:
        logger.error(f"Ошибка конвертации {file.filename}: {e.message}")
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())
    except Exception as e:
        logger.exception(f"Непредвиденная ошибка конвертации: {e}")
        raise HTTPException(
            status_code=500,
            detail={
                "error": "processing_error",
                "message": str(e),
            },
        )

    processing_time_ms = int((time.time() - start_time) * 1000)
    logger.info(f"Готово: {file.filename} -> {len(archive)} байт за {processing_time_ms}ms")

    return Response(
        content=archive,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{ARCHIVE_FILENAME}"'},
    )


@app.get("/convert/health")
async def health_check() -> dict:
    """
    Проверка работоспособности сервиса.

    Returns:
        dict: статус и текущие дефолты конвертации
    """
    return {
        "status": "OK",
        "service": "pdf2html",
        "version": "1.0.0",
        "config": {
            "zoom": settings.zoom,
            "ocr_enabled": settings.ocr_enabled,
            "ocr_lang": settings.ocr_lang,
            "ocr_force": settings.ocr_force,
            "ocr_image": settings.ocr_image,
            "pdf2htmlex_image": settings.pdf2htmlex_image,
            "max_file_size_mb": settings.max_file_size_mb,
        },
    }


@app.get("/convert/selfcheck", response_model=SelfCheckReport)
async def selfcheck() -> SelfCheckReport:
    """
    Проверяет, что docker доступен и образы утилит есть локально.

    Returns:
        SelfCheckReport: версия docker и статус каждого образа
    """
    return await run_in_threadpool(run_selfcheck, settings)


async def _validate_and_read_file(file: Optional[UploadFile]) -> bytes:
    """
    Валидирует и читает загруженный файл.

    Проверяет:
        - Наличие непустого файла в поле "file"
        - Расширение .pdf
        - Размер файла (не больше max_file_size_mb)
        - PDF сигнатуру (%PDF)

    Raises:
        HTTPException: при ошибках валидации
    """
    # Читаем файл: пустая загрузка равна отсутствию файла
    file_bytes = await file.read() if file is not None else b""

    if not file_bytes:
        raise HTTPException(
            status_code=400,
            detail={
                "error": "missing_file",
                "message": "Нужно приложить файл в поле 'file'",
            },
        )

    name = (file.filename or "").lower()
    if not name.endswith(".pdf"):
        raise HTTPException(
            status_code=415,
            detail={
                "error": "invalid_file_type",
                "message": "Принимается только .pdf",
            },
        )

    # Проверяем размер
    max_size = settings.max_file_size_mb * 1024 * 1024
    if len(file_bytes) > max_size:
        raise HTTPException(
            status_code=413,
            detail={
                "error": "file_too_large",
                "message": f"Файл слишком большой: {len(file_bytes)} байт, "
                f"максимум: {settings.max_file_size_mb} МБ",
            },
        )

    # Проверяем PDF сигнатуру (%PDF)
    if not file_bytes.startswith(b"%PDF"):
        raise HTTPException(
            status_code=400,
            detail={
                "error": "invalid_pdf",
                "message": "Файл не является валидным PDF (отсутствует сигнатура %PDF)",
            },
        )

    return file_bytes


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Запуск PDF -> HTML сервиса на порту {settings.port}")
    logger.info(f"Docker: {settings.docker_bin}")

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=settings.port,
        log_level="info",
    )
