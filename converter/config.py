"""
Конфигурация сервиса конвертации PDF -> HTML.

Значения читаются из .env файла (или переменных окружения) с префиксом CONVERTER_.
Дефолты совпадают с продовыми образами ocrmypdf и pdf2htmlEX.

Документация по параметрам: .env.example
"""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Настройки сервиса по умолчанию.

    Экземпляр заморожен: запрос может переопределить zoom/ocr/lang
    только через RequestConfig, но не записью в общие настройки.
    """

    model_config = SettingsConfigDict(
        env_prefix="CONVERTER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # --- Сервер ---
    port: int = 8000

    # --- API: лимиты ---
    max_file_size_mb: int = 50

    # --- Docker ---
    docker_bin: str = "docker"
    ocr_image: str = "jbarlow83/ocrmypdf-alpine:latest"
    pdf2htmlex_image: str = (
        "pdf2htmlex/pdf2htmlex:0.18.8.rc1-master-20200630-Ubuntu-focal-x86_64"
    )

    # --- Рендер: pdf2htmlEX ---
    zoom: float = 1.3
    render_timeout_seconds: float = 300

    # --- OCR: ocrmypdf ---
    ocr_enabled: bool = True
    ocr_lang: str = "spa+eng"
    # true -> --force-ocr, false -> --skip-text (из запроса не меняется)
    ocr_force: bool = True
    ocr_timeout_seconds: float = 600

    # --- Самопроверка ---
    selfcheck_timeout_seconds: float = 30

    # Каталог для временных рабочих папок (None -> системный temp)
    workspace_dir: Optional[str] = None


# Глобальный экземпляр настроек
settings = Settings()
