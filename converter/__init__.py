"""
Сервис конвертации PDF -> HTML.

Принимает PDF, при необходимости прогоняет OCR (ocrmypdf),
рендерит HTML (pdf2htmlEX) и отдаёт ZIP с HTML и ассетами.
Обе утилиты запускаются в docker-контейнерах.
"""

from converter.config import settings
from converter.schemas import RequestConfig, SelfCheckReport, ToolInvocation, ToolResult

__all__ = [
    "settings",
    "RequestConfig",
    "ToolInvocation",
    "ToolResult",
    "SelfCheckReport",
]
