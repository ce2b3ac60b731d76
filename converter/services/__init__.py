"""
Сервисы конвертации PDF -> HTML.

Модули:
    - workspace: временные рабочие папки запросов
    - tool_runner: запуск внешних утилит с дедлайном
    - ocr_stage: ocrmypdf в docker
    - render_stage: pdf2htmlEX в docker
    - archiver: упаковка результата в ZIP
    - pipeline: координация всего пайплайна
    - selfcheck: проверка docker и образов
"""

from converter.services.archiver import pack_workspace
from converter.services.ocr_stage import run_ocr
from converter.services.pipeline import convert, resolve_request_config
from converter.services.render_stage import run_render
from converter.services.selfcheck import run_selfcheck
from converter.services.tool_runner import run_tool
from converter.services.workspace import create_workspace, destroy_workspace, workspace_scope

__all__ = [
    "convert",
    "resolve_request_config",
    "create_workspace",
    "destroy_workspace",
    "workspace_scope",
    "run_tool",
    "run_ocr",
    "run_render",
    "pack_workspace",
    "run_selfcheck",
]
