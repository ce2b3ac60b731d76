"""
Упаковка рабочей папки в ZIP.

Имена записей — пути относительно корня папки через "/",
порядок — обход в глубину с сортировкой по имени.
"""

import io
import logging
import shutil
import zipfile
from pathlib import Path
from typing import Iterator

from converter.errors import ArchiveError

logger = logging.getLogger(__name__)


def iter_workspace_files(root: Path) -> Iterator[Path]:
    """
    Обходит дерево в глубину и отдаёт только обычные файлы.

    Папки в архив не попадают, симлинки на папки не раскрываются.
    """
    stack = [root]
    while stack:
        current = stack.pop()
        if current.is_dir() and not current.is_symlink():
            children = sorted(current.iterdir(), key=lambda p: p.name)
            # В обратном порядке, чтобы со стека снимались по алфавиту
            stack.extend(reversed(children))
        elif current.is_file():
            yield current


def pack_workspace(workspace: Path) -> bytes:
    """
    Упаковывает все файлы рабочей папки в ZIP.

    Args:
        workspace: рабочая папка (входной PDF уже удалён)

    Returns:
        bytes: содержимое ZIP архива

    Raises:
        ArchiveError: если файл стал недоступен во время обхода
    """
    buffer = io.BytesIO()
    entries = 0

    try:
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for file_path in iter_workspace_files(workspace):
                entry_name = file_path.relative_to(workspace).as_posix()
                with file_path.open("rb") as source, archive.open(entry_name, "w", force_zip64=True) as target:
                    shutil.copyfileobj(source, target)
                entries += 1
    except (OSError, zipfile.LargeZipFile) as e:
        raise ArchiveError(f"Ошибка упаковки результата: {e}") from e

    data = buffer.getvalue()
    logger.info(f"   Pack: {entries} файлов, {len(data)} байт")
    return data
