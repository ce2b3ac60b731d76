"""
Рабочие папки запросов.

Каждый запрос получает собственную временную папку: она монтируется
в контейнеры как /work и удаляется при любом исходе пайплайна.
"""

import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from converter.errors import ResourceError

logger = logging.getLogger(__name__)

WORKSPACE_PREFIX = "p2h-"


def create_workspace(base_dir: Optional[str] = None) -> Path:
    """
    Создаёт уникальную временную папку.

    Args:
        base_dir: родительский каталог (None -> системный temp)

    Returns:
        Path: абсолютный путь рабочей папки

    Raises:
        ResourceError: если файловая система не дала создать папку
    """
    try:
        workspace = Path(tempfile.mkdtemp(prefix=WORKSPACE_PREFIX, dir=base_dir))
    except OSError as e:
        raise ResourceError(f"Не удалось создать рабочую папку: {e}") from e

    logger.debug(f"Создана рабочая папка: {workspace}")
    return workspace.resolve()


def destroy_workspace(workspace: Path) -> None:
    """
    Рекурсивно удаляет рабочую папку, сначала самые глубокие элементы.

    Обход явный, в глубину: папка удаляется только после своих детей.
    Уже удалённые файлы пропускаются, ошибки удаления отдельных
    элементов пишутся в лог и не пробрасываются.

    Args:
        workspace: путь рабочей папки
    """
    # (путь, дети уже разобраны)
    stack: list[tuple[Path, bool]] = [(workspace, False)]
    failures = 0

    while stack:
        path, expanded = stack.pop()

        if expanded:
            failures += not _remove_entry(path, is_dir=True)
            continue

        if not _is_real_dir(path):
            failures += not _remove_entry(path, is_dir=False)
            continue

        stack.append((path, True))
        try:
            with os.scandir(path) as entries:
                children = [Path(entry.path) for entry in entries]
        except FileNotFoundError:
            continue
        except OSError as e:
            logger.warning(f"Не удалось прочитать {path}: {e}")
            continue
        stack.extend((child, False) for child in children)

    if failures:
        logger.warning(f"Рабочая папка {workspace} удалена не полностью: {failures} ошибок")
    else:
        logger.debug(f"Рабочая папка удалена: {workspace}")


@contextmanager
def workspace_scope(base_dir: Optional[str] = None) -> Iterator[Path]:
    """
    Выделяет рабочую папку на время блока и гарантированно удаляет её.

    Args:
        base_dir: родительский каталог (None -> системный temp)

    Yields:
        Path: рабочая папка
    """
    workspace = create_workspace(base_dir)
    try:
        yield workspace
    finally:
        destroy_workspace(workspace)


def _is_real_dir(path: Path) -> bool:
    # Симлинки на папки удаляем как файлы, не заходя внутрь
    try:
        return path.is_dir() and not path.is_symlink()
    except OSError:
        return False


def _remove_entry(path: Path, is_dir: bool) -> bool:
    """Удаляет один элемент. Возвращает False при ошибке (кроме отсутствия)."""
    try:
        if is_dir:
            path.rmdir()
        else:
            path.unlink()
    except FileNotFoundError:
        return True
    except OSError as e:
        logger.warning(f"Не удалось удалить {path}: {e}")
        return False
    return True
