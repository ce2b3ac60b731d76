"""
Запуск внешних утилит (docker run ...).

Содержит:
    - run_tool: блокирующий запуск процесса с дедлайном
    - run_in_container: docker run с остановкой контейнеров по таймауту
    - build_container_command: общий префикс docker run для стадий
    - check_tool_result: перевод ToolResult в исключения пайплайна

Сам run_tool коды выхода не интерпретирует — это делает стадия.
"""

import logging
import os
import signal
import subprocess
import time
from pathlib import Path
from typing import Callable, Optional

from converter.errors import (
    ConversionError,
    MissingOutputError,
    ToolExecutionError,
    ToolTimeoutError,
)
from converter.schemas import ToolInvocation, ToolResult

logger = logging.getLogger(__name__)

# Куда монтируется рабочая папка внутри контейнера
CONTAINER_WORKDIR = "/work"

# Сколько ждать закрытия вывода после kill
KILL_GRACE_SECONDS = 5

# Дедлайн для docker ps / docker kill при остановке контейнеров
CONTAINER_STOP_TIMEOUT_SECONDS = 30

# Сигнатура раннера: стадии принимают любой callable с таким контрактом
ToolRunner = Callable[[ToolInvocation], ToolResult]


def run_tool(invocation: ToolInvocation) -> ToolResult:
    """
    Запускает процесс и ждёт его завершения или дедлайна.

    stderr сливается в stdout, чтобы диагностика шла одним потоком.
    По таймауту процесс убивается (kill) и дожидается, после чего
    возвращается ToolResult(timed_out=True).

    Args:
        invocation: что, где и сколько запускать

    Returns:
        ToolResult: код выхода, флаг таймаута и вывод

    Raises:
        ToolExecutionError: если исполняемый файл не удалось запустить
    """
    start = time.perf_counter()
    logger.info(f"Запуск: {' '.join(invocation.command)}")

    try:
        # Своя группа процессов: по таймауту убиваем и всех потомков
        process = subprocess.Popen(
            invocation.command,
            cwd=invocation.working_directory,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            start_new_session=True,
        )
    except OSError as e:
        logger.error(f"Не удалось запустить {invocation.executable}: {e}")
        raise ToolExecutionError(invocation.executable, None, str(e)) from e

    try:
        raw_output, _ = process.communicate(timeout=invocation.timeout_ms / 1000)
        timed_out = False
    except subprocess.TimeoutExpired as e:
        _kill_process_group(process)
        raw_output = _drain_after_kill(process, e.output)
        timed_out = True

    duration = int((time.perf_counter() - start) * 1000)
    if timed_out:
        logger.warning(
            f"Таймаут {invocation.executable} ({invocation.timeout_ms}ms), "
            f"процесс pid={process.pid} остановлен"
        )
    else:
        logger.info(f"Код выхода {process.returncode} за {duration}ms")

    return ToolResult(
        exit_code=process.returncode,
        timed_out=timed_out,
        combined_output=(raw_output or b"").decode("utf-8", errors="replace"),
    )


def _kill_process_group(process: subprocess.Popen) -> None:
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except (ProcessLookupError, PermissionError):
        process.kill()


def _drain_after_kill(process: subprocess.Popen, partial: Optional[bytes]) -> Optional[bytes]:
    """Дочитывает вывод убитого процесса, но не дольше KILL_GRACE_SECONDS."""
    try:
        raw_output, _ = process.communicate(timeout=KILL_GRACE_SECONDS)
        return raw_output
    except subprocess.TimeoutExpired as e:
        # Пайп держит потомок, сбежавший из группы: бросаем вывод и дожидаемся самого процесса
        logger.warning(f"Вывод pid={process.pid} не закрылся после kill")
        if process.stdout is not None:
            process.stdout.close()
        process.wait(timeout=KILL_GRACE_SECONDS)
        return e.output or partial


def run_in_container(invocation: ToolInvocation, runner: ToolRunner) -> ToolResult:
    """
    Выполняет docker run; по таймауту останавливает контейнеры рабочей папки.

    kill клиента docker не останавливает сам контейнер, поэтому
    контейнеры ищутся по смонтированной рабочей папке и убиваются
    до того, как папка будет удалена.
    """
    result = runner(invocation)
    if result.timed_out:
        stop_workspace_containers(invocation.executable, invocation.working_directory, runner)
    return result


def stop_workspace_containers(docker_bin: str, workspace: Path, runner: ToolRunner) -> None:
    """
    Убивает запущенные контейнеры, в которые смонтирована рабочая папка.

    Ошибки пишутся в лог и не пробрасываются.
    """
    timeout_ms = int(CONTAINER_STOP_TIMEOUT_SECONDS * 1000)
    ps = ToolInvocation(
        executable=docker_bin,
        arguments=("ps", "-q", "--filter", f"volume={workspace.resolve()}"),
        working_directory=workspace,
        timeout_ms=timeout_ms,
    )
    try:
        listed = runner(ps)
        if listed.timed_out or listed.exit_code != 0:
            logger.warning(f"docker ps не выполнился: {listed.combined_output.strip()}")
            return

        container_ids = tuple(listed.combined_output.split())
        if not container_ids:
            return

        logger.warning(f"Останавливаем контейнеры {', '.join(container_ids)}")
        killed = runner(
            ToolInvocation(
                executable=docker_bin,
                arguments=("kill", *container_ids),
                working_directory=workspace,
                timeout_ms=timeout_ms,
            )
        )
        if killed.timed_out or killed.exit_code != 0:
            logger.warning(f"docker kill не выполнился: {killed.combined_output.strip()}")
    except ToolExecutionError as e:
        logger.warning(f"Не удалось остановить контейнеры {workspace}: {e.message}")


def build_container_command(
    docker_bin: str,
    workspace: Path,
    image: str,
    tool_args: list[str],
    timeout_seconds: float,
) -> ToolInvocation:
    """
    Собирает docker run с рабочей папкой, смонтированной как /work.

    Формат:
        <docker> run --rm -v <workspace>:/work -w /work <image> <tool_args...>

    Args:
        docker_bin: исполняемый файл docker
        workspace: рабочая папка запроса (монтируется read/write)
        image: образ утилиты (ENTRYPOINT образа — сама утилита)
        tool_args: флаги утилиты и имена файлов внутри /work
        timeout_seconds: дедлайн

    Returns:
        ToolInvocation: готовый вызов
    """
    mount = f"{workspace.resolve()}:{CONTAINER_WORKDIR}"
    arguments = (
        "run", "--rm",
        "-v", mount,
        "-w", CONTAINER_WORKDIR,
        image,
        *tool_args,
    )
    return ToolInvocation(
        executable=docker_bin,
        arguments=arguments,
        working_directory=workspace,
        timeout_ms=int(timeout_seconds * 1000),
    )


def check_tool_result(
    tool: str,
    invocation: ToolInvocation,
    result: ToolResult,
    expected_output: Path,
    log_prefix: str,
) -> None:
    """
    Проверяет результат стадии: таймаут, код выхода, наличие выходного файла.

    Любой ненулевой код считается фатальным.

    Raises:
        ToolTimeoutError: процесс не уложился в дедлайн
        ToolExecutionError: ненулевой код выхода
        MissingOutputError: код 0, но выходного файла нет
    """
    output = result.combined_output
    error: Optional[ConversionError] = None

    if result.timed_out:
        error = ToolTimeoutError(tool, invocation.timeout_ms, output)
    elif result.exit_code != 0:
        error = ToolExecutionError(tool, result.exit_code, output)
    elif not expected_output.is_file():
        error = MissingOutputError(tool, expected_output, output)

    if error is None:
        _log_output(log_prefix, output, logging.DEBUG)
        return

    logger.error(f"{log_prefix} {error.message}")
    _log_output(log_prefix, output, logging.ERROR)
    raise error


def _log_output(prefix: str, output: str, level: int) -> None:
    # Построчно, с префиксом утилиты: [OCR] ..., [P2H] ...
    for line in output.splitlines():
        logger.log(level, f"{prefix} {line}")
