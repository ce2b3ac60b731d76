"""
Общие фикстуры тестов.

FakeRunner подменяет docker: запоминает вызовы и создаёт
выходные файлы так, как это сделали бы ocrmypdf и pdf2htmlEX.
"""

from pathlib import Path
from typing import Optional

import pytest

from converter.config import Settings
from converter.schemas import ToolInvocation, ToolResult

OCR_IMAGE = "test/ocrmypdf:latest"
P2H_IMAGE = "test/pdf2htmlex:latest"

SAMPLE_PDF = b"%PDF-1.4\n" + b"0" * 10 * 1024 + b"\n%%EOF\n"


class FakeRunner:
    """
    Поддельный запуск утилит.

    Attributes:
        calls: все полученные вызовы по порядку
        files_seen: содержимое рабочей папки на момент каждого вызова
        exit_codes: код выхода по образу (по умолчанию 0)
        timeouts: образы, для которых эмулируется таймаут
        skip_output: образы, которые "забывают" создать выходной файл
        container_ids: что вернёт docker ps по рабочей папке
    """

    def __init__(self):
        self.calls: list[ToolInvocation] = []
        self.files_seen: list[set[str]] = []
        self.exit_codes: dict[str, int] = {}
        self.timeouts: set[str] = set()
        self.skip_output: set[str] = set()
        self.container_ids: list[str] = ["c0ffee01"]

    def __call__(self, invocation: ToolInvocation) -> ToolResult:
        self.calls.append(invocation)
        workspace = invocation.working_directory
        self.files_seen.append({p.name for p in workspace.iterdir()})

        if invocation.arguments[:1] == ("ps",):
            listing = "".join(f"{c}\n" for c in self.container_ids)
            return ToolResult(exit_code=0, timed_out=False, combined_output=listing)
        if invocation.arguments[:1] == ("kill",):
            return ToolResult(exit_code=0, timed_out=False, combined_output="")

        image = self.image_of(invocation)
        if image in self.timeouts:
            return ToolResult(exit_code=-9, timed_out=True, combined_output="slow...\n")

        exit_code = self.exit_codes.get(image, 0)
        if exit_code != 0:
            return ToolResult(exit_code=exit_code, timed_out=False, combined_output="boom\n")

        if image not in self.skip_output:
            self._produce(image, invocation)
        return ToolResult(exit_code=0, timed_out=False, combined_output="ok\nline 2\n")

    @staticmethod
    def image_of(invocation: ToolInvocation) -> Optional[str]:
        for image in (OCR_IMAGE, P2H_IMAGE):
            if image in invocation.arguments:
                return image
        return None

    def calls_for(self, image: str) -> list[ToolInvocation]:
        return [c for c in self.calls if self.image_of(c) == image]

    def _produce(self, image: str, invocation: ToolInvocation) -> None:
        workspace = invocation.working_directory
        input_name, output_name = invocation.arguments[-2], invocation.arguments[-1]

        if image == OCR_IMAGE:
            source = (workspace / input_name).read_bytes()
            (workspace / output_name).write_bytes(source + b"%OCR\n")
        elif image == P2H_IMAGE:
            (workspace / output_name).write_text(
                f"<html><body>{input_name}</body></html>", encoding="utf-8"
            )
            (workspace / "output.css").write_text("body{}", encoding="utf-8")
            (workspace / "bg1.png").write_bytes(b"\x89PNG\r\n\x1a\n")
            fonts = workspace / "fonts"
            fonts.mkdir(exist_ok=True)
            (fonts / "f1.woff").write_bytes(b"wOFF\x00\x01")


@pytest.fixture
def workspace_root(tmp_path: Path) -> Path:
    root = tmp_path / "workspaces"
    root.mkdir()
    return root


@pytest.fixture
def test_settings(workspace_root: Path) -> Settings:
    return Settings(
        _env_file=None,
        docker_bin="docker",
        ocr_image=OCR_IMAGE,
        pdf2htmlex_image=P2H_IMAGE,
        zoom=1.3,
        ocr_enabled=True,
        ocr_lang="spa+eng",
        ocr_force=True,
        workspace_dir=str(workspace_root),
    )


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def sample_pdf() -> bytes:
    return SAMPLE_PDF
