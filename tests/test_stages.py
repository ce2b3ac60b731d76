"""
Тесты стадий OCR и рендера: аргументы docker run и обработка ошибок.
"""

from pathlib import Path

import pytest

from converter.errors import MissingOutputError, ToolExecutionError, ToolTimeoutError
from converter.services.ocr_stage import OCR_OUTPUT_FILENAME, build_ocr_invocation, run_ocr
from converter.services.render_stage import (
    build_render_invocation,
    format_zoom,
    run_render,
)


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    ws = tmp_path / "ws"
    ws.mkdir()
    (ws / "input.pdf").write_bytes(b"%PDF-1.4\n")
    return ws


class TestOcrStage:
    """ocrmypdf."""

    def test_force_flags(self, test_settings, workspace: Path):
        invocation = build_ocr_invocation(
            test_settings, workspace, workspace / "input.pdf", workspace / "ocr.pdf",
            "spa+eng", True,
        )

        assert invocation.arguments == (
            "run", "--rm",
            "-v", f"{workspace.resolve()}:/work",
            "-w", "/work",
            test_settings.ocr_image,
            "--force-ocr",
            "-l", "spa+eng",
            "input.pdf",
            "ocr.pdf",
        )
        assert invocation.timeout_ms == 600_000

    def test_skip_text_when_not_forced(self, test_settings, workspace: Path):
        invocation = build_ocr_invocation(
            test_settings, workspace, workspace / "input.pdf", workspace / "ocr.pdf",
            "eng", False,
        )

        assert "--skip-text" in invocation.arguments
        assert "--force-ocr" not in invocation.arguments

    def test_returns_output_file(self, test_settings, workspace: Path, fake_runner):
        output = run_ocr(
            test_settings, workspace, workspace / "input.pdf", "spa+eng", True,
            runner=fake_runner,
        )

        assert output == workspace / OCR_OUTPUT_FILENAME
        assert output.is_file()
        assert len(fake_runner.calls) == 1

    def test_nonzero_exit(self, test_settings, workspace: Path, fake_runner):
        fake_runner.exit_codes[test_settings.ocr_image] = 1

        with pytest.raises(ToolExecutionError) as exc_info:
            run_ocr(test_settings, workspace, workspace / "input.pdf", "eng", True, runner=fake_runner)

        assert exc_info.value.exit_code == 1
        assert exc_info.value.tool == "ocrmypdf"

    def test_timeout(self, test_settings, workspace: Path, fake_runner):
        fake_runner.timeouts.add(test_settings.ocr_image)

        with pytest.raises(ToolTimeoutError):
            run_ocr(test_settings, workspace, workspace / "input.pdf", "eng", True, runner=fake_runner)

    def test_missing_output(self, test_settings, workspace: Path, fake_runner):
        fake_runner.skip_output.add(test_settings.ocr_image)

        with pytest.raises(MissingOutputError):
            run_ocr(test_settings, workspace, workspace / "input.pdf", "eng", True, runner=fake_runner)


class TestRenderStage:
    """pdf2htmlEX."""

    def test_flags(self, test_settings, workspace: Path):
        invocation = build_render_invocation(
            test_settings, workspace, workspace / "ocr.pdf", workspace / "output.html", 1.3,
        )

        image_index = invocation.arguments.index(test_settings.pdf2htmlex_image)
        assert invocation.arguments[image_index + 1:] == (
            "--zoom", "1.3",
            "--split-pages", "0",
            "--embed-css", "0",
            "--embed-font", "0",
            "--embed-image", "0",
            "--fallback", "1",
            "--process-outline", "0",
            "ocr.pdf",
            "output.html",
        )
        assert "pdf2htmlEX" not in invocation.arguments
        assert invocation.timeout_ms == 300_000

    @pytest.mark.parametrize("zoom,expected", [(2.0, "2.0"), (2, "2.0"), (1.3, "1.3"), (1.75, "1.75")])
    def test_format_zoom(self, zoom, expected):
        assert format_zoom(zoom) == expected

    def test_success_creates_html(self, test_settings, workspace: Path, fake_runner):
        run_render(
            test_settings, workspace, workspace / "input.pdf", workspace / "output.html", 1.3,
            runner=fake_runner,
        )

        assert (workspace / "output.html").is_file()

    def test_exit_code_two(self, test_settings, workspace: Path, fake_runner):
        fake_runner.exit_codes[test_settings.pdf2htmlex_image] = 2

        with pytest.raises(ToolExecutionError) as exc_info:
            run_render(
                test_settings, workspace, workspace / "input.pdf", workspace / "output.html", 1.3,
                runner=fake_runner,
            )

        assert exc_info.value.exit_code == 2
        assert exc_info.value.tool == "pdf2htmlEX"

    def test_missing_output(self, test_settings, workspace: Path, fake_runner):
        fake_runner.skip_output.add(test_settings.pdf2htmlex_image)

        with pytest.raises(MissingOutputError):
            run_render(
                test_settings, workspace, workspace / "input.pdf", workspace / "output.html", 1.3,
                runner=fake_runner,
            )
