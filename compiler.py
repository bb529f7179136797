"""TypeScript compiler boundary."""

from __future__ import annotations

import logging
import subprocess
import tempfile
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from config import COMPILE_TIMEOUT_SECS, TSC_COMMAND

logger = logging.getLogger(__name__)


class CompilationError(Exception):
    """Raised when a source file cannot be compiled to a servable artifact."""

    def __init__(self, source_path: Path, message: str, *, diagnostics: str = "") -> None:
        super().__init__(f"{source_path}: {message}")
        self.source_path = source_path
        self.diagnostics = diagnostics


class Compiler(Protocol):
    def compile(self, source_path: Path) -> Path:
        """Compile ``source_path`` and return the path of the output artifact."""
        ...


class TypeScriptCompiler:
    """Compile ``.ts`` files by running ``tsc`` in a subprocess.

    Each source file is compiled on its own into ``output_dir``; the
    artifact is ``<output_dir>/<stem>.js``. Without an explicit output
    directory a private temporary directory is created on first use and
    removed again by ``close``.
    """

    def __init__(
        self,
        command: Sequence[str] = TSC_COMMAND,
        output_dir: str | Path | None = None,
        timeout_secs: float | None = COMPILE_TIMEOUT_SECS,
    ) -> None:
        if not command:
            raise ValueError("command cannot be empty")
        self.command = tuple(command)
        self.timeout_secs = timeout_secs
        self._output_dir = Path(output_dir) if output_dir is not None else None
        self._temp_dir: tempfile.TemporaryDirectory[str] | None = None

    @property
    def output_dir(self) -> Path:
        if self._output_dir is None:
            self._temp_dir = tempfile.TemporaryDirectory(prefix="tsfileserver-")
            self._output_dir = Path(self._temp_dir.name)
        return self._output_dir

    def close(self) -> None:
        """Remove the private output directory, if one was created."""
        if self._temp_dir is None:
            return
        self._temp_dir.cleanup()
        self._temp_dir = None
        self._output_dir = None

    def compile(self, source_path: Path) -> Path:
        output_dir = self.output_dir
        output_dir.mkdir(parents=True, exist_ok=True)
        output_path = output_dir / f"{source_path.stem}.js"
        args = [*self.command, "--outDir", str(output_dir), str(source_path)]

        logger.debug("Compiling %s with %s", source_path, " ".join(args))
        try:
            completed = subprocess.run(
                args,
                capture_output=True,
                text=True,
                timeout=self.timeout_secs,
                check=False,
            )
        except FileNotFoundError as exc:
            raise CompilationError(
                source_path, f"compiler executable not found: {self.command[0]}"
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise CompilationError(
                source_path, f"compiler timed out after {self.timeout_secs} seconds"
            ) from exc

        diagnostics = (completed.stdout + completed.stderr).strip()
        if completed.returncode != 0:
            raise CompilationError(
                source_path,
                f"compiler exited with status {completed.returncode}",
                diagnostics=diagnostics,
            )
        if not output_path.is_file():
            raise CompilationError(
                source_path,
                f"compiler did not produce {output_path.name}",
                diagnostics=diagnostics,
            )
        return output_path
