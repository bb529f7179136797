"""Extension-keyed dispatch table for resolved file paths."""

import os
from collections.abc import Callable
from pathlib import Path

from compiler import Compiler
from config import COMPILE_EXTENSION
from file_handlers import CompiledFileHandler, not_found, serve_file
from response import HTTPResponse

FileHandler = Callable[[Path], HTTPResponse]


class ContentDispatcher:
    def __init__(self, default_handler: FileHandler = serve_file) -> None:
        self._handlers: dict[str, FileHandler] = {}
        self._default_handler = default_handler

    @classmethod
    def with_compiler(
        cls,
        compiler: Compiler,
        compile_extension: str = COMPILE_EXTENSION,
    ) -> "ContentDispatcher":
        dispatcher = cls()
        dispatcher.add_handler(compile_extension, CompiledFileHandler(compiler))
        return dispatcher

    def add_handler(self, extension: str, handler: FileHandler) -> None:
        if not extension.startswith("."):
            raise ValueError("extension must start with '.'")
        self._handlers[extension] = handler

    def resolve(self, extension: str) -> FileHandler:
        return self._handlers.get(extension, self._default_handler)

    def dispatch(self, file_path: str | Path) -> HTTPResponse:
        """Build the response for a resolved filesystem path.

        Missing paths (and anything that is not a regular file) get the
        fixed 404 response without consulting the handler table. Handler
        errors propagate.
        """
        path = Path(file_path)
        if not path.is_file():
            return not_found()

        _root, extension = os.path.splitext(path.name)
        handler = self.resolve(extension)
        return handler(path)
