"""Response builders for each kind of served file."""

from pathlib import Path

from compiler import Compiler
from response import HTTPResponse
from utils import get_content_type

NOT_FOUND_BODY = "404 - Not found"
FORBIDDEN_BODY = "403 - Forbidden"
INTERNAL_ERROR_BODY = "500 - Internal server error"


def serve_file(file_path: Path) -> HTTPResponse:
    return HTTPResponse(
        status_code=200,
        headers={"Content-Type": get_content_type(file_path)},
        body=file_path.read_bytes(),
    )


class CompiledFileHandler:
    """Compile a source file, then serve the artifact as a static file.

    The content type comes from the artifact's extension, never the
    source's. Compiler errors propagate to the caller.
    """

    def __init__(self, compiler: Compiler) -> None:
        self.compiler = compiler

    def __call__(self, file_path: Path) -> HTTPResponse:
        artifact_path = Path(self.compiler.compile(file_path))
        return serve_file(artifact_path)


def not_found() -> HTTPResponse:
    return HTTPResponse(status_code=404, body=NOT_FOUND_BODY)


def forbidden() -> HTTPResponse:
    return HTTPResponse(status_code=403, body=FORBIDDEN_BODY)


def internal_error() -> HTTPResponse:
    return HTTPResponse(status_code=500, body=INTERNAL_ERROR_BODY)
