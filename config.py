"""Configuration constants for the compile-on-demand file server."""

HOST: str = "127.0.0.1"
PORT: int = 8080
LISTEN_URI: str = f"http://{HOST}:{PORT}/"
BASE_DIR: str = "web"
MOUNT_PREFIX: str = ""
DEFAULT_DOCUMENT: str = "index.html"
COMPILE_EXTENSION: str = ".ts"
TSC_COMMAND: tuple[str, ...] = ("tsc",)
COMPILE_TIMEOUT_SECS: float | None = 60.0
BUFFER_SIZE: int = 1024
SOCKET_TIMEOUT_SECS: float = 5.0
LISTEN_BACKLOG: int = 128
MAX_HEADER_BYTES: int = 16_384
MAX_TARGET_LENGTH: int = 4096
SERVER_NAME: str = "tsfileserver/1.0"
LOG_FORMAT: str = "plain"
DRAIN_TIMEOUT_SECS: float = 1.0
MAX_DRAIN_BYTES: int = 1_048_576
