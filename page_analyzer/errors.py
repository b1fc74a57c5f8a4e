from dataclasses import dataclass


@dataclass(frozen=True)
class ErrorCode:
    code: str
    message: str


URLS_001_INVALID_URL = ErrorCode(
    "URLS_001_INVALID_URL",
    "Address is not a valid absolute http(s) URL.",
)
URLS_002_DUPLICATE = ErrorCode(
    "URLS_002_DUPLICATE",
    "Address is already registered.",
)
URLS_003_NOT_FOUND = ErrorCode(
    "URLS_003_NOT_FOUND",
    "Address was not found.",
)
URLS_004_UNREACHABLE = ErrorCode(
    "URLS_004_UNREACHABLE",
    "Could not reach address.",
)
URLS_005_STORE_FAILURE = ErrorCode(
    "URLS_005_STORE_FAILURE",
    "Storage operation failed.",
)


class PageAnalyzerError(RuntimeError):
    def __init__(self, err: ErrorCode, detail: str = "") -> None:
        suffix = f" detail={detail}" if detail else ""
        super().__init__(f"{err.code}: {err.message}{suffix}")
        self.err = err
        self.detail = detail


class StoreError(PageAnalyzerError):
    def __init__(self, detail: str = "") -> None:
        super().__init__(URLS_005_STORE_FAILURE, detail)


class DuplicateAddressError(PageAnalyzerError):
    def __init__(self, name: str) -> None:
        super().__init__(URLS_002_DUPLICATE, name)
        self.name = name
