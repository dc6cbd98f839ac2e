from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

PathLike = Union[str, Path]


class SiteBuildError(Exception):
    """Base class for every error that aborts a build."""

    def __init__(self, message: str, path: Optional[PathLike] = None):
        super().__init__(message)
        self.message = message
        self.path = str(path) if path is not None else None

    def __str__(self) -> str:
        if self.path:
            return f"{self.path}: {self.message}"
        return self.message


class ConfigError(SiteBuildError):
    pass


class MalformedDocumentError(SiteBuildError):
    pass


class MissingFieldError(SiteBuildError):
    def __init__(self, field: str, path: Optional[PathLike] = None):
        super().__init__(f"missing required field '{field}'", path)
        self.field = field


class TypeMismatchError(SiteBuildError):
    def __init__(self, field: str, expected: str, value: object, path: Optional[PathLike] = None):
        super().__init__(f"field '{field}' must be {expected}, got {value!r}", path)
        self.field = field
        self.expected = expected
        self.value = value


class UnknownLayoutError(SiteBuildError):
    def __init__(self, layout: str, path: Optional[PathLike] = None):
        super().__init__(f"unknown layout '{layout}'", path)
        self.layout = layout


class LayoutChainError(SiteBuildError):
    pass


class WriteConflictError(SiteBuildError):
    def __init__(self, output_path: str, first: str, second: str):
        super().__init__(f"output path {output_path} claimed by both {first} and {second}", second)
        self.output_path = output_path
        self.first = first
        self.second = second
