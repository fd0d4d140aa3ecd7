"""
Tagged results returned by repositories and services.

Routers branch on the result type instead of probing dicts for "message"/"error" keys.
"""
from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class Found:
    value: Any


@dataclass(frozen=True)
class NotFound:
    message: str = "Not found"


@dataclass(frozen=True)
class Unauthorized:
    message: str = "User not authorized"


@dataclass(frozen=True)
class Conflict:
    message: str


@dataclass(frozen=True)
class Failed:
    reason: str
    status_code: int = 500


Result = Union[Found, NotFound, Unauthorized, Conflict, Failed]
