from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True, slots=True)
class NetworkError:
    """The request could not be completed (DNS, connect, TLS, timeout)."""
    message: str

    @property
    def failing(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class UnexpectedStatus:
    """A response arrived but its status was not the expected one."""
    message: str
    status_code: Optional[int] = None

    @property
    def failing(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class Success:
    message: str
    status_code: Optional[int] = None

    @property
    def failing(self) -> bool:
        return False


Outcome = Union[NetworkError, UnexpectedStatus, Success]
