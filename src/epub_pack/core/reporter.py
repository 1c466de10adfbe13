"""Collects diagnostics produced during a build."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import NoReturn

from epub_pack.core.errors import FatalError

log = logging.getLogger(__name__)


class Severity(str, Enum):
    """How bad a reported condition is."""

    INFO = "info"
    WARN = "warn"
    ERR = "err"
    FATAL = "fatal"


@dataclass
class Report:
    """A single reported condition."""

    severity: Severity
    message: str


@dataclass
class Reporter:
    """Records benign transformations, irregularities and defects.

    `info` and `warn` never affect the result. `err` marks a defect that was
    repaired. `fatal` raises `FatalError` and ends the run.
    """

    reports: list[Report] = field(default_factory=list)

    def info(self, message: str) -> None:
        log.info(message)
        self.reports.append(Report(Severity.INFO, message))

    def warn(self, message: str) -> None:
        log.warning(message)
        self.reports.append(Report(Severity.WARN, message))

    def err(self, message: str) -> None:
        log.error(message)
        self.reports.append(Report(Severity.ERR, message))

    def fatal(self, message: str) -> NoReturn:
        self.reports.append(Report(Severity.FATAL, message))
        raise FatalError(message)

    def messages(self, severity: Severity) -> list[str]:
        return [r.message for r in self.reports if r.severity == severity]

    @property
    def warning_count(self) -> int:
        return len(self.messages(Severity.WARN))

    @property
    def error_count(self) -> int:
        return len(self.messages(Severity.ERR))
