from dataclasses import dataclass


@dataclass(frozen=True)
class FfmError:
    message: str


@dataclass(frozen=True)
class SourceFetchError(FfmError):
    league_id: str
    league_name: str = ""


@dataclass(frozen=True)
class PartialDataError(FfmError):
    expected: int
    available: int


@dataclass(frozen=True)
class NoDataError(FfmError):
    attempts: int
