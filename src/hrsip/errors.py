# src/hrsip/errors.py
from __future__ import annotations

from typing import Dict, List, Sequence


class HrsipError(Exception):
    pass


class ConfigurationError(HrsipError):
    """Malformed or incomplete inputs. Carries every problem found, not just the first."""

    def __init__(self, problems: Sequence[str] | str):
        if isinstance(problems, str):
            problems = [problems]
        self.problems: List[str] = list(problems)
        super().__init__("; ".join(self.problems))


class ValidationError(HrsipError):
    """One or more comparison groups lack a control-side or treatment-side member."""

    def __init__(self, problems: Dict[str, str]):
        self.problems: Dict[str, str] = dict(problems)
        self.labels: List[str] = list(self.problems)
        msg = "; ".join(f"{label}: {why}" for label, why in self.problems.items())
        super().__init__(f"{len(self.labels)} invalid comparison group(s): {msg}")


class EngineError(HrsipError):
    pass


class GroupEngineError(HrsipError):
    """Engine failure for one comparison group, tagged with the group's label."""

    def __init__(self, label: str, cause: BaseException):
        self.label = label
        self.cause = cause
        super().__init__(f"[{label}] {type(cause).__name__}: {cause}")


class DispatchError(HrsipError):
    def __init__(self, errors: Dict[str, GroupEngineError]):
        self.errors = dict(errors)
        super().__init__(f"{len(self.errors)} group(s) failed: {', '.join(self.errors)}")
