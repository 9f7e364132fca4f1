# errors.py
from typing import Iterable


class ConfigurationError(ValueError):
    """Missing table/key/descriptor configuration, or nothing to build a statement from."""


class ValidationError(ValueError):
    def __init__(self, action: str, errors: Iterable[str]):
        self.action = action
        self.errors = list(errors)
        super().__init__(f"Can't {action}: " + "; ".join(self.errors))


class UsageError(TypeError):
    """A dynamic query was called the wrong way (e.g. with positional arguments)."""
