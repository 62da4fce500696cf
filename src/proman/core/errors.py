"""Error handling with friendly messages."""

from __future__ import annotations


class ProManError(Exception):
    """Base exception for all proman errors."""

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        self.message = message
        self.suggestion = suggestion
        super().__init__(message)

    def __str__(self) -> str:
        if self.suggestion:
            return f"{self.message}\nSuggestion: {self.suggestion}"
        return self.message


class ConfigError(ProManError):
    """Configuration error."""

    pass


class ProfileError(ConfigError):
    """A profile document could not be parsed."""

    def __init__(self, source: str, problem: str) -> None:
        self.source = source
        self.problem = problem
        super().__init__(
            f"Invalid profile '{source}': {problem}",
            "Check the profile against the bundled examples: proman show <language>",
        )


class CatalogEmptyError(ConfigError):
    """No profile could be loaded from any source."""

    def __init__(self, profiles_dir: str) -> None:
        super().__init__(
            "No language profiles found",
            f"Add a profile YAML file to {profiles_dir}",
        )


class RunnerError(ProManError):
    """Step runner lifecycle error."""

    pass


class NoBusError(RunnerError):
    """Runner was started but its event bus is gone."""

    def __init__(self) -> None:
        super().__init__("Runner has started but holds no event bus")


class ReplyError(RunnerError):
    """Reply channel misuse."""

    pass
