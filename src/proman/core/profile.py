"""Language profile model.

A profile is an immutable, named recipe: the language it scaffolds, free-text
requirements, the project types it supports and an ordered list of steps.

Profiles are parsed from mappings (one YAML document per profile):

    language: rust
    requirements: [cargo]
    project_types: [binary, library]
    steps:
      - name: Choose project type
        action: prompt_project_type
      - name: Choose project name
        action: prompt_project_name
      - name: Create project
        action:
          shell:
            program: cargo
            args: ["new", "{project_name}"]
"""

from __future__ import annotations

import shlex
import shutil
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Union

from proman.core.errors import ProfileError

if TYPE_CHECKING:
    from proman.core.commands import CommandExecutor
    from proman.core.config import RunnerSettings
    from proman.core.runner import StepRunner


class ProjectType(StrEnum):
    """Kinds of project a profile can scaffold.

    Values sort in declaration order.
    """

    BINARY = "binary"
    LIBRARY = "library"
    WORKSPACE = "workspace"

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @classmethod
    def parse(cls, raw: Any) -> ProjectType:
        if isinstance(raw, ProjectType):
            return raw
        if not isinstance(raw, str):
            raise ValueError(f"project type must be a string, got {type(raw).__name__}")
        try:
            return cls(raw.strip().lower())
        except ValueError:
            allowed = ", ".join(t.value for t in cls)
            raise ValueError(f"unknown project type {raw!r} (allowed: {allowed})") from None


@dataclass(frozen=True)
class PromptProjectType:
    """Ask the user to pick one of the profile's project types."""

    def describe(self, project_types: Iterable[ProjectType] = ()) -> str:
        names = ", ".join(t.value for t in sorted(project_types))
        return f"Prompting project type ({names})" if names else "Prompting project type"


@dataclass(frozen=True)
class PromptProjectName:
    """Ask the user to type the project name."""

    def describe(self, project_types: Iterable[ProjectType] = ()) -> str:
        return "Prompting project name"


@dataclass(frozen=True)
class ShellCommand:
    """Run an external program.

    Arguments may reference {project_name} and {project_type}; see expand().
    """

    program: str
    arguments: tuple[str, ...] = ()

    def describe(self, project_types: Iterable[ProjectType] = ()) -> str:
        return f'Running "{self.command_line()}"...'

    def command_line(self) -> str:
        return " ".join([self.program, *self.arguments])

    def expand(self, values: Mapping[str, str]) -> list[str]:
        """Substitute known placeholders; unknown ones stay verbatim."""
        return [_substitute(arg, values) for arg in self.arguments]


StepAction = Union[PromptProjectType, PromptProjectName, ShellCommand]


@dataclass(frozen=True)
class Step:
    name: str
    action: StepAction


@dataclass(frozen=True, order=True)
class Profile:
    """A language profile, compared and ordered by language only."""

    language: str
    requirements: tuple[str, ...] = field(default=(), compare=False)
    project_types: frozenset[ProjectType] = field(default=frozenset(), compare=False)
    steps: tuple[Step, ...] = field(default=(), compare=False)

    @property
    def label(self) -> str:
        return self.language

    def sorted_project_types(self) -> list[ProjectType]:
        return sorted(self.project_types)

    def missing_requirements(self) -> list[str]:
        """Requirements that are not executables on PATH."""
        return [
            req for req in self.requirements if req.strip() and shutil.which(req.split()[0]) is None
        ]

    def create_runner(
        self,
        *,
        executor: CommandExecutor | None = None,
        settings: RunnerSettings | None = None,
    ) -> StepRunner:
        from proman.core.runner import StepRunner

        return StepRunner(self.steps, self.project_types, executor=executor, settings=settings)

    @classmethod
    def from_mapping(cls, data: Any, source: str = "<mapping>") -> Profile:
        """Build a Profile from a parsed YAML document.

        Raises:
            ProfileError: If the document is malformed
        """
        if not isinstance(data, Mapping):
            raise ProfileError(source, "document must be a mapping")

        language = data.get("language")
        if not isinstance(language, str) or not language.strip():
            raise ProfileError(source, "'language' must be a non-empty string")

        requirements = _string_list(data.get("requirements", []), "requirements", source)
        if any(not req.strip() for req in requirements):
            raise ProfileError(source, "'requirements' entries must not be blank")

        raw_types = data.get("project_types", [])
        if not isinstance(raw_types, list):
            raise ProfileError(source, "'project_types' must be a list")
        try:
            project_types = frozenset(ProjectType.parse(t) for t in raw_types)
        except ValueError as e:
            raise ProfileError(source, str(e)) from e

        raw_steps = data.get("steps", [])
        if not isinstance(raw_steps, list):
            raise ProfileError(source, "'steps' must be a list")
        steps = tuple(_parse_step(raw, idx, source) for idx, raw in enumerate(raw_steps, 1))

        return cls(
            language=language.strip(),
            requirements=tuple(requirements),
            project_types=project_types,
            steps=steps,
        )

    def to_mapping(self) -> dict[str, Any]:
        """Inverse of from_mapping."""
        steps: list[dict[str, Any]] = []
        for step in self.steps:
            action: Any
            if isinstance(step.action, ShellCommand):
                action = {
                    "shell": {"program": step.action.program, "args": list(step.action.arguments)}
                }
            elif isinstance(step.action, PromptProjectName):
                action = "prompt_project_name"
            else:
                action = "prompt_project_type"
            steps.append({"name": step.name, "action": action})

        return {
            "language": self.language,
            "requirements": list(self.requirements),
            "project_types": [t.value for t in self.sorted_project_types()],
            "steps": steps,
        }


_PROMPT_ACTIONS: dict[str, StepAction] = {
    "prompt_project_type": PromptProjectType(),
    "prompt_project_name": PromptProjectName(),
}


def _parse_step(raw: Any, idx: int, source: str) -> Step:
    if not isinstance(raw, Mapping):
        raise ProfileError(source, f"step {idx} must be a mapping")

    name = raw.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ProfileError(source, f"step {idx} needs a non-empty 'name'")

    action = raw.get("action")
    if isinstance(action, str):
        key = action.strip().lower()
        if key not in _PROMPT_ACTIONS:
            raise ProfileError(source, f"step {idx} has unknown action {action!r}")
        return Step(name=name, action=_PROMPT_ACTIONS[key])

    if isinstance(action, Mapping) and "shell" in action:
        return Step(name=name, action=_parse_shell(action["shell"], idx, source))

    raise ProfileError(source, f"step {idx} has an invalid 'action'")


def _parse_shell(raw: Any, idx: int, source: str) -> ShellCommand:
    if not isinstance(raw, Mapping):
        raise ProfileError(source, f"step {idx}: 'shell' must be a mapping")

    program = raw.get("program")
    if not isinstance(program, str) or not program.strip():
        raise ProfileError(source, f"step {idx}: 'program' must be a non-empty string")

    args = raw.get("args", [])
    if isinstance(args, str):
        try:
            arguments = shlex.split(args)
        except ValueError as e:
            raise ProfileError(source, f"step {idx}: cannot split args: {e}") from e
    else:
        arguments = _string_list(args, f"step {idx} args", source)

    return ShellCommand(program=program.strip(), arguments=tuple(arguments))


def _string_list(value: Any, what: str, source: str) -> list[str]:
    if not isinstance(value, list):
        raise ProfileError(source, f"'{what}' must be a list")
    out: list[str] = []
    for item in value:
        if isinstance(item, bool) or not isinstance(item, (str, int, float)):
            raise ProfileError(source, f"'{what}' entries must be strings")
        out.append(str(item))
    return out


def _substitute(arg: str, values: Mapping[str, str]) -> str:
    for key, value in values.items():
        arg = arg.replace("{" + key + "}", value)
    return arg
