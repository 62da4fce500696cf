"""Headless driver - run a profile without the terminal UI.

Prompts are answered from values given up front (`proman run rust --name demo
--type library`); command output is printed as it arrives. A prompt without a
pre-supplied answer is abandoned, which the runner reports as an unanswered
prompt and the run continues.
"""

from __future__ import annotations

import sys
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TextIO

from proman.core.events import (
    CommandOutput,
    RequestProjectName,
    RequestProjectType,
    StepStarted,
)
from proman.core.logging import get_logger
from proman.core.profile import Profile, ProjectType
from proman.core.runner import StepRunner

log = get_logger(__name__)


@dataclass
class HeadlessResult:
    steps: list[str] = field(default_factory=list)
    output: list[str] = field(default_factory=list)
    unanswered: list[str] = field(default_factory=list)
    project_name: str | None = None
    project_type: ProjectType | None = None
    aborted: bool = False

    @property
    def ok(self) -> bool:
        return not self.aborted and not self.unanswered


def run_headless(
    profile: Profile,
    *,
    project_name: str | None = None,
    project_type: ProjectType | None = None,
    runner_factory: Callable[[Profile], StepRunner] | None = None,
    out: TextIO | None = None,
) -> HeadlessResult:
    """Drive one run to completion, answering prompts from the arguments."""
    stream = out or sys.stdout
    runner = runner_factory(profile) if runner_factory else profile.create_runner()
    result = HeadlessResult()

    with runner.start_or_attach() as subscription:
        while True:
            envelope = subscription.recv()
            if envelope is None:
                break
            event = envelope.event

            if isinstance(event, StepStarted):
                result.steps.append(event.name)
                print(f"==> {event.name}", file=stream)
            elif isinstance(event, CommandOutput):
                result.output.append(event.line)
                print(f"    {event.line}", file=stream)
            elif isinstance(event, RequestProjectName):
                if project_name is None:
                    log.warning("Project name prompt left unanswered (use --name)")
                    result.unanswered.append("project_name")
                    event.reply.close()
                else:
                    event.reply.send(project_name)
            elif isinstance(event, RequestProjectType):
                if project_type is None or project_type not in event.options:
                    allowed = ", ".join(t.value for t in event.options)
                    log.warning(f"Project type prompt left unanswered (use --type: {allowed})")
                    result.unanswered.append("project_type")
                    event.reply.close()
                else:
                    event.reply.send(project_type)

            if envelope.is_terminal:
                break

    runner.join(timeout=5.0)
    result.project_name = runner.project_name
    result.project_type = runner.project_type
    result.aborted = runner.aborted
    return result
