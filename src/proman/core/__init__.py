"""proman core - profiles, the step runner, its event bus and the wizard state machine.

The terminal UI (proman.tui) and the headless driver (proman.headless) sit on
top of this package; nothing in here touches the terminal.
"""

from proman.core.app import App, InputMode, KeyKind, KeyPress, Screen, View
from proman.core.bus import EventBus, Subscription
from proman.core.catalog import find_profile, load_catalog
from proman.core.commands import CommandExecutor, CommandRun
from proman.core.config import ConfigResolver, LoggingPolicy, RunnerSettings, UISettings
from proman.core.errors import (
    CatalogEmptyError,
    ConfigError,
    NoBusError,
    ProfileError,
    ProManError,
    ReplyError,
    RunnerError,
)
from proman.core.events import (
    CommandOutput,
    Done,
    Envelope,
    ReplyChannel,
    RequestChoice,
    RequestProjectName,
    RequestProjectType,
    RequestTextInput,
    StepStarted,
)
from proman.core.logging import VerbosityLevel, get_logger, get_verbosity, set_verbosity
from proman.core.profile import (
    Profile,
    ProjectType,
    PromptProjectName,
    PromptProjectType,
    ShellCommand,
    Step,
)
from proman.core.runner import StepRunner
from proman.core.selectable_list import SelectableList

__all__ = [
    # Profiles
    "Profile",
    "ProjectType",
    "PromptProjectName",
    "PromptProjectType",
    "ShellCommand",
    "Step",
    "find_profile",
    "load_catalog",
    # Running
    "StepRunner",
    "CommandExecutor",
    "CommandRun",
    "EventBus",
    "Subscription",
    "Envelope",
    "ReplyChannel",
    "StepStarted",
    "CommandOutput",
    "RequestTextInput",
    "RequestProjectName",
    "RequestChoice",
    "RequestProjectType",
    "Done",
    # State machine
    "App",
    "InputMode",
    "KeyKind",
    "KeyPress",
    "Screen",
    "View",
    "SelectableList",
    # Config
    "ConfigResolver",
    "LoggingPolicy",
    "RunnerSettings",
    "UISettings",
    # Errors
    "ProManError",
    "ConfigError",
    "ProfileError",
    "CatalogEmptyError",
    "RunnerError",
    "NoBusError",
    "ReplyError",
    # Logging
    "VerbosityLevel",
    "get_logger",
    "get_verbosity",
    "set_verbosity",
]
