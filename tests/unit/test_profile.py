"""Tests for the profile model and its YAML mapping format."""

from __future__ import annotations

import pytest

from proman.core import profile as profile_module
from proman.core.errors import ProfileError
from proman.core.profile import (
    Profile,
    ProjectType,
    PromptProjectName,
    PromptProjectType,
    ShellCommand,
    Step,
)
from proman.core.runner import StepRunner


class TestProjectType:
    """ProjectType ordering, labels and parsing."""

    def test_ordering(self):
        assert sorted([ProjectType.WORKSPACE, ProjectType.BINARY, ProjectType.LIBRARY]) == [
            ProjectType.BINARY,
            ProjectType.LIBRARY,
            ProjectType.WORKSPACE,
        ]

    def test_label(self):
        assert ProjectType.LIBRARY.label == "Library"

    def test_parse_case_insensitive(self):
        assert ProjectType.parse(" Binary ") is ProjectType.BINARY
        assert ProjectType.parse(ProjectType.WORKSPACE) is ProjectType.WORKSPACE

    def test_parse_unknown(self):
        with pytest.raises(ValueError, match="unknown project type"):
            ProjectType.parse("plugin")
        with pytest.raises(ValueError):
            ProjectType.parse(3)


class TestActions:
    """Action descriptions and placeholder expansion."""

    def test_describe(self):
        types = [ProjectType.LIBRARY, ProjectType.BINARY]
        assert PromptProjectType().describe(types) == "Prompting project type (binary, library)"
        assert PromptProjectName().describe() == "Prompting project name"
        cmd = ShellCommand("cargo", ("new", "demo"))
        assert cmd.describe() == 'Running "cargo new demo"...'

    def test_expand_known_placeholders(self):
        cmd = ShellCommand("echo", ("{project_type}:{project_name}", "plain"))
        expanded = cmd.expand({"project_name": "demo", "project_type": "library"})
        assert expanded == ["library:demo", "plain"]

    def test_expand_leaves_unknown_placeholders(self):
        cmd = ShellCommand("echo", ("{project_name}", "{other}"))
        assert cmd.expand({}) == ["{project_name}", "{other}"]
        assert cmd.expand({"project_name": "x"}) == ["x", "{other}"]


class TestFromMapping:
    """Parsing profile documents."""

    def test_full_document(self):
        profile = Profile.from_mapping(
            {
                "language": "rust",
                "requirements": ["cargo"],
                "project_types": ["library", "binary"],
                "steps": [
                    {"name": "Type", "action": "prompt_project_type"},
                    {"name": "Name", "action": "PROMPT_PROJECT_NAME"},
                    {
                        "name": "Create",
                        "action": {"shell": {"program": "cargo", "args": ["new", "x"]}},
                    },
                ],
            }
        )
        assert profile.language == "rust"
        assert profile.requirements == ("cargo",)
        assert profile.sorted_project_types() == [ProjectType.BINARY, ProjectType.LIBRARY]
        assert profile.steps == (
            Step("Type", PromptProjectType()),
            Step("Name", PromptProjectName()),
            Step("Create", ShellCommand("cargo", ("new", "x"))),
        )

    def test_string_args_are_shell_split(self):
        profile = Profile.from_mapping(
            {
                "language": "go",
                "steps": [
                    {
                        "name": "Dir",
                        "action": {
                            "shell": {"program": "mkdir", "args": "-p 'a b' {project_name}"}
                        },
                    }
                ],
            }
        )
        assert profile.steps[0].action == ShellCommand("mkdir", ("-p", "a b", "{project_name}"))

    def test_minimal_document(self):
        profile = Profile.from_mapping({"language": "zig"})
        assert profile.steps == ()
        assert profile.project_types == frozenset()

    @pytest.mark.parametrize(
        "data, problem",
        [
            ([], "document must be a mapping"),
            ({"language": ""}, "'language' must be a non-empty string"),
            ({"language": "x", "project_types": ["plugin"]}, "unknown project type"),
            ({"language": "x", "steps": [{"name": "a", "action": "dance"}]}, "unknown action"),
            ({"language": "x", "steps": [{"action": "prompt_project_name"}]}, "non-empty 'name'"),
            (
                {"language": "x", "steps": [{"name": "a", "action": {"shell": {"args": []}}}]},
                "'program' must be a non-empty string",
            ),
            ({"language": "x", "requirements": "cargo"}, "'requirements' must be a list"),
            (
                {"language": "x", "requirements": ["cargo", "  "]},
                "'requirements' entries must not be blank",
            ),
        ],
    )
    def test_malformed(self, data, problem):
        with pytest.raises(ProfileError) as exc_info:
            Profile.from_mapping(data, source="bad.yaml")
        assert problem in exc_info.value.problem
        assert exc_info.value.source == "bad.yaml"
        assert "Suggestion:" in str(exc_info.value)

    def test_to_mapping_matches_input(self):
        data = {
            "language": "rust",
            "requirements": ["cargo"],
            "project_types": ["binary", "library"],
            "steps": [
                {"name": "Type", "action": "prompt_project_type"},
                {"name": "Build", "action": {"shell": {"program": "cargo", "args": ["build"]}}},
            ],
        }
        assert Profile.from_mapping(data).to_mapping() == data


class TestProfile:
    """Identity, requirements and runner construction."""

    def test_compared_by_language_only(self, make_profile):
        a = make_profile(language="rust", project_types=("binary",))
        b = make_profile(language="rust", project_types=("library",), requirements=("cargo",))
        assert a == b
        assert make_profile(language="go") < make_profile(language="rust")

    def test_missing_requirements(self, make_profile, monkeypatch):
        monkeypatch.setattr(
            profile_module.shutil, "which", lambda name: "/usr/bin/git" if name == "git" else None
        )
        profile = make_profile(requirements=("git", "cargo", "python3 >= 3.11"))
        assert profile.missing_requirements() == ["cargo", "python3 >= 3.11"]

    def test_create_runner(self, rust_like_profile, fake_executor):
        runner = rust_like_profile.create_runner(executor=fake_executor)
        assert isinstance(runner, StepRunner)
        assert runner.steps == rust_like_profile.steps
        assert runner.supported_project_types == (ProjectType.BINARY, ProjectType.LIBRARY)
        assert runner.executor is fake_executor
        assert not runner.started

    def test_blank_requirement_is_never_missing(self, monkeypatch):
        monkeypatch.setattr(profile_module.shutil, "which", lambda name: None)
        profile = Profile(language="x", requirements=("", "cargo"))
        assert profile.missing_requirements() == ["cargo"]
