"""proman - create new projects from per-language step profiles."""

__version__ = "0.1.0"
