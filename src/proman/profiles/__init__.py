"""Bundled language profiles (YAML, one profile per file)."""
