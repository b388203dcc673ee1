"""Release-driven CodeQL scanning for GitHub App installations."""

__version__ = "1.0.0"
