"""ship: release automation for git repositories and npm packages."""

__version__ = "0.1.0"
