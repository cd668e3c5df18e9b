"""Errors, command execution, console logging, filesystem helpers, cluster config defaults and validation for local container-based Kubernetes tooling."""

__version__ = "0.11.0a0"

__all__ = ["cli", "config", "env", "errors", "exec", "fs", "log", "validate", "version"]