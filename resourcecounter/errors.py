#!/usr/bin/env python3
"""
Error handling for the resource counter application.

This module provides:
1. Custom exception classes for the store, codec and configuration layers
2. Global exception handling for the Typer app
3. Error logging with sanitized command context
4. User-friendly error messages
"""
import functools
import logging
import os
import re
import sys
import traceback
import uuid
from typing import Any, Callable, Dict, List, Optional

import typer

logger = logging.getLogger("resourcecounter")


class ResourceCounterError(Exception):
    """Base class for all resource counter exceptions."""
    def __init__(self, message: str, error_code: Optional[str] = None):
        self.message = message
        self.error_code = error_code or "RESCNT-GEN-ERR"
        super().__init__(message)


class ConfigError(ResourceCounterError):
    """Error related to configuration issues."""
    def __init__(self, message: str):
        super().__init__(message, "RESCNT-CFG-ERR")


class StoreError(ResourceCounterError):
    """Error related to store operations."""
    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message, error_code or "RESCNT-STR-ERR")


class NotFoundError(StoreError):
    """No record exists for the requested key."""
    def __init__(self, key: Any):
        self.key = key
        super().__init__(f"No resource stored for key {key}", "RESCNT-NF-ERR")


class ConflictError(StoreError):
    """A conditional put was rejected because the stored counter moved on."""
    def __init__(self, key: Any, expected: int):
        self.key = key
        self.expected = expected
        super().__init__(
            f"Conditional write on {key} rejected: num_calls is no longer {expected}",
            "RESCNT-CONFLICT-ERR",
        )


class TransportError(StoreError):
    """Network, timeout or service-side failure talking to the store."""
    def __init__(self, message: str, aws_code: Optional[str] = None):
        self.aws_code = aws_code
        super().__init__(message, "RESCNT-TRANSPORT-ERR")


class CodecError(ResourceCounterError):
    """A stored item could not be decoded into a Resource."""
    def __init__(self, message: str):
        super().__init__(message, "RESCNT-CODEC-ERR")


# Patterns for sensitive information that should be redacted
SENSITIVE_PATTERNS = [
    re.compile(r'(?i)(password|secret|token|key|credential)=([^&\s]+)'),
    # AWS access key ids
    re.compile(r'\b((?:AKIA|ASIA)[A-Z0-9]{16})\b'),
]

SENSITIVE_NAMES = {
    'password', 'secret', 'key', 'token', 'credential', 'session',
}


def sanitize_string(text: str) -> str:
    """
    Remove sensitive information from a string.

    Args:
        text: The string to sanitize

    Returns:
        Sanitized string with sensitive information redacted
    """
    if not text:
        return text

    sanitized = SENSITIVE_PATTERNS[0].sub(r'\1=[REDACTED]', text)
    sanitized = SENSITIVE_PATTERNS[1].sub('[REDACTED]', sanitized)
    return sanitized


def is_sensitive_name(name: str) -> bool:
    name = name.lower()
    return any(part in name for part in SENSITIVE_NAMES)


def sanitize_command_args(args: List[str]) -> List[str]:
    """Sanitize command-line arguments, redacting values of sensitive options."""
    sanitized_args = []
    redact_next = False

    for arg in args:
        if redact_next:
            sanitized_args.append("[REDACTED]")
            redact_next = False
            continue

        if arg.startswith("-") and "=" in arg:
            key, value = arg.split("=", 1)
            if is_sensitive_name(key.lstrip("-")):
                sanitized_args.append(f"{key}=[REDACTED]")
            else:
                sanitized_args.append(f"{key}={sanitize_string(value)}")
        elif arg.startswith("-"):
            sanitized_args.append(arg)
            redact_next = is_sensitive_name(arg.lstrip("-"))
        else:
            sanitized_args.append(sanitize_string(arg))

    return sanitized_args


def get_command_context(argv: Optional[List[str]] = None) -> Dict[str, Any]:
    """
    Get sanitized context information about the command being executed.

    Only our own and the AWS environment variables are included, and anything
    that looks like credential material is redacted.
    """
    if argv is None:
        argv = sys.argv

    env_info = {}
    for key, value in os.environ.items():
        if key.startswith("RESCOUNT_") or key.startswith("AWS_"):
            env_info[key] = "[REDACTED]" if is_sensitive_name(key) else sanitize_string(value)

    return {
        "command": argv[0] if argv else "unknown",
        "args": sanitize_command_args(argv[1:]),
        "env": env_info,
    }


def generate_error_id() -> str:
    """
    Generate a unique error ID for tracking purposes.

    Returns:
        String error ID (truncated UUID)
    """
    return str(uuid.uuid4())[:8]


def handle_errors(func: Callable) -> Callable:
    """
    Decorator for Typer commands that turns exceptions into a logged error
    with a reference ID, a red message for the user and exit code 1.

    ``typer.Exit`` and ``typer.Abort`` pass through untouched.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (typer.Exit, typer.Abort):
            raise
        except KeyboardInterrupt:
            typer.echo("\nOperation cancelled by user.")
            raise typer.Exit(code=130)
        except Exception as e:
            error_id = generate_error_id()
            is_known_error = isinstance(e, ResourceCounterError)
            error_code = e.error_code if is_known_error else "RESCNT-UNK-ERR"

            tb_text = "".join(traceback.format_exception(*sys.exc_info()))
            logger.error(
                f"Exception occurred [ID: {error_id}] [Code: {error_code}]\n"
                f"Error: {str(e)}\n"
                f"Command context: {get_command_context()}\n\n"
                f"Traceback:\n{tb_text}"
            )

            typer.secho("Error: ", fg=typer.colors.RED, bold=True, nl=False, err=True)
            if is_known_error:
                typer.secho(f"{str(e)} [{error_code}]", fg=typer.colors.RED, err=True)
            else:
                typer.secho(
                    f"An unexpected error occurred [ID: {error_id}].\n"
                    f"Run again with --debug for details.",
                    fg=typer.colors.RED,
                    err=True,
                )
            raise typer.Exit(code=1)

    return wrapper
