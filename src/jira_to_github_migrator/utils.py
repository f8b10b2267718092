"""
Utility functions for the Jira to GitHub migration tool.
"""

from __future__ import annotations

import logging
import os
import re
import subprocess


class PassError(Exception):
    """Base class for pass-related errors."""


class InvalidPassPathError(PassError):
    """Raised when the pass path format is invalid."""


class PassphraseRequiredError(PassError):
    """Raised when a GPG passphrase is required for the pass utility."""


def setup_logging(*, verbosity: int = 0) -> None:
    """Configure logging for the migration process.

    The console shows warnings by default, info with -v and debug with -vv.
    The migration.log file always receives debug output.
    """
    if verbosity >= 2:
        console_level = logging.DEBUG
    elif verbosity == 1:
        console_level = logging.INFO
    else:
        console_level = logging.WARNING

    formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")

    console_handler = logging.StreamHandler()
    console_handler.setLevel(console_level)
    console_handler.setFormatter(formatter)

    file_handler = logging.FileHandler("migration.log", mode="a")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)


def _validate_pass_path(pass_path: str) -> None:
    """Validate the pass path format."""
    if not re.fullmatch(r"(?:[A-Za-z0-9_-]+)(?:/[A-Za-z0-9_-]+)*", pass_path):
        msg = f"Invalid pass path: {pass_path}"
        raise ValueError(msg)


def _run_pass(pass_path: str, passphrase: str | None = None) -> str:
    env = None
    if passphrase is not None:
        env = os.environ | {"PASSWORD_STORE_GPG_OPTS": "--pinentry-mode=loopback --passphrase-fd 0"}
    result = subprocess.run(  # noqa: S603
        ["pass", pass_path], input=passphrase, capture_output=True, text=True, check=True, env=env
    )
    return result.stdout.strip()


def _failure_message(pass_path: str, error: subprocess.CalledProcessError, attempt: str = "") -> str:
    return (
        f"Failed to get value from pass at '{pass_path}'{attempt}.\n"
        f"Error: {error.stderr.strip()}\n"
        f"Return code: {error.returncode}"
    )


def _needs_passphrase(error: subprocess.CalledProcessError) -> bool:
    stderr = error.stderr.lower()
    return error.returncode == 2 and "gpg" in stderr and "public key decryption failed" in stderr


def get_pass_value(pass_path: str) -> str:
    """Get value from pass utility at specified path.

    Prompts once for the GPG passphrase when the key is locked.
    """
    _validate_pass_path(pass_path)

    try:
        return _run_pass(pass_path)
    except FileNotFoundError as e:
        msg = "The pass utility is not installed"
        raise PassError(msg) from e
    except subprocess.CalledProcessError as e:
        if e.returncode == 1 and "not in the password store" in e.stderr.lower():
            msg = f"Pass path '{pass_path}' not found or invalid."
            raise InvalidPassPathError(msg) from e
        if not _needs_passphrase(e):
            raise PassError(_failure_message(pass_path, e)) from e

    # Fails in non-interactive sessions (e.g. pytest)
    try:
        passphrase = input("Enter passphrase for GPG key used by pass: ")
    except EOFError as e:
        msg = "Passphrase input was interrupted. Please run the command in an interactive session."
        raise PassphraseRequiredError(msg) from e

    try:
        return _run_pass(pass_path, passphrase)
    except subprocess.CalledProcessError as e:
        raise PassphraseRequiredError(_failure_message(pass_path, e, " with passphrase")) from e
        msg = (
            f"Failed to get value from pass at '{pass_path}'.\n"
            f"Error: {e.stderr.strip()}\n"
            f"Return code: {e.returncode}"
        )
        raise PassError(msg) from e

    return result.stdout.strip()


def resolve_token(pass_path: str | None, env_var: str, default_pass_path: str) -> str | None:
    """Resolve a token from an explicit pass path, an environment variable, or a default pass path.

    The explicit pass path must work. The default pass path is optional: when
    it cannot be read, None is returned.
    """
    if pass_path:
        return get_pass_value(pass_path)

    token: str | None = os.environ.get(env_var)
    if token:
        return token

    try:
        return get_pass_value(default_pass_path)
    except PassError:
        return None
