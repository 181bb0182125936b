"""Checks for external tools the deployment depends on."""

import shutil

from .console import print_error


class CommandError(Exception):
    """A required external command is missing."""

    pass


# name -> install hint
REQUIRED_COMMANDS = {
    "aws": "https://docs.aws.amazon.com/cli/latest/userguide/getting-started-install.html",
    "node": "https://nodejs.org/en/download/",
}


def check_command_exists(cmd: str) -> bool:
    """Check if a command is available in PATH."""
    return shutil.which(cmd) is not None


def check_required_commands() -> None:
    """Check that the AWS CLI (used by the test script) and Node.js (used by CDK) exist."""
    missing = [cmd for cmd in REQUIRED_COMMANDS if not check_command_exists(cmd)]

    for cmd in missing:
        print_error(f"{cmd} command not found.")
        print_error(f"   Install it from: {REQUIRED_COMMANDS[cmd]}")

    if missing:
        raise CommandError(f"missing commands: {', '.join(missing)}")
