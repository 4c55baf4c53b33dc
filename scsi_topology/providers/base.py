"""Base system fact provider"""

from typing import List, Optional
import logging
import shutil
import subprocess


class BaseProvider:
    """Base class for system fact providers

    Providers wrap one OS interface each (a command or a file tree) and turn
    its output into model objects. They never raise on a failing command;
    they log and hand back empty data instead.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        """Initialize the provider

        Args:
            logger: Logger instance for output
        """
        self.logger = logger or logging.getLogger(__name__)

    def _execute_command(self, cmd: List[str], handle_errors: bool = True,
                        decode_method: str = 'utf-8') -> str:
        """Execute a command and return its standard output

        Args:
            cmd: Command to execute as list of strings
            handle_errors: Whether to handle errors or let them propagate
            decode_method: Method to decode command output

        Returns:
            str: Command output as string

        Raises:
            subprocess.CalledProcessError: If command fails and handle_errors is False
            OSError: If the command cannot be started and handle_errors is False
        """
        self.logger.debug(f"Executing command: {' '.join(cmd)}")

        try:
            result = subprocess.run(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE, check=True)

            try:
                output = result.stdout.decode(decode_method)
            except UnicodeDecodeError:
                self.logger.debug(f"{decode_method} decoding failed, falling back to latin-1")
                output = result.stdout.decode('latin-1')

            return output

        except subprocess.CalledProcessError as e:
            if handle_errors:
                stderr = e.stderr.decode('latin-1').strip() if e.stderr else ""
                self.logger.error(f"Error executing command {' '.join(cmd)}: {e} {stderr}".rstrip())
                return ""
            raise
        except OSError as e:
            if handle_errors:
                self.logger.error(f"Cannot execute {cmd[0]}: {e}")
                return ""
            raise

    def _check_command_exists(self, cmd: str) -> bool:
        """Check if a command exists in the system PATH

        Args:
            cmd: Command to check

        Returns:
            bool: True if command exists, False otherwise
        """
        return shutil.which(cmd) is not None
