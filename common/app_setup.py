"""
Reusable logging and print setup for all parts of the project.

Functions:
    setup_logging      - Configure and return a logger.
    set_print_logger   - Set the logger for print_and_log and print_error.
    print_and_log      - Print (via rich) and log an info message.
    print_warning      - Print and log a warning message.
    print_error        - Print and log an error message.
"""

import logging
import logging.handlers
import os
import sys
from typing import Optional

from rich.console import Console
from rich.markup import escape

# Module-level variable to hold the logger for print_and_log and print_error
_print_logger: Optional[logging.Logger] = None

LOGFILE_ENV = "HEADERLINK_LOGFILE"


def setup_logging(app_name: str = "headerlink", daemon: bool = False, loglevel: int = logging.INFO, logfile: Optional[str] = None) -> logging.Logger:
    """
    Set up logging for the application.
    - If daemon=True, logs to syslog (Linux only). headerctl --syslog, for runs
      from systemd units or cron where nobody reads a per-user log file.
    - Otherwise, logs to a file in ~/.<app_name>/log.txt, to $HEADERLINK_LOGFILE
      or to a custom logfile.
    Returns the configured logger.
    """
    logger = logging.getLogger()
    logger.setLevel(loglevel)
    handler: logging.Handler
    if daemon:
        formatter = logging.Formatter(f'%(asctime)s %(levelname)s %(process)d [{app_name}] %(message)s')
        try:
            handler = logging.handlers.SysLogHandler(address='/dev/log')
        except OSError as e:
            print(f"Failed to set up SysLogHandler: {e}", file=sys.stderr)
            handler = logging.StreamHandler()
    else:
        formatter = logging.Formatter('%(asctime)s %(levelname)s %(process)d %(name)s %(message)s')
        if logfile is None:
            logfile = os.environ.get(LOGFILE_ENV)
        if logfile is None:
            log_dir = os.path.expanduser(f"~/.{app_name}")
            os.makedirs(log_dir, exist_ok=True)
            logfile = os.path.join(log_dir, "log.txt")
        handler = logging.FileHandler(logfile)

    # Remove any existing handlers
    for h in logger.handlers[:]:
        logger.removeHandler(h)
        h.close()

    handler.setFormatter(formatter)
    logger.addHandler(handler)
    set_print_logger(logger)
    logger.debug(f"Logger initialized for {app_name} (daemon={daemon}, logfile={logfile})")
    return logger


def set_print_logger(logger: logging.Logger):
    """
    Set the logger to be used by print_and_log and print_error.
    setup_logging calls this already.
    """
    global _print_logger
    _print_logger = logger


def _console(stderr: bool = False) -> Console:
    # Built per call so test runners that swap sys.stdout/sys.stderr are honoured.
    return Console(file=sys.stderr if stderr else sys.stdout, soft_wrap=True, highlight=False)


def print_and_log(message: str, style: Optional[str] = None):
    """
    Print to console (via rich) and log as info.
    """
    text = escape(message)
    _console().print(f"[{style}]{text}[/{style}]" if style else text)
    if _print_logger is not None:
        _print_logger.info(message)


def print_warning(message: str):
    """
    Print and log a warning message (stderr and warning level).
    """
    _console(stderr=True).print(f'[bold yellow]{escape(message)}[/bold yellow]')
    if _print_logger is not None:
        _print_logger.warning(message)


def print_error(message: str):
    """
    Print and log an error message (stderr and error level), using the logger set by set_print_logger.
    """
    _console(stderr=True).print(f'[bold red]{escape(message)}[/bold red]')
    if _print_logger is not None:
        _print_logger.error(message)
