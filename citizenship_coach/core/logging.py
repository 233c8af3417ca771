"""
logging.py
----------

Console/file logging setup for the Citizenship Coach service.

Every module logs through `logging.getLogger(__name__)`. `setup_logging()`
wires the root logger once at startup: a colourised console handler that
tags records as `[Success]`, `[Info]`, `[Warning]` or `[Error]`, and an
optional plain file handler.
"""

import logging
import os


class BCOLORS:
    HEADER = "\033[95m"
    OKBLUE = "\033[94m"
    OKCYAN = "\033[96m"
    OKGREEN = "\033[92m"
    WARNING = "\033[93m"
    FAIL = "\033[91m"
    ENDC = "\033[0m"
    BOLD = "\033[1m"
    UNDERLINE = "\033[4m"


INFOR_DICT = {
    "success": {"color": BCOLORS.OKGREEN, "comment": "Success"},
    "fail": {"color": BCOLORS.FAIL, "comment": "Fail"},
    "warning": {"color": BCOLORS.WARNING, "comment": "Warning"},
    "info": {"color": BCOLORS.HEADER, "comment": "Info"},
    "error": {"color": BCOLORS.FAIL, "comment": "Error"},
    "debug": {"color": BCOLORS.OKCYAN, "comment": "Debug"},
}

# Log levels mapped onto INFOR_DICT statuses.
LEVEL_STATUS = {
    logging.DEBUG: "debug",
    logging.INFO: "info",
    logging.WARNING: "warning",
    logging.ERROR: "error",
    logging.CRITICAL: "fail",
}


def set_color(status: str, information: str) -> str:
    """Set color to display information on terminal.

    Args:
        status (str): information type, see INFOR_DICT.keys.
        information (str): information to be printed.

    Returns:
        information (str): colorized information.
    """
    status = status.lower()

    return f"{INFOR_DICT[status]['color']}[{INFOR_DICT[status]['comment']}]{BCOLORS.ENDC} {information}"


class ColorFormatter(logging.Formatter):
    """Formatter prefixing each record with a coloured status tag."""

    def format(self, record: logging.LogRecord) -> str:
        status = getattr(record, "status", None) or LEVEL_STATUS.get(record.levelno, "info")
        return set_color(status, super().format(record))


def setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """
    Configure the root logger.

    Args:
        level (str): Root log level name.
        log_file (str, optional): Also write plain records to this file.
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(ColorFormatter("%(name)s - %(message)s"))
    root_logger.addHandler(console_handler)

    if log_file:
        workdir = os.path.dirname(log_file)
        if workdir:
            os.makedirs(workdir, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s - %(message)s")
        )
        root_logger.addHandler(file_handler)
