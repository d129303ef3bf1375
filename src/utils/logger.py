import logging

from rich.logging import RichHandler

from utils.config import load_settings


class CenteredFormatter(logging.Formatter):
    longest_name_length = 12  # grows with the longest logger name seen

    def __init__(self, fmt=None, datefmt=None, style="%", initial_width=12):
        super().__init__(fmt, datefmt, style)
        CenteredFormatter.longest_name_length = initial_width

    def format(self, record):
        CenteredFormatter.longest_name_length = max(
            CenteredFormatter.longest_name_length, len(record.name)
        )
        # pad a copy; other handlers share the record
        padded = logging.makeLogRecord(record.__dict__)
        padded.name = record.name.center(CenteredFormatter.longest_name_length)
        return super().format(padded)


def get_logger(name=None) -> logging.Logger:
    """
    Return a logger writing through RichHandler, plus a plain file handler
    when PIZZA_LOG_FILE is set (the terminal belongs to the TUI while it runs).
    """
    name = name or "pizzastore"
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    settings = load_settings()
    log_level = logging.DEBUG if settings.debug else logging.INFO
    logger.setLevel(log_level)

    console_handler = RichHandler(
        show_time=True,
        show_level=True,
        show_path=False,
        rich_tracebacks=True,
        log_time_format="[%X]",
    )
    console_handler.setFormatter(CenteredFormatter("[%(name)s]  %(message)s"))
    console_handler.setLevel(log_level)
    logger.addHandler(console_handler)

    if settings.log_file:
        file_handler = logging.FileHandler(settings.log_file, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)-8s [%(name)s] %(message)s")
        )
        file_handler.setLevel(log_level)
        logger.addHandler(file_handler)

    logger.propagate = False
    logger.debug(f"Logger for '{name}' initialized.")
    return logger
