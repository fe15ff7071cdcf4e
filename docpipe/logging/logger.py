import logging
import sys

_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class Log:
    """Process-wide logging facade for the ``docpipe`` logger.

    Output goes to stderr; stdout carries the JSON report printed by the CLI.
    Keyword arguments are attached to the record as ``extra`` fields.
    """

    _logger: logging.Logger = logging.getLogger("docpipe")

    @classmethod
    def configure(cls, log_level: str) -> None:
        cls._logger.setLevel(log_level.upper())
        if any(getattr(h, "_docpipe", False) for h in cls._logger.handlers):
            return
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._docpipe = True  # type: ignore[attr-defined]
        cls._logger.addHandler(handler)

    @classmethod
    def _emit(cls, level: int, message: str, fields: dict[str, object], **options: bool) -> None:
        cls._logger.log(level, message, extra=fields, stacklevel=3, **options)

    @classmethod
    def debug(cls, message: str, **kwargs: object) -> None:
        cls._emit(logging.DEBUG, message, kwargs)

    @classmethod
    def info(cls, message: str, **kwargs: object) -> None:
        cls._emit(logging.INFO, message, kwargs)

    @classmethod
    def warning(cls, message: str, **kwargs: object) -> None:
        cls._emit(logging.WARNING, message, kwargs)

    @classmethod
    def error(cls, message: str, **kwargs: object) -> None:
        cls._emit(logging.ERROR, message, kwargs)

    @classmethod
    def exception(cls, message: str, **kwargs: object) -> None:
        """Log at ERROR with the active exception's traceback."""
        cls._emit(logging.ERROR, message, kwargs, exc_info=True)
