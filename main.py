import logging

import anyio

from push_worker.config import ConfigurationError, load_settings
from push_worker.worker import NotificationWorker

logger = logging.getLogger("push_worker")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger for the worker process."""

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def main() -> None:
    """Validate the configuration and run the worker until it is signalled."""

    configure_logging()
    try:
        settings = load_settings()
    except ConfigurationError as exc:
        logger.critical("%s", exc)
        raise SystemExit(1) from exc

    logging.getLogger().setLevel(getattr(logging, settings.log_level, logging.INFO))
    worker = NotificationWorker.from_settings(settings)
    anyio.run(worker.run)


if __name__ == "__main__":
    main()
