import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str = "INFO") -> None:
    """Configure root logging for the API process and the notification worker"""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT, force=True)
