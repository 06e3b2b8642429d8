import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    # uvicorn installs its own handlers; keep our package at the requested level
    logging.getLogger("bracket_league").setLevel(level.upper())
