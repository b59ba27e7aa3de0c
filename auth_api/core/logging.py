# auth_api/core/logging.py
import logging

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    # passlib warns about the bcrypt version check on every start
    logging.getLogger("passlib").setLevel(logging.ERROR)
