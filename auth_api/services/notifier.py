# auth_api/services/notifier.py
import logging
from abc import ABC, abstractmethod
from urllib.parse import urlencode

logger = logging.getLogger(__name__)


class Notifier(ABC):
    """Outbound account emails. Implementations may raise; the auth service
    logs the failure and carries on."""

    @abstractmethod
    def send_verification(self, email: str, token: str, name: str) -> None: ...

    @abstractmethod
    def send_password_reset(self, email: str, token: str, name: str) -> None: ...

    @abstractmethod
    def send_welcome(self, email: str, name: str) -> None: ...

    @abstractmethod
    def send_password_changed(self, email: str, name: str) -> None: ...


class LoggingNotifier(Notifier):
    """Writes the links to the log instead of sending mail (development).

    The links carry live tokens, so they only go out at DEBUG.
    """

    def __init__(self, frontend_url: str):
        self.frontend_url = frontend_url.rstrip("/")

    def _link(self, path: str, token: str) -> str:
        return f"{self.frontend_url}/{path}?{urlencode({'token': token})}"

    def send_verification(self, email: str, token: str, name: str) -> None:
        logger.info("Email verification requested for %s", email)
        logger.debug("Verification link for %s (%s): %s", email, name, self._link("verify-email", token))

    def send_password_reset(self, email: str, token: str, name: str) -> None:
        logger.info("Password reset requested for %s", email)
        logger.debug("Password reset link for %s (%s): %s", email, name, self._link("reset-password", token))

    def send_welcome(self, email: str, name: str) -> None:
        logger.info("Welcome email sent to %s for %s", email, name)

    def send_password_changed(self, email: str, name: str) -> None:
        logger.info("Password changed notification sent to %s for %s", email, name)
