import logging

import pytest

from auth_api.services.notifier import LoggingNotifier, Notifier


def test_partial_notifier_cannot_be_created():
    class OnlyVerification(Notifier):
        def send_verification(self, email, token, name):
            pass

    with pytest.raises(TypeError):
        OnlyVerification()


def test_links_with_tokens_stay_out_of_info_logs(caplog):
    notifier = LoggingNotifier("http://front.test/")
    with caplog.at_level(logging.INFO, logger="auth_api.services.notifier"):
        notifier.send_verification("a@x.com", "secret-verify", "A")
        notifier.send_password_reset("a@x.com", "secret-reset", "A")
    assert "a@x.com" in caplog.text
    assert "secret-verify" not in caplog.text
    assert "secret-reset" not in caplog.text

    caplog.clear()
    with caplog.at_level(logging.DEBUG, logger="auth_api.services.notifier"):
        notifier.send_password_reset("a@x.com", "secret-reset", "A")
    assert "http://front.test/reset-password?token=secret-reset" in caplog.text
