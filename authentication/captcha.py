"""
CAPTCHA verification against a reCAPTCHA-compatible siteverify endpoint
"""
import logging

import requests
from django.conf import settings

logger = logging.getLogger(__name__)


class CaptchaService:

    @staticmethod
    def is_enabled():
        return bool(settings.CAPTCHA_SECRET_KEY) and not settings.PREVIEW_MODE

    @staticmethod
    def verify(token, remote_ip=None):
        """
        Returns True when the token is accepted or verification is disabled.
        Network failures count as a failed check.
        """
        if not CaptchaService.is_enabled():
            return True
        if not token:
            return False

        payload = {'secret': settings.CAPTCHA_SECRET_KEY, 'response': token}
        if remote_ip:
            payload['remoteip'] = remote_ip

        try:
            resp = requests.post(settings.CAPTCHA_VERIFY_URL, data=payload, timeout=settings.CAPTCHA_TIMEOUT)
        except requests.RequestException as e:
            logger.error("CAPTCHA verification request failed: %s", e)
            return False

        if resp.status_code >= 400:
            logger.warning('CAPTCHA verification failed: %s %s', resp.status_code, resp.text[:500])
            return False

        try:
            data = resp.json() or {}
        except ValueError:
            logger.error("CAPTCHA verification returned a non-JSON body: %s", resp.text[:500])
            return False
        if not isinstance(data, dict):
            logger.error("CAPTCHA verification returned unexpected payload: %r", data)
            return False
        if not data.get('success'):
            logger.info("CAPTCHA rejected: %s", data.get('error-codes'))
            return False
        return True
