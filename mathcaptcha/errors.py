# errors.py
from enum import Enum

__all__ = [
    "CAPTCHA_CODE_ERROR_MESSAGE", "CAPTCHA_CODE_MISSING_MESSAGE", "MESSAGES", "localize", "FailureReason",
    "CaptchaError", "CaptchaValidationError", "CaptchaConfigurationError", "CaptchaStoreError", "CaptchaRenderError",
]

CAPTCHA_CODE_ERROR_MESSAGE = "CaptchaCodeErrorMessage"
CAPTCHA_CODE_MISSING_MESSAGE = "CaptchaCodeMissingMessage"

# Default catalogue, used when the host does not supply a localizer
MESSAGES = {
    CAPTCHA_CODE_ERROR_MESSAGE: "The answer you entered for the captcha was not correct. Please try again.",
    CAPTCHA_CODE_MISSING_MESSAGE: "The captcha code is missing!",
}


def localize(key, localizer=None):
    if localizer is not None:
        return localizer(key)
    return MESSAGES.get(key, key)


class FailureReason(str, Enum):
    NOT_FOUND_OR_EXPIRED = "NOT_FOUND_OR_EXPIRED"
    INCORRECT_ANSWER = "INCORRECT_ANSWER"
    MALFORMED_INPUT = "MALFORMED_INPUT"

    @property
    def message_key(self):
        if self is FailureReason.MALFORMED_INPUT:
            return CAPTCHA_CODE_MISSING_MESSAGE
        return CAPTCHA_CODE_ERROR_MESSAGE


class CaptchaError(Exception):
    """Base class for everything raised by mathcaptcha."""


class CaptchaValidationError(CaptchaError):
    """A user-facing failure; the caller should show `message` and issue a new challenge."""

    def __init__(self, reason, localizer=None):
        self.reason = FailureReason(reason)
        self.message_key = self.reason.message_key
        self.message = localize(self.message_key, localizer)
        super().__init__(self.message)


class CaptchaConfigurationError(CaptchaError, ValueError):
    pass


class CaptchaStoreError(CaptchaError):
    pass


class CaptchaRenderError(CaptchaError):
    pass
