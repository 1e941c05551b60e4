import re
import time
import uuid
import random
import logging

from .config import DEFAULT_OPTIONS
from .errors import CaptchaValidationError, FailureReason
from .models import Challenge, ValidationResult, VALID
from .renderer import CaptchaRenderer

logger = logging.getLogger(__name__)

INTEGER_PATTERN = re.compile(r'[+-]?[0-9]+')


def parse_answer(value):
    """Return `value` as an int, or None if it is not a base 10 integer."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        value = value.strip()
        if INTEGER_PATTERN.fullmatch(value):
            return int(value)
    return None


def parse_identifier(identifier):
    if isinstance(identifier, uuid.UUID):
        return identifier
    try:
        return uuid.UUID(str(identifier).strip())
    except ValueError:
        return None


class ChallengeService:
    def __init__(self, store, renderer=None, delete_on_success=False, localizer=None, clock=None):
        self.store = store
        self.renderer = renderer or CaptchaRenderer()
        self.delete_on_success = delete_on_success
        self.localizer = localizer
        self.clock = clock or time.time

    def generate(self, options=None, number1=None, number2=None) -> Challenge:
        """Create a challenge, render its image and store it until it expires."""
        options = options or DEFAULT_OPTIONS
        rng = random.Random()

        if number1 is None:
            number1 = rng.randrange(options.number1_min_value, options.number1_max_value)
        if number2 is None:
            number2 = rng.randrange(options.number2_min_value, options.number2_max_value)

        text = f"{number1}+{number2}"
        challenge = Challenge(
            id=uuid.uuid4(),
            number1=number1,
            number2=number2,
            text=text,
            result=number1 + number2,
            image_bytes=self.renderer.render(text, options, rng),
        )

        expires_at = self.clock() + options.duration_of_validity.total_seconds()
        self.store.set(challenge.key, challenge, expires_at)
        logger.debug(f"Generated captcha {challenge.key}, valid for {options.duration_of_validity}")
        return challenge

    def validate(self, identifier, value) -> ValidationResult:
        answer = parse_answer(value)
        if answer is None:
            return ValidationResult(False, FailureReason.MALFORMED_INPUT)

        captcha_id = parse_identifier(identifier)
        if captcha_id is None:
            return ValidationResult(False, FailureReason.NOT_FOUND_OR_EXPIRED)

        challenge = self.store.get(captcha_id.hex)
        if challenge is None:
            logger.info(f"Captcha {captcha_id.hex} not found or expired")
            return ValidationResult(False, FailureReason.NOT_FOUND_OR_EXPIRED)
        if challenge.result != answer:
            logger.info(f"Wrong answer for captcha {captcha_id.hex}")
            return ValidationResult(False, FailureReason.INCORRECT_ANSWER)

        if self.delete_on_success:
            self.store.delete(captcha_id.hex)
        return VALID

    def validate_or_raise(self, identifier, value):
        result = self.validate(identifier, value)
        if not result.success:
            raise CaptchaValidationError(result.reason, self.localizer)
