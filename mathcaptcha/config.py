import json
import os
import logging
from dataclasses import dataclass, fields, replace
from datetime import timedelta

from .errors import CaptchaConfigurationError

logger = logging.getLogger(__name__)

FONT_STYLES = ("regular", "bold", "italic", "bold_italic")

CAPTCHA_CONFIG_FILE = 'Database/captcha.json'
REDIS_CONFIG_FILE = 'Database/redis.json'


@dataclass(frozen=True)
class CaptchaOptions:
    width: int = 115
    height: int = 50

    # Operand ranges are [min, max)
    number1_min_value: int = 1
    number1_max_value: int = 99
    number2_min_value: int = 1
    number2_max_value: int = 99

    font_size: int = 30
    font_style: str = "italic"
    font_families: tuple = ("DejaVuSans", "LiberationSans", "FreeSans", "Arial")
    text_colors: tuple = ("blue", "black", "black", "brown", "gray", "green")
    background_color: str = "white"
    text_opacity: float = 0.8

    draw_lines: int = 3
    noise_rate: int = 800
    noise_rate_colors: tuple = ("gray",)
    min_line_thickness: float = 0.7
    max_line_thickness: float = 2.0
    max_rotation_degrees: int = 5
    noise_workers: int = 4

    duration_of_validity: timedelta = timedelta(minutes=10)
    image_format: str = "PNG"

    def __post_init__(self):
        # Accept plain seconds and lists from JSON config
        if isinstance(self.duration_of_validity, (int, float)):
            object.__setattr__(self, 'duration_of_validity', timedelta(seconds=self.duration_of_validity))
        for name in ('font_families', 'text_colors', 'noise_rate_colors'):
            value = getattr(self, name)
            if isinstance(value, list):
                object.__setattr__(self, name, tuple(tuple(c) if isinstance(c, list) else c for c in value))
        self.validate()

    def validate(self):
        if self.width <= 0 or self.height <= 0:
            raise CaptchaConfigurationError(f"Image size must be positive, got {self.width}x{self.height}")
        if self.number1_max_value <= self.number1_min_value:
            raise CaptchaConfigurationError(
                f"number1 range is empty: [{self.number1_min_value}, {self.number1_max_value})")
        if self.number2_max_value <= self.number2_min_value:
            raise CaptchaConfigurationError(
                f"number2 range is empty: [{self.number2_min_value}, {self.number2_max_value})")
        if self.font_size <= 0:
            raise CaptchaConfigurationError("font_size must be positive")
        if self.font_style not in FONT_STYLES:
            raise CaptchaConfigurationError(f"Unknown font_style {self.font_style!r}, expected one of {FONT_STYLES}")
        if not self.text_colors:
            raise CaptchaConfigurationError("text_colors must not be empty")
        if not self.noise_rate_colors:
            raise CaptchaConfigurationError("noise_rate_colors must not be empty")
        if self.draw_lines < 0 or self.noise_rate < 0:
            raise CaptchaConfigurationError("draw_lines and noise_rate must not be negative")
        if self.min_line_thickness <= 0 or self.min_line_thickness > self.max_line_thickness:
            raise CaptchaConfigurationError(
                f"Invalid line thickness range [{self.min_line_thickness}, {self.max_line_thickness}]")
        if self.max_rotation_degrees < 0:
            raise CaptchaConfigurationError("max_rotation_degrees must not be negative")
        if not 0 < self.text_opacity <= 1:
            raise CaptchaConfigurationError("text_opacity must be in (0, 1]")
        if self.noise_workers < 1:
            raise CaptchaConfigurationError("noise_workers must be at least 1")
        if self.duration_of_validity <= timedelta(0):
            raise CaptchaConfigurationError("duration_of_validity must be positive")

    def replace(self, **changes):
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, data):
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise CaptchaConfigurationError(f"Unknown captcha option(s): {', '.join(sorted(unknown))}")
        return cls(**data)


DEFAULT_OPTIONS = CaptchaOptions()


def load_options(path=None) -> CaptchaOptions:
    """Load captcha options from a JSON file, falling back to the defaults."""
    path = path or os.getenv('CAPTCHA_CONFIG_FILE', CAPTCHA_CONFIG_FILE)
    if not os.path.exists(path):
        logger.info(f"No captcha config at {path}, using defaults")
        return DEFAULT_OPTIONS
    with open(path) as config_file:
        config_data = json.load(config_file)
    return CaptchaOptions.from_dict(config_data)


def get_redis_uri(path=None):
    path = path or os.getenv('CAPTCHA_REDIS_CONFIG', REDIS_CONFIG_FILE)
    with open(path) as config_file:
        config_data = json.load(config_file)
    redis_url_index = int(os.getenv('REDIS_URL_INDEX', 0))
    redis_urls = config_data.get('redis_urls', [])
    if redis_url_index >= len(redis_urls):
        raise CaptchaConfigurationError("Invalid REDIS_URL_INDEX value")
    return redis_urls[redis_url_index]


def delete_on_success_from_env():
    return os.getenv('CAPTCHA_DELETE_ON_SUCCESS', '').strip().lower() in ('1', 'true', 'yes')
