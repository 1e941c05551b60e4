# mathcaptcha/__init__.py

from .config import CaptchaOptions, DEFAULT_OPTIONS, load_options
from .errors import *
from .models import Challenge, ValidationResult
from .renderer import CaptchaRenderer, renderer
from .service import ChallengeService
from .store import ChallengeStore, CacheChallengeStore, RedisChallengeStore
from .extension import MathCaptcha
from .logger import setup_logger
from .version import __version__
