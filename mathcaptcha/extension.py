import logging

from .config import CaptchaOptions, DEFAULT_OPTIONS, delete_on_success_from_env
from .logger import setup_logger
from .service import ChallengeService
from .store import CacheChallengeStore, configure_cache

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'math_captcha'


class MathCaptcha:
    """Flask extension holding the captcha service of an app.

    Reads ``CAPTCHA_OPTIONS``, ``CAPTCHA_DELETE_ON_SUCCESS`` (defaults to the
    environment), ``CAPTCHA_KEY_PREFIX`` and ``CAPTCHA_LOG_DIR`` from the app
    config. Without an explicit store the challenges go to the app's
    flask_caching cache.
    """

    def __init__(self, app=None, store=None, renderer=None, localizer=None):
        self.store = store
        self.renderer = renderer
        self.localizer = localizer
        self.options = DEFAULT_OPTIONS
        self.service = None
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        app.config.setdefault('CAPTCHA_DELETE_ON_SUCCESS', delete_on_success_from_env())
        app.config.setdefault('CAPTCHA_KEY_PREFIX', 'captcha:')
        setup_logger(log_dir=app.config.get('CAPTCHA_LOG_DIR'))

        options = app.config.get('CAPTCHA_OPTIONS')
        if isinstance(options, dict):
            options = CaptchaOptions.from_dict(options)
        self.options = options or DEFAULT_OPTIONS

        if self.store is None:
            cache = configure_cache(app)
            self.store = CacheChallengeStore(cache, prefix=app.config['CAPTCHA_KEY_PREFIX'])

        self.service = ChallengeService(
            self.store,
            renderer=self.renderer,
            delete_on_success=app.config['CAPTCHA_DELETE_ON_SUCCESS'],
            localizer=self.localizer,
        )
        app.extensions[EXTENSION_KEY] = self
        logger.info(f"Math captcha ready ({type(self.store).__name__})")

    def generate(self, options=None, number1=None, number2=None):
        return self.service.generate(options or self.options, number1, number2)

    def validate(self, identifier, value):
        return self.service.validate(identifier, value)

    def validate_or_raise(self, identifier, value):
        return self.service.validate_or_raise(identifier, value)
