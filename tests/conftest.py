import time

import pytest
from flask import Flask
from flask_caching import Cache

from mathcaptcha.config import CaptchaOptions
from mathcaptcha.service import ChallengeService
from mathcaptcha.store import CacheChallengeStore


class FakeClock:
    def __init__(self, now=None):
        self.now = now if now is not None else time.time()

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fast_options():
    return CaptchaOptions(draw_lines=2, noise_rate=40, noise_workers=2, duration_of_validity=60)


@pytest.fixture
def app():
    app = Flask(__name__)
    app.config.update({'TESTING': True, 'CACHE_TYPE': 'SimpleCache', 'CACHE_THRESHOLD': 1000})
    return app


@pytest.fixture
def cache(app):
    return Cache(app)


@pytest.fixture
def store(cache, clock):
    return CacheChallengeStore(cache, clock=clock)


@pytest.fixture
def service(store, clock):
    return ChallengeService(store, clock=clock)
