import json
from dataclasses import FrozenInstanceError
from datetime import timedelta

import pytest

from mathcaptcha.config import (
    CaptchaOptions, DEFAULT_OPTIONS, load_options, get_redis_uri, delete_on_success_from_env,
)
from mathcaptcha.errors import CaptchaConfigurationError


def test_defaults_are_valid():
    assert DEFAULT_OPTIONS.width == 115
    assert DEFAULT_OPTIONS.height == 50
    assert DEFAULT_OPTIONS.duration_of_validity == timedelta(minutes=10)
    assert DEFAULT_OPTIONS.text_colors


def test_options_are_immutable():
    with pytest.raises(FrozenInstanceError):
        DEFAULT_OPTIONS.width = 10


@pytest.mark.parametrize("changes", [
    {'number1_min_value': 5, 'number1_max_value': 5},
    {'number2_min_value': 10, 'number2_max_value': 3},
    {'width': 0},
    {'text_colors': ()},
    {'noise_rate_colors': ()},
    {'min_line_thickness': 3, 'max_line_thickness': 2},
    {'max_rotation_degrees': -1},
    {'duration_of_validity': 0},
    {'font_style': 'wavy'},
    {'text_opacity': 0},
    {'noise_workers': 0},
])
def test_degenerate_options_fail_eagerly(changes):
    with pytest.raises(CaptchaConfigurationError):
        DEFAULT_OPTIONS.replace(**changes)


def test_configuration_error_is_a_value_error():
    with pytest.raises(ValueError):
        CaptchaOptions(number1_min_value=2, number1_max_value=1)


def test_duration_in_seconds_is_normalized():
    options = CaptchaOptions(duration_of_validity=90)
    assert options.duration_of_validity == timedelta(seconds=90)


def test_load_options_from_json(tmp_path):
    path = tmp_path / "captcha.json"
    path.write_text(json.dumps({
        'width': 200,
        'text_colors': ['red', [0, 0, 255]],
        'duration_of_validity': 30,
    }))
    options = load_options(str(path))
    assert options.width == 200
    assert options.text_colors == ('red', (0, 0, 255))
    assert options.duration_of_validity == timedelta(seconds=30)


def test_load_options_rejects_unknown_keys(tmp_path):
    path = tmp_path / "captcha.json"
    path.write_text(json.dumps({'colour': 'red'}))
    with pytest.raises(CaptchaConfigurationError):
        load_options(str(path))


def test_load_options_without_file_uses_defaults(tmp_path, monkeypatch):
    monkeypatch.setenv('CAPTCHA_CONFIG_FILE', str(tmp_path / "missing.json"))
    assert load_options() is DEFAULT_OPTIONS


def test_get_redis_uri_uses_index(tmp_path, monkeypatch):
    path = tmp_path / "redis.json"
    path.write_text(json.dumps({'redis_urls': ['redis://a:6379/0', 'redis://b:6379/1']}))
    monkeypatch.setenv('REDIS_URL_INDEX', '1')
    assert get_redis_uri(str(path)) == 'redis://b:6379/1'

    monkeypatch.setenv('REDIS_URL_INDEX', '2')
    with pytest.raises(CaptchaConfigurationError):
        get_redis_uri(str(path))


@pytest.mark.parametrize("value, expected", [('1', True), ('true', True), ('YES', True), ('0', False), ('', False)])
def test_delete_on_success_from_env(monkeypatch, value, expected):
    monkeypatch.setenv('CAPTCHA_DELETE_ON_SUCCESS', value)
    assert delete_on_success_from_env() is expected
