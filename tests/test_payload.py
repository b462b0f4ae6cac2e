"""Tests for the webhook payload boundary."""

from __future__ import annotations

from typing import Any

import pytest
from keyed_collections import (
    Collection,
    InvalidArgumentError,
    _config,
    configure_logging,
    decode_payload,
    encode_payload,
    init,
    log_payload,
    sanitize,
)
from structlog.testing import capture_logs


@pytest.fixture(autouse=True)
def isolated_runtime(monkeypatch: pytest.MonkeyPatch) -> None:
    """Start every test from the default configuration."""
    monkeypatch.setattr(_config, '_config', None)
    monkeypatch.delenv('APP_ENV', raising=False)
    configure_logging(level='DEBUG', json_output=True)


@pytest.fixture
def events() -> list[dict[str, Any]]:
    """Collect payload log events."""
    with capture_logs() as captured:
        yield captured


class TestDecode:
    """Tests for decode_payload() and encode_payload()."""

    def test_decode_object(self) -> None:
        """A JSON object becomes a keyed Collection."""
        payload = decode_payload(b'{"event": "push", "commits": [{"id": 1}]}')
        assert payload.get('event') == 'push'
        assert payload.value('commits.0.id') == 1

    def test_decode_array_and_text(self) -> None:
        """Arrays become sequential Collections; str input is accepted."""
        assert decode_payload('[1, 2]').all() == {0: 1, 1: 2}

    def test_decode_empty_body(self) -> None:
        """An empty or blank body is an empty Collection."""
        assert decode_payload(b'').is_empty()
        assert decode_payload('  \n').is_empty()

    def test_decode_malformed(self) -> None:
        """Malformed JSON raises InvalidArgumentError."""
        with pytest.raises(InvalidArgumentError, match='Malformed JSON'):
            decode_payload(b'{"event": ')

    def test_encode(self) -> None:
        """Payloads encode to compact JSON bytes."""
        assert encode_payload(Collection({'a': [1, 2]})) == b'{"a":[1,2]}'
        assert encode_payload({'ok': True}) == b'{"ok":true}'
        assert encode_payload(Collection([1, 2, 3]).filter(lambda v: v > 1)) == b'{"1":2,"2":3}'

    def test_round_trip(self) -> None:
        """Decoding what was encoded restores the entries."""
        body = b'{"event":"push","count":2,"tags":["a","b"],"meta":null}'
        assert encode_payload(decode_payload(body)) == body


class TestSanitize:
    """Tests for sanitize()."""

    def test_masks_default_keys(self) -> None:
        """Sensitive keys are masked case-insensitively."""
        payload = Collection({'user': 'ana', 'Password': 'x', 'TOKEN': 'y', 'cookie': 'z'})
        assert sanitize(payload).all() == {'user': 'ana', 'Password': '***', 'TOKEN': '***', 'cookie': '***'}

    def test_leaves_nested_values(self) -> None:
        """Only top-level keys are inspected."""
        payload = {'auth': {'token': 'y'}, 'pass': 'p'}
        assert sanitize(payload).all() == {'auth': {'token': 'y'}, 'pass': '***'}

    def test_custom_keys(self) -> None:
        """An explicit list replaces the configured keys."""
        assert sanitize({'secret': 1, 'token': 2}, ['SECRET']).all() == {'secret': '***', 'token': 2}

    def test_configured_keys(self) -> None:
        """init() sets the keys used by default."""
        init(environment='local', sensitive_keys=['Signature'])
        assert sanitize({'signature': 's', 'token': 't'}).all() == {'signature': '***', 'token': 't'}

    def test_does_not_mutate(self) -> None:
        """The original payload keeps its values."""
        payload = Collection({'token': 'y'})
        sanitize(payload)
        assert payload.get('token') == 'y'


class TestLogPayload:
    """Tests for log_payload()."""

    def test_local_environment_sanitizes(self, events: list[dict[str, Any]]) -> None:
        """The local environment masks sensitive values by default."""
        init(environment='local')
        log_payload({'event': 'push', 'token': 's3cr3t'}, channel='github')

        assert len(events) == 1
        assert events[0]['channel'] == 'github'
        assert events[0]['environment'] == 'local'
        assert events[0]['log_level'] == 'info'
        assert events[0]['keys'] == 2
        assert events[0]['sanitized'] is True
        assert events[0]['body'] == {'event': 'push', 'token': '***'}

    def test_other_environments_log_raw(self, events: list[dict[str, Any]]) -> None:
        """Outside local the body is logged as received."""
        init(environment='production')
        log_payload(Collection({'token': 's3cr3t'}))

        assert events[0]['channel'] == 'request'
        assert events[0]['environment'] == 'production'
        assert events[0]['sanitized'] is False
        assert events[0]['body'] == {'token': 's3cr3t'}

    def test_explicit_flag_wins(self, events: list[dict[str, Any]]) -> None:
        """sanitize_values overrides the environment."""
        init(environment='production')
        log_payload({'token': 't'}, sanitize_values=True)
        assert events[0]['body'] == {'token': '***'}

    def test_list_bodies(self, events: list[dict[str, Any]]) -> None:
        """Sequential payloads are logged as lists."""
        log_payload([1, 2])
        assert events[0]['body'] == [1, 2]
        assert events[0]['keys'] == 2
