import logging

import pytest

from client import (
    DEFAULT_RETRY_CONFIG,
    ConnectionErrorKind,
    ConnectionQuality,
    ConnectionState,
    ConnectionStateManager,
    RetryConfig,
)


@pytest.fixture()
def manager():
    return ConnectionStateManager()


@pytest.fixture()
def events(manager):
    received = []
    manager.subscribe(received.append)
    return received


def test_initial_values(manager):
    assert manager.get_state() == ConnectionState.DISCONNECTED
    assert manager.get_connection_quality() == ConnectionQuality.GOOD
    assert manager.get_reconnect_attempts() == 0
    assert manager.get_connection_id() is None
    assert manager.get_latency() == 0
    assert manager.get_last_connected_time() is None
    assert manager.get_last_error() is None
    assert not manager.is_connected()


def test_normal_connect_path(manager, events):
    manager.set_connection_id('p1')
    manager.set_state(ConnectionState.CONNECTING)
    assert manager.is_connecting()
    manager.set_state(ConnectionState.CONNECTED)

    assert manager.is_connected()
    assert manager.get_last_connected_time() is not None
    assert [(e.previous_state, e.current_state) for e in events] == [
        (ConnectionState.DISCONNECTED, ConnectionState.CONNECTING),
        (ConnectionState.CONNECTING, ConnectionState.CONNECTED),
    ]
    assert all(e.connection_id == 'p1' for e in events)


def test_same_state_is_a_strict_noop(manager, events, caplog):
    manager.set_state(ConnectionState.RECONNECTING)
    events.clear()
    caplog.clear()

    with caplog.at_level(logging.DEBUG, logger='client.state'):
        manager.set_state(ConnectionState.RECONNECTING)

    assert events == []
    assert manager.get_reconnect_attempts() == 1
    assert caplog.records == []


def test_failed_transition_scenario(manager, events):
    manager.set_state(ConnectionState.CONNECTING)
    manager.set_state(ConnectionState.FAILED, ConnectionErrorKind.TIMEOUT, 'no response')

    assert manager.has_failed()
    assert manager.get_last_error() == ConnectionErrorKind.TIMEOUT
    assert manager.get_last_error_message() == 'no response'
    event = events[-1].to_dict()
    assert event['previousState'] == 'CONNECTING'
    assert event['currentState'] == 'FAILED'
    assert event['error'] == 'TIMEOUT'
    assert event['errorMessage'] == 'no response'
    assert isinstance(event['timestamp'], float)


def test_failed_without_error_clears_previous_error(manager):
    manager.set_state(ConnectionState.FAILED, ConnectionErrorKind.SERVER_UNREACHABLE, 'down')
    manager.set_state(ConnectionState.RECONNECTING)
    manager.set_state(ConnectionState.FAILED)
    assert manager.get_last_error() is None
    assert manager.get_last_error_message() is None


def test_connected_resets_attempts_and_error(manager, events):
    manager.set_state(ConnectionState.CONNECTED)
    manager.set_state(ConnectionState.RECONNECTING)
    manager.set_state(ConnectionState.FAILED, ConnectionErrorKind.NETWORK_UNAVAILABLE, 'offline')
    manager.set_state(ConnectionState.RECONNECTING)
    assert manager.get_reconnect_attempts() == 2

    manager.set_state(ConnectionState.CONNECTED)

    assert manager.get_reconnect_attempts() == 0
    assert manager.get_last_error() is None
    assert manager.get_last_error_message() is None
    assert events[-1].error is None


def test_ten_reconnect_cycles_count_ten(manager):
    for _ in range(10):
        manager.set_state(ConnectionState.RECONNECTING)
        manager.set_state(ConnectionState.FAILED)
    assert manager.get_reconnect_attempts() == 10


def test_reset_reconnect_attempts_keeps_state(manager):
    manager.set_state(ConnectionState.RECONNECTING)
    manager.reset_reconnect_attempts()
    assert manager.get_reconnect_attempts() == 0
    assert manager.get_state() == ConnectionState.RECONNECTING


def test_offline_and_retry(manager):
    manager.set_state(ConnectionState.CONNECTED)
    manager.set_state(ConnectionState.RECONNECTING)
    manager.set_state(ConnectionState.OFFLINE)
    assert manager.is_offline()
    assert not manager.is_connecting()
    manager.set_state(ConnectionState.CONNECTING)
    assert manager.is_connecting()


def test_unsubscribe_removes_only_that_callback(manager):
    first, second = [], []
    unsubscribe = manager.subscribe(first.append)
    manager.subscribe(second.append)

    unsubscribe()
    unsubscribe()
    manager.set_state(ConnectionState.CONNECTING)

    assert first == []
    assert len(second) == 1


def test_subscribers_called_in_order_and_isolated(manager, caplog):
    calls = []

    def broken(event):
        calls.append('broken')
        raise RuntimeError('boom')

    manager.subscribe(lambda event: calls.append('first'))
    manager.subscribe(broken)
    manager.subscribe(lambda event: calls.append('last'))

    with caplog.at_level(logging.ERROR, logger='client.state'):
        manager.set_state(ConnectionState.CONNECTING)

    assert calls == ['first', 'broken', 'last']
    assert 'callback' in caplog.text


def test_subscriber_may_unsubscribe_during_notification(manager):
    seen = []
    holder = {}

    def once(event):
        seen.append(event.current_state)
        holder['unsubscribe']()

    holder['unsubscribe'] = manager.subscribe(once)
    manager.set_state(ConnectionState.CONNECTING)
    manager.set_state(ConnectionState.CONNECTED)
    assert seen == [ConnectionState.CONNECTING]


def test_plain_accessors(manager, events):
    manager.set_connection_quality(ConnectionQuality.POOR)
    manager.set_latency(250)
    manager.set_connection_id('abc')
    assert manager.get_connection_quality() == ConnectionQuality.POOR
    assert manager.get_latency() == 250
    assert manager.get_connection_id() == 'abc'
    assert events == []


def test_reset_restores_everything_silently(manager, events):
    manager.set_connection_id('abc')
    manager.set_latency(80)
    manager.set_connection_quality(ConnectionQuality.BAD)
    manager.set_state(ConnectionState.CONNECTED)
    manager.set_state(ConnectionState.RECONNECTING)
    manager.set_state(ConnectionState.FAILED, ConnectionErrorKind.SESSION_EXPIRED, 'expired')
    events.clear()

    manager.reset()

    assert events == []
    assert manager.get_state() == ConnectionState.DISCONNECTED
    assert manager.get_connection_quality() == ConnectionQuality.GOOD
    assert manager.get_last_connected_time() is None
    assert manager.get_reconnect_attempts() == 0
    assert manager.get_connection_id() is None
    assert manager.get_latency() == 0
    assert manager.get_last_error() is None
    assert manager.get_last_error_message() is None


def test_managers_do_not_share_subscribers():
    a, b = ConnectionStateManager(), ConnectionStateManager()
    seen = []
    a.subscribe(seen.append)
    b.set_state(ConnectionState.CONNECTING)
    assert seen == []


def test_retry_config_backoff_without_jitter():
    config = RetryConfig(jitter=False)
    assert config.delay_for(1) == 1.0
    assert config.delay_for(2) == 1.5
    assert config.delay_for(3) == pytest.approx(2.25)
    assert config.delay_for(50) == 30.0


def test_retry_config_jitter_bounds():
    assert DEFAULT_RETRY_CONFIG.delay_for(1, rng=lambda: 0.0) == pytest.approx(0.8)
    assert DEFAULT_RETRY_CONFIG.delay_for(1, rng=lambda: 1.0) == pytest.approx(1.2)


def test_retry_config_should_retry():
    config = RetryConfig(max_attempts=3)
    assert config.should_retry(2)
    assert not config.should_retry(3)
