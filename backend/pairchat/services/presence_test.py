from pairchat.services.presence import PresenceRegistry


def test_register_is_idempotent() -> None:
    presence = PresenceRegistry()

    assert presence.register("alice") is True
    assert presence.register("alice") is False
    assert len(presence) == 1
    assert presence.is_online("alice")


def test_unregister_absent_user_is_noop() -> None:
    presence = PresenceRegistry()
    presence.register("alice")

    assert presence.unregister("bob") is False
    assert presence.unregister("alice") is True
    assert "alice" not in presence


def test_count_counts_waiting_and_paired_users_only() -> None:
    assert PresenceRegistry.count(queue_length=0, active_sessions=0) == 0
    assert PresenceRegistry.count(queue_length=1, active_sessions=0) == 1
    assert PresenceRegistry.count(queue_length=1, active_sessions=2) == 5
