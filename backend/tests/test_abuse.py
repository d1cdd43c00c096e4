import pytest

from inkguess.game.abuse import SpamAction, SpamGuard, VoteKickTracker, required_votes


def test_spam_ladder_warns_three_times_then_kicks():
    guard = SpamGuard()
    actions = [guard.check(t) for t in (0, 250, 480, 700, 920, 1140)]
    assert [a.action for a in actions] == [
        SpamAction.OK,
        SpamAction.OK,
        SpamAction.WARN,
        SpamAction.WARN,
        SpamAction.WARN,
        SpamAction.KICK,
    ]
    assert [a.warnings for a in actions[2:5]] == [1, 2, 3]


def test_calm_messages_are_fine():
    guard = SpamGuard()
    assert all(guard.check(t).action is SpamAction.OK for t in range(0, 20000, 1000))


def test_rate_spam_triggers_first_warning():
    guard = SpamGuard()
    verdicts = [guard.check(t) for t in (0, 600, 1200, 1800, 2400, 3000)]
    assert verdicts[-1].action is SpamAction.WARN
    assert verdicts[-1].warnings == 1


def test_warnings_reset_after_quiet_period():
    guard = SpamGuard()
    for t in (0, 250, 480):
        guard.check(t)
    assert guard.warnings == 1
    assert guard.check(5480).action is SpamAction.OK
    assert guard.warnings == 0


@pytest.mark.parametrize('players,needed', [(2, 2), (3, 2), (4, 3), (5, 3), (6, 4), (7, 5), (8, 5), (12, 5)])
def test_required_votes(players, needed):
    assert required_votes(players) == needed


def test_votekick_ballots_are_unique_and_expire():
    tracker = VoteKickTracker(ttl_ms=30_000)
    assert tracker.cast('a', 'x', 0) == 1
    assert tracker.cast('a', 'x', 10) is None
    assert tracker.cast('b', 'x', 20_000) == 2
    assert tracker.next_expiry() == 30_000

    tracker.prune(30_000)
    assert tracker.count('x') == 1
    tracker.forget('b')
    assert len(tracker) == 0
