import pytest

from conftest import ADDRESS_A, ADDRESS_B
from inkguess.game import events
from inkguess.game.errors import ClaimError
from inkguess.game.models import RoomState


@pytest.fixture()
def finished_room(service, advance, private_room):
    """One-round game with a 10 unit pool: p2 first, p1 second, p3 third."""
    room = private_room(3)
    service.update_settings('p1', 'totalRounds', 1)
    assert service.set_prize_pool(room.id, 10.0)
    service.start_game('p1')
    advance(room, 3)
    service.choose_word('p1', 0)
    service.guess('p2', room.word)
    service.guess('p3', room.word)
    assert room.state is RoomState.GAME_END
    return room


def test_rankings_split_the_pool(finished_room, outbox):
    rankings = outbox.received('p1', events.GAME_RANKINGS)[-1]['rankings']
    assert [(r['id'], r['rank'], r['reward']) for r in rankings] == [
        ('p2', 1, 5.0),
        ('p1', 2, 3.0),
        ('p3', 3, 2.0),
    ]


def test_pool_is_frozen_after_game_end(service, finished_room):
    assert not service.set_prize_pool(finished_room.id, 99.0)
    assert finished_room.prize_pool == 10.0


def test_claim_pays_once(service, finished_room, payouts, outbox):
    reward = service.claim_reward('p2', ADDRESS_A)
    assert reward.tx_ref == 'tx-1'
    assert payouts.calls == [(ADDRESS_A, 5.0, finished_room.id)]
    assert outbox.received('p2', events.REWARD_CLAIMED)[-1] == {'amount': 5.0, 'txRef': 'tx-1'}

    with pytest.raises(ClaimError) as exc:
        service.claim_reward('p2', ADDRESS_A)
    assert exc.value.code == ClaimError.ALREADY_CLAIMED
    assert outbox.received('p2', events.REWARD_ERROR)[-1] == {'error': 'already_claimed'}


def test_claim_needs_valid_address(service, finished_room):
    with pytest.raises(ClaimError) as exc:
        service.claim_reward('p3', 'not-an-address')
    assert exc.value.code == ClaimError.INVALID_ADDRESS
    assert service.claim_reward('p3', ADDRESS_B).claimed


def test_failed_payout_surfaces_and_allows_retry(service, finished_room, payouts):
    payouts.fail = True
    with pytest.raises(ClaimError) as exc:
        service.claim_reward('p2', ADDRESS_A)
    assert exc.value.code == ClaimError.PAYOUT_FAILED

    payouts.fail = False
    assert service.claim_reward('p2', ADDRESS_A).claimed


def test_buyback_rolls_into_next_game(service, advance, finished_room):
    assert service.buyback('p1') == 3.0
    with pytest.raises(ClaimError):
        service.claim_reward('p1', ADDRESS_A)

    advance(finished_room, 7)
    assert finished_room.state is RoomState.LOBBY
    assert finished_room.prize_pool == 0.0

    service.start_game('p1')
    assert finished_room.prize_pool == 3.0
