from dataclasses import replace

import pytest

from inkguess.game import events
from inkguess.game.errors import JoinError
from inkguess.game.models import RoomState


def begin_drawing(service, advance, room, starter='p1'):
    assert service.start_game(starter)
    advance(room, 3)
    assert room.state is RoomState.WORD_CHOICE
    assert service.choose_word(room.drawer_id, 0)
    assert room.state is RoomState.DRAWING


def everyone_guesses(service, room):
    drawer = room.drawer_id
    word = room.word
    for p in list(room.players):
        if p.id != drawer:
            service.guess(p.id, word)


def test_turns_rotate_through_players(service, advance, private_room):
    room = private_room(3)
    drawers = []

    begin_drawing(service, advance, room)
    drawers.append(room.drawer_id)
    everyone_guesses(service, room)
    for _ in range(2):
        assert room.state is RoomState.ROUND_END
        advance(room, 6)
        assert room.state is RoomState.WORD_CHOICE
        drawers.append(room.drawer_id)
        service.choose_word(room.drawer_id, 0)
        everyone_guesses(service, room)

    assert drawers == ['p1', 'p2', 'p3']
    assert room.state is RoomState.GAME_END


def test_scores_only_move_at_round_end_and_never_drop(service, advance, private_room):
    room = private_room(3)
    begin_drawing(service, advance, room)
    before = {p.id: p.score for p in room.players}

    service.guess('p2', room.word)
    assert {p.id: p.score for p in room.players} == before

    service.guess('p3', room.word)
    after = {p.id: p.score for p in room.players}
    assert all(after[pid] >= before[pid] for pid in before)
    assert sum(after.values()) > sum(before.values())


def test_first_guesser_bonus_and_clamp(service, advance, outbox, private_room):
    room = private_room(3)
    begin_drawing(service, advance, room)
    assert room.remaining == 80

    service.guess('p2', room.word)
    assert room.remaining == 32
    assert outbox.received('p2', events.GUESS_CORRECT)[-1]['points'] == 500

    service.guess('p3', room.word)
    scores = {p.id: p.score for p in room.players}
    assert scores == {'p1': 280, 'p2': 500, 'p3': 100}
    assert room.phase_data['reason'] == 'all_guessed'


def test_guess_result_reveals_word_only_to_insiders(service, advance, outbox, private_room):
    room = private_room(3)
    begin_drawing(service, advance, room)
    word = room.word

    service.guess('p2', word)
    assert outbox.received('p1', events.GUESS_CORRECT)[-1]['word'] == word
    assert outbox.received('p2', events.GUESS_CORRECT)[-1]['word'] == word
    assert 'word' not in outbox.received('p3', events.GUESS_CORRECT)[-1]


def test_close_guess_is_flagged_privately(service, advance, outbox, private_room):
    room = private_room(3)
    begin_drawing(service, advance, room)

    near = room.word[:-1]
    service.guess('p2', near)
    assert outbox.received('p2', events.GUESS_CLOSE) == [{'text': near}]
    for pid in ('p1', 'p2', 'p3'):
        assert all(m['text'] != near for m in outbox.received(pid, events.CHAT_MESSAGE))
    assert not outbox.received('p3', events.GUESS_CLOSE)
    assert not room.player('p2').guessed


def test_hints_never_reach_drawer_or_solvers(service, advance, clock, outbox, private_room):
    room = private_room(3)
    begin_drawing(service, advance, room)

    service.guess('p2', room.word)
    # clamp to 32s fires the skipped 44s hint right away
    assert len(outbox.received('p3', events.GAME_HINT)) == 1

    advance(room, 7)
    hints = outbox.received('p3', events.GAME_HINT)
    assert len(hints) == 2
    assert hints[0][0][0] != hints[1][0][0]
    assert outbox.received('p1', events.GAME_HINT) == []
    assert outbox.received('p2', events.GAME_HINT) == []


def test_short_draw_time_skips_early_hint(service, advance, outbox, private_room):
    room = private_room(3)
    assert service.update_settings('p1', 'drawTimeSeconds', 30)
    begin_drawing(service, advance, room)

    advance(room, 0.1)
    assert outbox.received('p2', events.GAME_HINT) == []

    advance(room, 4.8)
    assert outbox.received('p2', events.GAME_HINT) == []
    advance(room, 0.2)
    assert len(outbox.received('p2', events.GAME_HINT)) == 1
    assert room.remaining == 25


def test_round_times_out(service, advance, private_room):
    room = private_room(2)
    begin_drawing(service, advance, room)
    advance(room, 80)
    assert room.state is RoomState.ROUND_END
    assert room.phase_data['reason'] == 'time_up'


def test_word_choice_times_out_to_first_word(service, advance, private_room):
    room = private_room(2)
    service.start_game('p1')
    advance(room, 3)
    first = room.word_choices[0]
    advance(room, 15)
    assert room.state is RoomState.DRAWING
    assert room.word == first


def test_drawer_sees_word_others_see_structure(service, advance, outbox, private_room):
    room = private_room(3)
    begin_drawing(service, advance, room)
    drawer_state = outbox.received('p1', events.GAME_STATE)[-1]
    guesser_state = outbox.received('p2', events.GAME_STATE)[-1]
    assert drawer_state['data']['word'] == room.word
    assert 'word' not in guesser_state['data']
    assert guesser_state['data']['structure'] == '_' * len(room.word)


def test_public_room_starts_when_full(service):
    sids = [f's{i}' for i in range(1, 9)]
    rooms = {service.join(sid, sid.upper()).id for sid in sids}
    assert len(rooms) == 1
    room = service.registry.get(rooms.pop())
    assert room.state is RoomState.ROUND_START
    assert len(room.players) == 8

    late = service.join('s9', 'Late')
    assert late is not room
    assert late.state is RoomState.LOBBY


def test_public_room_closes_with_one_player(service, outbox):
    for i in range(1, 9):
        room = service.join(f's{i}', f'P{i}')
    for i in range(2, 9):
        service.leave(f's{i}')

    assert outbox.received('s1', events.ROOM_CLOSED)
    assert service.registry.get(room.id) is None
    assert service.registry.room_of('s1') is None


def test_drawer_leaving_during_word_choice_repicks(service, advance, private_room):
    room = private_room(4)
    service.start_game('p1')
    advance(room, 3)
    assert room.drawer_id == 'p1'

    service.leave('p1')
    assert room.state is RoomState.WORD_CHOICE
    assert room.drawer_id == 'p2'
    assert room.current_round == 1
    assert room.owner_id == 'p2'


def test_private_room_down_to_one_player_ends_game(service, advance, outbox, private_room):
    room = private_room(2)
    service.start_game('p1')
    advance(room, 3)

    service.leave('p1')
    assert room.state is RoomState.GAME_END
    assert room.owner_id == 'p2'
    assert outbox.received('p2', events.OWNER_CHANGED)[-1] == {'ownerId': 'p2'}

    advance(room, 7)
    assert room.state is RoomState.LOBBY


def test_drawer_leaving_mid_round_ends_it(service, advance, private_room):
    room = private_room(3)
    begin_drawing(service, advance, room)
    service.leave('p1')
    assert room.state is RoomState.ROUND_END
    assert room.phase_data['reason'] == 'drawer_left'


def test_strokes_relay_to_everyone_but_drawer(service, advance, outbox, private_room):
    room = private_room(3)
    begin_drawing(service, advance, room)
    command = {'type': 'stroke', 'tool': 'brush', 'color': 1, 'size': 8, 'x1': 1, 'y1': 1, 'x2': 5, 'y2': 5}

    assert service.append_strokes('p2', [command]) == 0
    assert service.append_strokes('p1', [command, {'type': 'fill', 'color': 1, 'x': 9999, 'y': 1}]) == 1
    advance(room, 0.05)

    assert outbox.received('p2', events.DRAW_BATCH)[-1]['commands'][0]['x2'] == 5
    assert outbox.received('p1', events.DRAW_BATCH) == []

    service.join('p4', 'Late', target=room.invite_code)
    snapshot = outbox.received('p4', events.ROOM_SNAPSHOT)[-1]
    assert len(snapshot['strokes']) == 1

    assert service.undo('p1')
    assert outbox.received('p2', events.DRAW_CLEAR)


def test_start_needs_owner_and_two_players(service, outbox, private_room):
    room = private_room(1)
    assert not service.start_game('p1')
    assert outbox.received('p1', events.GAME_ERROR)[-1] == {'error': 'not_enough_players'}

    service.join('p2', 'Two', target=room.invite_code)
    assert not service.start_game('p2')
    assert service.start_game('p1')


def test_settings_are_owner_only_and_lobby_only(service, private_room):
    room = private_room(3)
    assert service.update_settings('p1', 'totalRounds', 5)
    assert room.settings.total_rounds == 5
    assert not service.update_settings('p2', 'totalRounds', 2)
    assert not service.update_settings('p1', 'maxSlots', 2)
    assert not service.update_settings('p1', 'drawTimeSeconds', 5)
    assert not service.update_settings('p1', 'bogus', 1)
    assert not service.update_settings('p1', 'language', 7)

    service.start_game('p1')
    assert not service.update_settings('p1', 'totalRounds', 2)


def test_public_rooms_ignore_settings(service):
    service.join('s1', 'One')
    assert not service.update_settings('s1', 'totalRounds', 1)


def test_join_errors(service, private_room):
    with pytest.raises(JoinError) as exc:
        service.join('x', '<script>')
    assert exc.value.code == JoinError.INVALID_NAME

    with pytest.raises(JoinError) as exc:
        service.join('x', 'Bob', target='!!!!!!!!')
    assert exc.value.code == JoinError.INVALID_CODE

    with pytest.raises(JoinError) as exc:
        service.join('x', 'Bob', target='ABCDEFGH')
    assert exc.value.code == JoinError.ROOM_NOT_FOUND

    room = private_room(2)
    service.update_settings('p1', 'maxSlots', 2)
    with pytest.raises(JoinError) as exc:
        service.join('x', 'Bob', target=room.invite_code)
    assert exc.value.code == JoinError.ROOM_FULL
    assert service.registry.room_of('x') is None


def test_custom_words_only(service, advance, private_room):
    room = private_room(2)
    custom = [f'thing{i}' for i in range(10)]
    service.update_settings('p1', 'customWordsOnly', 1)
    service.start_game('p1', custom)
    advance(room, 3)
    assert set(room.word_choices) <= set(custom)


def test_failing_timer_does_not_break_room(service, clock, private_room):
    room = private_room(2)
    fired = []

    def boom():
        raise RuntimeError('boom')

    room.timers.schedule('ballots', clock.now, 0, boom)
    room.timers.schedule('phase', clock.now, 0, lambda: fired.append(True))
    assert service.tick(room.id) == 2
    assert fired == [True]


def test_public_game_result_goes_to_leaderboard(service, advance, leaderboard):
    for i in range(1, 9):
        room = service.join(f's{i}', f'P{i}')
    room.settings = replace(room.settings, total_rounds=1)
    advance(room, 3)
    service.choose_word(room.drawer_id, 0)
    everyone_guesses(service, room)

    assert room.state is RoomState.GAME_END
    result = leaderboard[-1]
    assert result['room_id'] == room.id
    assert len(result['players']) == 8
    assert result['players'][0]['score'] == max(p.score for p in room.players)
