import json

from vibequiz.services import identity, roster, sessions
from vibequiz.services.identity import Identity, IdentityStore


def test_issue_remembers_per_session_and_last(tmp_path):
    identities = IdentityStore(tmp_path / 'identity.json')
    first = identities.issue('abc123', 'Alice')
    second = identities.issue('XYZ789', 'Alice')
    assert first.session_code == 'ABC123'
    assert first.player_id != second.player_id
    assert identities.get('abc123') == first
    assert identities.last() == second


def test_identities_survive_reload(tmp_path):
    path = tmp_path / 'identity.json'
    remembered = IdentityStore(path).issue('ABC123', 'Alice')
    reloaded = IdentityStore(path)
    assert reloaded.get('ABC123') == remembered
    assert reloaded.last() == remembered
    assert json.loads(path.read_text())['last']['display_name'] == 'Alice'


def test_unreadable_file_starts_empty(tmp_path):
    path = tmp_path / 'identity.json'
    path.write_text('{not json')
    assert IdentityStore(path).last() is None


def test_join_with_identity_then_resume(ctx, code):
    identities = IdentityStore()
    joined = identity.join_with_identity(ctx, identities, code, 'Alice')
    assert roster.get_player(ctx, code, joined.player_id).team_name == 'Alice'
    assert identity.resume(ctx, identities, code) == joined
    assert identity.resume(ctx, identities) == joined


def test_resume_discards_identity_after_reset(ctx, playing):
    identities = IdentityStore()
    identities.remember(Identity(player_id='alice', display_name='Alice', session_code=playing))
    sessions.reset(ctx, playing)
    assert identity.resume(ctx, identities, playing) is None
    assert identities.get(playing) is None
    assert identities.last() is None


def test_resume_discards_identity_for_finished_game(ctx, playing):
    identities = IdentityStore()
    identities.remember(Identity(player_id='alice', display_name='Alice', session_code=playing))
    ctx.store.patch(f'sessions/{playing}', {'status': 'finished'})
    assert not identity.can_resume(ctx, playing, 'alice')
    assert identity.resume(ctx, identities) is None


def test_resume_without_identity(ctx, code):
    assert identity.resume(ctx, IdentityStore(), code) is None
    assert not identity.can_resume(ctx, 'GONE99', 'alice')
