"""Tests for offline sync reconciliation."""
from datetime import timedelta
from arbor_backend.services.sync_service import SyncService
from arbor_shared.models import now
from arbor_shared.schemas import TreeSyncRequest


REFERENCE_BATCH = {
    'trees': [{'localId': 'a', 'quadra': 'Q1', 'numeroArvore': '7', 'latitude': '-23.5', 'longitude': '-46.6'}],
    'deviceId': 'd1',
}
REFERENCE_ACTOR = {'id': 1, 'email': 'u@x.com', 'username': 'u'}


def test_reference_batch_creates_record(app_ctx):
    service = SyncService()
    response = service.sync_trees(REFERENCE_BATCH, REFERENCE_ACTOR)

    assert response.success
    assert response.results.success[0].model_dump(by_alias=True) == {'localId': 'a', 'id': 1, 'uniqueId': 'a'}
    assert response.results.errors == []
    assert response.results.conflicts == []

    stored = service.repository.find_by_unique_id('a')
    assert stored.sequence_id == 1
    assert stored.quadra == 'Q1'
    assert stored.user_name == 'u'
    stored_edit = stored.data_edit

    again = service.sync_trees(REFERENCE_BATCH, REFERENCE_ACTOR)
    assert again.results.success[0].unique_id == 'a'
    assert service.repository.find_by_unique_id('a').data_edit > stored_edit


def test_resubmission_takes_update_path(app_ctx, actor):
    service = SyncService()
    batch = {'trees': [{'localId': 'a', 'cidade': 'X'}], 'deviceId': 'd'}
    service.sync_trees(batch, actor)
    first_edit = service.repository.find_by_unique_id('a').data_edit

    batch['trees'][0]['cidade'] = 'Y'
    response = service.sync_trees(batch, {'id': 2, 'username': 'second', 'email': 'second@example.com'})

    assert [item.unique_id for item in response.results.success] == ['a']
    assert response.results.success[0].id == 1
    stored = service.repository.find_by_unique_id('a')
    assert stored.cidade == 'Y'
    assert stored.user_id == '2'
    assert stored.user_name == 'second'
    assert stored.data_edit > first_edit
    assert service.repository.count() == 1


def test_overwrite_replaces_every_descriptive_field(app_ctx, actor):
    service = SyncService()
    service.sync_trees({'trees': [{'localId': 'a', 'cidade': 'X', 'altura': '5'}], 'deviceId': 'd'}, actor)
    service.sync_trees({'trees': [{'localId': 'a', 'cidade': 'X'}], 'deviceId': 'd'}, actor)

    assert service.repository.find_by_unique_id('a').altura is None


def test_newer_server_edit_reports_conflict(app_ctx, actor):
    service = SyncService()
    service.sync_trees({'trees': [{'localId': 'a'}], 'deviceId': 'd'}, actor)
    service.repository.update('a', {'data_edit': now() + timedelta(days=1)})

    response = service.sync_trees({'trees': [{'localId': 'a', 'cidade': 'Z'}], 'deviceId': 'd'}, actor)
    assert len(response.results.conflicts) == 1
    conflict = response.results.conflicts[0]
    assert conflict.reason == 'Server version is newer'
    assert conflict.server_data['uniqueId'] == 'a'
    assert service.repository.find_by_unique_id('a').cidade is None


def test_items_are_fault_isolated(app_ctx, actor):
    service = SyncService()
    batch = {
        'trees': [
            {'localId': 'ok-1'},
            {'localId': 'bad', 'presencaDe': {'not': 'a list'}},
            'not an object',
            {'localId': 'ok-2'},
        ],
        'deviceId': 'd',
    }
    response = service.sync_trees(batch, actor)

    assert response.success
    assert [item.local_id for item in response.results.success] == ['ok-1', 'ok-2']
    assert [item.local_id for item in response.results.errors] == ['bad', None]
    assert service.repository.count() == 2


def test_items_without_local_id_are_created(app_ctx, actor):
    service = SyncService()
    response = service.sync_trees({'trees': [{'cidade': 'A'}, {'cidade': 'B'}], 'deviceId': 'd'}, actor)

    assert [item.id for item in response.results.success] == [1, 2]
    assert all(item.local_id is None for item in response.results.success)


def test_unauthenticated_items_land_in_errors(app_ctx):
    response = SyncService().sync_trees({'trees': [{'localId': 'a'}], 'deviceId': 'd'}, None)

    assert response.success
    assert response.results.errors[0].error == 'Validation failed'


def test_malformed_batch_reports_failure(app_ctx, actor):
    response = SyncService().sync_trees({'trees': 'nope'}, actor)
    assert not response.success
    assert response.results.success == []


def test_accepts_parsed_request(app_ctx, actor):
    request = TreeSyncRequest.model_validate({'trees': [{'localId': 'p'}], 'deviceId': 'tablet-3'})
    response = SyncService().sync_trees(request, actor)
    assert response.results.success[0].unique_id == 'p'


def test_unauthenticated_update_is_rejected(app_ctx, actor):
    service = SyncService()
    service.sync_trees({'trees': [{'localId': 'a', 'cidade': 'Owned'}], 'deviceId': 'd'}, actor)

    for intruder in (None, {'username': 'no-id'}, {'id': 9, 'email': 'not-an-email'}):
        response = service.sync_trees({'trees': [{'localId': 'a', 'cidade': 'Anon'}], 'deviceId': 'd'}, intruder)
        assert response.results.success == []
        assert [(e.local_id, e.error) for e in response.results.errors] == [('a', 'Validation failed')]

    stored = service.repository.find_by_unique_id('a')
    assert stored.cidade == 'Owned'
    assert stored.user_id == '1'


def test_lost_create_race_lands_in_errors(app_ctx, actor, monkeypatch):
    service = SyncService()
    service.sync_trees({'trees': [{'localId': 'race', 'cidade': 'Winner'}], 'deviceId': 'd'}, actor)
    # The competing writer's row is invisible to the lookup but not to the insert
    service.repository.session.expunge_all()
    monkeypatch.setattr(service.repository, 'find_by_unique_id', lambda unique_id: None)

    response = service.sync_trees({'trees': [{'localId': 'race', 'cidade': 'Loser'}], 'deviceId': 'd'}, actor)
    assert response.success
    assert response.results.success == []
    assert [(e.local_id, e.error) for e in response.results.errors] == [('race', 'Tree with this ID already exists')]

    monkeypatch.undo()
    assert service.repository.find_by_unique_id('race').cidade == 'Winner'
    assert service.repository.count() == 1
