"""Tests for wire schemas."""
import pytest
from datetime import datetime, timezone
from pydantic import ValidationError as PydanticValidationError
from arbor_shared.models import TreeRecord
from arbor_shared.schemas import (
    Actor, TreeSubmission, TreeQueryParams, TreeSyncRequest, serialize_tree, format_pydantic_errors
)


class TestTreeSubmission:

    def test_camel_case_aliases(self):
        submission = TreeSubmission.model_validate({
            'localId': 'x1',
            'numeroArvore': 4,
            'alturaCopaAcima210': 'sim',
            'areaPermeavelMaior1m2': 'não',
            'ruaPraca': 'Praça Tiradentes',
        })
        assert submission.local_id == 'x1'
        assert submission.numero_arvore == '4'
        assert submission.altura_copa_acima_210 == 'sim'
        assert submission.area_permeavel_maior_1m2 == 'não'
        assert submission.rua_praca == 'Praça Tiradentes'

    def test_single_value_multiselect_is_wrapped(self):
        submission = TreeSubmission.model_validate({'presencaDe': 'Fiação', 'conflitos': ''})
        assert submission.presenca_de == ['Fiação']
        assert submission.conflitos == []

    def test_blank_local_id_is_none(self):
        assert TreeSubmission.model_validate({'localId': '  '}).local_id is None


def test_query_params_defaults():
    params = TreeQueryParams.model_validate({'search': ' ', 'userId': 5})
    assert params.page == 1
    assert params.limit == 50
    assert params.search is None
    assert params.user_id == '5'


def test_sync_request_requires_device_id():
    with pytest.raises(PydanticValidationError) as exc_info:
        TreeSyncRequest.model_validate({'trees': []})
    assert format_pydantic_errors(exc_info.value) == ['deviceId: Field required']


def test_actor_display_name():
    assert Actor(id=1, username='ana', fullname='Ana Souza').display_name == 'Ana Souza'
    assert Actor(id=1, username='ana').display_name == 'ana'
    assert Actor.coerce({'id': 2, 'isAdmin': True}).is_admin is True
    assert Actor.coerce(None) is None


def test_serialize_tree_uses_wire_names():
    stamp = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    record = TreeRecord(
        unique_id='abc', sequence_id=7, user_id='1', user_name='Ana', user_email='a@b.co',
        data_cadastro=stamp, data_edit=stamp, nome_popular='Ipê', presenca_de=['Fios'],
    )
    body = serialize_tree(record)
    assert body['uniqueId'] == 'abc'
    assert body['id'] == 7
    assert body['nomePopular'] == 'Ipê'
    assert body['presencaDe'] == ['Fios']
    assert body['dataCadastro'].startswith('2024-01-02T03:04:05')
    assert 'sequence_id' not in body
