"""Room pages and the rooms API."""

from refittr.extensions import db
from refittr.models import Room


def _room_form(schema_id, **overrides):
    data = {
        'house_schema_id': schema_id,
        'room_name': 'Master Bedroom',
        'room_type': 'bedroom',
        'floor_level': '1',
        'length_cm': '410',
        'width_cm': '330',
        'height_cm': '240',
    }
    data.update(overrides)
    return data


def test_rooms_page_lists_rooms(auth_client, sample):
    resp = auth_client.get('/dashboard/rooms')
    assert resp.status_code == 200
    body = resp.get_data(as_text=True)
    assert 'Kitchen' in body
    assert 'Barratt Homes - The Hadley' in body
    assert '11.02' in body  # 3.8m x 2.9m


def test_add_room_calculates_floor_area(app, auth_client, sample):
    resp = auth_client.post('/dashboard/rooms', data=_room_form(sample.schema_id))
    assert resp.status_code == 302

    with app.app_context():
        room = Room.query.filter_by(room_name='Master Bedroom').one()
        assert room.floor_area_sqm == 13.53
        assert room.floor_level == 1
        assert room.dimensions_need_verification is False


def test_verification_reason_only_kept_with_flag(app, auth_client, sample):
    auth_client.post(
        '/dashboard/rooms',
        data=_room_form(sample.schema_id, room_name='Bathroom', verification_reason='Ignored'),
    )
    auth_client.post(
        '/dashboard/rooms',
        data=_room_form(
            sample.schema_id,
            room_name='Ensuite',
            dimensions_need_verification='y',
            verification_reason='Measured from brochure',
        ),
    )

    with app.app_context():
        assert Room.query.filter_by(room_name='Bathroom').one().verification_reason is None
        ensuite = Room.query.filter_by(room_name='Ensuite').one()
        assert ensuite.dimensions_need_verification is True
        assert ensuite.verification_reason == 'Measured from brochure'

    body = auth_client.get('/dashboard/rooms').get_data(as_text=True)
    assert 'title="Measured from brochure"' in body


def test_add_room_validation(app, auth_client, sample):
    resp = auth_client.post('/dashboard/rooms', data=_room_form(sample.schema_id, length_cm='0', room_name=''))
    assert resp.status_code == 400
    body = resp.get_data(as_text=True)
    assert 'Room name is required' in body
    assert 'Length must be a positive number' in body
    with app.app_context():
        assert Room.query.count() == 1


def test_room_search(auth_client, sample, factory):
    factory.room(sample.schema_id, 'Lounge', room_type='living')
    body = auth_client.get('/dashboard/rooms?q=lounge').get_data(as_text=True)
    assert 'Lounge' in body
    assert 'Kitchen' not in body.split('<tbody>')[1]


def test_edit_room(app, auth_client, sample):
    resp = auth_client.get(f'/dashboard/rooms?edit={sample.room_id}')
    assert resp.status_code == 200
    assert 'Edit room' in resp.get_data(as_text=True)

    resp = auth_client.post(
        f'/dashboard/rooms/{sample.room_id}/edit',
        data=_room_form(sample.schema_id, room_name='Kitchen/Diner', room_type='kitchen/dining', length_cm='500'),
    )
    assert resp.status_code == 302

    with app.app_context():
        room = db.session.get(Room, sample.room_id)
        assert room.room_name == 'Kitchen/Diner'
        assert room.room_type_label == 'Kitchen/Dining'
        assert room.floor_area_sqm == 16.5


def test_add_room_prefills_schema(auth_client, sample):
    body = auth_client.get(f'/dashboard/rooms?schema={sample.schema_id}').get_data(as_text=True)
    assert f'<option selected value="{sample.schema_id}">' in body


def test_delete_room_returns_to_schema(app, auth_client, sample):
    resp = auth_client.post(f'/dashboard/rooms/{sample.room_id}/delete', data={'from_schema': '1'})
    assert resp.status_code == 302
    assert resp.headers['Location'].endswith(f'/dashboard/schemas/{sample.schema_id}')
    with app.app_context():
        assert Room.query.count() == 0


# --- API --------------------------------------------------------------------


def test_api_create_room(auth_client, sample):
    resp = auth_client.post('/api/rooms', json={
        'house_schema_id': sample.schema_id,
        'room_name': 'Study',
        'room_type': 'other',
        'floor_level': 1,
        'length_cm': 250,
        'width_cm': 200,
        'dimensions_need_verification': True,
        'verification_reason': 'Plan is unclear',
    })
    assert resp.status_code == 201
    data = resp.get_json()
    assert data['floor_area_sqm'] == 5.0
    assert data['height_cm'] == 240
    assert data['verification_reason'] == 'Plan is unclear'
    assert data['house_schemas']['model_name'] == 'The Hadley'
    assert data['house_schemas']['builders']['name'] == 'Barratt Homes'


def test_api_room_validation(auth_client, sample):
    resp = auth_client.post('/api/rooms', json={
        'house_schema_id': sample.schema_id,
        'room_name': 'Study',
        'length_cm': -5,
        'width_cm': 200,
    })
    assert resp.status_code == 400
    assert resp.get_json()['error'] == 'Length must be a positive number'


def test_api_rooms_filter_by_schema(auth_client, sample, factory):
    other_schema = factory.schema(sample.builder_id, 'The Moresby')
    factory.room(other_schema, 'Porch')

    data = auth_client.get(f'/api/rooms?schema_id={other_schema}').get_json()
    assert [room['room_name'] for room in data] == ['Porch']
    assert len(auth_client.get('/api/rooms').get_json()) == 2


def test_api_update_room_recalculates_area(auth_client, sample):
    resp = auth_client.put(f'/api/rooms/{sample.room_id}', json={'length_cm': 400, 'width_cm': 300})
    assert resp.status_code == 200
    data = resp.get_json()
    assert data['floor_area_sqm'] == 12.0
    assert data['room_name'] == 'Kitchen'


def test_api_delete_room(auth_client, sample):
    assert auth_client.delete(f'/api/rooms/{sample.room_id}').get_json() == {'success': True}
    resp = auth_client.get(f'/api/rooms/{sample.room_id}')
    assert resp.status_code == 404
    assert resp.get_json() == {'error': 'Room not found'}
