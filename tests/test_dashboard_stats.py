from datetime import datetime, timedelta


def test_stats_empty_database(auth_client):
    resp = auth_client.get('/api/dashboard/stats')
    assert resp.status_code == 200
    assert resp.get_json() == {
        'totalBuilders': 0,
        'totalSchemas': 0,
        'verifiedSchemas': 0,
        'totalRooms': 0,
        'unverifiedSchemas': 0,
        'verificationRate': 0,
        'averageRoomsPerSchema': 0,
    }


def test_stats_with_data(auth_client, factory):
    builder_id = factory.builder('Persimmon')
    verified_id = factory.schema(builder_id, 'The Rufford', verified=True)
    unverified_id = factory.schema(builder_id, 'The Hatfield')
    factory.room(verified_id, 'Kitchen')
    factory.room(verified_id, 'Lounge', room_type='living')
    factory.room(unverified_id, 'Kitchen')

    data = auth_client.get('/api/dashboard/stats').get_json()

    assert data['totalBuilders'] == 1
    assert data['totalSchemas'] == 2
    assert data['verifiedSchemas'] == 1
    assert data['unverifiedSchemas'] == 1
    assert data['totalRooms'] == 3
    assert data['verificationRate'] == 50
    assert data['averageRoomsPerSchema'] == 1.5


def test_stats_require_login(client):
    assert client.get('/api/dashboard/stats').status_code == 401
    assert client.get('/api/dashboard/recent-activity').status_code == 401


def test_recent_activity_newest_first(auth_client, factory):
    builder_id = factory.builder('Bellway')
    now = datetime.utcnow()
    factory.schema(builder_id, 'The Older', updated_at=now - timedelta(days=2))
    newest_id = factory.schema(builder_id, 'The Newer', verified=True, updated_at=now)

    items = auth_client.get('/api/dashboard/recent-activity').get_json()

    assert [item['model_name'] for item in items] == ['The Newer', 'The Older']
    assert items[0]['id'] == newest_id
    assert items[0]['builder_name'] == 'Bellway'
    assert items[0]['verified'] is True
    assert items[1]['verified'] is False


def test_recent_activity_is_limited(app, auth_client, factory):
    app.config['RECENT_ACTIVITY_LIMIT'] = 2
    builder_id = factory.builder('Bellway')
    for index in range(3):
        factory.schema(builder_id, f'Model {index}')

    assert len(auth_client.get('/api/dashboard/recent-activity').get_json()) == 2


def test_home_shows_stats_and_warning(auth_client, factory):
    builder_id = factory.builder('Taylor Wimpey')
    factory.schema(builder_id, 'The Alton')

    resp = auth_client.get('/dashboard/')
    assert resp.status_code == 200
    body = resp.get_data(as_text=True)
    assert '1 house schema awaiting verification.' in body
    assert 'The Alton' in body
    assert 'by Taylor Wimpey' in body


def test_home_without_unverified_schemas(auth_client, factory):
    builder_id = factory.builder('Taylor Wimpey')
    factory.schema(builder_id, 'The Alton', verified=True)

    body = auth_client.get('/dashboard/').get_data(as_text=True)
    assert 'awaiting verification' not in body
    assert '100%' in body
