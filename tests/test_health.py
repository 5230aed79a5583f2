def test_health_check(client):
    resp = client.get('/health')
    assert resp.status_code == 200
    data = resp.get_json()
    assert data['status'] == 'healthy'
    assert data['service'] == 'refittr'


def test_liveness_check(client):
    resp = client.get('/health/live')
    assert resp.status_code == 200
    assert resp.get_json()['status'] == 'alive'


def test_readiness_check(client):
    resp = client.get('/health/ready')
    assert resp.status_code == 200
    data = resp.get_json()
    assert data['database'] == 'healthy'
    assert data['schema'] == 'complete'
    assert data['storage'] == 'local'
    assert data['overall'] == 'healthy'


def test_readiness_reports_missing_tables(app, client):
    from refittr.extensions import db
    from refittr.models import MailingListSubscriber

    with app.app_context():
        MailingListSubscriber.__table__.drop(db.engine)

    resp = client.get('/health/ready')
    assert resp.status_code == 503
    data = resp.get_json()
    assert data['schema'] == 'incomplete'
    assert data['missing_tables'] == ['mailing_list']


def test_health_needs_no_login(client):
    assert client.get('/health').status_code == 200


def test_readiness_reports_missing_storage_settings(app, client):
    app.config.update(STORAGE_BACKEND='supabase', SUPABASE_URL='https://abc.supabase.co', SUPABASE_SERVICE_ROLE_KEY=None)

    resp = client.get('/health/ready')
    assert resp.status_code == 503
    data = resp.get_json()
    assert data['storage'] == 'supabase'
    assert data['storage_missing'] == ['SUPABASE_SERVICE_ROLE_KEY']
    assert 'abc.supabase.co' not in resp.get_data(as_text=True)
