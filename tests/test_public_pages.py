"""Public marketing pages, mailing-list form and error pages."""

from refittr.models import MailingListSubscriber


def test_homepage(client):
    resp = client.get('/')
    assert resp.status_code == 200
    body = resp.get_data(as_text=True)
    assert 'Refittr' in body
    assert 'Notify Me' in body
    assert 'Verified Schemas' in body
    assert 'Admin Login' in body


def test_about_page(client):
    resp = client.get('/about')
    assert resp.status_code == 200
    body = resp.get_data(as_text=True)
    for heading in ('Our Mission', 'How Refittr Works', 'Who We Serve', 'What Makes Us Different'):
        assert heading in body


def test_subscribe_form_adds_email(app, client):
    resp = client.post('/subscribe', data={'email': 'Fan@Example.com'})
    assert resp.status_code == 302
    assert resp.headers['Location'].endswith('/#signup')

    page = client.get('/').get_data(as_text=True)
    assert 'on the list' in page

    with app.app_context():
        assert MailingListSubscriber.query.filter_by(email='fan@example.com').count() == 1


def test_subscribe_form_reports_duplicate(client):
    client.post('/subscribe', data={'email': 'fan@example.com'})
    resp = client.post('/subscribe', data={'email': 'FAN@example.com'}, follow_redirects=True)
    assert 'This email is already subscribed' in resp.get_data(as_text=True)


def test_subscribe_form_rejects_bad_email(app, client):
    resp = client.post('/subscribe', data={'email': 'not-an-email'}, follow_redirects=True)
    assert 'Please enter a valid email address' in resp.get_data(as_text=True)
    with app.app_context():
        assert MailingListSubscriber.query.count() == 0


def test_subscribe_form_trims_email(app, client):
    resp = client.post('/subscribe', data={'email': '  Fan@Example.com '}, follow_redirects=True)
    assert 'on the list' in resp.get_data(as_text=True)
    with app.app_context():
        assert MailingListSubscriber.query.filter_by(email='fan@example.com').count() == 1


def test_security_headers(client):
    resp = client.get('/')
    assert resp.headers['X-Frame-Options'] == 'DENY'
    assert resp.headers['X-Content-Type-Options'] == 'nosniff'
    assert "default-src 'self'" in resp.headers['Content-Security-Policy']


def test_unknown_page_renders_404(client):
    resp = client.get('/no-such-page')
    assert resp.status_code == 404
    assert resp.mimetype == 'text/html'


def test_unknown_api_path_returns_json_404(client):
    resp = client.get('/api/no-such-endpoint')
    assert resp.status_code == 404
    assert resp.get_json() == {'error': 'Not found'}


def test_local_uploads_are_not_served_for_other_backends(client):
    # The test app uses an in-memory storage client, not LocalStorage.
    assert client.get('/uploads/floor-plans/plan.pdf').status_code == 404
