from io import BytesIO

import pytest

from photoman.api_server import app, sessions


@pytest.fixture
def client():
    app.config['TESTING'] = True
    with app.test_client() as client:
        yield client


@pytest.fixture
def upload(client, rgba_pixels, make_png):
    def _upload(data=None, filename="photo.png", session_id=None):
        form = {'image': (BytesIO(make_png(rgba_pixels) if data is None else data), filename)}
        if session_id:
            form['session_id'] = session_id
        return client.post('/api/upload', data=form, content_type='multipart/form-data')
    return _upload


def test_health(client):
    response = client.get('/api/health')

    assert response.status_code == 200
    assert response.get_json()['status'] == 'healthy'


def test_effect_catalogue(client):
    effects = {e['name']: e for e in client.get('/api/effects').get_json()['effects']}

    assert set(effects) == {'grayscale', 'edge-detection', 'brightness', 'contrast', 'invert'}
    assert effects['brightness']['takes_factor'] is True
    assert effects['invert']['default_factor'] is None


def test_upload_creates_a_loaded_session(upload):
    body = upload().get_json()

    assert body['success'] is True
    assert body['state'] == 'loaded'
    assert (body['width'], body['height']) == (7, 5)
    assert body['original_url'].startswith('data:image/png;base64,')
    assert sessions.get(body['session_id']) is not None


def test_upload_rejects_garbage(upload):
    response = upload(data=b"not an image")

    assert response.status_code == 400
    assert response.get_json()['success'] is False


@pytest.mark.parametrize('filename', ['照片.png', 'blob'])
def test_upload_accepts_any_filename(upload, filename):
    response = upload(filename=filename)
    body = response.get_json()

    assert response.status_code == 200
    assert body['state'] == 'loaded'
    assert sessions.get(body['session_id']).source.filename == filename


def test_upload_without_file(client):
    response = client.post('/api/upload', data={}, content_type='multipart/form-data')
    assert response.status_code == 400


def test_apply_effect_and_download(client, upload):
    session_id = upload().get_json()['session_id']

    response = client.post('/api/effects/apply', json={'session_id': session_id, 'effect': 'brightness', 'factor': 1.5})
    body = response.get_json()
    assert response.status_code == 200
    assert body['state'] == 'ready'
    assert body['effect'] == 'brightness'
    assert body['result_url'].startswith('data:image/png;base64,')

    download = client.get(f'/api/download?session_id={session_id}&format=jpeg')
    assert download.status_code == 200
    assert download.mimetype == 'image/jpeg'
    assert 'manipulated-image.jpeg' in download.headers['Content-Disposition']
    assert download.data[:2] == b'\xff\xd8'


def test_failed_effect_keeps_state(client, upload):
    session_id = upload().get_json()['session_id']

    for payload in ({'effect': 'blur'}, {'effect': 'contrast', 'factor': 5}):
        response = client.post('/api/effects/apply', json={'session_id': session_id, **payload})
        assert response.status_code == 400
        assert response.get_json()['success'] is False

    assert sessions.get(session_id).describe()['state'] == 'loaded'


def test_chain_flag_accepts_strings(client, upload):
    session_id = upload().get_json()['session_id']
    apply = {'session_id': session_id, 'effect': 'invert'}

    client.post('/api/effects/apply', json=apply)
    first = sessions.get(session_id).result.pixels.copy()

    response = client.post('/api/effects/apply', json={**apply, 'chain': 'false'})
    assert response.status_code == 200
    # started again from the upload, so inverting once more gives the same image
    assert (sessions.get(session_id).result.pixels == first).all()


def test_chain_flag_rejects_nonsense(client, upload):
    session_id = upload().get_json()['session_id']

    response = client.post('/api/effects/apply', json={'session_id': session_id, 'effect': 'invert', 'chain': 'maybe'})

    assert response.status_code == 400
    assert sessions.get(session_id).describe()['state'] == 'loaded'


def test_unknown_session(client):
    response = client.post('/api/effects/apply', json={'session_id': 'nope', 'effect': 'invert'})
    assert response.status_code == 400

    response = client.get('/api/download?session_id=nope')
    assert response.status_code == 400


def test_download_before_any_effect(client, upload):
    session_id = upload().get_json()['session_id']

    response = client.get(f'/api/download?session_id={session_id}')
    assert response.status_code == 400


def test_view_switch(client, upload):
    session_id = upload().get_json()['session_id']

    assert client.post('/api/view', json={'session_id': session_id, 'view': 'result'}).status_code == 400

    client.post('/api/effects/apply', json={'session_id': session_id, 'effect': 'invert'})
    body = client.post('/api/view', json={'session_id': session_id, 'view': 'original'}).get_json()
    assert body['view'] == 'original'
    assert body['image_url'].startswith('data:image/png')

    assert client.post('/api/view', json={'session_id': session_id, 'view': 'sideways'}).status_code == 400


def test_reupload_into_same_session(client, upload):
    session_id = upload().get_json()['session_id']
    client.post('/api/effects/apply', json={'session_id': session_id, 'effect': 'grayscale'})

    body = upload(session_id=session_id).get_json()

    assert body['session_id'] == session_id
    assert body['state'] == 'loaded'
    assert body['effect'] is None


def test_clear_session(client, upload):
    session_id = upload().get_json()['session_id']

    assert client.post('/api/clear-session', json={'session_id': session_id}).get_json()['success'] is True
    assert sessions.get(session_id) is None
    assert client.post('/api/clear-session', json={'session_id': session_id}).get_json()['success'] is False
