import os

import pytest

from fakes import png_bytes
from nudge.errors import PersistenceError
from nudge.storage import ImageStorage, get_storage


def test_upload_writes_once(tmp_path):
    storage = ImageStorage(str(tmp_path), 'nudge-assets')
    name = storage.upload('generated-1.png', png_bytes())
    assert name == 'generated-1.png'
    assert os.path.exists(tmp_path / 'nudge-assets' / 'generated-1.png')

    with pytest.raises(PersistenceError) as exc:
        storage.upload('generated-1.png', png_bytes(color=(0, 0, 0)))
    assert 'already exists' in exc.value.message


def test_upload_rejects_non_images(tmp_path):
    storage = ImageStorage(str(tmp_path), 'nudge-assets')
    with pytest.raises(PersistenceError):
        storage.upload('fake.png', b'<html>expired</html>')
    assert not os.path.exists(tmp_path / 'nudge-assets' / 'fake.png')


def test_public_urls(tmp_path):
    assert ImageStorage(str(tmp_path), 'b', 'https://cdn.test/').public_url('x.png') == 'https://cdn.test/b/x.png'
    assert ImageStorage(str(tmp_path), 'b').public_url('x.png') == '/storage/b/x.png'


def test_serve_stored_file(app, client):
    storage = get_storage()
    data = png_bytes()
    storage.upload('served.png', data)

    resp = client.get(f'/storage/{storage.bucket}/served.png')
    assert resp.status_code == 200
    assert resp.data == data
    assert resp.headers['Content-Type'] == 'image/png'

    assert client.get('/storage/other-bucket/served.png').status_code == 404
    assert client.get(f'/storage/{storage.bucket}/missing.png').status_code == 404
