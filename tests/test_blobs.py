import hashlib

from modiopy.blobs import BlobReference, FileBlobStore


def test_write_and_get_path(tmp_path):
    store = FileBlobStore(tmp_path / "blobs")
    ref = store.write(b"payload")
    assert ref.id == hashlib.sha256(b"payload").hexdigest()
    assert ref.size == 7
    path = store.get_path(ref)
    assert path.read_bytes() == b"payload"
    assert not list((tmp_path / "blobs").glob("*.part"))


def test_same_bytes_stored_once(tmp_path):
    store = FileBlobStore(tmp_path)
    assert store.write(b"x") == store.write(b"x")
    assert len(list(tmp_path.iterdir())) == 1


def test_missing_or_escaping_blob(tmp_path):
    store = FileBlobStore(tmp_path / "blobs")
    (tmp_path / "secret").write_bytes(b"nope")
    assert store.get_path(BlobReference("0" * 64)) is None
    assert store.get_path(BlobReference("../secret")) is None


def test_blob_reference_from_dict():
    assert BlobReference.from_dict("abc") == BlobReference("abc")
    assert BlobReference.from_dict({"id": "abc", "size": 3}).to_dict() == {"id": "abc", "size": 3}
