from modiopy.types_models import ModEntry, ModFile, ModSummary, RemoteFile


def test_mod_entry_from_official_shape():
    entry = ModEntry.from_dict(
        {"id": 3, "name_id": "rock-drill", "name": "Rock Drill", "modfile": {"id": 5}, "tags": [{"name": "Audio"}, {}]},
        files=[{"id": 5, "date_added": "2024-05-01T12:00:00Z", "version": "1.2", "changelog": "fix"}],
    )
    assert entry.slug == "rock-drill"
    assert entry.latest_file_id == 5
    assert entry.tags == {"Audio"}
    f = entry.find_file(5)
    assert f.date_added == 1714564800
    assert f.changelog == "fix"
    assert entry.find_file(6) is None


def test_mod_entry_without_latest_file():
    entry = ModEntry.from_dict({"name_id": "empty", "name": "Empty", "modfile": None})
    assert entry.latest_file_id is None
    assert entry.files == []


def test_cache_shape_is_what_from_dict_reads():
    entry = ModEntry("rock-drill", "Rock Drill", 5, [ModFile(5, 1700000005, "1.2")], {"b", "a"})
    data = entry.to_dict()
    assert data["tags"] == ["a", "b"]
    assert ModEntry.from_dict(data) == entry


def test_remote_file_and_summary():
    remote = RemoteFile.from_dict({"id": 5, "filesize": "42", "download": {"binary_url": "https://cdn.example/5"}})
    assert (remote.id, remote.filesize, remote.download_url) == (5, 42, "https://cdn.example/5")
    assert ModSummary.from_dict({"id": "7", "slug": "lib"}) == ModSummary(7, "lib", None)
