import pytest

from modiopy.exceptions import InvalidReferenceError
from modiopy.reference import ReferenceCodec, format_reference, is_preview, parse_reference


def test_parse_slug_only():
    ref = parse_reference("https://mod.io/g/drg/m/rock-drill")
    assert ref.slug == "rock-drill"
    assert ref.mod_id is None
    assert ref.file_id is None
    assert not ref.is_pinned


def test_parse_mod_id():
    ref = parse_reference("https://mod.io/g/drg/m/rock-drill#3")
    assert (ref.slug, ref.mod_id, ref.file_id) == ("rock-drill", 3, None)


def test_parse_pinned():
    ref = parse_reference("https://mod.io/g/drg/m/rock-drill#3/5")
    assert (ref.slug, ref.mod_id, ref.file_id) == ("rock-drill", 3, 5)
    assert ref.is_pinned
    assert ref.url == "https://mod.io/g/drg/m/rock-drill#3/5"


def test_format_reparses_to_same_components():
    url = format_reference("better-post-processing", 1861561, 2950238)
    assert url == "https://mod.io/g/drg/m/better-post-processing#1861561/2950238"
    ref = parse_reference(url)
    assert (ref.slug, ref.mod_id, ref.file_id) == ("better-post-processing", 1861561, 2950238)
    assert format_reference("better-post-processing", 1861561) == "https://mod.io/g/drg/m/better-post-processing#1861561"


@pytest.mark.parametrize("url", [
    "https://mod.io/g/drg/m/",
    "http://mod.io/g/drg/m/rock-drill",
    "https://mod.io/g/other/m/rock-drill",
    "https://mod.io/g/drg/m/rock-drill#",
    "https://mod.io/g/drg/m/rock-drill#abc",
    "https://mod.io/g/drg/m/rock-drill#3/",
    "https://mod.io/g/drg/m/rock/drill",
    "https://mod.io/g/drg/m/rock-drill#3/5/7",
    "rock-drill",
])
def test_invalid_references_rejected(url):
    codec = ReferenceCodec()
    assert not codec.matches(url)
    with pytest.raises(InvalidReferenceError) as exc:
        codec.parse(url)
    assert "invalid modio URL" in str(exc.value)


def test_custom_host_and_game():
    codec = ReferenceCodec(host="mods.example.org", game="other.game")
    assert codec.matches("https://mods.example.org/g/other.game/m/x#1")
    # dots in the game name are literal
    assert not codec.matches("https://mods.example.org/g/otherXgame/m/x#1")


def test_preview_detection():
    assert is_preview("https://mod.io/g/drg/m/rock-drill?preview=abcdef")
    assert not is_preview("https://mod.io/g/drg/m/rock-drill#3/5")
