import pytest

from exam_agent.services.key_rotator import KeyRotator
from exam_agent.utils.errors import NoKeysConfigured
from exam_agent.utils.settings import Settings


def test_rotation_visits_each_key_once_then_wraps():
    keys = ["k1", "k2", "k3"]
    r = KeyRotator(keys)
    seen = [r.next_key() for _ in keys]
    assert seen == keys
    assert r.next_key() == "k1"


def test_single_key_pool_always_returns_same_key():
    r = KeyRotator(["only"])
    assert [r.next_key() for _ in range(3)] == ["only", "only", "only"]
    assert r.cursor == 0


def test_empty_pool_raises():
    r = KeyRotator()
    with pytest.raises(NoKeysConfigured):
        r.next_key()
    with pytest.raises(NoKeysConfigured):
        r.next_key()


def test_set_keys_drops_blank_entries_and_resets_cursor():
    r = KeyRotator(["a", "b"])
    r.next_key()
    assert r.cursor == 1

    r.set_keys(["  x ", "", "   ", "y"])
    assert len(r) == 2
    assert r.cursor == 0
    assert r.next_key() == "x"
    assert r.next_key() == "y"


def test_set_keys_with_only_blanks_empties_pool():
    r = KeyRotator(["a"])
    r.set_keys(["", "  "])
    assert len(r) == 0
    with pytest.raises(NoKeysConfigured):
        r.next_key()


def test_next_slot_reports_index_for_logging():
    r = KeyRotator(["a", "b"])
    assert r.next_slot() == (0, "a")
    assert r.next_slot() == (1, "b")
    assert r.next_slot() == (0, "a")


def test_repr_does_not_leak_keys():
    r = KeyRotator(["secret-key-123"])
    assert "secret-key-123" not in repr(r)


def test_from_settings_splits_commas_and_newlines():
    s = Settings(GEMINI_API_KEYS="k1, k2\nk3,,")
    r = KeyRotator.from_settings(s)
    assert len(r) == 3
    assert [r.next_key() for _ in range(3)] == ["k1", "k2", "k3"]


def test_set_keys_accepts_a_comma_separated_string():
    r = KeyRotator()
    r.set_keys("k1,k2")
    assert len(r) == 2
    assert [r.next_key() for _ in range(3)] == ["k1", "k2", "k1"]


def test_constructor_string_is_a_pool_not_characters():
    r = KeyRotator("AIzaOne\nAIzaTwo")
    assert len(r) == 2
    assert r.next_key() == "AIzaOne"
