import json

import pytest

from fingerspell_client.composer import (
    DEFAULT_WORDS,
    WordComposer,
    load_word_dictionary,
    validate_word_dictionary,
)
from fingerspell_client.exceptions import WordDictionaryError


def test_first_sign_becomes_pending():
    composer = WordComposer()
    assert composer.accept("さ") is None
    assert composer.pending == "さ"


def test_pair_resolves_word():
    composer = WordComposer()
    composer.accept("さ")
    assert composer.accept("き") == "先"
    assert composer.pending is None
    assert composer.last_resolved == ("さき", "先")


def test_unknown_pair_keeps_only_new_sign():
    composer = WordComposer()
    composer.accept("さ")
    assert composer.accept("さ") is None
    assert composer.pending == "さ"


def test_old_first_half_is_not_retried():
    composer = WordComposer()
    composer.accept("か")
    # "かく" is not a word; "く" starts the next pair
    assert composer.accept("く") is None
    assert composer.pending == "く"
    assert composer.accept("さ") == "草"


def test_next_sign_after_resolution_starts_fresh():
    composer = WordComposer()
    composer.accept("あ")
    assert composer.accept("さ") == "朝"
    assert composer.accept("き") is None
    assert composer.pending == "き"


def test_reset_clears_pending():
    composer = WordComposer()
    composer.accept("か")
    composer.reset()
    assert composer.pending is None
    assert composer.accept("さ") is None
    composer.reset()
    composer.reset()
    assert composer.pending is None


def test_custom_dictionary():
    composer = WordComposer({"いえ": "家"})
    composer.accept("い")
    assert composer.accept("え") == "家"
    composer.accept("さ")
    assert composer.accept("き") is None


def test_default_dictionary_keys_are_pairs():
    assert all(len(k) == 2 for k in DEFAULT_WORDS)
    assert DEFAULT_WORDS["さき"] == "先"


@pytest.mark.parametrize("words", [{"さ": "x"}, {"さきさ": "x"}, {"さき": ""}, {"さき": 1}])
def test_invalid_entries_rejected(words):
    with pytest.raises(WordDictionaryError):
        validate_word_dictionary(words)


def test_load_word_dictionary(tmp_path):
    path = tmp_path / "words.json"
    path.write_text(json.dumps({"いぬ": "犬", "ねこ": "猫"}, ensure_ascii=False), encoding="utf-8")
    assert load_word_dictionary(path) == {"いぬ": "犬", "ねこ": "猫"}


def test_load_missing_file(tmp_path):
    with pytest.raises(WordDictionaryError):
        load_word_dictionary(tmp_path / "missing.json")


def test_load_invalid_json(tmp_path):
    path = tmp_path / "words.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(WordDictionaryError):
        load_word_dictionary(path)


def test_load_non_object(tmp_path):
    path = tmp_path / "words.json"
    path.write_text('["さき"]', encoding="utf-8")
    with pytest.raises(WordDictionaryError):
        load_word_dictionary(path)
